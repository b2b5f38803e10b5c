from __future__ import annotations

import pytest

from pyequip.exceptions import TagDecodeError
from pyequip.models.session import Session, SessionType
from pyequip.tags import (
    SessionRef,
    decode_session_tag,
    encode_session,
    encode_session_tag,
    is_session_tag,
    tagged_session_id,
)


def test_encode_then_decode_is_exact_for_pipe_free_fields() -> None:
    ref = SessionRef(
        session_id="S1",
        project_name="Expo Verano",
        start_date="2024-01-01",
        end_date="2024-01-05",
        user_id="U7",
        type=SessionType.EVENT,
    )

    tag = encode_session_tag(ref)

    assert tag == "SESION|S1|Expo Verano|2024-01-01|2024-01-05|U7|Evento"
    assert decode_session_tag(tag) == ref


def test_pipes_are_stripped_from_fields() -> None:
    session = Session(id="S2", project_name="Rock | Pop", user_id="U1", start_date="2024-02-01")

    tag = encode_session(session)

    assert tag.count("|") == 6
    assert decode_session_tag(tag).project_name == "Rock  Pop"


def test_unknown_type_labels_survive_the_round_trip() -> None:
    ref = decode_session_tag("SESION|S3|P|2024-01-01||U1|Grabación")

    assert ref.type == "Grabación"
    assert ref.end_date == ""


@pytest.mark.parametrize(
    "text",
    [
        "Devuelto Ok",
        "SESION|S1|P|2024-01-01|2024-01-02|U1",
        "SESION|S1|P|2024-01-01|2024-01-02|U1|Evento|extra",
        "SESION| |P|2024-01-01|2024-01-02|U1|Evento",
    ],
)
def test_malformed_tags_raise(text: str) -> None:
    with pytest.raises(TagDecodeError):
        decode_session_tag(text)
    assert tagged_session_id(text) is None


def test_is_session_tag() -> None:
    assert is_session_tag("SESION|S1|P|a|b|U|T")
    assert not is_session_tag("sesion|S1")
    assert not is_session_tag(None)
