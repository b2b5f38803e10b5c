"""Codec for the session tag stored in an item's condition text.

The backend has no session table. While an item is lent out its condition
cell holds::

    SESION|{sessionId}|{projectName}|{startDate}|{endDate}|{userId}|{type}

This module is the only place that reads or writes that grammar.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import Field, field_validator

from pyequip._constants import SESSION_TAG_FIELDS, SESSION_TAG_PREFIX, SESSION_TAG_SEPARATOR
from pyequip.exceptions import TagDecodeError
from pyequip.models._base import FeedBaseModel
from pyequip.models.session import Session, SessionStatus, SessionType, coerce_session_type

_logger = logging.getLogger(__name__)


def _clean(value: object) -> str:
    return str(value or "").replace(SESSION_TAG_SEPARATOR, "").strip()


class SessionRef(FeedBaseModel):
    """Decoded session tag."""

    session_id: str
    project_name: str = ""
    start_date: str = ""
    end_date: str = ""
    user_id: str = ""
    type: SessionType | str = Field(default=SessionType.RESIDENCY)

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> SessionType | str:
        return coerce_session_type(value)

    @classmethod
    def from_session(cls, session: Session) -> SessionRef:
        return cls(
            session_id=session.id,
            project_name=session.project_name,
            start_date=session.start_date,
            end_date=session.end_date,
            user_id=session.user_id,
            type=session.type,
        )

    def to_session(self, items: tuple[str, ...] = ()) -> Session:
        return Session(
            id=self.session_id,
            project_name=self.project_name,
            user_id=self.user_id,
            type=self.type,
            start_date=self.start_date,
            end_date=self.end_date,
            status=SessionStatus.ACTIVE,
            items=items,
        )


def is_session_tag(text: object) -> bool:
    """Cheap check used before attempting a full decode."""
    return isinstance(text, str) and text.startswith(f"{SESSION_TAG_PREFIX}{SESSION_TAG_SEPARATOR}")


def encode_session_tag(ref: SessionRef) -> str:
    """Serialize *ref*. ``|`` is stripped from every field."""
    fields = (
        SESSION_TAG_PREFIX,
        _clean(ref.session_id),
        _clean(ref.project_name),
        _clean(ref.start_date),
        _clean(ref.end_date),
        _clean(ref.user_id),
        _clean(ref.type),
    )
    return SESSION_TAG_SEPARATOR.join(fields)


def encode_session(session: Session) -> str:
    return encode_session_tag(SessionRef.from_session(session))


def decode_session_tag(text: str) -> SessionRef:
    """Parse a tag produced by :func:`encode_session_tag`.

    Raises
    ------
    TagDecodeError
        If the discriminator is missing, the field count is not exactly
        seven, or the session id is empty.
    """
    if not is_session_tag(text):
        raise TagDecodeError(f"Not a session tag: {text[:40]!r}")
    parts = text.split(SESSION_TAG_SEPARATOR)
    if len(parts) != SESSION_TAG_FIELDS:
        raise TagDecodeError(f"Session tag has {len(parts)} fields, expected {SESSION_TAG_FIELDS}: {text[:80]!r}")
    _, session_id, project, start, end, user_id, session_type = (p.strip() for p in parts)
    if not session_id:
        raise TagDecodeError(f"Session tag without session id: {text[:80]!r}")
    return SessionRef(
        session_id=session_id,
        project_name=project,
        start_date=start,
        end_date=end,
        user_id=user_id,
        type=coerce_session_type(session_type),
    )


def tagged_session_id(text: object) -> str | None:
    """Session id encoded in *text*, or ``None`` if it is not a valid tag."""
    if not is_session_tag(text):
        return None
    try:
        return decode_session_tag(str(text)).session_id
    except TagDecodeError:
        _logger.debug("Ignoring malformed session tag %r", text)
        return None
