from __future__ import annotations

import logging

import pytest

from pyequip.ingestion.sessions import claims_by_item, reconstruct_sessions
from pyequip.models.equipment import Equipment, EquipmentStatus
from pyequip.models.session import SessionStatus, SessionType

TAG_S1 = "SESION|S1|Expo|2024-01-01|2024-01-05|U7|Evento"


def _item(item_id: str, status: EquipmentStatus, condition: str = "") -> Equipment:
    return Equipment(id=item_id, name=f"Item {item_id}", status=status, condition=condition)


def test_single_tagged_item_yields_one_active_session() -> None:
    sessions = reconstruct_sessions([_item("CAM-1", EquipmentStatus.IN_USE, TAG_S1)])

    assert len(sessions) == 1
    session = sessions[0]
    assert session.id == "S1"
    assert session.items == ("CAM-1",)
    assert session.start_date == "2024-01-01"
    assert session.end_date == "2024-01-05"
    assert session.user_id == "U7"
    assert session.type == SessionType.EVENT
    assert session.status == SessionStatus.ACTIVE


def test_items_group_by_session_in_first_seen_order() -> None:
    tag_s2 = "SESION|S2|Taller|2024-02-01|2024-02-02|U2|Workshops/Clases"
    equipment = [
        _item("A", EquipmentStatus.IN_USE, tag_s2),
        _item("B", EquipmentStatus.ASSIGNED_INTERNAL, TAG_S1),
        _item("C", EquipmentStatus.IN_USE, tag_s2),
        _item("D", EquipmentStatus.AVAILABLE, TAG_S1),
        _item("E", EquipmentStatus.IN_USE, "Rayado"),
    ]

    sessions = reconstruct_sessions(equipment)

    assert [s.id for s in sessions] == ["S2", "S1"]
    assert sessions[0].items == ("A", "C")
    # Available items never belong to a session, whatever their condition says.
    assert sessions[1].items == ("B",)


def test_reconstruction_is_idempotent() -> None:
    equipment = [
        _item("A", EquipmentStatus.IN_USE, TAG_S1),
        _item("B", EquipmentStatus.IN_USE, TAG_S1),
    ]

    assert reconstruct_sessions(equipment) == reconstruct_sessions(equipment)


def test_duplicate_item_rows_count_once() -> None:
    item = _item("A", EquipmentStatus.IN_USE, TAG_S1)

    (session,) = reconstruct_sessions([item, item])

    assert session.items == ("A",)


def test_malformed_tags_are_skipped_with_a_warning(caplog: pytest.LogCaptureFixture) -> None:
    equipment = [
        _item("A", EquipmentStatus.IN_USE, "SESION||Expo|2024-01-01|2024-01-05|U7|Evento"),
        _item("B", EquipmentStatus.IN_USE, "SESION|S9|Expo"),
        _item("C", EquipmentStatus.IN_USE, TAG_S1),
    ]

    with caplog.at_level(logging.WARNING):
        sessions = reconstruct_sessions(equipment)

    assert [s.id for s in sessions] == ["S1"]
    assert "Skipping session tag on item A" in caplog.text
    assert "Skipping session tag on item B" in caplog.text


def test_claims_by_item_keeps_first_claimant() -> None:
    equipment = [_item("A", EquipmentStatus.IN_USE, TAG_S1)]
    sessions = reconstruct_sessions(equipment)

    assert claims_by_item(sessions) == {"A": "S1"}
