from __future__ import annotations

from datetime import UTC, datetime

import pytest

from pyequip.exceptions import (
    AssignmentNotFoundError,
    ItemAlreadyInSessionError,
    ItemUnavailableError,
    MutationRejectedError,
    SessionNotFoundError,
)
from pyequip.models.assignment import AssignmentStatus
from pyequip.models.commands import LogSessionCommand, UpdateStatusCommand, command_body
from pyequip.models.equipment import Equipment, EquipmentStatus
from pyequip.models.session import Session, SessionStatus, SessionType
from pyequip.models.user import User, UserRole
from pyequip.state.mutations import (
    AddAssignment,
    AddItemToSession,
    CloseSession,
    CreateSession,
    RemoveItemFromSession,
    ReturnAssignment,
)
from pyequip.state.pipeline import MutationContext, apply_mutation
from pyequip.state.snapshot import InventorySnapshot

NOW = datetime(2024, 1, 3, 15, 30, tzinfo=UTC)
CTX = MutationContext(now=NOW)
TAG_S1 = "SESION|S1|Expo|2024-01-01|2024-01-05|U7|Evento"


def _snapshot() -> InventorySnapshot:
    return InventorySnapshot(
        equipment=(
            Equipment(id="CAM-1", name="Camera X", status=EquipmentStatus.IN_USE, condition=TAG_S1),
            Equipment(id="CAM-2", name="Tripod", status=EquipmentStatus.IN_USE, condition=TAG_S1),
            Equipment(id="CAM-3", name="Mic", status=EquipmentStatus.AVAILABLE, condition="Ok"),
            Equipment(id="CAM-4", name="Light", status=EquipmentStatus.MAINTENANCE),
        ),
        users=(
            User(id="U7", name="Ana", role=UserRole.RESIDENT),
            User(id="U2", name="Pedro", role=UserRole.STAFF),
        ),
        sessions=(
            Session(
                id="S1",
                project_name="Expo",
                user_id="U7",
                type=SessionType.EVENT,
                start_date="2024-01-01",
                end_date="2024-01-05",
                items=("CAM-1", "CAM-2"),
            ),
        ),
    )


def test_close_session_releases_items_and_records_history() -> None:
    snapshot = _snapshot()

    outcome = apply_mutation(snapshot, CloseSession(session_id="S1", comment=""), CTX)

    after = outcome.snapshot
    for item_id in ("CAM-1", "CAM-2"):
        item = after.item(item_id)
        assert item.status == EquipmentStatus.AVAILABLE
        assert item.condition == "Devuelto Ok"
    assert after.sessions == ()
    closed = after.history[0]
    assert closed.id == "S1"
    assert closed.status == SessionStatus.CLOSED
    assert closed.end_date == "2024-01-03T15:30:00.000Z"
    assert closed.observations == "Devuelto Ok"
    assert "S1" in after.pending.closed

    update, log = outcome.commands
    assert isinstance(update, UpdateStatusCommand)
    assert [(u.equipment_id, u.status, u.condition) for u in update.updates] == [
        ("CAM-1", EquipmentStatus.AVAILABLE, "Devuelto Ok"),
        ("CAM-2", EquipmentStatus.AVAILABLE, "Devuelto Ok"),
    ]
    assert isinstance(log, LogSessionCommand)
    assert update.token != log.token


def test_close_session_log_record_shape() -> None:
    outcome = apply_mutation(_snapshot(), CloseSession(session_id="S1", comment="Falta un cable"), CTX)

    log = outcome.commands[-1]
    assert isinstance(log, LogSessionCommand)
    assert command_body(log, "secret") == {
        "key": "secret",
        "action": "LOG_SESSION",
        "logData": {
            "SessionID": "S1",
            "Project": "Expo",
            "UserID": "U7",
            "UserName": "Ana",
            "Start": "2024-01-01",
            "End": "2024-01-03",
            "Items": "Camera X, Tripod",
            "Type": "Evento",
            "Observations": "Falta un cable",
        },
    }
    assert outcome.snapshot.item("CAM-1").condition == "Falta un cable"


def test_create_session_with_unavailable_item_changes_nothing() -> None:
    snapshot = _snapshot()

    with pytest.raises(ItemUnavailableError) as excinfo:
        apply_mutation(
            snapshot,
            CreateSession(user_id="U7", project_name="Otro", start_date="2024-01-03", items=("CAM-3", "CAM-1")),
            CTX,
        )

    assert excinfo.value.item_ids == ("CAM-1",)
    assert snapshot == _snapshot()


def test_create_session_rejects_unknown_and_maintenance_items() -> None:
    with pytest.raises(ItemUnavailableError) as excinfo:
        apply_mutation(
            _snapshot(),
            CreateSession(user_id="U7", project_name="Otro", start_date="2024-01-03", items=("NOPE", "CAM-4")),
            CTX,
        )

    assert excinfo.value.item_ids == ("NOPE", "CAM-4")


def test_create_session_claims_items_and_emits_one_command() -> None:
    outcome = apply_mutation(
        _snapshot(),
        CreateSession(
            user_id="U2",
            project_name="Rodaje | Interno",
            start_date="2024-01-03",
            end_date="2024-01-04",
            items=("CAM-3", "CAM-3"),
            session_id="L1",
        ),
        CTX,
    )

    after = outcome.snapshot
    session = after.sessions[0]
    assert session.id == "L1"
    assert session.project_name == "Rodaje  Interno"
    assert session.type == SessionType.INTERNAL_PRODUCTION
    assert session.items == ("CAM-3",)
    assert after.item("CAM-3").status == EquipmentStatus.ASSIGNED_INTERNAL
    assert after.item("CAM-3").condition == "SESION|L1|Rodaje  Interno|2024-01-03|2024-01-04|U2|Producción interna"
    assert "L1" in after.pending.sessions

    (command,) = outcome.commands
    assert command_body(command, "k") == {
        "key": "k",
        "action": "UPDATE_STATUS",
        "updates": [
            {
                "equipmentId": "CAM-3",
                "status": "Asignado interno",
                "condition": "SESION|L1|Rodaje  Interno|2024-01-03|2024-01-04|U2|Producción interna",
            }
        ],
    }


def test_create_session_rejects_duplicate_id() -> None:
    with pytest.raises(MutationRejectedError):
        apply_mutation(
            _snapshot(),
            CreateSession(user_id="U7", project_name="P", start_date="2024-01-03", items=("CAM-3",), session_id="S1"),
            CTX,
        )


def test_add_item_to_session() -> None:
    outcome = apply_mutation(_snapshot(), AddItemToSession(session_id="S1", item_id="CAM-3"), CTX)

    assert outcome.snapshot.session("S1").items == ("CAM-1", "CAM-2", "CAM-3")
    item = outcome.snapshot.item("CAM-3")
    assert item.status == EquipmentStatus.IN_USE
    assert item.condition == TAG_S1
    assert outcome.snapshot.pending.items["CAM-3"].session_id == "S1"
    assert len(outcome.commands) == 1


def test_add_item_to_session_rejections() -> None:
    snapshot = _snapshot()

    with pytest.raises(SessionNotFoundError):
        apply_mutation(snapshot, AddItemToSession(session_id="S404", item_id="CAM-3"), CTX)
    with pytest.raises(ItemAlreadyInSessionError):
        apply_mutation(snapshot, AddItemToSession(session_id="S1", item_id="CAM-1"), CTX)
    with pytest.raises(ItemUnavailableError):
        apply_mutation(snapshot, AddItemToSession(session_id="S1", item_id="CAM-4"), CTX)


def test_remove_item_from_session() -> None:
    outcome = apply_mutation(_snapshot(), RemoveItemFromSession(session_id="S1", item_id="CAM-2"), CTX)

    assert outcome.snapshot.session("S1").items == ("CAM-1",)
    item = outcome.snapshot.item("CAM-2")
    assert item.status == EquipmentStatus.AVAILABLE
    assert item.condition == "Devuelto"
    (command,) = outcome.commands
    assert command.updates[0].condition == "Devuelto"


def test_assignment_lifecycle() -> None:
    outcome = apply_mutation(
        _snapshot(),
        AddAssignment(user_id="U2", equipment_id="CAM-3", initial_condition="Nuevo", assignment_id="A1"),
        CTX,
    )

    after = outcome.snapshot
    assert after.item("CAM-3").status == EquipmentStatus.ASSIGNED_INTERNAL
    # Assignments never touch the condition text.
    assert after.item("CAM-3").condition == "Ok"
    (command,) = outcome.commands
    assert command_body(command, "k")["updates"] == [{"equipmentId": "CAM-3", "status": "Asignado interno"}]
    assert after.assignment("A1").assigned_date == "2024-01-03T15:30:00.000Z"

    returned = apply_mutation(after, ReturnAssignment(assignment_id="A1", return_condition="Rayado"), CTX).snapshot
    assignment = returned.assignment("A1")
    assert assignment.status == AssignmentStatus.RETURNED
    assert assignment.return_date == "2024-01-03T15:30:00.000Z"
    assert returned.item("CAM-3").status == EquipmentStatus.AVAILABLE
    assert returned.item("CAM-3").condition == "Rayado"

    with pytest.raises(MutationRejectedError):
        apply_mutation(returned, ReturnAssignment(assignment_id="A1"), CTX)
    with pytest.raises(AssignmentNotFoundError):
        apply_mutation(returned, ReturnAssignment(assignment_id="A404"), CTX)


def test_assignment_requires_available_item() -> None:
    with pytest.raises(ItemUnavailableError):
        apply_mutation(_snapshot(), AddAssignment(user_id="U2", equipment_id="CAM-1"), CTX)
