"""Optimistic mutation pipeline.

:func:`apply_mutation` is pure: it takes a snapshot and a mutation and
returns the next snapshot plus the remote commands that make the backend
agree with it. Rejections raise before anything is built, so a failed
mutation never leaves a partial change behind. Accepted mutations are
final; nothing here ever rolls back.
"""

from __future__ import annotations

import dataclasses
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any

from pyequip._constants import DEFAULT_CLOSE_COMMENT, DEFAULT_REMOVED_CONDITION, SESSION_TAG_SEPARATOR
from pyequip.exceptions import (
    AssignmentNotFoundError,
    ItemAlreadyInSessionError,
    ItemUnavailableError,
    MutationRejectedError,
    SessionNotFoundError,
)
from pyequip.models._base import format_day, isoformat_utc
from pyequip.models.assignment import Assignment, AssignmentStatus
from pyequip.models.commands import LogSessionCommand, SessionLogRecord, StatusUpdate, UpdateStatusCommand
from pyequip.models.equipment import Equipment, EquipmentStatus
from pyequip.models.session import Session, SessionStatus, SessionType
from pyequip.state.mutations import (
    AddAssignment,
    AddItemToSession,
    CloseSession,
    CreateSession,
    Mutation,
    RemoveItemFromSession,
    ReturnAssignment,
)
from pyequip.state.snapshot import InventorySnapshot, ItemOverlay
from pyequip.tags import encode_session

Command = UpdateStatusCommand | LogSessionCommand


@dataclasses.dataclass(frozen=True)
class MutationContext:
    now: datetime
    close_comment: str = DEFAULT_CLOSE_COMMENT
    removed_condition: str = DEFAULT_REMOVED_CONDITION


@dataclasses.dataclass(frozen=True)
class MutationOutcome:
    snapshot: InventorySnapshot
    commands: tuple[Command, ...] = ()


def _new_id() -> str:
    return str(uuid.uuid4())


def _require_available(snapshot: InventorySnapshot, item_ids: tuple[str, ...]) -> None:
    index = snapshot.index
    unavailable = [item_id for item_id in item_ids if (item := index.get(item_id)) is None or not item.is_available]
    if unavailable:
        raise ItemUnavailableError(unavailable)


def _require_session(snapshot: InventorySnapshot, session_id: str) -> Session:
    session = snapshot.session(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)
    return session


def _set_items(
    snapshot: InventorySnapshot,
    item_ids: tuple[str, ...],
    status: EquipmentStatus,
    condition: str | None,
) -> tuple[Equipment, ...]:
    index = snapshot.index
    updates: dict[str, Equipment] = {}
    for item_id in item_ids:
        item = index.get(item_id)
        if item is None:
            continue
        update: dict[str, Any] = {"status": status}
        if condition is not None:
            update["condition"] = condition
        updates[item_id] = item.model_copy(update=update)
    return index.replace(updates)


def _status_command(item_ids: tuple[str, ...], status: EquipmentStatus, condition: str | None) -> UpdateStatusCommand:
    return UpdateStatusCommand(
        updates=tuple(StatusUpdate(equipment_id=item_id, status=status, condition=condition) for item_id in item_ids)
    )


def _overlays(
    item_ids: tuple[str, ...],
    status: EquipmentStatus,
    condition: str | None,
    session_id: str | None,
    now: datetime,
) -> list[ItemOverlay]:
    return [
        ItemOverlay(item_id=item_id, status=status, condition=condition, session_id=session_id, applied_at=now)
        for item_id in item_ids
    ]


def create_session(snapshot: InventorySnapshot, mutation: CreateSession, ctx: MutationContext) -> MutationOutcome:
    items = tuple(dict.fromkeys(mutation.items))
    if mutation.session_id is not None and snapshot.session(mutation.session_id) is not None:
        raise MutationRejectedError(f"Session {mutation.session_id} already exists")
    _require_available(snapshot, items)

    role = snapshot.role_of(mutation.user_id)
    session = Session(
        id=mutation.session_id or _new_id(),
        project_name=mutation.project_name.replace(SESSION_TAG_SEPARATOR, "").strip(),
        user_id=mutation.user_id,
        type=mutation.type or SessionType.default_for(role),
        start_date=mutation.start_date,
        end_date=mutation.end_date,
        status=SessionStatus.ACTIVE,
        items=items,
        observations=mutation.observations,
    )
    tag = encode_session(session)
    status = role.in_use_status

    next_snapshot = snapshot.model_copy(
        update={
            "equipment": _set_items(snapshot, items, status, tag),
            "sessions": (session, *snapshot.sessions),
            # The pending session itself carries these claims.
            "pending": snapshot.pending.without_overlays(items).with_session(session.id, ctx.now),
        }
    )
    commands: tuple[Command, ...] = (_status_command(items, status, tag),) if items else ()
    return MutationOutcome(next_snapshot, commands)


def add_item_to_session(snapshot: InventorySnapshot, mutation: AddItemToSession, ctx: MutationContext) -> MutationOutcome:
    session = _require_session(snapshot, mutation.session_id)
    if mutation.item_id in session.items:
        raise ItemAlreadyInSessionError(session.id, mutation.item_id)
    _require_available(snapshot, (mutation.item_id,))

    items = (mutation.item_id,)
    tag = encode_session(session)
    status = snapshot.role_of(session.user_id).in_use_status
    updated = session.with_item(mutation.item_id)

    next_snapshot = snapshot.model_copy(
        update={
            "equipment": _set_items(snapshot, items, status, tag),
            "sessions": tuple(updated if s.id == session.id else s for s in snapshot.sessions),
            "pending": snapshot.pending.with_overlays(_overlays(items, status, tag, session.id, ctx.now)),
        }
    )
    return MutationOutcome(next_snapshot, (_status_command(items, status, tag),))


def remove_item_from_session(
    snapshot: InventorySnapshot,
    mutation: RemoveItemFromSession,
    ctx: MutationContext,
) -> MutationOutcome:
    session = _require_session(snapshot, mutation.session_id)
    if mutation.item_id not in session.items:
        raise MutationRejectedError(f"Item {mutation.item_id} is not part of session {session.id}")

    items = (mutation.item_id,)
    condition = ctx.removed_condition
    available = EquipmentStatus.AVAILABLE
    updated = session.without_item(mutation.item_id)

    next_snapshot = snapshot.model_copy(
        update={
            "equipment": _set_items(snapshot, items, available, condition),
            "sessions": tuple(updated if s.id == session.id else s for s in snapshot.sessions),
            "pending": snapshot.pending.with_overlays(_overlays(items, available, condition, None, ctx.now)),
        }
    )
    return MutationOutcome(next_snapshot, (_status_command(items, available, condition),))


def build_log_record(snapshot: InventorySnapshot, session: Session) -> SessionLogRecord:
    """Flatten a closed session into the row appended to the log sheet."""
    owner = snapshot.user(session.user_id)
    index = snapshot.index
    return SessionLogRecord(
        session_id=session.id,
        project=session.project_name,
        user_id=session.user_id,
        user_name=owner.name if owner is not None else session.user_id,
        start=format_day(session.start_date),
        end=format_day(session.end_date),
        items=", ".join(index.name_of(item_id) for item_id in session.items),
        type=str(session.type),
        observations=session.observations,
    )


def close_session(snapshot: InventorySnapshot, mutation: CloseSession, ctx: MutationContext) -> MutationOutcome:
    session = _require_session(snapshot, mutation.session_id)
    comment = mutation.comment or ctx.close_comment
    available = EquipmentStatus.AVAILABLE

    closed = session.model_copy(
        update={
            "status": SessionStatus.CLOSED,
            "end_date": isoformat_utc(ctx.now),
            "observations": comment,
        }
    )
    pending = snapshot.pending.with_closed(session.id, ctx.now).with_overlays(
        _overlays(session.items, available, comment, None, ctx.now)
    )
    next_snapshot = snapshot.model_copy(
        update={
            "equipment": _set_items(snapshot, session.items, available, comment),
            "sessions": tuple(s for s in snapshot.sessions if s.id != session.id),
            "history": (closed, *snapshot.history),
            "pending": pending,
        }
    )

    commands: list[Command] = []
    if session.items:
        commands.append(_status_command(session.items, available, comment))
    # Sent separately: a failed log write must not affect the item updates.
    commands.append(LogSessionCommand(log_data=build_log_record(snapshot, closed)))
    return MutationOutcome(next_snapshot, tuple(commands))


def add_assignment(snapshot: InventorySnapshot, mutation: AddAssignment, ctx: MutationContext) -> MutationOutcome:
    if mutation.assignment_id is not None and snapshot.assignment(mutation.assignment_id) is not None:
        raise MutationRejectedError(f"Assignment {mutation.assignment_id} already exists")
    items = (mutation.equipment_id,)
    _require_available(snapshot, items)

    assignment = Assignment(
        id=mutation.assignment_id or _new_id(),
        user_id=mutation.user_id,
        equipment_id=mutation.equipment_id,
        status=AssignmentStatus.ACTIVE,
        assigned_date=mutation.assigned_date or isoformat_utc(ctx.now),
        initial_condition=mutation.initial_condition,
        observations=mutation.observations,
    )
    status = EquipmentStatus.ASSIGNED_INTERNAL

    next_snapshot = snapshot.model_copy(
        update={
            # Assignments have no tag; the remote condition stays as it is.
            "equipment": _set_items(snapshot, items, status, None),
            "assignments": (assignment, *snapshot.assignments),
            "pending": snapshot.pending.with_overlays(_overlays(items, status, None, None, ctx.now)),
        }
    )
    return MutationOutcome(next_snapshot, (_status_command(items, status, None),))


def return_assignment(snapshot: InventorySnapshot, mutation: ReturnAssignment, ctx: MutationContext) -> MutationOutcome:
    assignment = snapshot.assignment(mutation.assignment_id)
    if assignment is None:
        raise AssignmentNotFoundError(mutation.assignment_id)
    if not assignment.is_active:
        raise MutationRejectedError(f"Assignment {assignment.id} was already returned")

    items = (assignment.equipment_id,)
    condition = mutation.return_condition or ctx.removed_condition
    available = EquipmentStatus.AVAILABLE
    returned = assignment.model_copy(
        update={
            "status": AssignmentStatus.RETURNED,
            "return_date": isoformat_utc(ctx.now),
            "return_condition": condition,
        }
    )

    next_snapshot = snapshot.model_copy(
        update={
            "equipment": _set_items(snapshot, items, available, condition),
            "assignments": tuple(returned if a.id == assignment.id else a for a in snapshot.assignments),
            "pending": snapshot.pending.with_overlays(_overlays(items, available, condition, None, ctx.now)),
        }
    )
    return MutationOutcome(next_snapshot, (_status_command(items, available, condition),))


_HANDLERS: dict[type, Callable[[InventorySnapshot, Any, MutationContext], MutationOutcome]] = {
    CreateSession: create_session,
    AddItemToSession: add_item_to_session,
    RemoveItemFromSession: remove_item_from_session,
    CloseSession: close_session,
    AddAssignment: add_assignment,
    ReturnAssignment: return_assignment,
}


def apply_mutation(snapshot: InventorySnapshot, mutation: Mutation, ctx: MutationContext) -> MutationOutcome:
    """Apply *mutation* to *snapshot*.

    Raises
    ------
    MutationRejectedError
        (or a subclass) when the mutation cannot apply; *snapshot* is
        unchanged in that case.
    """
    handler = _HANDLERS.get(type(mutation))
    if handler is None:
        raise TypeError(f"Unsupported mutation: {type(mutation).__name__}")
    return handler(snapshot, mutation, ctx)
