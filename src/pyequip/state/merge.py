"""Deterministic merge of a fetched feed with the previous local snapshot.

The remote feed is authoritative once it shows a change. Until then, the
writes recorded in :class:`~pyequip.state.snapshot.PendingWrites` are laid
on top of it so the read model does not flip back to stale values while a
write is still propagating.

This module contains no row parsing; it works on already identified items
and reconstructed sessions.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta

from pyequip.ingestion.sessions import claims_by_item
from pyequip.models._base import parse_feed_date
from pyequip.models.assignment import Assignment
from pyequip.models.equipment import Equipment, EquipmentStatus
from pyequip.models.session import Session
from pyequip.models.user import User, role_of
from pyequip.state.snapshot import InventorySnapshot, ItemOverlay, PendingWrites
from pyequip.tags import encode_session

_logger = logging.getLogger(__name__)

# How long a locally created session is kept after the feed first shows it.
VISIBILITY_GRACE = timedelta(minutes=2)


def is_expired(applied_at: datetime, now: datetime, ttl: timedelta | None) -> bool:
    """``ttl=None`` means pending writes never expire on their own."""
    if ttl is None:
        return False
    return now >= applied_at + ttl


def partition_sessions(
    previous: Iterable[Session],
    remote_ids: set[str],
    pending_ids: Mapping[str, datetime],
) -> tuple[list[Session], list[Session]]:
    """Split previous active sessions into ``(visible, pending)``.

    Visible sessions are superseded by their remote reconstruction. Only
    sessions created locally can be pending; a previously reconstructed
    session that vanished remotely was closed elsewhere and is dropped.
    """
    visible: list[Session] = []
    pending: list[Session] = []
    for session in previous:
        if session.id in remote_ids:
            visible.append(session)
        elif session.id in pending_ids:
            pending.append(session)
    return visible, pending


def merge_sessions(remote_sessions: Iterable[Session], pending_sessions: Iterable[Session]) -> list[Session]:
    """Remote sessions first, then pending ones, one claimant per item."""
    merged = list(remote_sessions)
    claimed = claims_by_item(merged)
    for session in pending_sessions:
        conflicts = [item_id for item_id in session.items if item_id in claimed]
        if conflicts:
            _logger.warning(
                "Pending session %s loses items %s already claimed remotely",
                session.id,
                ", ".join(conflicts),
            )
            session = session.model_copy(update={"items": tuple(i for i in session.items if i not in claimed)})
        for item_id in session.items:
            claimed[item_id] = session.id
        merged.append(session)
    return merged


def claim_pending_items(
    equipment: Iterable[Equipment],
    pending_sessions: Iterable[Session],
    users: Iterable[User],
) -> list[Equipment]:
    """Show items of not-yet-visible sessions as taken.

    The status follows the session owner's role; the condition carries the
    session tag, exactly what the pending write will produce remotely.
    """
    user_list = list(users)
    expected: dict[str, tuple[EquipmentStatus, str]] = {}
    for session in pending_sessions:
        status = role_of(user_list, session.user_id).in_use_status
        tag = encode_session(session)
        for item_id in session.items:
            expected[item_id] = (status, tag)

    result: list[Equipment] = []
    for item in equipment:
        claim = expected.get(item.id)
        if claim is not None and (item.status, item.condition) != claim:
            item = item.model_copy(update={"status": claim[0], "condition": claim[1]})
        result.append(item)
    return result


def prune_overlays(
    overlays: Mapping[str, ItemOverlay],
    remote_items: Iterable[Equipment],
    now: datetime,
    ttl: timedelta | None,
) -> dict[str, ItemOverlay]:
    """Drop overlays the feed already reflects, or that have expired."""
    by_id = {item.id: item for item in remote_items}
    kept: dict[str, ItemOverlay] = {}
    for item_id, overlay in overlays.items():
        remote = by_id.get(item_id)
        if remote is not None and overlay.is_visible_in(remote):
            continue
        if is_expired(overlay.applied_at, now, ttl):
            _logger.info("Pending write for item %s expired without becoming visible", item_id)
            continue
        kept[item_id] = overlay
    return kept


def _move_item(sessions: list[Session], item_id: str, target: str | None) -> list[Session]:
    moved: list[Session] = []
    for session in sessions:
        if session.id == target:
            moved.append(session.with_item(item_id))
        else:
            moved.append(session.without_item(item_id))
    return moved


def apply_overlays(
    equipment: Iterable[Equipment],
    sessions: Iterable[Session],
    overlays: Mapping[str, ItemOverlay],
) -> tuple[list[Equipment], list[Session]]:
    """Lay pending single-item writes over items and session membership."""
    items = list(equipment)
    merged = list(sessions)
    if not overlays:
        return items, merged

    result: list[Equipment] = []
    for item in items:
        overlay = overlays.get(item.id)
        if overlay is None:
            result.append(item)
            continue
        update: dict[str, object] = {"status": overlay.status}
        if overlay.condition is not None:
            update["condition"] = overlay.condition
        result.append(item.model_copy(update=update))
        merged = _move_item(merged, item.id, overlay.session_id)
    return result, merged


def apply_assignments(
    equipment: Iterable[Equipment],
    sessions: Iterable[Session],
    assignments: Iterable[Assignment],
) -> tuple[list[Equipment], list[Session]]:
    """Active assignments own their item outright.

    Assignments exist only locally, so the remote view cannot contradict
    them except through a concurrent actor; the local claim wins.
    """
    assigned = {a.equipment_id for a in assignments if a.is_active}
    merged = list(sessions)
    if not assigned:
        return list(equipment), merged

    result: list[Equipment] = []
    for item in equipment:
        if item.id in assigned:
            holders = [s.id for s in merged if item.id in s.items]
            if holders:
                _logger.warning("Item %s is assigned locally but listed in session(s) %s", item.id, holders)
                merged = _move_item(merged, item.id, None)
            if item.status != EquipmentStatus.ASSIGNED_INTERNAL:
                item = item.model_copy(update={"status": EquipmentStatus.ASSIGNED_INTERNAL})
        result.append(item)
    return result, merged


def _history_sort_key(session: Session) -> tuple[bool, float]:
    end = parse_feed_date(session.end_date)
    return (end is None, -end.timestamp() if end is not None else 0.0)


def sort_history(history: Iterable[Session]) -> list[Session]:
    """Newest end date first; entries without an end date last."""
    return sorted(history, key=_history_sort_key)


def merge_history(
    remote_history: Iterable[Session],
    has_logs: bool,
    previous_history: Iterable[Session],
    closed: Mapping[str, datetime],
) -> tuple[list[Session], dict[str, datetime]]:
    """Combine log rows with local history.

    An empty log feed means "log source unavailable", never "no history":
    the previous history is kept as is. Otherwise the log rows replace it,
    except for sessions closed locally whose row has not arrived yet.

    Returns the sorted history and the closures still waiting for a row.
    """
    previous = list(previous_history)
    if not has_logs:
        return sort_history(previous), dict(closed)

    remote = list(remote_history)
    logged = {session.id for session in remote}
    waiting = {sid: at for sid, at in closed.items() if sid not in logged}
    retained = [session for session in previous if session.id in waiting]
    return sort_history([*retained, *remote]), waiting


def merge_snapshot(
    previous: InventorySnapshot,
    *,
    remote_items: list[Equipment],
    remote_sessions: list[Session],
    remote_history: list[Session],
    has_logs: bool,
    users: tuple[User, ...],
    now: datetime,
    pending_ttl: timedelta | None,
    visibility_grace: timedelta = VISIBILITY_GRACE,
) -> InventorySnapshot:
    """Produce the next snapshot from a fetched feed.

    Order matters: remote sessions, then pending sessions, then pending
    single-item writes, then local assignments. Each later step only
    overrides what the feed cannot show yet.

    A locally created session stays restorable for *visibility_grace* after
    the feed first shows it, so a stale read in between keeps it.
    """
    pending = previous.pending
    remote_ids = {session.id for session in remote_sessions}

    live_sessions = {
        sid: at for sid, at in pending.sessions.items() if sid not in remote_ids and not is_expired(at, now, pending_ttl)
    }
    confirmed = dict(pending.confirmed)
    for sid in pending.sessions.keys() & remote_ids:
        confirmed.setdefault(sid, now)
    confirmed = {sid: seen for sid, seen in confirmed.items() if not is_expired(seen, now, visibility_grace)}
    # A stale read right after a session showed up does not drop it.
    restorable = {**live_sessions, **{sid: seen for sid, seen in confirmed.items() if sid not in remote_ids}}
    closed = {sid: at for sid, at in pending.closed.items() if not is_expired(at, now, pending_ttl)}
    overlays = prune_overlays(pending.items, remote_items, now, pending_ttl)

    _, pending_sessions = partition_sessions(previous.sessions, remote_ids, restorable)
    visible_remote = [s for s in remote_sessions if s.id not in closed]
    sessions = merge_sessions(visible_remote, pending_sessions)
    kept_pending = [s for s in sessions if s.id in restorable]

    equipment = claim_pending_items(remote_items, kept_pending, users)
    equipment, sessions = apply_overlays(equipment, sessions, overlays)
    equipment, sessions = apply_assignments(equipment, sessions, previous.assignments)
    # A reconstructed session only exists through its items.
    sessions = [s for s in sessions if s.items or s.id in live_sessions]

    history, closed = merge_history(remote_history, has_logs, previous.history, closed)

    return previous.model_copy(
        update={
            "equipment": tuple(equipment),
            "users": users,
            "sessions": tuple(sessions),
            "history": tuple(history),
            "pending": PendingWrites(sessions=live_sessions, confirmed=confirmed, closed=closed, items=overlays),
            "synced_at": now,
        }
    )
