"""Read-only views derived from an :class:`InventorySnapshot`.

Nothing here changes state; the functions back the dashboards that list
overdue loans and rank equipment by use.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from pyequip.models._base import parse_feed_date
from pyequip.models.session import Session
from pyequip.state.snapshot import InventorySnapshot


def is_overdue(session: Session, now: datetime) -> bool:
    """The scheduled end day is before today. Sessions without an end never are."""
    end = parse_feed_date(session.end_date)
    if end is None:
        return False
    return now.date() > end.date()


def overdue_sessions(snapshot: InventorySnapshot, now: datetime, user_id: str | None = None) -> list[Session]:
    return [
        session
        for session in snapshot.sessions
        if session.is_active and is_overdue(session, now) and (user_id is None or session.user_id == user_id)
    ]


def session_hours(start: str, end: str, now: datetime) -> int:
    """Whole days from *start* to *end* inclusive, times 24.

    An open session (no *end*) counts up to *now*. Returns ``0`` when a date
    is unreadable or *end* is before *start*.
    """
    start_at = parse_feed_date(start)
    end_at = parse_feed_date(end) if end else now
    if start_at is None or end_at is None:
        return 0
    days = (end_at.date() - start_at.date()).days
    if days < 0:
        return 0
    return (days + 1) * 24


def split_by_role(snapshot: InventorySnapshot) -> tuple[list[Session], list[Session]]:
    """Active sessions as ``(internal, external)`` by owner role."""
    internal: list[Session] = []
    external: list[Session] = []
    for session in snapshot.sessions:
        if not session.is_active:
            continue
        if snapshot.role_of(session.user_id).is_internal:
            internal.append(session)
        else:
            external.append(session)
    return internal, external


@dataclass
class ItemUsage:
    item_id: str
    name: str
    sessions: int = 0
    hours: int = 0
    last_user: str = ""
    last_start: str = ""
    last_end: str = ""


def _resolve_item(ref: str, ids: set[str], by_name: dict[str, str]) -> str | None:
    # Log rows list item names; active sessions list ids.
    if ref in ids:
        return ref
    return by_name.get(ref.strip().lower())


def item_usage(snapshot: InventorySnapshot, now: datetime, history: Iterable[Session] | None = None) -> list[ItemUsage]:
    """Per-item session count and hours, most used first.

    Covers *history* (defaults to the snapshot's) plus the active sessions.
    The ``last_*`` fields describe the session with the latest start.
    """
    ids = {item.id for item in snapshot.equipment}
    by_name: dict[str, str] = {}
    for item in snapshot.equipment:
        by_name.setdefault(item.name.strip().lower(), item.id)

    usage = {item.id: ItemUsage(item_id=item.id, name=item.name) for item in snapshot.equipment}
    latest: dict[str, datetime] = {}

    closed = snapshot.history if history is None else history
    for session in (*closed, *(s for s in snapshot.sessions if s.is_active)):
        hours = session_hours(session.start_date, session.end_date, now)
        started = parse_feed_date(session.start_date)
        owner = snapshot.user(session.user_id)
        for ref in session.items:
            item_id = _resolve_item(ref, ids, by_name)
            if item_id is None:
                continue
            entry = usage[item_id]
            entry.sessions += 1
            entry.hours += hours
            if started is not None and (item_id not in latest or started > latest[item_id]):
                latest[item_id] = started
                entry.last_user = owner.name if owner is not None else session.user_id
                entry.last_start = session.start_date
                entry.last_end = session.end_date
    return sorted(usage.values(), key=lambda entry: entry.hours, reverse=True)
