"""Immutable inventory snapshot and its pending-write bookkeeping."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from pydantic import Field

from pyequip.models._base import FeedBaseModel
from pyequip.models.assignment import Assignment
from pyequip.models.equipment import Equipment, EquipmentIndex, EquipmentStatus
from pyequip.models.session import Session
from pyequip.models.user import User, UserRole, role_of
from pyequip.tags import tagged_session_id


class ItemOverlay(FeedBaseModel):
    """Expected remote state of one item after a local write.

    Re-applied on top of every fetched feed until the backend shows the
    same thing (or the overlay expires).
    """

    item_id: str
    status: EquipmentStatus
    condition: str | None = None
    """``None`` when the write left the condition untouched."""
    session_id: str | None = None
    """Session the item should belong to; ``None`` means no session."""
    applied_at: datetime

    def is_visible_in(self, remote: Equipment) -> bool:
        if remote.status != self.status:
            return False
        remote_session = tagged_session_id(remote.condition)
        if self.session_id is None:
            return remote_session is None or not remote.status.is_claimed
        return remote_session == self.session_id


class PendingWrites(FeedBaseModel):
    sessions: dict[str, datetime] = Field(default_factory=dict)
    """Sessions created locally and not yet reconstructed from the feed."""
    confirmed: dict[str, datetime] = Field(default_factory=dict)
    """Locally created sessions the feed has shown, keyed by when it first did."""
    closed: dict[str, datetime] = Field(default_factory=dict)
    """Sessions closed locally whose log row has not shown up yet."""
    items: dict[str, ItemOverlay] = Field(default_factory=dict)

    def with_session(self, session_id: str, at: datetime) -> PendingWrites:
        return self.model_copy(update={"sessions": {**self.sessions, session_id: at}})

    def with_closed(self, session_id: str, at: datetime) -> PendingWrites:
        sessions = {sid: ts for sid, ts in self.sessions.items() if sid != session_id}
        confirmed = {sid: ts for sid, ts in self.confirmed.items() if sid != session_id}
        return self.model_copy(
            update={"sessions": sessions, "confirmed": confirmed, "closed": {**self.closed, session_id: at}}
        )

    def with_overlays(self, overlays: Iterable[ItemOverlay]) -> PendingWrites:
        items = dict(self.items)
        for overlay in overlays:
            items[overlay.item_id] = overlay
        return self.model_copy(update={"items": items})

    def without_overlays(self, item_ids: Iterable[str]) -> PendingWrites:
        drop = set(item_ids)
        if not drop & self.items.keys():
            return self
        return self.model_copy(update={"items": {k: v for k, v in self.items.items() if k not in drop}})

    @property
    def is_empty(self) -> bool:
        return not (self.sessions or self.confirmed or self.closed or self.items)


class InventorySnapshot(FeedBaseModel):
    """Everything the UI layer reads. Never mutated in place."""

    equipment: tuple[Equipment, ...] = ()
    users: tuple[User, ...] = ()
    sessions: tuple[Session, ...] = ()
    """Active sessions."""
    history: tuple[Session, ...] = ()
    """Closed sessions, newest end date first."""
    assignments: tuple[Assignment, ...] = ()
    pending: PendingWrites = Field(default_factory=PendingWrites)
    synced_at: datetime | None = None

    @property
    def index(self) -> EquipmentIndex:
        return EquipmentIndex(self.equipment)

    def item(self, item_id: str) -> Equipment | None:
        return self.index.get(item_id)

    def session(self, session_id: str) -> Session | None:
        for session in self.sessions:
            if session.id == session_id:
                return session
        return None

    def assignment(self, assignment_id: str) -> Assignment | None:
        for assignment in self.assignments:
            if assignment.id == assignment_id:
                return assignment
        return None

    def user(self, user_id: str) -> User | None:
        for user in self.users:
            if user.id == user_id:
                return user
        return None

    def role_of(self, user_id: str) -> UserRole:
        return role_of(self.users, user_id)

    @property
    def active_assignments(self) -> tuple[Assignment, ...]:
        return tuple(a for a in self.assignments if a.is_active)
