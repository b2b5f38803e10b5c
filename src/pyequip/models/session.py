"""Loan session model."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from pyequip.models._base import FeedBaseModel
from pyequip.models.user import UserRole


class SessionType(StrEnum):
    EVENT = "Evento"
    INTERNAL_PRODUCTION = "Producción interna"
    WORKSHOP = "Workshops/Clases"
    RESIDENCY = "Residencia"

    @classmethod
    def default_for(cls, role: UserRole) -> SessionType:
        """The session type a user of *role* books by default."""
        if role is UserRole.RESIDENT:
            return cls.RESIDENCY
        if role is UserRole.INSTRUCTOR:
            return cls.WORKSHOP
        if role is UserRole.STAFF:
            return cls.INTERNAL_PRODUCTION
        return cls.EVENT


class SessionStatus(StrEnum):
    ACTIVE = "Activa"
    CLOSED = "Cerrada"


def coerce_session_type(value: Any) -> SessionType | str:
    """Known labels become :class:`SessionType`; others are kept verbatim."""
    if isinstance(value, SessionType):
        return value
    text = str(value or "").strip()
    if not text:
        return SessionType.RESIDENCY
    try:
        return SessionType(text)
    except ValueError:
        return text


class Session(FeedBaseModel):
    """A group of items lent out together for a project.

    Active sessions have no record of their own in the backend: they are
    rebuilt from the tags on their items (see :mod:`pyequip.ingestion.sessions`)
    or held locally until the backend catches up.
    """

    id: str
    project_name: str = ""
    user_id: str = ""
    type: SessionType | str = SessionType.RESIDENCY
    start_date: str = ""
    end_date: str = ""
    """Scheduled end while active, actual close time once closed."""
    status: SessionStatus = SessionStatus.ACTIVE
    items: tuple[str, ...] = Field(default_factory=tuple)
    observations: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> SessionType | str:
        return coerce_session_type(value)

    @field_validator("items", mode="before")
    @classmethod
    def _unique_items(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return tuple(dict.fromkeys(str(item) for item in value))
        return value

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    def with_item(self, item_id: str) -> Session:
        if item_id in self.items:
            return self
        return self.model_copy(update={"items": (*self.items, item_id)})

    def without_item(self, item_id: str) -> Session:
        if item_id not in self.items:
            return self
        return self.model_copy(update={"items": tuple(i for i in self.items if i != item_id)})
