"""Local lifecycle mutations.

Every user action is expressed as one of these frozen models and handed to
:meth:`pyequip.state.store.ReconciliationService.apply`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyequip.models.session import SessionType


class _Mutation(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


def _require(value: str, name: str) -> str:
    if not value:
        raise ValueError(f"{name} must be non-empty")
    return value


class CreateSession(_Mutation):
    user_id: str
    project_name: str
    start_date: str
    end_date: str = ""
    type: SessionType | str | None = None
    """``None`` picks the default type for the owner's role."""
    items: tuple[str, ...] = Field(default_factory=tuple)
    session_id: str | None = None
    """Explicit id, mostly for tests; a random one is generated otherwise."""
    observations: str = ""

    @field_validator("user_id")
    @classmethod
    def _non_empty_user(cls, value: str) -> str:
        return _require(value, "user_id")


class AddItemToSession(_Mutation):
    session_id: str
    item_id: str


class RemoveItemFromSession(_Mutation):
    session_id: str
    item_id: str


class CloseSession(_Mutation):
    session_id: str
    comment: str = ""
    """Return comment; blank means the configured default."""


class AddAssignment(_Mutation):
    user_id: str
    equipment_id: str
    assigned_date: str = ""
    initial_condition: str = ""
    observations: str = ""
    assignment_id: str | None = None

    @field_validator("user_id", "equipment_id")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        return _require(value, "user_id/equipment_id")


class ReturnAssignment(_Mutation):
    assignment_id: str
    return_condition: str = ""


Mutation = CreateSession | AddItemToSession | RemoveItemFromSession | CloseSession | AddAssignment | ReturnAssignment
