"""User model."""

from __future__ import annotations

from enum import StrEnum

from pyequip.models._base import FeedBaseModel
from pyequip.models.equipment import EquipmentStatus


class UserRole(StrEnum):
    STAFF = "Planta CRTIC"
    RESIDENT = "Residente"
    INSTRUCTOR = "Docente"
    EXTERNAL = "Externo"

    @classmethod
    def from_raw(cls, value: object) -> UserRole:
        text = str(value or "").strip().lower()
        if "planta" in text or "admin" in text:
            return cls.STAFF
        if "residente" in text:
            return cls.RESIDENT
        if "docente" in text:
            return cls.INSTRUCTOR
        return cls.EXTERNAL

    @property
    def is_internal(self) -> bool:
        return self is UserRole.STAFF

    @property
    def in_use_status(self) -> EquipmentStatus:
        """Status an item takes when a session owned by this role claims it."""
        return EquipmentStatus.ASSIGNED_INTERNAL if self.is_internal else EquipmentStatus.IN_USE


class User(FeedBaseModel):
    """A person that can own sessions or assignments.

    Passwords travel in the same sheet but are deliberately not modelled.
    """

    id: str
    name: str = "Desconocido"
    role: UserRole = UserRole.EXTERNAL
    area: str = ""
    email: str = ""
    active: bool = True


def role_of(users: tuple[User, ...] | list[User], user_id: str) -> UserRole:
    """Role of *user_id*; unknown users are treated as external."""
    for user in users:
        if user.id == user_id:
            return user.role
    return UserRole.EXTERNAL
