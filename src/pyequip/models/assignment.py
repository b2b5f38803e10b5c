"""Long-term internal assignment model."""

from __future__ import annotations

from enum import StrEnum

from pyequip.models._base import FeedBaseModel


class AssignmentStatus(StrEnum):
    ACTIVE = "Activa"
    RETURNED = "Devuelto"


class Assignment(FeedBaseModel):
    """A single item handed to a staff member for an open-ended period.

    The backend has no tag for assignments, so they live only in the local
    snapshot; the item itself is marked ``Asignado interno`` remotely.
    """

    id: str
    user_id: str
    equipment_id: str
    status: AssignmentStatus = AssignmentStatus.ACTIVE
    assigned_date: str = ""
    return_date: str = ""
    initial_condition: str = ""
    return_condition: str = ""
    observations: str = ""

    @property
    def is_active(self) -> bool:
        return self.status == AssignmentStatus.ACTIVE
