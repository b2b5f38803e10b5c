"""Data models for the equipment inventory."""

from pyequip.models._base import FeedBaseModel, format_day, isoformat_utc, parse_feed_date
from pyequip.models.assignment import Assignment, AssignmentStatus
from pyequip.models.commands import (
    LogSessionCommand,
    RemoteCommand,
    SessionLogRecord,
    StatusUpdate,
    UpdateStatusCommand,
    command_body,
)
from pyequip.models.equipment import Equipment, EquipmentIndex, EquipmentStatus
from pyequip.models.feed import RemoteFeed, SyncReport
from pyequip.models.session import Session, SessionStatus, SessionType
from pyequip.models.user import User, UserRole

__all__ = [
    "Assignment",
    "AssignmentStatus",
    "Equipment",
    "EquipmentIndex",
    "EquipmentStatus",
    "FeedBaseModel",
    "LogSessionCommand",
    "RemoteCommand",
    "RemoteFeed",
    "Session",
    "SessionLogRecord",
    "SessionStatus",
    "SessionType",
    "StatusUpdate",
    "SyncReport",
    "UpdateStatusCommand",
    "User",
    "UserRole",
    "command_body",
    "format_day",
    "isoformat_utc",
    "parse_feed_date",
]
