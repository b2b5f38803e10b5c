"""pyequip - Async client reconciling a spreadsheet-backed equipment inventory."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyequip")
except PackageNotFoundError:
    __version__ = "0+local"
from pyequip.client import InventoryClient
from pyequip.config import EquipConfig
from pyequip.exceptions import (
    AssignmentNotFoundError,
    EquipApiError,
    EquipConfigError,
    EquipError,
    EquipProtocolError,
    EquipTransportError,
    ItemAlreadyInSessionError,
    ItemUnavailableError,
    MutationRejectedError,
    SessionNotFoundError,
    TagDecodeError,
)
from pyequip.models import (
    Assignment,
    AssignmentStatus,
    Equipment,
    EquipmentStatus,
    RemoteFeed,
    Session,
    SessionStatus,
    SessionType,
    SyncReport,
    User,
    UserRole,
)
from pyequip.state.mutations import (
    AddAssignment,
    AddItemToSession,
    CloseSession,
    CreateSession,
    RemoveItemFromSession,
    ReturnAssignment,
)
from pyequip.state.snapshot import InventorySnapshot
from pyequip.state.store import ReconciliationService
from pyequip.tags import SessionRef, decode_session_tag, encode_session_tag

__all__ = [
    "__version__",
    "AddAssignment",
    "AddItemToSession",
    "Assignment",
    "AssignmentNotFoundError",
    "AssignmentStatus",
    "CloseSession",
    "CreateSession",
    "EquipApiError",
    "EquipConfig",
    "EquipConfigError",
    "EquipError",
    "EquipProtocolError",
    "EquipTransportError",
    "Equipment",
    "EquipmentStatus",
    "InventoryClient",
    "InventorySnapshot",
    "ItemAlreadyInSessionError",
    "ItemUnavailableError",
    "MutationRejectedError",
    "ReconciliationService",
    "RemoteFeed",
    "RemoveItemFromSession",
    "ReturnAssignment",
    "Session",
    "SessionNotFoundError",
    "SessionRef",
    "SessionStatus",
    "SessionType",
    "SyncReport",
    "TagDecodeError",
    "User",
    "UserRole",
    "decode_session_tag",
    "encode_session_tag",
]
