"""Custom exception hierarchy for pyequip."""

from __future__ import annotations

from collections.abc import Iterable


class EquipError(Exception):
    """Base exception for all pyequip errors."""


class EquipConfigError(EquipError):
    """Invalid or missing configuration."""


class EquipTransportError(EquipError):
    """HTTP-level failure (network, timeout, non-200)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class EquipProtocolError(EquipTransportError):
    """The backend answered with something that is not the JSON feed.

    Typically an HTML login/redirect page served when the script is not
    published publicly, or a truncated body that fails JSON parsing.
    """


class EquipApiError(EquipError):
    """The feed carried an explicit ``error`` field."""

    def __init__(self, message: str, *, code: str = "") -> None:
        self.code = code
        super().__init__(message)


class TagDecodeError(EquipError, ValueError):
    """A condition text looked like a session tag but could not be decoded."""


class MutationRejectedError(EquipError):
    """A local mutation was refused; the snapshot was left untouched."""


class ItemUnavailableError(MutationRejectedError):
    """One or more requested items are not ``Disponible``."""

    def __init__(self, item_ids: Iterable[str]) -> None:
        self.item_ids = tuple(item_ids)
        super().__init__(f"Items not available: {', '.join(self.item_ids)}")


class ItemAlreadyInSessionError(MutationRejectedError):
    """The item is already a member of the target session."""

    def __init__(self, session_id: str, item_id: str) -> None:
        self.session_id = session_id
        self.item_id = item_id
        super().__init__(f"Item {item_id} is already part of session {session_id}")


class SessionNotFoundError(MutationRejectedError):
    """No active session with the given id."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"No active session {session_id}")


class AssignmentNotFoundError(MutationRejectedError):
    """No assignment with the given id."""

    def __init__(self, assignment_id: str) -> None:
        self.assignment_id = assignment_id
        super().__init__(f"No assignment {assignment_id}")
