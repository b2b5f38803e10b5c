"""Outbound write commands.

The backend understands two actions, both sent as a JSON body of the form
``{"key": ..., "action": ..., **payload}``. Each command carries an
idempotency ``token`` so the outbox can track delivery per command.
"""

from __future__ import annotations

import uuid
from typing import Annotated, Any, Literal

from pydantic import Field

from pyequip._constants import ACTION_LOG_SESSION, ACTION_UPDATE_STATUS
from pyequip.models._base import FeedBaseModel
from pyequip.models.equipment import EquipmentStatus


def _new_token() -> str:
    return uuid.uuid4().hex


class StatusUpdate(FeedBaseModel):
    equipment_id: str = Field(serialization_alias="equipmentId")
    status: EquipmentStatus
    condition: str | None = None
    """``None`` leaves the remote condition cell untouched."""


class SessionLogRecord(FeedBaseModel):
    """Flat row appended to the log sheet when a session closes."""

    session_id: str = Field(serialization_alias="SessionID")
    project: str = Field(serialization_alias="Project")
    user_id: str = Field(serialization_alias="UserID")
    user_name: str = Field(serialization_alias="UserName")
    start: str = Field(serialization_alias="Start")
    end: str = Field(serialization_alias="End")
    items: str = Field(serialization_alias="Items")
    type: str = Field(serialization_alias="Type")
    observations: str = Field(serialization_alias="Observations")


class UpdateStatusCommand(FeedBaseModel):
    action: Literal["UPDATE_STATUS"] = ACTION_UPDATE_STATUS
    token: str = Field(default_factory=_new_token)
    updates: tuple[StatusUpdate, ...]

    def payload(self) -> dict[str, Any]:
        return {"updates": [u.model_dump(mode="json", by_alias=True, exclude_none=True) for u in self.updates]}


class LogSessionCommand(FeedBaseModel):
    action: Literal["LOG_SESSION"] = ACTION_LOG_SESSION
    token: str = Field(default_factory=_new_token)
    log_data: SessionLogRecord

    def payload(self) -> dict[str, Any]:
        return {"logData": self.log_data.model_dump(mode="json", by_alias=True)}


RemoteCommand = Annotated[UpdateStatusCommand | LogSessionCommand, Field(discriminator="action")]


def command_body(command: UpdateStatusCommand | LogSessionCommand, api_key: str) -> dict[str, Any]:
    """Full POST body for *command*."""
    return {"key": api_key, "action": command.action, **command.payload()}
