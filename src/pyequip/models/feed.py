"""Read-side envelope of the spreadsheet feed."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _rows(value: Any) -> list[dict[str, Any]]:
    """Keep only dict rows; the feed occasionally carries blank list entries."""
    if not isinstance(value, list):
        return []
    return [row for row in value if isinstance(row, dict)]


class RemoteFeed(BaseModel):
    """Decoded ``GET`` response.

    ``logs`` is ``None`` when the key is missing entirely, which the merger
    treats the same as an empty list: "log source unavailable".
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    inventory: list[dict[str, Any]] = Field(default_factory=list)
    users: list[dict[str, Any]] = Field(default_factory=list)
    logs: list[dict[str, Any]] | None = None
    error: str | None = None

    @field_validator("inventory", "users", mode="before")
    @classmethod
    def _coerce_rows(cls, value: Any) -> list[dict[str, Any]]:
        return _rows(value)

    @field_validator("logs", mode="before")
    @classmethod
    def _coerce_logs(cls, value: Any) -> list[dict[str, Any]] | None:
        if value is None:
            return None
        return _rows(value)

    @field_validator("error", mode="before")
    @classmethod
    def _coerce_error(cls, value: Any) -> str | None:
        if value is None or value is False or value == "":
            return None
        return str(value)

    @property
    def has_logs(self) -> bool:
        return bool(self.logs)


class SyncReport(BaseModel):
    """Human readable outcome of a sync, handed to the UI layer."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    message: str
    item_count: int = 0
    session_count: int = 0
