"""Base model and date helpers for feed-derived records.

Every domain model inherits from :class:`FeedBaseModel`, which is frozen
so a snapshot can be shared between the poll loop and the mutation
pipeline without defensive copies. Changes go through ``model_copy``.

Dates travel as the strings the spreadsheet produced (ISO timestamps,
plain ``YYYY-MM-DD`` days, or nothing). :func:`parse_feed_date` is the
single place that interprets them.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class FeedBaseModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )


def parse_feed_date(value: Any) -> datetime | None:
    """Convert a feed date string to an aware UTC datetime.

    Returns ``None`` for empty or unparseable values. Naive values are
    taken as UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = f"{text[:-1]}+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed


def format_day(value: Any) -> str:
    """Render a feed date as ``YYYY-MM-DD`` or ``"N/A"``."""
    parsed = parse_feed_date(value)
    if parsed is None:
        return "N/A"
    return parsed.strftime("%Y-%m-%d")


def isoformat_utc(value: datetime) -> str:
    """ISO-8601 with a ``Z`` suffix, matching what the web client wrote."""
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
