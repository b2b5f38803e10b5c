"""Row normalization helpers.

The feed is a spreadsheet dumped as JSON: column headers drift between
``Nombre_Equipo``, ``nombre equipo`` and friends, cells may be numbers or
empty strings. Lookups here never raise on missing or extra columns.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any


def normalize_key(key: Any) -> str:
    """Lowercase and drop spaces and underscores."""
    return str(key).lower().replace("_", "").replace(" ", "")


def lookup(row: Any, candidates: Iterable[str]) -> Any:
    """Return the value of the first candidate column present in *row*.

    Candidates are first tried verbatim (a ``None`` cell counts as
    missing). Failing that, row keys and candidates are compared in
    normalized form and the first candidate with a match wins. Returns
    ``None`` when nothing matches.
    """
    if not isinstance(row, Mapping):
        return None
    keys = tuple(candidates)
    for key in keys:
        value = row.get(key)
        if value is not None:
            return value

    normalized: dict[str, Any] = {}
    for row_key in row:
        normalized.setdefault(normalize_key(row_key), row_key)
    for key in keys:
        match = normalized.get(normalize_key(key))
        if match is not None:
            return row[match]
    return None


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def lookup_str(row: Any, candidates: Iterable[str], default: str = "") -> str:
    """:func:`lookup` coerced to a stripped string, *default* when blank."""
    text = safe_str(lookup(row, candidates))
    return default if text is None else text


def parse_active_flag(value: Any) -> bool:
    """Users are active unless the cell explicitly says otherwise."""
    text = safe_str(value)
    if text is None:
        return True
    return text.lower() not in {"no", "false", "0"}


def split_list(value: Any) -> tuple[str, ...]:
    """Split a comma separated cell, dropping blanks."""
    text = safe_str(value)
    if text is None:
        return ()
    return tuple(part.strip() for part in text.split(",") if part.strip())
