"""Equipment identity resolution.

Rows may lack an id, and hand-edited sheets produce duplicate ids. The
resolver guarantees that every surviving row has an id that is stable
across syncs and unique within one pass.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from pyequip._constants import (
    DEFAULT_CATEGORY,
    DEFAULT_ID_PREFIX,
    EQUIPMENT_CATEGORY_KEYS,
    EQUIPMENT_CONDITION_KEYS,
    EQUIPMENT_ID_KEYS,
    EQUIPMENT_NAME_KEYS,
    EQUIPMENT_STATUS_KEYS,
    EQUIPMENT_TYPE_KEYS,
)
from pyequip.ingestion.normalize import lookup, lookup_str
from pyequip.models.equipment import Equipment, EquipmentStatus

_logger = logging.getLogger(__name__)

_NON_ALNUM_RE = re.compile(r"[^A-Z0-9]")


def synthesize_id(name: str, category: str, prefix: str = DEFAULT_ID_PREFIX) -> str:
    """Deterministic id for a row without one, e.g. ``GEN-CAMERAXVIDEO``."""
    slug = _NON_ALNUM_RE.sub("", f"{name}-{category}".upper())
    return f"{prefix}{slug}"


def _disambiguate(item_id: str, taken: Mapping[str, Any]) -> str:
    suffix = 2
    while f"{item_id}-{suffix}" in taken:
        suffix += 1
    return f"{item_id}-{suffix}"


def parse_equipment_row(row: Mapping[str, Any], item_id: str, name: str, category: str) -> Equipment:
    return Equipment(
        id=item_id,
        name=name,
        category=category,
        type_it=lookup_str(row, EQUIPMENT_TYPE_KEYS),
        status=EquipmentStatus.from_raw(lookup(row, EQUIPMENT_STATUS_KEYS)),
        condition=lookup_str(row, EQUIPMENT_CONDITION_KEYS),
    )


def resolve_identities(rows: Iterable[Any], *, prefix: str = DEFAULT_ID_PREFIX) -> list[Equipment]:
    """Turn inventory rows into uniquely identified :class:`Equipment`.

    - Rows without a name are dropped.
    - A missing id is synthesized from name and category.
    - A repeated id with the same name is the same record, even when that
      name already had to be moved to a suffixed id; the first row is kept.
    - A repeated id with a different name gets a ``-2``, ``-3``... suffix so
      neither row is lost. Which row gets the suffix depends on feed order.
    """
    resolved: dict[str, Equipment] = {}
    # raw id -> name -> id it was stored under, suffixed ones included
    seen: dict[str, dict[str, str]] = {}
    for position, row in enumerate(rows):
        name = lookup_str(row, EQUIPMENT_NAME_KEYS)
        if not name:
            _logger.debug("Dropping inventory row %d without a name", position)
            continue
        category = lookup_str(row, EQUIPMENT_CATEGORY_KEYS, DEFAULT_CATEGORY)
        raw_id = lookup_str(row, EQUIPMENT_ID_KEYS) or synthesize_id(name, category, prefix)

        names = seen.setdefault(raw_id, {})
        if name in names:
            _logger.debug("Duplicate inventory row %d for %s, keeping the first", position, names[name])
            continue

        item_id = raw_id
        existing = resolved.get(item_id)
        if existing is not None:
            new_id = _disambiguate(item_id, resolved)
            _logger.warning(
                "Inventory row %d reuses id %s for %r (already %r); renamed to %s",
                position,
                item_id,
                name,
                existing.name,
                new_id,
            )
            item_id = new_id

        names[name] = item_id
        resolved[item_id] = parse_equipment_row(row, item_id, name, category)
    return list(resolved.values())
