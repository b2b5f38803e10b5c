"""Session reconstruction from item tags.

Active sessions are not stored remotely. Each sync they are rebuilt from
scratch by scanning every claimed item for a session tag; the result is a
view, never written back.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pyequip.exceptions import TagDecodeError
from pyequip.models.equipment import Equipment, EquipmentStatus
from pyequip.models.session import Session
from pyequip.tags import SessionRef, decode_session_tag, is_session_tag

_logger = logging.getLogger(__name__)


def reconstruct_sessions(equipment: Iterable[Equipment]) -> list[Session]:
    """Rebuild active sessions from the tags on non-available items.

    Sessions are returned in the order their first item appears. Malformed
    tags are skipped with a warning; the rest of the pass proceeds.
    """
    refs: dict[str, SessionRef] = {}
    members: dict[str, list[str]] = {}

    for item in equipment:
        if item.status == EquipmentStatus.AVAILABLE or not is_session_tag(item.condition):
            continue
        try:
            ref = decode_session_tag(item.condition)
        except TagDecodeError as exc:
            _logger.warning("Skipping session tag on item %s: %s", item.id, exc)
            continue

        if ref.session_id not in refs:
            refs[ref.session_id] = ref
            members[ref.session_id] = []
        item_ids = members[ref.session_id]
        # Duplicate rows must not count the same item twice.
        if item.id not in item_ids:
            item_ids.append(item.id)

    return [refs[session_id].to_session(tuple(item_ids)) for session_id, item_ids in members.items()]


def claims_by_item(sessions: Iterable[Session]) -> dict[str, str]:
    """Map item id to the id of the first session that lists it."""
    claims: dict[str, str] = {}
    for session in sessions:
        for item_id in session.items:
            claims.setdefault(item_id, session.id)
    return claims
