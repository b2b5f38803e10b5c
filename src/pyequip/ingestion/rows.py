"""Parsers for the ``users`` and ``logs`` sheets."""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterable
from typing import Any

from pyequip._constants import (
    LOG_END_KEYS,
    LOG_ID_KEYS,
    LOG_ITEMS_KEYS,
    LOG_OBSERVATIONS_KEYS,
    LOG_PROJECT_KEYS,
    LOG_START_KEYS,
    LOG_TYPE_KEYS,
    LOG_USER_KEYS,
    USER_ACTIVE_KEYS,
    USER_AREA_KEYS,
    USER_EMAIL_KEYS,
    USER_ID_KEYS,
    USER_NAME_KEYS,
    USER_ROLE_KEYS,
)
from pyequip.ingestion.normalize import lookup, lookup_str, parse_active_flag, split_list
from pyequip.models.session import Session, SessionStatus
from pyequip.models.user import User, UserRole

_logger = logging.getLogger(__name__)


def parse_users(rows: Iterable[Any]) -> list[User]:
    users: list[User] = []
    for position, row in enumerate(rows):
        user_id = lookup_str(row, USER_ID_KEYS)
        if not user_id:
            # Nothing can reference a user without an id.
            _logger.debug("Dropping user row %d without an id", position)
            continue
        users.append(
            User(
                id=user_id,
                name=lookup_str(row, USER_NAME_KEYS, "Desconocido"),
                role=UserRole.from_raw(lookup(row, USER_ROLE_KEYS)),
                area=lookup_str(row, USER_AREA_KEYS),
                email=lookup_str(row, USER_EMAIL_KEYS),
                active=parse_active_flag(lookup(row, USER_ACTIVE_KEYS)),
            )
        )
    return users


def _row_fingerprint(row: Any) -> str:
    encoded = json.dumps(row, sort_keys=True, default=str, ensure_ascii=False)
    return hashlib.sha1(encoded.encode("utf-8")).hexdigest()[:12].upper()  # noqa: S324


def parse_history(rows: Iterable[Any]) -> list[Session]:
    """Closed sessions from the log sheet.

    Rows without an id get one derived from their content so the same row
    keeps the same id across syncs.
    """
    history: list[Session] = []
    for row in rows:
        session_id = lookup_str(row, LOG_ID_KEYS) or f"LOG-{_row_fingerprint(row)}"
        history.append(
            Session(
                id=session_id,
                project_name=lookup_str(row, LOG_PROJECT_KEYS, "Archivado"),
                user_id=lookup_str(row, LOG_USER_KEYS),
                type=lookup_str(row, LOG_TYPE_KEYS),
                start_date=lookup_str(row, LOG_START_KEYS),
                end_date=lookup_str(row, LOG_END_KEYS),
                status=SessionStatus.CLOSED,
                items=split_list(lookup(row, LOG_ITEMS_KEYS)),
                observations=lookup_str(row, LOG_OBSERVATIONS_KEYS),
            )
        )
    return history
