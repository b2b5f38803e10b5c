"""Reconciliation service.

This is the only component allowed to replace the inventory snapshot. It
has two entry points, driven by whoever owns the event loop:

- :meth:`ReconciliationService.sync` folds a fetched feed into the snapshot;
- :meth:`ReconciliationService.apply` runs a local mutation.

Both are synchronous and deterministic for a given clock.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from pyequip._constants import DEFAULT_CLOSE_COMMENT, DEFAULT_ID_PREFIX, DEFAULT_REMOVED_CONDITION
from pyequip.config import EquipConfig
from pyequip.exceptions import EquipApiError
from pyequip.ingestion.identity import resolve_identities
from pyequip.ingestion.rows import parse_history, parse_users
from pyequip.ingestion.sessions import reconstruct_sessions
from pyequip.models.feed import RemoteFeed
from pyequip.state.merge import merge_history, merge_snapshot
from pyequip.state.mutations import Mutation
from pyequip.state.pipeline import MutationContext, MutationOutcome, apply_mutation
from pyequip.state.snapshot import InventorySnapshot

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ReconciliationService:
    """Owner of the current :class:`InventorySnapshot`."""

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utcnow,
        pending_ttl: timedelta | None = timedelta(minutes=10),
        id_prefix: str = DEFAULT_ID_PREFIX,
        close_comment: str = DEFAULT_CLOSE_COMMENT,
        removed_condition: str = DEFAULT_REMOVED_CONDITION,
        snapshot: InventorySnapshot | None = None,
    ) -> None:
        self._clock = clock
        self._pending_ttl = pending_ttl
        self._id_prefix = id_prefix
        self._close_comment = close_comment
        self._removed_condition = removed_condition
        self._snapshot = snapshot if snapshot is not None else InventorySnapshot()

    @classmethod
    def from_config(
        cls,
        config: EquipConfig,
        *,
        clock: Callable[[], datetime] = _utcnow,
        snapshot: InventorySnapshot | None = None,
    ) -> ReconciliationService:
        return cls(
            clock=clock,
            pending_ttl=timedelta(seconds=config.pending_ttl) if config.pending_ttl > 0 else None,
            id_prefix=config.id_prefix,
            close_comment=config.close_comment,
            removed_condition=config.removed_condition,
            snapshot=snapshot,
        )

    @property
    def snapshot(self) -> InventorySnapshot:
        return self._snapshot

    def sync(self, feed: RemoteFeed) -> InventorySnapshot:
        """Fold a fetched feed into the snapshot and return the new one.

        Raises :class:`EquipApiError` (leaving the snapshot untouched) if the
        feed carries an ``error`` field.
        """
        if feed.error is not None:
            raise EquipApiError(f"Feed rejected: {feed.error}", code=feed.error)

        previous = self._snapshot
        now = self._clock()

        users = tuple(parse_users(feed.users)) or previous.users
        remote_history = parse_history(feed.logs or [])

        if feed.inventory:
            remote_items = resolve_identities(feed.inventory, prefix=self._id_prefix)
            remote_sessions = reconstruct_sessions(remote_items)
            snapshot = merge_snapshot(
                previous,
                remote_items=remote_items,
                remote_sessions=remote_sessions,
                remote_history=remote_history,
                has_logs=feed.has_logs,
                users=users,
                now=now,
                pending_ttl=self._pending_ttl,
            )
        else:
            # Same reading as an empty log feed: source unavailable this cycle.
            # Pending writes are left alone; there is nothing to compare them with.
            _logger.warning("Feed returned no inventory rows; keeping the previous equipment and sessions")
            history, closed = merge_history(remote_history, feed.has_logs, previous.history, previous.pending.closed)
            snapshot = previous.model_copy(
                update={
                    "users": users,
                    "history": tuple(history),
                    "pending": previous.pending.model_copy(update={"closed": closed}),
                    "synced_at": now,
                }
            )

        self._snapshot = snapshot
        _logger.debug(
            "Synced %d items, %d active sessions, %d pending writes",
            len(snapshot.equipment),
            len(snapshot.sessions),
            len(snapshot.pending.sessions) + len(snapshot.pending.items),
        )
        return snapshot

    def apply(self, mutation: Mutation) -> MutationOutcome:
        """Apply a local mutation optimistically.

        Raises :class:`pyequip.exceptions.MutationRejectedError` without
        touching the snapshot when the mutation cannot apply.
        """
        ctx = MutationContext(
            now=self._clock(),
            close_comment=self._close_comment,
            removed_condition=self._removed_condition,
        )
        outcome = apply_mutation(self._snapshot, mutation, ctx)
        self._snapshot = outcome.snapshot
        return outcome
