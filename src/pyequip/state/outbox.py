"""Outbound command queue.

Commands are dispatched once, right after the mutation that produced them
is applied. Anything that fails stays here, keyed by its idempotency token,
until it is delivered by an explicit flush, discarded, or made obsolete:

- a newer ``UPDATE_STATUS`` for the same equipment supersedes the older
  undelivered one, so a flush never replays a state the user already
  moved past;
- entries older than ``max_age`` are dropped, matching how long the
  snapshot keeps optimistic writes alive;
- past ``max_entries`` the oldest entries are dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from pyequip.models.commands import LogSessionCommand, UpdateStatusCommand

_logger = logging.getLogger(__name__)

Command = UpdateStatusCommand | LogSessionCommand

DEFAULT_MAX_ENTRIES = 200


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class OutboxEntry:
    command: Command
    enqueued_at: datetime
    attempts: int = 0
    last_error: str | None = None

    @property
    def token(self) -> str:
        return self.command.token


class CommandOutbox:
    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utcnow,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        max_age: timedelta | None = None,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._clock = clock
        self._max_entries = max_entries
        self._max_age = max_age
        self._entries: dict[str, OutboxEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, token: object) -> bool:
        return token in self._entries

    def enqueue(self, commands: Iterable[Command]) -> list[OutboxEntry]:
        entries: list[OutboxEntry] = []
        for command in commands:
            # Same token, same command: re-enqueueing is a no-op.
            entry = self._entries.get(command.token)
            if entry is None:
                if isinstance(command, UpdateStatusCommand):
                    self._supersede(command)
                entry = OutboxEntry(command=command, enqueued_at=self._clock())
                self._entries[command.token] = entry
            entries.append(entry)
        self._prune()
        return [entry for entry in entries if entry.token in self._entries]

    def _supersede(self, newer: UpdateStatusCommand) -> None:
        """Strip *newer*'s equipment from older undelivered status updates."""
        ids = {update.equipment_id for update in newer.updates}
        for token, entry in list(self._entries.items()):
            older = entry.command
            if not isinstance(older, UpdateStatusCommand):
                continue
            remaining = tuple(update for update in older.updates if update.equipment_id not in ids)
            if len(remaining) == len(older.updates):
                continue
            if remaining:
                entry.command = older.model_copy(update={"updates": remaining})
                _logger.debug("Outbox entry %s partly superseded by %s", token, newer.token)
            else:
                del self._entries[token]
                _logger.debug("Outbox entry %s superseded by %s", token, newer.token)

    def _prune(self) -> None:
        if self._max_age is not None:
            cutoff = self._clock() - self._max_age
            for token, entry in list(self._entries.items()):
                if entry.enqueued_at < cutoff:
                    del self._entries[token]
                    _logger.warning(
                        "Dropping undelivered %s (%s) after %d attempt(s): older than %s",
                        entry.command.action,
                        token,
                        entry.attempts,
                        self._max_age,
                    )
        while len(self._entries) > self._max_entries:
            token = next(iter(self._entries))
            entry = self._entries.pop(token)
            _logger.warning("Outbox full; dropping oldest %s (%s)", entry.command.action, token)

    def mark_attempt(self, token: str) -> None:
        entry = self._entries.get(token)
        if entry is not None:
            entry.attempts += 1

    def mark_delivered(self, token: str) -> None:
        self._entries.pop(token, None)

    def mark_failed(self, token: str, error: str) -> None:
        entry = self._entries.get(token)
        if entry is not None:
            entry.last_error = error

    def discard(self, token: str) -> OutboxEntry | None:
        return self._entries.pop(token, None)

    def pending(self) -> list[OutboxEntry]:
        """Undelivered entries in enqueue order."""
        self._prune()
        return list(self._entries.values())
