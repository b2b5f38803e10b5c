"""High-level async client for the equipment inventory backend."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Iterable
from datetime import timedelta
from typing import Any

import aiohttp

from pyequip._transport import SheetTransport, Transport
from pyequip.config import EquipConfig
from pyequip.exceptions import EquipError, EquipTransportError
from pyequip.models.feed import SyncReport
from pyequip.models.session import SessionType
from pyequip.state.mutations import (
    AddAssignment,
    AddItemToSession,
    CloseSession,
    CreateSession,
    Mutation,
    RemoveItemFromSession,
    ReturnAssignment,
)
from pyequip.state.outbox import CommandOutbox, OutboxEntry
from pyequip.state.pipeline import MutationOutcome
from pyequip.state.snapshot import InventorySnapshot
from pyequip.state.store import ReconciliationService

_logger = logging.getLogger(__name__)


class InventoryClient:
    """Async client keeping a reconciled view of the inventory.

    Usage::

        async with InventoryClient(config) as client:
            report = await client.sync()
            await client.create_session("U1", "Documental", "2024-05-01", items=["CAM-01"])
    """

    def __init__(
        self,
        config: EquipConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        store: ReconciliationService | None = None,
        on_snapshot: Callable[[InventorySnapshot], None] | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._external_transport = transport is not None
        self._transport = transport
        self._store = store if store is not None else ReconciliationService.from_config(config)
        self._outbox = CommandOutbox(
            max_age=timedelta(seconds=config.pending_ttl) if config.pending_ttl > 0 else None,
        )
        self._on_snapshot = on_snapshot
        self._poll_task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> InventoryClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = SheetTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop_polling()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise EquipError("Client not initialized. Use 'async with InventoryClient(...) as client:'")
        return self._transport

    def _notify(self, snapshot: InventorySnapshot) -> None:
        if self._on_snapshot is None:
            return
        try:
            self._on_snapshot(snapshot)
        except Exception:
            _logger.debug("on_snapshot callback failed", exc_info=True)

    async def _dispatch(self, entries: Iterable[OutboxEntry]) -> int:
        """Send each entry once. Returns how many were delivered."""
        transport = self._require_transport()
        delivered = 0
        for entry in entries:
            if entry.token not in self._outbox:
                # Superseded or aged out while earlier entries were in flight.
                continue
            self._outbox.mark_attempt(entry.token)
            try:
                await transport.post_command(entry.command)
            except EquipTransportError as exc:
                # Optimistic state stays as is; the next sync shows what the
                # backend actually holds.
                _logger.warning("Failed to send %s (%s): %s", entry.command.action, entry.token, exc)
                self._outbox.mark_failed(entry.token, str(exc))
                continue
            self._outbox.mark_delivered(entry.token)
            delivered += 1
        return delivered

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> InventorySnapshot:
        return self._store.snapshot

    @property
    def outbox(self) -> CommandOutbox:
        return self._outbox

    async def sync(self) -> SyncReport:
        """Fetch the feed and reconcile it with local state.

        Never raises for backend problems: any :class:`EquipError` leaves the
        snapshot untouched and is reported through the returned
        :class:`SyncReport`.
        """
        transport = self._require_transport()
        try:
            feed = await transport.fetch_feed()
            snapshot = self._store.sync(feed)
        except EquipError as exc:
            _logger.warning("Sync failed: %s", exc)
            return SyncReport(ok=False, message=f"Error: {exc}")

        self._notify(snapshot)
        return SyncReport(
            ok=True,
            message=f"Sync OK: {len(snapshot.equipment)} items, {len(snapshot.sessions)} active sessions.",
            item_count=len(snapshot.equipment),
            session_count=len(snapshot.sessions),
        )

    async def apply(self, mutation: Mutation) -> MutationOutcome:
        """Apply *mutation* locally, then send its commands.

        Raises :class:`pyequip.exceptions.MutationRejectedError` before any
        change when the mutation cannot apply. Delivery failures do not
        raise; they are logged and kept in :attr:`outbox`.
        """
        outcome = self._store.apply(mutation)
        self._notify(outcome.snapshot)
        entries = self._outbox.enqueue(outcome.commands)
        if entries:
            await self._dispatch(entries)
        return outcome

    async def flush_outbox(self) -> int:
        """Re-send every undelivered command once. Returns how many went through."""
        pending = self._outbox.pending()
        if not pending:
            return 0
        _logger.info("Re-sending %d undelivered command(s)", len(pending))
        return await self._dispatch(pending)

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    async def create_session(
        self,
        user_id: str,
        project_name: str,
        start_date: str,
        end_date: str = "",
        *,
        items: Iterable[str] = (),
        type: SessionType | str | None = None,  # noqa: A002
        observations: str = "",
    ) -> MutationOutcome:
        return await self.apply(
            CreateSession(
                user_id=user_id,
                project_name=project_name,
                start_date=start_date,
                end_date=end_date,
                type=type,
                items=tuple(items),
                observations=observations,
            )
        )

    async def add_item_to_session(self, session_id: str, item_id: str) -> MutationOutcome:
        return await self.apply(AddItemToSession(session_id=session_id, item_id=item_id))

    async def remove_item_from_session(self, session_id: str, item_id: str) -> MutationOutcome:
        return await self.apply(RemoveItemFromSession(session_id=session_id, item_id=item_id))

    async def close_session(self, session_id: str, comment: str = "") -> MutationOutcome:
        return await self.apply(CloseSession(session_id=session_id, comment=comment))

    async def add_assignment(
        self,
        user_id: str,
        equipment_id: str,
        *,
        assigned_date: str = "",
        initial_condition: str = "",
        observations: str = "",
    ) -> MutationOutcome:
        return await self.apply(
            AddAssignment(
                user_id=user_id,
                equipment_id=equipment_id,
                assigned_date=assigned_date,
                initial_condition=initial_condition,
                observations=observations,
            )
        )

    async def return_assignment(self, assignment_id: str, return_condition: str = "") -> MutationOutcome:
        return await self.apply(ReturnAssignment(assignment_id=assignment_id, return_condition=return_condition))

    # ------------------------------------------------------------------
    # Background polling
    # ------------------------------------------------------------------

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def start_polling(self, interval: float | None = None) -> None:
        """Call :meth:`sync` every *interval* seconds (default ``poll_interval``)."""
        self._require_transport()
        if self.is_polling:
            return
        period = interval if interval is not None else self._config.poll_interval
        if period <= 0:
            raise ValueError("interval must be positive")
        self._poll_task = asyncio.get_running_loop().create_task(self._poll_loop(period))

    async def stop_polling(self) -> None:
        task = self._poll_task
        self._poll_task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _poll_loop(self, interval: float) -> None:
        while True:
            try:
                report = await self.sync()
            except Exception:
                _logger.exception("Background sync crashed; retrying in %s s", interval)
            else:
                if not report.ok:
                    _logger.debug("Background sync: %s", report.message)
            await asyncio.sleep(interval)

