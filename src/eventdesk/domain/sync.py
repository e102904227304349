"""Realtime synchronisation loop.

One task consumes the change feed channel and applies each message to the
store in arrival order. When the feed fails or drops, local state is kept;
the loop waits, subscribes again and repairs missed changes with a full
``list_all`` resync before it resumes draining the new channel.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from eventdesk.domain.errors import FeedError, GatewayError, ValidationError
from eventdesk.domain.model import TABLES, EntityKind
from eventdesk.domain.notices import NoticeLevel
from eventdesk.domain.ports import FeedDisconnected
from eventdesk.domain.wire import row_to_record

if TYPE_CHECKING:
    from eventdesk.domain.model import Record
    from eventdesk.domain.notices import Notifier
    from eventdesk.domain.ports import (
        ChangeFeed,
        FeedMessage,
        FeedSubscription,
        PersistenceGateway,
    )
    from eventdesk.domain.store import ReconcilingStore

log = getLogger(__name__)


@dataclass(slots=True)
class SyncStats:
    applied: int = 0
    skipped: int = 0
    resyncs: int = 0
    disconnects: int = 0


@dataclass(slots=True)
class RealtimeSync:
    store: ReconcilingStore
    feed: ChangeFeed | None
    gateway: PersistenceGateway | None
    notifier: Notifier | None = None
    tables: tuple[str, ...] = TABLES
    reconnect_delay: float = 1.0
    max_reconnect_delay: float = 30.0
    stats: SyncStats = field(default_factory=SyncStats)

    async def resync(self) -> bool:
        """Load every table through the gateway; return False if any read failed."""

        if self.gateway is None:
            return True
        complete = True
        for table in self.tables:
            kind = EntityKind.from_table(table)
            try:
                rows = await self.gateway.list_all(table)
            except GatewayError as exc:
                complete = False
                log.warning("Resync of %s failed: %s", table, exc)
                self._notify(NoticeLevel.ERROR, f"Could not load {table}: {exc}")
                continue
            self.store.replace_all(kind, self._decode(kind, rows))
        self.stats.resyncs += 1
        return complete

    async def run(self) -> None:
        """Subscribe, resync and apply notifications until cancelled."""

        if self.feed is None:
            await self.resync()
            return

        delay = self.reconnect_delay
        while True:
            try:
                subscription = await self.feed.subscribe(self.tables)
            except FeedError as exc:
                log.warning("Change feed unavailable (%s); retrying in %.1fs", exc, delay)
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.max_reconnect_delay)
                continue

            delay = self.reconnect_delay
            try:
                # notifications arriving during the resync queue up and win afterwards
                await self.resync()
                await self._drain(subscription)
            except FeedError as exc:
                self.stats.disconnects += 1
                log.warning("Change feed dropped: %s", exc)
                self._notify(NoticeLevel.INFO, "Realtime updates paused; reconnecting.")
            finally:
                await self.feed.unsubscribe(subscription)
            await asyncio.sleep(delay)

    def apply_pending(self, subscription: FeedSubscription) -> int:
        """Apply every message already queued on ``subscription`` without waiting."""

        count = 0
        while not subscription.channel.empty():
            self._apply(subscription.channel.get_nowait())
            count += 1
        return count

    async def _drain(self, subscription: FeedSubscription) -> None:
        while True:
            message = await subscription.channel.get()
            self._apply(message)

    def _apply(self, message: FeedMessage) -> None:
        if isinstance(message, FeedDisconnected):
            raise FeedError(message.reason)
        if self.store.apply_remote_change(message):
            self.stats.applied += 1
        else:
            self.stats.skipped += 1

    def _decode(self, kind: EntityKind, rows: list[dict[str, object]]) -> list[Record]:
        records: list[Record] = []
        for row in rows:
            try:
                records.append(row_to_record(kind, row))
            except ValidationError as exc:
                log.warning("Skipping undecodable %s row: %s", kind.table, exc)
        return records

    def _notify(self, level: NoticeLevel, message: str) -> None:
        if self.notifier is not None:
            self.notifier.notify(level, message)
