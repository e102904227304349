"""Port for the realtime change feed.

A subscription is a message channel: the feed puts one message per change
notification on ``FeedSubscription.channel`` and a single consumer applies
them in order. Delivery is at-least-once and may be duplicated or reordered.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from eventdesk.domain.model import ChangeKind, new_id

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


@dataclass(frozen=True, slots=True)
class ChangeNotification:
    """One insert/update/delete on a backend table, as wire data."""

    table: str
    kind: ChangeKind
    record: Mapping[str, object] | None = None
    old_id: str | None = None

    @property
    def record_id(self) -> str | None:
        if self.record is not None:
            value = self.record.get("id")
            if isinstance(value, str) and value:
                return value
        return self.old_id


@dataclass(frozen=True, slots=True)
class FeedDisconnected:
    """Marker put on the channel when the underlying connection drops."""

    reason: str


type FeedMessage = ChangeNotification | FeedDisconnected


@dataclass(slots=True, eq=False)
class FeedSubscription:
    tables: tuple[str, ...]
    channel: asyncio.Queue[FeedMessage] = field(default_factory=asyncio.Queue)
    id: str = field(default_factory=new_id)

    def publish(self, message: FeedMessage) -> None:
        self.channel.put_nowait(message)


@runtime_checkable
class ChangeFeed(Protocol):
    async def subscribe(self, tables: Sequence[str]) -> FeedSubscription: ...

    async def unsubscribe(self, subscription: FeedSubscription) -> None: ...
