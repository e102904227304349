"""In-process change feed used with the local SQLAlchemy backend."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from eventdesk.domain.ports import FeedDisconnected, FeedSubscription

if TYPE_CHECKING:
    from collections.abc import Sequence

    from eventdesk.domain.ports import ChangeNotification

log = getLogger(__name__)


class LocalChangeFeed:
    """Fans every published notification out to the matching subscribers."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, FeedSubscription] = {}

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def subscribe(self, tables: Sequence[str]) -> FeedSubscription:
        subscription = FeedSubscription(tables=tuple(tables))
        self._subscriptions[subscription.id] = subscription
        log.debug("Local feed subscription %s for %s", subscription.id, ", ".join(tables))
        return subscription

    async def unsubscribe(self, subscription: FeedSubscription) -> None:
        self._subscriptions.pop(subscription.id, None)

    def publish(self, notification: ChangeNotification) -> None:
        for subscription in tuple(self._subscriptions.values()):
            if notification.table in subscription.tables:
                subscription.publish(notification)

    def disconnect(self, reason: str = "local feed closed") -> None:
        """Tell every subscriber the feed dropped and forget them."""

        for subscription in tuple(self._subscriptions.values()):
            subscription.publish(FeedDisconnected(reason))
        self._subscriptions.clear()
