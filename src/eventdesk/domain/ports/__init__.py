"""Domain port definitions for adapters."""

from __future__ import annotations

from .change_feed import (
    ChangeFeed,
    ChangeNotification,
    FeedDisconnected,
    FeedMessage,
    FeedSubscription,
)
from .persistence import PersistenceGateway, WireRow
from .text_generation import TextGenerator

__all__ = [
    "ChangeFeed",
    "ChangeNotification",
    "FeedDisconnected",
    "FeedMessage",
    "FeedSubscription",
    "PersistenceGateway",
    "TextGenerator",
    "WireRow",
]
