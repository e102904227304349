"""Error taxonomy shared by the store, commands and adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from eventdesk.domain.model import EntityKind


class EventDeskError(RuntimeError):
    """Base class for recoverable eventdesk errors."""


class NotFoundError(EventDeskError, LookupError):
    """A local mutation targeted an id that is not in the collection."""

    def __init__(self, kind: EntityKind, record_id: str) -> None:
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


class ValidationError(EventDeskError, ValueError):
    """A command was rejected before any state change."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class GatewayError(EventDeskError):
    """A durable write, delete or read against the persistence gateway failed."""

    def __init__(self, message: str, *, table: str | None = None, status: int | None = None) -> None:
        super().__init__(message)
        self.table = table
        self.status = status


class FeedError(EventDeskError):
    """The change feed connection failed or dropped."""


class AIServiceError(EventDeskError):
    """The text generation service failed or returned nothing usable."""
