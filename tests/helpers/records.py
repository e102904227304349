"""Record factories and in-memory fakes for store, sync and assistant tests."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from eventdesk.domain.errors import AIServiceError, FeedError, GatewayError
from eventdesk.domain.model import (
    ChangeKind,
    Contact,
    Demand,
    DemandStatus,
    Event,
    EventStatus,
    Note,
    NoteColor,
    Priority,
)
from eventdesk.domain.ports import ChangeNotification, FeedSubscription
from eventdesk.domain.wire import record_to_row

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from eventdesk.domain.model import Record
    from eventdesk.domain.writes import GatewayWrite


def make_event(
    title: str = "Summer Fair",
    *,
    id: str = "event-1",  # noqa: A002
    date: str = "2024-07-01",
    status: EventStatus = EventStatus.ACTIVE,
    location: str = "Main Hall",
) -> Event:
    return Event(id=id, title=title, date=date, status=status, location=location)


def make_demand(
    title: str = "Book stage",
    *,
    id: str = "demand-1",  # noqa: A002
    event_id: str = "event-1",
    priority: Priority = Priority.MEDIUM,
    status: DemandStatus = DemandStatus.PENDING,
    due_date: str | None = None,
) -> Demand:
    return Demand(
        id=id,
        event_id=event_id,
        title=title,
        priority=priority,
        status=status,
        due_date=due_date,
    )


def make_contact(name: str = "Ana Souza", *, id: str = "contact-1") -> Contact:  # noqa: A002
    return Contact(id=id, name=name, company="Acme", email="ana@example.com")


def make_note(
    content: str = "Call the caterer",
    *,
    id: str = "note-1",  # noqa: A002
    created_at: str = "2024-06-01T09:00:00+00:00",
    due_date: str | None = None,
) -> Note:
    return Note(
        id=id,
        content=content,
        created_at=created_at,
        due_date=due_date,
        color=NoteColor.BLUE,
    )


def insert_of(record: Record) -> ChangeNotification:
    return ChangeNotification(
        table=record.kind.table,
        kind=ChangeKind.INSERT,
        record=record_to_row(record),
    )


def update_of(record: Record) -> ChangeNotification:
    return ChangeNotification(
        table=record.kind.table,
        kind=ChangeKind.UPDATE,
        record=record_to_row(record),
    )


def delete_of(record: Record) -> ChangeNotification:
    return ChangeNotification(table=record.kind.table, kind=ChangeKind.DELETE, old_id=record.id)


@dataclass
class RecordingWrites:
    """Write scheduler that only remembers what it was asked to send."""

    writes: list[GatewayWrite] = field(default_factory=list)

    def submit(self, write: GatewayWrite) -> None:
        self.writes.append(write)

    @property
    def actions(self) -> list[tuple[ChangeKind, str, str]]:
        return [(w.action, w.table, w.record_id) for w in self.writes]


@dataclass
class FakeGateway:
    """Persistence gateway over plain dictionaries."""

    tables: dict[str, dict[str, dict[str, object]]] = field(default_factory=dict)
    calls: list[tuple[str, str, str | None]] = field(default_factory=list)
    fail_with: GatewayError | None = None
    failing_tables: set[str] = field(default_factory=set)
    delay: float = 0.0

    def seed(self, *records: Record) -> None:
        for record in records:
            self.tables.setdefault(record.kind.table, {})[record.id] = record_to_row(record)

    async def insert(self, table: str, row: Mapping[str, object]) -> None:
        await self._maybe_fail("insert", table, str(row.get("id")))
        self.tables.setdefault(table, {})[str(row["id"])] = dict(row)

    async def update(self, table: str, record_id: str, fields: Mapping[str, object]) -> None:
        await self._maybe_fail("update", table, record_id)
        row = self.tables.setdefault(table, {}).get(record_id)
        if row is not None:
            row.update(fields)

    async def delete(self, table: str, record_id: str) -> None:
        await self._maybe_fail("delete", table, record_id)
        self.tables.setdefault(table, {}).pop(record_id, None)

    async def list_all(self, table: str) -> list[dict[str, object]]:
        await self._maybe_fail("list_all", table, None)
        return [dict(row) for row in self.tables.get(table, {}).values()]

    async def _maybe_fail(self, action: str, table: str, record_id: str | None) -> None:
        self.calls.append((action, table, record_id))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None or table in self.failing_tables:
            raise self.fail_with or GatewayError(f"{action} {table} failed", table=table)


@dataclass
class FakeFeed:
    """Change feed whose subscriptions are driven by the test."""

    subscriptions: list[FeedSubscription] = field(default_factory=list)
    unsubscribed: list[FeedSubscription] = field(default_factory=list)
    failures_before_success: int = 0
    subscribe_attempts: int = 0
    subscribed: asyncio.Event | None = None

    async def subscribe(self, tables: Sequence[str]) -> FeedSubscription:
        self.subscribe_attempts += 1
        if self.failures_before_success > 0:
            self.failures_before_success -= 1
            raise FeedError("connection refused")
        subscription = FeedSubscription(tables=tuple(tables))
        self.subscriptions.append(subscription)
        if self.subscribed is not None:
            self.subscribed.set()
        return subscription

    async def unsubscribe(self, subscription: FeedSubscription) -> None:
        self.unsubscribed.append(subscription)


@dataclass
class FakeTextGenerator:
    """Returns canned responses in order; raises when it runs out."""

    responses: list[str] = field(default_factory=list)
    prompts: list[str] = field(default_factory=list)
    schemas: list[Mapping[str, object]] = field(default_factory=list)

    async def generate_json(self, prompt: str, schema: Mapping[str, object]) -> str:
        self.prompts.append(prompt)
        self.schemas.append(schema)
        if not self.responses:
            raise AIServiceError("no response configured")
        return self.responses.pop(0)
