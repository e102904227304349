from __future__ import annotations

import asyncio
from datetime import date
from typing import TYPE_CHECKING

import pytest

from eventdesk.adapters.local_feed import LocalChangeFeed
from eventdesk.app import build_workspace, create_workspace
from eventdesk.config import ConfigurationError
from eventdesk.domain.model import EntityKind
from tests.helpers.records import (
    FakeFeed,
    FakeGateway,
    FakeTextGenerator,
    make_demand,
    make_event,
    make_note,
)

if TYPE_CHECKING:
    from collections.abc import Callable


TODAY = date(2024, 6, 15)


async def _eventually(condition: Callable[[], bool], *, timeout: float = 2.0) -> None:
    async with asyncio.timeout(timeout):
        while not condition():
            await asyncio.sleep(0.01)


def test_start_loads_every_table_and_summarises() -> None:
    gateway = FakeGateway()
    gateway.seed(
        make_event(),
        make_demand(id="late", due_date="2024-06-01"),
        make_demand(id="later", due_date="2024-07-01"),
        make_note(),
    )
    workspace = create_workspace(gateway=gateway, clock=lambda: TODAY)

    async def scenario() -> None:
        async with workspace:
            summary = workspace.summary()
            assert summary.active_events == 1
            assert summary.open_demands == 2
            assert summary.overdue_demands == 1
            assert len(workspace.store.notes) == 1
        assert workspace.store.events == ()

    asyncio.run(scenario())


def test_failed_table_load_is_reported_and_others_still_load() -> None:
    gateway = FakeGateway(failing_tables={"notes"})
    gateway.seed(make_event(), make_note())
    workspace = create_workspace(gateway=gateway)

    async def scenario() -> tuple[int, int]:
        await workspace.start()
        loaded = (len(workspace.store.events), len(workspace.store.notes))
        await workspace.stop()
        return loaded

    assert asyncio.run(scenario()) == (1, 0)
    assert len(workspace.notices.errors()) == 1


def test_commands_write_through_to_gateway() -> None:
    gateway = FakeGateway()
    workspace = create_workspace(gateway=gateway)

    async def scenario() -> str:
        await workspace.start()
        event = workspace.commands.save_event(title="Gala", date="2024-07-01")
        workspace.commands.save_demand(title="Band", event_id=event.id)
        await workspace.stop()
        return event.id

    event_id = asyncio.run(scenario())

    assert gateway.tables["events"][event_id]["title"] == "Gala"
    assert [row["event_id"] for row in gateway.tables["demands"].values()] == [event_id]


def test_follow_subscribes_once_and_stop_unsubscribes() -> None:
    feed = FakeFeed()
    workspace = create_workspace(gateway=FakeGateway(), feed=feed)

    async def scenario() -> None:
        await workspace.start(follow=True)
        await workspace.start(follow=True)
        await _eventually(lambda: len(feed.subscriptions) == 1)
        assert workspace.following
        await workspace.stop()
        assert not workspace.following

    asyncio.run(scenario())

    assert feed.unsubscribed == feed.subscriptions


def test_assistant_enabled_only_with_generator() -> None:
    assert not create_workspace().assistant.enabled
    assert create_workspace(generator=FakeTextGenerator()).assistant.enabled


def test_local_backend_echoes_writes_back_into_the_store(offline_env: None) -> None:
    workspace = build_workspace(backend="local")
    assert workspace.backend == "local"
    feed = workspace.feed
    assert isinstance(feed, LocalChangeFeed)

    async def scenario() -> list[dict[str, object]]:
        await workspace.start(follow=True)
        await _eventually(lambda: feed.subscriber_count == 1)
        event = workspace.commands.save_event(title="Gala", date="2024-07-01")
        assert workspace.store.pending(EntityKind.EVENT) == {event.id: "INSERT"}
        await _eventually(lambda: not workspace.store.pending(EntityKind.EVENT))
        assert workspace.gateway is not None
        rows = await workspace.gateway.list_all("events")
        await workspace.stop()
        return rows

    rows = asyncio.run(scenario())

    assert [row["title"] for row in rows] == ["Gala"]
    assert not workspace.notices.errors()


def test_auto_backend_without_supabase_is_local(offline_env: None) -> None:
    workspace = build_workspace()

    assert workspace.backend == "local"
    assert not workspace.assistant.enabled
    asyncio.run(workspace.stop())


def test_unknown_backend_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        build_workspace(backend="mongo")  # pyright: ignore[reportArgumentType]
