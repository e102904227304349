"""Application wiring: one ``Workspace`` per running dashboard session."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from eventdesk.adapters.gemini import GeminiTextGenerator
from eventdesk.adapters.local_feed import LocalChangeFeed
from eventdesk.adapters.sqlalchemy import SqlAlchemyGateway, shutdown, startup
from eventdesk.adapters.supabase import PostgrestGateway, RealtimeFeed
from eventdesk.config import (
    ConfigurationError,
    get_gemini_config,
    get_supabase_config,
    optional_env_var,
)
from eventdesk.domain.assistant import Assistant
from eventdesk.domain.commands import DashboardCommands
from eventdesk.domain.notices import NoticeBoard
from eventdesk.domain.store import ReconcilingStore
from eventdesk.domain.sync import RealtimeSync
from eventdesk.domain.views import DashboardSummary, dashboard_summary
from eventdesk.domain.writes import WriteBehind

if TYPE_CHECKING:
    from types import TracebackType

    from eventdesk.domain.ports import ChangeFeed, PersistenceGateway, TextGenerator

log = getLogger(__name__)

type Backend = Literal["auto", "supabase", "local"]
type Closer = Callable[[], Awaitable[None] | None]


def _today() -> date:
    return datetime.now(UTC).date()


@dataclass(slots=True, eq=False)
class Workspace:
    """Store, commands and their collaborators for one session."""

    store: ReconcilingStore
    commands: DashboardCommands
    notices: NoticeBoard
    assistant: Assistant
    sync: RealtimeSync
    writes: WriteBehind | None
    gateway: PersistenceGateway | None
    feed: ChangeFeed | None
    backend: str = "memory"
    clock: Callable[[], date] = _today
    closers: list[Closer] = field(default_factory=list)
    _sync_task: asyncio.Task[None] | None = None

    async def __aenter__(self) -> Workspace:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()

    @property
    def following(self) -> bool:
        return self._sync_task is not None and not self._sync_task.done()

    async def start(self, *, follow: bool = False) -> None:
        """Load every table; with ``follow`` keep applying realtime changes."""

        if follow and self.feed is not None:
            if self.following:
                return
            self._sync_task = asyncio.create_task(self.sync.run(), name="eventdesk-sync")
            return
        await self.sync.resync()

    async def stop(self) -> None:
        if self._sync_task is not None:
            self._sync_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sync_task
            self._sync_task = None
        if self.writes is not None:
            await self.writes.drain()
        for closer in reversed(self.closers):
            result = closer()
            if result is not None:
                await result
        self.closers.clear()
        self.store.clear()

    def summary(self) -> DashboardSummary:
        return dashboard_summary(
            self.store.events, self.store.demands, self.store.notes, self.clock()
        )


def create_workspace(
    *,
    gateway: PersistenceGateway | None = None,
    feed: ChangeFeed | None = None,
    generator: TextGenerator | None = None,
    backend: str = "memory",
    clock: Callable[[], date] = _today,
) -> Workspace:
    """Assemble a workspace from already-built adapters."""

    notices = NoticeBoard()
    writes = WriteBehind(gateway, notifier=notices) if gateway is not None else None
    store = ReconcilingStore(writes=writes)
    return Workspace(
        store=store,
        commands=DashboardCommands(store),
        notices=notices,
        assistant=Assistant(generator, clock=clock),
        sync=RealtimeSync(store, feed, gateway, notifier=notices),
        writes=writes,
        gateway=gateway,
        feed=feed,
        backend=backend,
        clock=clock,
    )


def _supabase_configured() -> bool:
    return bool(optional_env_var("SUPABASE_URL") and optional_env_var("SUPABASE_ANON_KEY"))


def build_workspace(
    *,
    backend: Backend = "auto",
    database_uri: str | None = None,
) -> Workspace:
    """Build a workspace from the environment.

    ``auto`` picks Supabase when ``SUPABASE_URL`` and ``SUPABASE_ANON_KEY`` are
    set and the local SQLAlchemy database otherwise. The assistant is enabled
    only when ``GEMINI_API_KEY`` is set.
    """

    if backend not in ("auto", "supabase", "local"):
        raise ConfigurationError(f"Unknown backend: {backend}")
    if backend == "auto":
        backend = "supabase" if _supabase_configured() else "local"

    closers: list[Closer] = []
    generator: GeminiTextGenerator | None = None
    if optional_env_var("GEMINI_API_KEY"):
        generator = GeminiTextGenerator(get_gemini_config())
        closers.append(generator.aclose)

    gateway: PersistenceGateway
    feed: ChangeFeed
    if backend == "supabase":
        config = get_supabase_config()
        rest = PostgrestGateway(config)
        closers.append(rest.aclose)
        gateway, feed = rest, RealtimeFeed(config)
    else:
        startup(database_uri=database_uri, force=True)
        closers.append(shutdown)
        local_feed = LocalChangeFeed()
        gateway, feed = SqlAlchemyGateway(feed=local_feed), local_feed

    log.info("Workspace backend: %s (assistant %s)", backend, "on" if generator else "off")
    workspace = create_workspace(
        gateway=gateway,
        feed=feed,
        generator=generator,
        backend=backend,
    )
    workspace.closers.extend(closers)
    return workspace
