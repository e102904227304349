"""Write-behind scheduling of durable gateway writes.

The store applies every local mutation before anything is sent; the write
itself runs later as a tracked asyncio task. A failed write is reported to the
user and logged, but the optimistic local state is left untouched.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from eventdesk.domain.errors import GatewayError
from eventdesk.domain.model import ChangeKind
from eventdesk.domain.notices import NoticeLevel

if TYPE_CHECKING:
    from collections.abc import Mapping

    from eventdesk.domain.notices import Notifier
    from eventdesk.domain.ports import PersistenceGateway

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GatewayWrite:
    """A durable write the store wants the gateway to perform."""

    action: ChangeKind
    table: str
    record_id: str
    row: Mapping[str, object] | None = None

    async def send(self, gateway: PersistenceGateway) -> None:
        match self.action:
            case ChangeKind.INSERT:
                await gateway.insert(self.table, self.row or {})
            case ChangeKind.UPDATE:
                await gateway.update(self.table, self.record_id, self.row or {})
            case ChangeKind.DELETE:
                await gateway.delete(self.table, self.record_id)

    def describe(self) -> str:
        return f"{self.action.lower()} {self.table}/{self.record_id}"


@runtime_checkable
class WriteScheduler(Protocol):
    def submit(self, write: GatewayWrite) -> None: ...


class WriteBehind:
    """Runs gateway writes as background tasks on the current event loop.

    Writes are sent one after another in submit order, so a delete never
    overtakes the insert it follows and a demand never reaches the backend
    before the event it belongs to.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        *,
        notifier: Notifier | None = None,
        timeout_seconds: float | None = 30.0,
        failure_history: int = 50,
    ) -> None:
        self.gateway = gateway
        self.notifier = notifier
        self.timeout_seconds = timeout_seconds
        self._tasks: set[asyncio.Task[None]] = set()
        self._tail: asyncio.Task[None] | None = None
        self.failures: deque[tuple[GatewayWrite, Exception]] = deque(maxlen=failure_history)

    def submit(self, write: GatewayWrite) -> None:
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(write, self._tail), name=f"write:{write.describe()}")
        self._tail = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every submitted write to settle."""

        while self._tasks:
            await asyncio.gather(*tuple(self._tasks), return_exceptions=True)

    async def _run(self, write: GatewayWrite, previous: asyncio.Task[None] | None) -> None:
        if previous is not None and not previous.done():
            await asyncio.wait((previous,))
        try:
            async with asyncio.timeout(self.timeout_seconds):
                await write.send(self.gateway)
        except TimeoutError:
            self._report(write, GatewayError(f"Timed out: {write.describe()}", table=write.table))
        except GatewayError as exc:
            self._report(write, exc)
        except Exception as exc:
            log.exception("Durable write crashed (%s)", write.describe())
            self._report(write, exc)
        else:
            log.debug("Durable write done: %s", write.describe())

    def _report(self, write: GatewayWrite, exc: Exception) -> None:
        # local state stays as applied; only a remote notification corrects it
        log.warning("Durable write failed (%s): %s", write.describe(), exc)
        self.failures.append((write, exc))
        if self.notifier is not None:
            self.notifier.notify(NoticeLevel.ERROR, f"Could not save changes to {write.table}: {exc}")
