"""Supabase Realtime change feed over the Phoenix websocket protocol.

Each subscription owns one websocket: it joins a single channel with a
``postgres_changes`` filter per table, keeps the socket alive with a
heartbeat, and puts decoded notifications on the subscription channel. When
the socket closes for any reason a ``FeedDisconnected`` message is queued and
the consumer is expected to subscribe again.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from eventdesk.domain.errors import FeedError
from eventdesk.domain.ports import ChangeNotification, FeedDisconnected, FeedSubscription

from .schema import PhoenixMessage, PostgresChangesPayload, ReplyPayload

if TYPE_CHECKING:
    from collections.abc import Awaitable, Sequence

    from eventdesk.config.supabase import SupabaseConfig

log = getLogger(__name__)

CHANNEL_TOPIC = "realtime:eventdesk"
JOIN_TIMEOUT_SECONDS = 10.0

type Connector = Callable[[str], Awaitable[ClientConnection]]


def _default_connector(url: str) -> Awaitable[ClientConnection]:
    return connect(url, open_timeout=JOIN_TIMEOUT_SECONDS, ping_interval=None)


def join_message(tables: Sequence[str], *, access_token: str, ref: str) -> dict[str, Any]:
    return {
        "topic": CHANNEL_TOPIC,
        "event": "phx_join",
        "payload": {
            "config": {
                "broadcast": {"ack": False, "self": False},
                "presence": {"key": ""},
                "postgres_changes": [
                    {"event": "*", "schema": "public", "table": table} for table in tables
                ],
            },
            "access_token": access_token,
        },
        "ref": ref,
        "join_ref": ref,
    }


def heartbeat_message(ref: str) -> dict[str, Any]:
    return {"topic": "phoenix", "event": "heartbeat", "payload": {}, "ref": ref}


def decode_change(message: PhoenixMessage) -> ChangeNotification | None:
    """Turn a ``postgres_changes`` message into a notification; ``None`` otherwise."""

    if message.event != "postgres_changes":
        return None
    try:
        payload = PostgresChangesPayload.model_validate(message.payload)
    except PydanticValidationError as exc:
        log.warning("Ignoring malformed postgres_changes payload: %s", exc)
        return None
    change = payload.data
    return ChangeNotification(
        table=change.table,
        kind=change.kind,
        record=change.record,
        old_id=change.old_id,
    )


def parse_message(raw: str | bytes) -> PhoenixMessage | None:
    try:
        return PhoenixMessage.model_validate_json(raw)
    except PydanticValidationError:
        log.warning("Ignoring undecodable realtime frame")
        return None


@dataclass(slots=True, eq=False)
class _Connection:
    subscription: FeedSubscription
    websocket: ClientConnection
    tasks: list[asyncio.Task[None]] = field(default_factory=list)


class RealtimeFeed:
    def __init__(
        self,
        config: SupabaseConfig,
        *,
        connector: Connector = _default_connector,
    ) -> None:
        self.config = config
        self._connector = connector
        self._refs = itertools.count(1)
        self._connections: dict[str, _Connection] = {}

    async def subscribe(self, tables: Sequence[str]) -> FeedSubscription:
        try:
            websocket = await self._connector(self.config.realtime_url)
        except (OSError, TimeoutError, InvalidHandshake, InvalidURI) as exc:
            raise FeedError(f"Realtime connection failed: {exc}") from exc

        try:
            await self._join(websocket, tables)
        except BaseException:
            await websocket.close()
            raise

        subscription = FeedSubscription(tables=tuple(tables))
        connection = _Connection(subscription=subscription, websocket=websocket)
        connection.tasks.append(asyncio.create_task(self._read(connection)))
        connection.tasks.append(asyncio.create_task(self._heartbeat(connection)))
        self._connections[subscription.id] = connection
        log.info("Realtime subscribed to %s", ", ".join(tables))
        return subscription

    async def unsubscribe(self, subscription: FeedSubscription) -> None:
        connection = self._connections.pop(subscription.id, None)
        if connection is None:
            return
        for task in connection.tasks:
            task.cancel()
        for task in connection.tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await connection.websocket.close()

    async def _join(self, websocket: ClientConnection, tables: Sequence[str]) -> None:
        ref = self._next_ref()
        message = join_message(tables, access_token=self.config.anon_key, ref=ref)
        try:
            await websocket.send(json.dumps(message))
            async with asyncio.timeout(JOIN_TIMEOUT_SECONDS):
                while True:
                    reply = parse_message(await websocket.recv())
                    if reply is not None and reply.event == "phx_reply" and reply.ref == ref:
                        break
        except TimeoutError as exc:
            raise FeedError("Realtime join timed out") from exc
        except ConnectionClosed as exc:
            raise FeedError(f"Realtime connection closed during join: {exc}") from exc

        try:
            status = ReplyPayload.model_validate(reply.payload)
        except PydanticValidationError as exc:
            raise FeedError("Realtime join reply was malformed") from exc
        if status.status != "ok":
            raise FeedError(f"Realtime join rejected: {status.response}")

    async def _read(self, connection: _Connection) -> None:
        subscription = connection.subscription
        reason = "connection closed"
        try:
            async for raw in connection.websocket:
                message = parse_message(raw)
                if message is None:
                    continue
                if message.topic == CHANNEL_TOPIC and message.event in {"phx_error", "phx_close"}:
                    reason = f"channel {message.event}"
                    break
                notification = decode_change(message)
                if notification is not None:
                    subscription.publish(notification)
        except ConnectionClosed as exc:
            reason = f"connection closed: {exc}"
        log.warning("Realtime feed lost (%s)", reason)
        subscription.publish(FeedDisconnected(reason))

    async def _heartbeat(self, connection: _Connection) -> None:
        while True:
            await asyncio.sleep(self.config.heartbeat_seconds)
            try:
                await connection.websocket.send(json.dumps(heartbeat_message(self._next_ref())))
            except ConnectionClosed:
                return

    def _next_ref(self) -> str:
        return str(next(self._refs))
