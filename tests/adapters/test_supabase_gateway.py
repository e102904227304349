from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from dataclasses import replace

import httpx
import pytest

from eventdesk.adapters.http_resilience import ResilientClient
from eventdesk.adapters.supabase import PostgrestGateway
from eventdesk.config import ResilienceConfig, RetryPolicy, SupabaseConfig, get_supabase_config
from eventdesk.domain.errors import GatewayError


@pytest.fixture
def supabase_config(monkeypatch: pytest.MonkeyPatch) -> SupabaseConfig:
    monkeypatch.setenv("SUPABASE_URL", "https://demo.supabase.co/")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")
    return get_supabase_config()


def _gateway(
    config: SupabaseConfig,
    handler: Callable[[httpx.Request], httpx.Response],
) -> PostgrestGateway:
    def factory(resilience: ResilienceConfig) -> ResilientClient:
        return ResilientClient(
            replace(resilience, retry=RetryPolicy(total=0), ratelimit=None),
            transport=httpx.MockTransport(handler),
        )

    return PostgrestGateway(config, client_factory=factory)


def test_config_derives_urls_and_headers(supabase_config: SupabaseConfig) -> None:
    assert supabase_config.rest_url == "https://demo.supabase.co/rest/v1"
    assert supabase_config.realtime_url == (
        "wss://demo.supabase.co/realtime/v1/websocket?apikey=anon-key&vsn=1.0.0"
    )
    headers = supabase_config.resilience.default_headers or {}
    assert headers["Authorization"] == "Bearer anon-key"


def test_insert_posts_list_body(supabase_config: SupabaseConfig) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201)

    async def scenario() -> None:
        async with _gateway(supabase_config, handler) as gateway:
            await gateway.insert("events", {"id": "e1", "title": "Fair"})

    asyncio.run(scenario())

    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/rest/v1/events"
    assert json.loads(request.content) == [{"id": "e1", "title": "Fair"}]
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["Prefer"] == "return=minimal,resolution=merge-duplicates"



def test_retried_insert_is_sent_as_an_upsert(supabase_config: SupabaseConfig) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(503 if len(seen) == 1 else 201)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        retry = RetryPolicy(total=1, backoff_factor=0.0, backoff_jitter=0.0)
        return ResilientClient(
            replace(resilience, retry=retry, ratelimit=None),
            transport=httpx.MockTransport(handler),
        )

    async def scenario() -> None:
        async with PostgrestGateway(supabase_config, client_factory=factory) as gateway:
            await gateway.insert("notes", {"id": "n1", "content": "Hi"})

    asyncio.run(scenario())

    assert len(seen) == 2
    assert all("resolution=merge-duplicates" in r.headers["Prefer"] for r in seen)
    assert json.loads(seen[0].content) == json.loads(seen[1].content)

def test_update_and_delete_filter_by_id(supabase_config: SupabaseConfig) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    async def scenario() -> None:
        async with _gateway(supabase_config, handler) as gateway:
            await gateway.update("demands", "d1", {"status": "Concluído"})
            await gateway.delete("clients", "c1")

    asyncio.run(scenario())

    update, delete = seen
    assert update.method == "PATCH"
    assert update.url.params["id"] == "eq.d1"
    assert json.loads(update.content) == {"status": "Concluído"}
    assert delete.method == "DELETE"
    assert delete.url.path == "/rest/v1/clients"
    assert delete.url.params["id"] == "eq.c1"


def test_list_all_returns_rows(supabase_config: SupabaseConfig) -> None:
    rows = [{"id": "n1", "content": "x", "created_at": "2024-06-01T00:00:00Z"}]

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["select"] == "*"
        return httpx.Response(200, json=rows)

    async def scenario() -> list[dict[str, object]]:
        async with _gateway(supabase_config, handler) as gateway:
            return await gateway.list_all("notes")

    assert asyncio.run(scenario()) == rows


def test_error_status_raises_gateway_error(supabase_config: SupabaseConfig) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"message": "duplicate key value", "code": "23505"})

    async def scenario() -> None:
        async with _gateway(supabase_config, handler) as gateway:
            await gateway.insert("events", {"id": "e1"})

    with pytest.raises(GatewayError) as exc:
        asyncio.run(scenario())

    assert exc.value.status == 409
    assert exc.value.table == "events"
    assert "duplicate key value" in str(exc.value)


def test_transport_error_raises_gateway_error(supabase_config: SupabaseConfig) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    async def scenario() -> None:
        async with _gateway(supabase_config, handler) as gateway:
            await gateway.delete("events", "e1")

    with pytest.raises(GatewayError) as exc:
        asyncio.run(scenario())

    assert exc.value.status is None


def test_unexpected_list_payload_raises(supabase_config: SupabaseConfig) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"not": "a list"})

    async def scenario() -> None:
        async with _gateway(supabase_config, handler) as gateway:
            await gateway.list_all("events")

    with pytest.raises(GatewayError):
        asyncio.run(scenario())
