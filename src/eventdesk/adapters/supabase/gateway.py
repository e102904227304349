"""PostgREST persistence gateway for the hosted Supabase backend."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError as PydanticValidationError

from eventdesk.adapters.http_resilience import ResilientClient
from eventdesk.domain.errors import GatewayError

from .schema import ROWS_ADAPTER, PostgrestError

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from eventdesk.config.http_resilience import ResilienceConfig
    from eventdesk.config.supabase import SupabaseConfig
    from eventdesk.domain.ports import WireRow

log = getLogger(__name__)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _id_filter(record_id: str) -> dict[str, str]:
    return {"id": f"eq.{record_id}"}


class PostgrestGateway:
    """``insert / update / delete / list_all`` against ``/rest/v1/{table}``."""

    def __init__(
        self,
        config: SupabaseConfig,
        *,
        client_factory: Callable[[ResilienceConfig], ResilientClient] = _default_client_factory,
    ) -> None:
        self.config = config
        self._client = client_factory(config.resilience)

    async def __aenter__(self) -> PostgrestGateway:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def insert(self, table: str, row: WireRow) -> None:
        # upsert on the client id, so a retried POST that already landed is not a conflict
        await self._call(
            "POST",
            table,
            json=[dict(row)],
            headers={"Prefer": "return=minimal,resolution=merge-duplicates"},
        )

    async def update(self, table: str, record_id: str, fields: WireRow) -> None:
        await self._call(
            "PATCH",
            table,
            params=_id_filter(record_id),
            json=dict(fields),
            headers={"Prefer": "return=minimal"},
        )

    async def delete(self, table: str, record_id: str) -> None:
        await self._call("DELETE", table, params=_id_filter(record_id))

    async def list_all(self, table: str) -> list[dict[str, object]]:
        response = await self._call("GET", table, params={"select": "*"})
        try:
            return ROWS_ADAPTER.validate_json(response.content)
        except PydanticValidationError as exc:
            raise GatewayError(f"Unexpected payload listing {table}", table=table) from exc

    async def _call(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: object = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method, table, params=params, json=json, headers=headers
            )
        except httpx.HTTPError as exc:
            raise GatewayError(f"{method} {table} failed: {exc}", table=table) from exc

        if response.is_error:
            detail = _error_message(response)
            log.debug("%s %s -> %s %s", method, table, response.status_code, detail)
            raise GatewayError(
                f"{method} {table} failed with {response.status_code}: {detail}",
                table=table,
                status=response.status_code,
            )
        return response


def _error_message(response: httpx.Response) -> str:
    try:
        error = PostgrestError.model_validate_json(response.content)
    except PydanticValidationError:
        return response.text[:200] or response.reason_phrase
    return error.message or response.reason_phrase
