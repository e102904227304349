"""Port for the request/response persistence gateway."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

type WireRow = Mapping[str, object]


@runtime_checkable
class PersistenceGateway(Protocol):
    """CRUD contract per backend table.

    Rows are wire dictionaries (column names, JSON-compatible values).
    Implementations raise ``GatewayError`` on any failure.
    """

    async def insert(self, table: str, row: WireRow) -> None: ...

    async def update(self, table: str, record_id: str, fields: WireRow) -> None: ...

    async def delete(self, table: str, record_id: str) -> None: ...

    async def list_all(self, table: str) -> list[dict[str, object]]: ...
