"""Persistence gateway over a local SQLAlchemy database.

Each call runs in its own unit of work. After a commit the affected rows are
read back and published to the in-process change feed, so the local backend
echoes writes the same way the hosted realtime service does.
"""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from eventdesk.adapters.sqlalchemy.mappings import demands_table, events_table, table_for
from eventdesk.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork
from eventdesk.domain.errors import GatewayError
from eventdesk.domain.model import ChangeKind
from eventdesk.domain.ports import ChangeNotification

if TYPE_CHECKING:
    from sqlalchemy import Table
    from sqlalchemy.orm import Session

    from eventdesk.adapters.local_feed import LocalChangeFeed
    from eventdesk.domain.ports import WireRow

log = getLogger(__name__)


class SqlAlchemyGateway:
    def __init__(
        self,
        *,
        feed: LocalChangeFeed | None = None,
        unit_of_work: Callable[[], SqlAlchemyUnitOfWork] = SqlAlchemyUnitOfWork,
    ) -> None:
        self._feed = feed
        self._unit_of_work = unit_of_work

    async def insert(self, table: str, row: WireRow) -> None:
        target = self._table(table)
        values = _known_columns(target, row)
        try:
            with self._unit_of_work() as uow:
                uow.session.execute(insert(target).values(**values))
                uow.commit()
                stored = _fetch(uow.session, target, str(values.get("id")))
        except SQLAlchemyError as exc:
            raise GatewayError(f"Insert into {table} failed: {exc}", table=table) from exc
        if stored is not None:
            self._publish(table, ChangeKind.INSERT, stored)

    async def update(self, table: str, record_id: str, fields: WireRow) -> None:
        target = self._table(table)
        values = _known_columns(target, fields)
        values.pop("id", None)
        if not values:
            return
        try:
            with self._unit_of_work() as uow:
                result = uow.session.execute(
                    update(target).where(target.c.id == record_id).values(**values)
                )
                uow.commit()
                stored = _fetch(uow.session, target, record_id) if result.rowcount else None
        except SQLAlchemyError as exc:
            raise GatewayError(f"Update of {table}/{record_id} failed: {exc}", table=table) from exc
        if stored is None:
            log.debug("Update of %s/%s matched no row", table, record_id)
            return
        self._publish(table, ChangeKind.UPDATE, stored)

    async def delete(self, table: str, record_id: str) -> None:
        target = self._table(table)
        cascaded: list[str] = []
        try:
            with self._unit_of_work() as uow:
                if target is events_table:
                    cascaded = list(
                        uow.session.scalars(
                            select(demands_table.c.id).where(demands_table.c.event_id == record_id)
                        )
                    )
                result = uow.session.execute(delete(target).where(target.c.id == record_id))
                uow.commit()
                deleted = bool(result.rowcount)
        except SQLAlchemyError as exc:
            raise GatewayError(f"Delete of {table}/{record_id} failed: {exc}", table=table) from exc
        if not deleted:
            return
        for demand_id in cascaded:
            self._publish(demands_table.name, ChangeKind.DELETE, None, old_id=demand_id)
        self._publish(table, ChangeKind.DELETE, None, old_id=record_id)

    async def list_all(self, table: str) -> list[dict[str, object]]:
        target = self._table(table)
        try:
            with self._unit_of_work() as uow:
                rows = uow.session.execute(select(target)).mappings().all()
        except SQLAlchemyError as exc:
            raise GatewayError(f"Listing {table} failed: {exc}", table=table) from exc
        return [dict(row) for row in rows]

    def _table(self, table: str) -> Table:
        try:
            return table_for(table)
        except ValueError as exc:
            raise GatewayError(str(exc), table=table) from exc

    def _publish(
        self,
        table: str,
        kind: ChangeKind,
        record: dict[str, object] | None,
        *,
        old_id: str | None = None,
    ) -> None:
        if self._feed is None:
            return
        self._feed.publish(ChangeNotification(table=table, kind=kind, record=record, old_id=old_id))


def _known_columns(table: Table, row: WireRow) -> dict[str, object]:
    return {name: value for name, value in row.items() if name in table.c}


def _fetch(session: Session, table: Table, record_id: str) -> dict[str, object] | None:
    row = session.execute(select(table).where(table.c.id == record_id)).mappings().first()
    return dict(row) if row is not None else None
