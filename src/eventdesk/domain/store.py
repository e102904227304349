"""Client-side reconciling store.

Holds one ordered collection per entity kind. Local commands are applied
immediately and then written through the write scheduler; remote change
notifications are merged into the same collections. Whichever change for an
id is processed last replaces the whole record: there is no field-level merge.
"""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING, cast

from eventdesk.domain.errors import NotFoundError, ValidationError
from eventdesk.domain.model import (
    ChangeKind,
    Contact,
    Demand,
    EntityKind,
    Event,
    Note,
    Record,
)
from eventdesk.domain.wire import patch_to_row, record_to_row, row_to_record
from eventdesk.domain.writes import GatewayWrite

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from eventdesk.domain.ports import ChangeNotification
    from eventdesk.domain.writes import WriteScheduler

log = getLogger(__name__)

type ChangeListener = Callable[[EntityKind, str], None]


class RecordCollection[TRecord: Record]:
    """Insertion-ordered records keyed by id.

    Replacing an existing id keeps its position; new ids are appended.
    """

    def __init__(self, kind: EntityKind) -> None:
        self.kind = kind
        self._records: dict[str, TRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def __iter__(self) -> Iterator[TRecord]:
        return iter(tuple(self._records.values()))

    def snapshot(self) -> tuple[TRecord, ...]:
        return tuple(self._records.values())

    def get(self, record_id: str) -> TRecord | None:
        return self._records.get(record_id)

    def upsert(self, record: TRecord) -> bool:
        """Store ``record``; return True when the id was not present before."""

        created = record.id not in self._records
        self._records[record.id] = record
        return created

    def remove(self, record_id: str) -> TRecord | None:
        return self._records.pop(record_id, None)

    def remove_where(self, predicate: Callable[[TRecord], bool]) -> list[TRecord]:
        doomed = [record for record in self._records.values() if predicate(record)]
        for record in doomed:
            del self._records[record.id]
        return doomed

    def reset(self, records: Iterable[TRecord]) -> None:
        self._records = {record.id: record for record in records}


class ReconcilingStore:
    """Owns the event, demand, contact and note collections.

    Only this object writes to the collections. Readers get tuples, so a
    snapshot never changes underneath them.
    """

    def __init__(self, *, writes: WriteScheduler | None = None) -> None:
        self._collections: dict[EntityKind, RecordCollection[Record]] = {
            kind: RecordCollection(kind) for kind in EntityKind
        }
        # ids with a local write the feed has not echoed yet
        self._pending: dict[EntityKind, dict[str, ChangeKind]] = {kind: {} for kind in EntityKind}
        self._writes = writes
        self._listeners: list[ChangeListener] = []

    # Reads -------------------------------------------------------------------

    def list(self, kind: EntityKind) -> tuple[Record, ...]:
        return self._collections[kind].snapshot()

    @property
    def events(self) -> tuple[Event, ...]:
        return cast("tuple[Event, ...]", self.list(EntityKind.EVENT))

    @property
    def demands(self) -> tuple[Demand, ...]:
        return cast("tuple[Demand, ...]", self.list(EntityKind.DEMAND))

    @property
    def contacts(self) -> tuple[Contact, ...]:
        return cast("tuple[Contact, ...]", self.list(EntityKind.CONTACT))

    @property
    def notes(self) -> tuple[Note, ...]:
        return cast("tuple[Note, ...]", self.list(EntityKind.NOTE))

    def find(self, kind: EntityKind, record_id: str) -> Record | None:
        return self._collections[kind].get(record_id)

    def get(self, kind: EntityKind, record_id: str) -> Record:
        record = self.find(kind, record_id)
        if record is None:
            raise NotFoundError(kind, record_id)
        return record

    def pending(self, kind: EntityKind) -> dict[str, ChangeKind]:
        return dict(self._pending[kind])

    # Local (optimistic) mutations ------------------------------------------

    def apply_local_insert(self, record: Record) -> Record:
        """Insert or replace ``record`` locally, then schedule the durable insert."""

        kind = record.kind
        row = record_to_row(record)
        if isinstance(record, Demand):
            self._require_event(record.event_id)

        self._collections[kind].upsert(record)
        self._pending[kind][record.id] = ChangeKind.INSERT
        self._changed(kind, record.id)
        self._submit(GatewayWrite(ChangeKind.INSERT, kind.table, record.id, row))
        return record

    def apply_local_update(
        self,
        kind: EntityKind,
        record_id: str,
        patch: Mapping[str, object],
    ) -> Record:
        """Replace the fields named in ``patch`` and schedule the durable update."""

        current = self.get(kind, record_id)
        wire_patch = patch_to_row(kind, patch)
        updated = row_to_record(kind, {**record_to_row(current), **wire_patch})
        if isinstance(updated, Demand) and "event_id" in patch:
            self._require_event(updated.event_id)

        self._collections[kind].upsert(updated)
        self._pending[kind][record_id] = ChangeKind.UPDATE
        self._changed(kind, record_id)
        self._submit(GatewayWrite(ChangeKind.UPDATE, kind.table, record_id, wire_patch))
        return updated

    def apply_local_delete(self, kind: EntityKind, record_id: str) -> bool:
        """Remove ``record_id`` if present and schedule the durable delete.

        Deleting an absent id is a no-op locally. Deleting an event also drops
        its demands; the backend cascades the same delete on its side.
        """

        removed = self._collections[kind].remove(record_id) is not None
        self._pending[kind][record_id] = ChangeKind.DELETE
        if kind is EntityKind.EVENT:
            for demand in self._cascade_event_delete(record_id):
                self._pending[EntityKind.DEMAND][demand.id] = ChangeKind.DELETE
        if removed:
            self._changed(kind, record_id)
        self._submit(GatewayWrite(ChangeKind.DELETE, kind.table, record_id))
        return removed

    # Remote notifications ----------------------------------------------------

    def apply_remote_change(self, notification: ChangeNotification) -> bool:
        """Merge one change feed notification; return whether it was applied."""

        try:
            kind = EntityKind.from_table(notification.table)
        except ValueError:
            log.warning("Ignoring change for unknown table %r", notification.table)
            return False

        if notification.kind is ChangeKind.DELETE:
            record_id = notification.record_id
            if record_id is None:
                log.warning("Ignoring %s delete without an id", notification.table)
                return False
            self._collections[kind].remove(record_id)
            self._pending[kind].pop(record_id, None)
            if kind is EntityKind.EVENT:
                for demand in self._cascade_event_delete(record_id):
                    self._pending[EntityKind.DEMAND].pop(demand.id, None)
            self._changed(kind, record_id)
            return True

        if notification.record is None:
            log.warning("Ignoring %s %s without a record", notification.table, notification.kind)
            return False
        try:
            record = row_to_record(kind, notification.record)
        except ValidationError as exc:
            log.warning("Skipping undecodable %s change: %s", notification.table, exc)
            return False

        # update for an id we have not seen yet is kept as an insert
        self._collections[kind].upsert(record)
        self._pending[kind].pop(record.id, None)
        self._changed(kind, record.id)
        return True

    def replace_all(self, kind: EntityKind, records: Iterable[Record]) -> None:
        """Replace remotely known state with a full snapshot.

        Records with an unconfirmed local write keep their local version, and
        ids deleted locally but not yet confirmed stay deleted.
        """

        collection = self._collections[kind]
        pending = self._pending[kind]
        merged: dict[str, Record] = {}
        for record in records:
            action = pending.get(record.id)
            if action is ChangeKind.DELETE:
                continue
            local = collection.get(record.id) if action is not None else None
            merged[record.id] = local or record
        for record_id, action in pending.items():
            if action is ChangeKind.DELETE or record_id in merged:
                continue
            local = collection.get(record_id)
            if local is not None:
                merged[record_id] = local

        collection.reset(merged.values())
        log.debug("Resynced %s: %d record(s), %d pending", kind.table, len(collection), len(pending))
        self._changed(kind, "*")

    # Lifecycle ---------------------------------------------------------------

    def add_listener(self, listener: ChangeListener) -> Callable[[], None]:
        """Register ``listener`` for (kind, id) change callbacks; return a remover."""

        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def clear(self) -> None:
        for kind, collection in self._collections.items():
            collection.reset(())
            self._pending[kind].clear()
        self._listeners.clear()

    # Internals ---------------------------------------------------------------

    def _require_event(self, event_id: str) -> None:
        if event_id not in self._collections[EntityKind.EVENT]:
            raise ValidationError(f"Unknown event {event_id}", field="event_id")

    def _cascade_event_delete(self, event_id: str) -> list[Record]:
        removed = self._collections[EntityKind.DEMAND].remove_where(
            lambda record: cast("Demand", record).event_id == event_id
        )
        for demand in removed:
            self._changed(EntityKind.DEMAND, demand.id)
        return removed

    def _submit(self, write: GatewayWrite) -> None:
        if self._writes is not None:
            self._writes.submit(write)

    def _changed(self, kind: EntityKind, record_id: str) -> None:
        for listener in tuple(self._listeners):
            try:
                listener(kind, record_id)
            except Exception:
                log.exception("Store listener failed for %s %s", kind, record_id)
