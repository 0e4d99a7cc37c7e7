"""
stores/engine.py -- Generic persisted entity store.

One engine, parameterized by a StoreConfig, backs every record type in Audit
Desk. Each instance owns the authoritative in-memory list for its entity
type and mirrors the whole list to a key-value backend after every
successful mutation.

Pattern: Repository over a blob. The backend only stores opaque strings; the
engine owns id assignment, creation stamps, nested-collection numbering,
seeding and the soft-delete ledger. Mapping between JSON and dataclasses is
done by pydantic TypeAdapters, so a persisted record is validated field by
field on load. A record that fails validation is treated as absent.
Timestamps are held in UTC: a datetime without tzinfo, whether stored or
passed to add/update, is read as UTC.

Lifecycle:
    UNINITIALIZED --(first operation)--> load --> READY

    load: stored non-empty list     -> use it
          no first-run marker       -> seed, persist seed, write marker
          marker present, no data   -> start empty (user cleared everything)

Storage keys for config.key == "audits":
    audits_data          JSON array of records
    audits_initialized   "true" once seeded
    audits_deleted_ids   JSON array of ids (ledger-enabled stores only)

Failure semantics: StorageError and corrupt blobs are logged and swallowed.
Reads degrade to "no data", writes are dropped, and the in-memory list stays
authoritative for the session. Caller mistakes (unknown field names, bad
field values on add) raise ValueError.

Observed contracts kept on purpose:
  - ids are max(existing, 0) + 1, so the highest id is reused after removal
  - update/remove on a missing id is a silent no-op
  - nothing cascades across stores
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, fields, is_dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from core.config import as_utc, utc_now
from storage.backend import KeyValueBackend, StorageError

logger = logging.getLogger("auditdesk.store")

T = TypeVar("T")

Clock = Callable[[], datetime]

_INITIALIZED = "true"
_ledger_adapter = TypeAdapter(list[int])


class StoreError(Exception):
    """Raised when a store is asked for an operation its config does not support."""


class StoreState(str, Enum):
    uninitialized = "uninitialized"
    ready = "ready"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NestedCollection:
    """A tuple-of-dataclasses field owned by each parent record.

    Item ids are scoped to the parent. When sequence_field is set, items also
    get a human-facing number, max(existing numbers, 0) + 1, that is never
    reassigned.
    """

    attr: str
    item_type: type
    sequence_field: Optional[str] = None


def _no_seed() -> list:
    return []


@dataclass(frozen=True)
class StoreConfig:
    """Everything that distinguishes one entity store from another."""

    key: str
    entity_type: type
    seed: Callable[[], Sequence[Any]] = _no_seed
    created_field: Optional[str] = "created_at"
    nested: tuple[NestedCollection, ...] = ()
    track_deletions: bool = False
    # Applied to every record built by add() or update().
    normalize: Optional[Callable[[Any], Any]] = None

    @property
    def data_key(self) -> str:
        return f"{self.key}_data"

    @property
    def init_key(self) -> str:
        return f"{self.key}_initialized"

    @property
    def ledger_key(self) -> str:
        return f"{self.key}_deleted_ids"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def next_value(records: Sequence[Any], attr: str = "id") -> int:
    """Return max(values of attr, 0) + 1."""
    return max((getattr(r, attr) for r in records), default=0) + 1


def _shallow(record: Any) -> dict[str, Any]:
    return {f.name: getattr(record, f.name) for f in fields(record)}


def _as_mapping(value: Any) -> dict[str, Any]:
    if is_dataclass(value) and not isinstance(value, type):
        return _shallow(value)
    return dict(value)


def _field_names(cls: type) -> frozenset[str]:
    return frozenset(f.name for f in fields(cls))


def _check_fields(cls: type, changes: Mapping[str, Any]) -> None:
    unknown = set(changes) - _field_names(cls)
    if unknown:
        raise ValueError(f"unknown {cls.__name__} field(s): {', '.join(sorted(unknown))}")


def _in_utc(record: Any) -> Any:
    """Return record with every datetime, nested items included, moved to UTC."""
    changes: dict[str, Any] = {}
    for f in fields(record):
        value = getattr(record, f.name)
        if isinstance(value, datetime) and value.utcoffset() != timedelta(0):
            changes[f.name] = as_utc(value)
        elif isinstance(value, tuple) and value and is_dataclass(value[0]):
            items = tuple(_in_utc(item) for item in value)
            if any(new is not old for new, old in zip(items, value)):
                changes[f.name] = items
    return replace(record, **changes) if changes else record


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class EntityStore(Generic[T]):
    """Persisted collection of one entity type.

    Usage:
        store = EntityStore(config, backend)
        created = store.add({"name": "Security", "description": "..."})
        store.update(created.id, {"active": False})
        store.get(created.id)
        store.remove(created.id)
    """

    def __init__(self, config: StoreConfig, backend: KeyValueBackend, clock: Clock = utc_now) -> None:
        self.config = config
        self._backend = backend
        self._clock = clock
        self._adapter: TypeAdapter = TypeAdapter(config.entity_type)
        self._nested: dict[str, NestedCollection] = {n.attr: n for n in config.nested}
        self._item_adapters: dict[str, TypeAdapter] = {n.attr: TypeAdapter(n.item_type) for n in config.nested}
        self._records: list[T] = []
        self._state = StoreState.uninitialized

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def name(self) -> str:
        return self.config.key

    # ------------------------------------------------------------------
    # Backend access -- the only place StorageError is caught
    # ------------------------------------------------------------------

    def _read(self, key: str) -> Optional[str]:
        try:
            return self._backend.get(key)
        except StorageError:
            logger.warning("Read of %s failed; treating as no data", key, exc_info=True)
            return None

    def _write(self, key: str, value: str) -> None:
        try:
            self._backend.set(key, value)
        except StorageError:
            logger.error("Write of %s failed; change kept in memory only", key, exc_info=True)

    def _erase(self, key: str) -> None:
        try:
            self._backend.delete(key)
        except StorageError:
            logger.error("Delete of %s failed", key, exc_info=True)

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def encode(self, records: Sequence[T]) -> str:
        """Serialize records to the JSON array stored under the data key."""
        payload = [self._adapter.dump_python(r, mode="json") for r in records]
        return json.dumps(payload, ensure_ascii=False)

    def decode(self, raw: str) -> list[T]:
        """Parse a stored JSON array, dropping entries that fail validation.

        Duplicate ids keep the first occurrence. A payload that is not a JSON
        array decodes to an empty list.
        """
        try:
            payload = json.loads(raw)
        except ValueError:
            logger.warning("Stored %s is not valid JSON; ignoring it", self.config.data_key)
            return []
        if not isinstance(payload, list):
            logger.warning("Stored %s is not a JSON array; ignoring it", self.config.data_key)
            return []

        records: list[T] = []
        seen: set[int] = set()
        for index, entry in enumerate(payload):
            try:
                record = _in_utc(self._adapter.validate_python(entry))
            except ValidationError as exc:
                logger.warning(
                    "Dropping malformed %s record at index %d (%d error(s))",
                    self.config.key,
                    index,
                    exc.error_count(),
                )
                continue
            if record.id in seen:
                logger.warning("Dropping duplicate %s record id=%s", self.config.key, record.id)
                continue
            seen.add(record.id)
            records.append(record)
        return records

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _ensure_ready(self) -> None:
        if self._state is StoreState.ready:
            return
        raw = self._read(self.config.data_key)
        records = self.decode(raw) if raw else []
        if records:
            source = "storage"
        elif self._read(self.config.init_key) != _INITIALIZED:
            records = list(self.config.seed())
            self._write(self.config.data_key, self.encode(records))
            self._write(self.config.init_key, _INITIALIZED)
            source = "seed"
        else:
            source = "empty"
        self._records = records
        self._state = StoreState.ready
        logger.info("%s store ready from %s (%d records)", self.config.key, source, len(records))

    def _persist(self) -> None:
        self._write(self.config.data_key, self.encode(self._records))

    def reload(self) -> None:
        """Drop in-memory state and run the load sequence again."""
        self._state = StoreState.uninitialized
        self._ensure_ready()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list(self) -> tuple[T, ...]:
        self._ensure_ready()
        return tuple(self._records)

    def get(self, record_id: int) -> Optional[T]:
        self._ensure_ready()
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def _index_of(self, record_id: int) -> Optional[int]:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _build(self, values: dict[str, Any]) -> T:
        record = _in_utc(self._adapter.validate_python(values))
        if self.config.normalize is not None:
            record = self.config.normalize(record)
        return record

    def _prepare_nested(self, values: dict[str, Any]) -> None:
        """Give id (and sequence number) to nested items supplied with a new record."""
        for attr, nested in self._nested.items():
            items = values.get(attr)
            if not items:
                continue
            prepared = [_as_mapping(item) for item in items]
            for field_name in ("id", nested.sequence_field):
                if field_name is None:
                    continue
                taken = [item[field_name] for item in prepared if item.get(field_name) is not None]
                counter = max(taken, default=0)
                for item in prepared:
                    if item.get(field_name) is None:
                        counter += 1
                        item[field_name] = counter
            values[attr] = prepared

    def add(self, data: Mapping[str, Any]) -> T:
        """Create a record from data and return it.

        id is always assigned here; so is the creation stamp when the entity
        has one. Values supplied for either are overwritten.
        """
        self._ensure_ready()
        _check_fields(self.config.entity_type, data)
        values = dict(data)
        values["id"] = next_value(self._records)
        if self.config.created_field:
            values[self.config.created_field] = self._clock()
        self._prepare_nested(values)
        record = self._build(values)
        self._records.append(record)
        self._persist()
        logger.debug("Added %s id=%s", self.config.key, record.id)
        return record

    def update(self, record_id: int, changes: Mapping[str, Any]) -> None:
        """Shallow-merge changes onto the record with record_id.

        Fields absent from changes keep their values. An "id" key is ignored.
        No-op when record_id does not exist.
        """
        self._ensure_ready()
        _check_fields(self.config.entity_type, changes)
        index = self._index_of(record_id)
        if index is None:
            logger.debug("Update ignored: no %s with id=%s", self.config.key, record_id)
            return
        values = _shallow(self._records[index])
        values.update({k: v for k, v in changes.items() if k != "id"})
        self._records[index] = self._build(values)
        self._persist()
        logger.debug("Updated %s id=%s", self.config.key, record_id)

    def remove(self, record_id: int) -> None:
        """Delete the record with record_id; ledger stores also remember the id."""
        self._ensure_ready()
        index = self._index_of(record_id)
        if index is None:
            logger.debug("Remove ignored: no %s with id=%s", self.config.key, record_id)
            return
        del self._records[index]
        self._persist()
        if self.config.track_deletions:
            self._mark_deleted(record_id)
        logger.debug("Removed %s id=%s", self.config.key, record_id)

    def clear_all(self) -> None:
        """Empty the collection and erase every persisted key of this store.

        With the first-run marker gone, the next fresh load seeds again.
        """
        self._ensure_ready()
        self._records = []
        self._erase(self.config.data_key)
        self._erase(self.config.init_key)
        if self.config.track_deletions:
            self._erase(self.config.ledger_key)
        logger.info("%s store cleared", self.config.key)

    # ------------------------------------------------------------------
    # Nested collections
    # ------------------------------------------------------------------

    def _nested_config(self, collection: str) -> NestedCollection:
        nested = self._nested.get(collection)
        if nested is None:
            raise StoreError(f"{self.config.key} has no nested collection {collection!r}")
        return nested

    def add_nested(self, parent_id: int, collection: str, data: Mapping[str, Any]) -> Optional[Any]:
        """Append an item to the parent's collection and return it.

        Returns None (and changes nothing) when the parent does not exist.
        """
        nested = self._nested_config(collection)
        self._ensure_ready()
        _check_fields(nested.item_type, data)
        index = self._index_of(parent_id)
        if index is None:
            logger.debug("Nested add ignored: no %s with id=%s", self.config.key, parent_id)
            return None
        parent = self._records[index]
        items = getattr(parent, collection)
        values = dict(data)
        values["id"] = next_value(items)
        if nested.sequence_field:
            values[nested.sequence_field] = next_value(items, nested.sequence_field)
        item = _in_utc(self._item_adapters[collection].validate_python(values))
        self._records[index] = replace(parent, **{collection: items + (item,)})
        self._persist()
        return item

    def update_nested(self, parent_id: int, collection: str, item_id: int, changes: Mapping[str, Any]) -> None:
        """Shallow-merge changes onto one nested item. No-op if parent or item is missing."""
        nested = self._nested_config(collection)
        self._ensure_ready()
        _check_fields(nested.item_type, changes)
        index = self._index_of(parent_id)
        if index is None:
            return
        parent = self._records[index]
        items = getattr(parent, collection)
        updated = []
        found = False
        for item in items:
            if item.id == item_id:
                values = _shallow(item)
                values.update({k: v for k, v in changes.items() if k != "id"})
                item = _in_utc(self._item_adapters[collection].validate_python(values))
                found = True
            updated.append(item)
        if not found:
            return
        self._records[index] = replace(parent, **{collection: tuple(updated)})
        self._persist()

    def remove_nested(self, parent_id: int, collection: str, item_id: int) -> None:
        """Drop one nested item. Remaining sequence numbers are left as they are."""
        self._nested_config(collection)
        self._ensure_ready()
        index = self._index_of(parent_id)
        if index is None:
            return
        parent = self._records[index]
        items = getattr(parent, collection)
        kept = tuple(item for item in items if item.id != item_id)
        if len(kept) == len(items):
            return
        self._records[index] = replace(parent, **{collection: kept})
        self._persist()

    # ------------------------------------------------------------------
    # Deleted-ids ledger
    # ------------------------------------------------------------------

    def _require_ledger(self) -> None:
        if not self.config.track_deletions:
            raise StoreError(f"{self.config.key} does not keep a deleted-ids ledger")

    def deleted_ids(self) -> list[int]:
        self._require_ledger()
        raw = self._read(self.config.ledger_key)
        if not raw:
            return []
        try:
            return _ledger_adapter.validate_json(raw)
        except ValidationError:
            logger.warning("Stored %s is malformed; treating it as empty", self.config.ledger_key)
            return []

    def _mark_deleted(self, record_id: int) -> None:
        ledger = self.deleted_ids()
        if record_id not in ledger:
            ledger.append(record_id)
            self._write(self.config.ledger_key, json.dumps(ledger))

    def clear_deleted_ledger(self) -> None:
        self._require_ledger()
        self._erase(self.config.ledger_key)
        logger.info("%s deleted-ids ledger cleared", self.config.key)

    def restore_defaults(self) -> tuple[T, ...]:
        """Replace the collection with the seed set minus every ledgered id."""
        self._require_ledger()
        deleted = set(self.deleted_ids())
        self._records = [r for r in self.config.seed() if r.id not in deleted]
        self._state = StoreState.ready
        self._persist()
        self._write(self.config.init_key, _INITIALIZED)
        logger.info(
            "%s defaults restored (%d records, %d skipped as deleted)",
            self.config.key,
            len(self._records),
            len(deleted),
        )
        return tuple(self._records)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def describe(self) -> dict[str, Any]:
        """Snapshot of in-memory and persisted state, for status screens."""
        info: dict[str, Any] = {
            "store": self.config.key,
            "state": self._state.value,
            "records": len(self._records),
            "initialized": self._read(self.config.init_key) == _INITIALIZED,
            "seed_records": len(self.config.seed()),
        }
        if self.config.track_deletions:
            info["deleted_ids"] = self.deleted_ids()
        return info
