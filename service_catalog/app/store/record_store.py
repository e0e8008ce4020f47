"""
Record store for the Catalog Service.

Every access path (direct, cached, search, reactive) goes through the
synchronous ``RecordStore`` interface. ``InMemoryRecordStore`` keeps one table
per record kind behind a lock and hands out copies, so nothing a caller does
to a returned record reaches the stored row.
"""

import itertools
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Callable, Dict, Iterator, List, Optional

from shared.errors import PermanentStoreError
from shared.logging import get_logger

from ..domain.models import RecordKind


Predicate = Callable[[Any], bool]


class RecordStore(ABC):
    """Synchronous record store addressed by kind and primary key.

    Implementations signal failures with ``TransientStoreError`` when a retry
    may succeed and ``PermanentStoreError`` otherwise.
    """

    @abstractmethod
    def get_by_key(self, kind: RecordKind, key: int) -> Optional[Any]:
        """Return the record stored under ``key`` or ``None``."""

    @abstractmethod
    def get_all(self, kind: RecordKind) -> List[Any]:
        """Return every record of ``kind`` ordered by key."""

    @abstractmethod
    def get_by_predicate(self, kind: RecordKind, predicate: Predicate) -> List[Any]:
        """Return records of ``kind`` matching ``predicate`` ordered by key."""

    @abstractmethod
    def upsert(self, kind: RecordKind, record: Any) -> Any:
        """Insert a record without a key (assigning one) or replace an existing one."""

    @abstractmethod
    def delete_by_key(self, kind: RecordKind, key: int) -> None:
        """Delete the record stored under ``key``; deleting a missing key is a no-op."""

    @abstractmethod
    def exists_by_key(self, kind: RecordKind, key: int) -> bool:
        """Check whether a record is stored under ``key``."""

    @abstractmethod
    def count(self, kind: RecordKind) -> int:
        """Count records of ``kind``."""

    @abstractmethod
    def get_by_unique_field(self, kind: RecordKind, field: str, value: Any) -> Optional[Any]:
        """Return the record whose ``field`` equals ``value`` (strings compare case-insensitively)."""


class InMemoryRecordStore(RecordStore):
    """Thread-safe in-memory record store."""

    def __init__(self):
        self.logger = get_logger("catalog.store.memory")
        self._lock = threading.RLock()
        self._tables: Dict[RecordKind, Dict[int, Any]] = {kind: {} for kind in RecordKind}
        self._sequences: Dict[RecordKind, Iterator[int]] = {kind: itertools.count(1) for kind in RecordKind}

    def kinds(self) -> List[RecordKind]:
        return list(self._tables.keys())

    def _table(self, kind: RecordKind) -> Dict[int, Any]:
        try:
            return self._tables[RecordKind(kind)]
        except (KeyError, ValueError):
            raise PermanentStoreError(f"Unknown record kind: {kind}")

    def get_by_key(self, kind: RecordKind, key: int) -> Optional[Any]:
        with self._lock:
            record = self._table(kind).get(key)
            return replace(record) if record is not None else None

    def get_all(self, kind: RecordKind) -> List[Any]:
        with self._lock:
            table = self._table(kind)
            return [replace(table[key]) for key in sorted(table)]

    def get_by_predicate(self, kind: RecordKind, predicate: Predicate) -> List[Any]:
        with self._lock:
            table = self._table(kind)
            return [replace(table[key]) for key in sorted(table) if predicate(table[key])]

    def upsert(self, kind: RecordKind, record: Any) -> Any:
        with self._lock:
            table = self._table(kind)
            if record.id is None:
                stored = replace(record, id=next(self._sequences[RecordKind(kind)]))
                self.logger.debug("Record inserted", kind=RecordKind(kind).value, key=stored.id)
            elif record.id in table:
                stored = replace(record)
                self.logger.debug("Record replaced", kind=RecordKind(kind).value, key=stored.id)
            else:
                raise PermanentStoreError(
                    f"Cannot update missing {RecordKind(kind).value} {record.id}",
                    details={"kind": RecordKind(kind).value, "key": record.id}
                )
            table[stored.id] = stored
            return replace(stored)

    def delete_by_key(self, kind: RecordKind, key: int) -> None:
        with self._lock:
            if self._table(kind).pop(key, None) is not None:
                self.logger.debug("Record deleted", kind=RecordKind(kind).value, key=key)

    def exists_by_key(self, kind: RecordKind, key: int) -> bool:
        with self._lock:
            return key in self._table(kind)

    def count(self, kind: RecordKind) -> int:
        with self._lock:
            return len(self._table(kind))

    def get_by_unique_field(self, kind: RecordKind, field: str, value: Any) -> Optional[Any]:
        if value is None:
            return None
        wanted = value.lower() if isinstance(value, str) else value
        with self._lock:
            table = self._table(kind)
            for key in sorted(table):
                current = getattr(table[key], field, None)
                if isinstance(current, str):
                    current = current.lower()
                if current == wanted:
                    return replace(table[key])
        return None

    def clear(self) -> None:
        """Drop every record and restart key sequences."""
        with self._lock:
            for kind in self._tables:
                self._tables[kind].clear()
                self._sequences[kind] = itertools.count(1)
