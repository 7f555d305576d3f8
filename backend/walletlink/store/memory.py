"""Dict-backed record store."""
from __future__ import annotations

import copy
import threading
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from ..clock import unix_now
from .base import TOKENS, USERS, ConflictError, Filters, Record, RecordStore, StoreError, matches

UNIQUE_KEYS: dict[str, tuple[str, ...]] = {
    USERS: ("address", "discord_id"),
    TOKENS: ("token",),
}

DEFAULTS: dict[str, dict[str, Callable[[], Any]]] = {
    USERS: {
        "discord_id": lambda: None,
        "points": lambda: 0,
        "last_played": unix_now,
        "team": lambda: None,
    },
    TOKENS: {
        "used": lambda: False,
        "used_at": lambda: None,
    },
}


class MemoryRecordStore(RecordStore):
    """In-process store mirroring the SQL schema's unique keys and defaults.

    All operations are serialised on one re-entrant lock. A transaction keeps
    the lock for its whole body and restores a snapshot if the body raises.
    """

    def __init__(self, *, supports_transactions: bool = True) -> None:
        self.supports_transactions = supports_transactions
        self._lock = threading.RLock()
        self._rows: dict[str, list[Record]] = {name: [] for name in UNIQUE_KEYS}
        self._next_id = 1

    def _collection(self, collection: str) -> list[Record]:
        try:
            return self._rows[collection]
        except KeyError:
            raise StoreError(f"Unknown collection: {collection}") from None

    def _check_unique(self, collection: str, candidate: Mapping[str, Any], ignore: Record | None = None) -> None:
        for key in UNIQUE_KEYS[collection]:
            value = candidate.get(key)
            if value is None:
                continue
            for row in self._rows[collection]:
                if row is not ignore and row.get(key) == value:
                    raise ConflictError(f"{collection}.{key} already exists")

    def _with_defaults(self, collection: str, record: Mapping[str, Any]) -> Record:
        row: Record = {"id": self._next_id}
        for field, factory in DEFAULTS[collection].items():
            row[field] = factory()
        row.update(record)
        return row

    def find_one(self, collection: str, filters: Filters) -> Record | None:
        with self._lock:
            for row in self._collection(collection):
                if matches(row, filters):
                    return dict(row)
        return None

    def find_many(self, collection: str, filters: Filters) -> list[Record]:
        with self._lock:
            return [dict(row) for row in self._collection(collection) if matches(row, filters)]

    def insert(self, collection: str, record: Mapping[str, Any]) -> Record:
        with self._lock:
            rows = self._collection(collection)
            row = self._with_defaults(collection, record)
            self._check_unique(collection, row)
            rows.append(row)
            self._next_id += 1
            return dict(row)

    def update(self, collection: str, filters: Filters, patch: Mapping[str, Any]) -> int:
        with self._lock:
            targets = [row for row in self._collection(collection) if matches(row, filters)]
            for row in targets:
                self._check_unique(collection, {**row, **patch}, ignore=row)
            for row in targets:
                row.update(patch)
            return len(targets)

    def upsert(self, collection: str, record: Mapping[str, Any], conflict_key: str) -> Record:
        with self._lock:
            rows = self._collection(collection)
            existing = next((row for row in rows if row.get(conflict_key) == record[conflict_key]), None)
            if existing is None:
                return self.insert(collection, record)
            self._check_unique(collection, {**existing, **record}, ignore=existing)
            existing.update(record)
            return dict(existing)

    @contextmanager
    def transaction(self) -> Iterator[MemoryRecordStore]:
        if not self.supports_transactions:
            yield self
            return
        with self._lock:
            snapshot = copy.deepcopy(self._rows)
            next_id = self._next_id
            try:
                yield self
            except BaseException:
                self._rows = snapshot
                self._next_id = next_id
                raise
