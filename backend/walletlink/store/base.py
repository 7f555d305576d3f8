"""Record store interface shared by the SQL and in-memory backends."""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

Record = dict[str, Any]
Filters = Mapping[str, Any]

USERS = "users"
TOKENS = "tokens"


class StoreError(Exception):
    """Any failure raised by the underlying store."""


class ConflictError(StoreError):
    """A write collided with a unique key."""


@dataclass(frozen=True)
class Ne:
    """Filter value meaning ``field != value``. Never matches NULL."""

    value: Any


def matches(record: Mapping[str, Any], filters: Filters) -> bool:
    """Evaluate equality filters against a plain record (SQL NULL semantics)."""
    for field, expected in filters.items():
        actual = record.get(field)
        if isinstance(expected, Ne):
            if actual is None or actual == expected.value:
                return False
        elif expected is None:
            if actual is not None:
                return False
        elif actual != expected:
            return False
    return True


class RecordStore(ABC):
    """Named collections with query/insert/update/upsert operations.

    Filters are ``{field: value}`` maps combined with AND. ``None`` matches
    NULL, :class:`Ne` matches non-NULL values that differ.
    """

    supports_transactions: bool = False

    @abstractmethod
    def find_one(self, collection: str, filters: Filters) -> Record | None:
        ...

    @abstractmethod
    def find_many(self, collection: str, filters: Filters) -> list[Record]:
        ...

    @abstractmethod
    def insert(self, collection: str, record: Mapping[str, Any]) -> Record:
        ...

    @abstractmethod
    def update(self, collection: str, filters: Filters, patch: Mapping[str, Any]) -> int:
        """Apply ``patch`` to matching records and return the affected count."""

    @abstractmethod
    def upsert(self, collection: str, record: Mapping[str, Any], conflict_key: str) -> Record:
        """Insert ``record`` or update the row sharing ``record[conflict_key]``."""

    @contextmanager
    def transaction(self) -> Iterator[RecordStore]:
        """Group writes atomically. No-op for stores without transactions."""
        yield self
