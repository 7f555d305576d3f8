"""SQLAlchemy-backed record store."""
from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Table, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import LinkToken, User
from .base import TOKENS, USERS, ConflictError, Filters, Ne, Record, RecordStore, StoreError

logger = logging.getLogger(__name__)

TABLES: dict[str, Table] = {
    USERS: User.__table__,
    TOKENS: LinkToken.__table__,
}

# Dialects with native INSERT ... ON CONFLICT DO UPDATE.
UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _where(table: Table, filters: Filters) -> list:
    clauses = []
    for field, value in filters.items():
        column = table.c[field]
        if isinstance(value, Ne):
            clauses.append(column != value.value)
        elif value is None:
            clauses.append(column.is_(None))
        else:
            clauses.append(column == value)
    return clauses


class SqlRecordStore(RecordStore):
    """Record store over the ``users`` and ``tokens`` tables of one session.

    Writes commit immediately unless they run inside :meth:`transaction`.
    """

    supports_transactions = True

    def __init__(self, session: Session) -> None:
        self._session = session
        self._depth = 0

    def _table(self, collection: str) -> Table:
        try:
            return TABLES[collection]
        except KeyError:
            raise StoreError(f"Unknown collection: {collection}") from None

    def _read(self, stmt):
        try:
            return self._session.execute(stmt)
        except SQLAlchemyError as exc:
            if self._depth == 0:
                self._session.rollback()
            raise StoreError(str(exc)) from exc

    def _write(self, stmt, fetch: bool = False):
        try:
            result = self._session.execute(stmt)
            outcome = dict(result.mappings().one()) if fetch else result.rowcount
            if self._depth == 0:
                self._session.commit()
        except IntegrityError as exc:
            if self._depth == 0:
                self._session.rollback()
            raise ConflictError(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            if self._depth == 0:
                self._session.rollback()
            raise StoreError(str(exc)) from exc
        return outcome

    def find_one(self, collection: str, filters: Filters) -> Record | None:
        table = self._table(collection)
        stmt = select(table).where(*_where(table, filters)).limit(1)
        row = self._read(stmt).mappings().first()
        return dict(row) if row is not None else None

    def find_many(self, collection: str, filters: Filters) -> list[Record]:
        table = self._table(collection)
        stmt = select(table).where(*_where(table, filters)).order_by(table.c.id)
        return [dict(row) for row in self._read(stmt).mappings().all()]

    def insert(self, collection: str, record: Mapping[str, Any]) -> Record:
        table = self._table(collection)
        stmt = insert(table).values(**record).returning(*table.c)
        return self._write(stmt, fetch=True)

    def update(self, collection: str, filters: Filters, patch: Mapping[str, Any]) -> int:
        table = self._table(collection)
        stmt = update(table).where(*_where(table, filters)).values(**patch)
        return self._write(stmt)

    def upsert(self, collection: str, record: Mapping[str, Any], conflict_key: str) -> Record:
        table = self._table(collection)
        dialect = self._session.get_bind().dialect.name
        dialect_insert = UPSERT_INSERTS.get(dialect)
        if dialect_insert is None:
            raise StoreError(f"Upsert not supported on dialect {dialect}")

        stmt = dialect_insert(table).values(**record)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c[conflict_key]],
            set_={key: stmt.excluded[key] for key in record if key != conflict_key},
        ).returning(*table.c)
        return self._write(stmt, fetch=True)

    @contextmanager
    def transaction(self) -> Iterator[SqlRecordStore]:
        self._depth += 1
        try:
            yield self
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                self._session.rollback()
            raise
        self._depth -= 1
        if self._depth == 0:
            try:
                self._session.commit()
            except SQLAlchemyError as exc:
                self._session.rollback()
                logger.exception("store.commit failed")
                raise StoreError(str(exc)) from exc
