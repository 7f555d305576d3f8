"""Record store backends and the request-scoped FastAPI dependency."""
from fastapi import Depends
from sqlalchemy.orm import Session

from ..database import get_db
from .base import TOKENS, USERS, ConflictError, Ne, Record, RecordStore, StoreError
from .memory import MemoryRecordStore
from .sql import SqlRecordStore

__all__ = [
    "TOKENS",
    "USERS",
    "ConflictError",
    "MemoryRecordStore",
    "Ne",
    "Record",
    "RecordStore",
    "SqlRecordStore",
    "StoreError",
    "get_record_store",
]


def get_record_store(db: Session = Depends(get_db)) -> RecordStore:
    """One store per request, bound to the request's session."""
    return SqlRecordStore(db)
