from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from walletlink.database import Base
from walletlink.main import app
from walletlink.store import MemoryRecordStore, SqlRecordStore, get_record_store


@pytest.fixture
def memory_store() -> MemoryRecordStore:
    return MemoryRecordStore()


@pytest.fixture
def sql_session():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def sql_store(sql_session) -> SqlRecordStore:
    return SqlRecordStore(sql_session)


@pytest.fixture
def client_for():
    """Build a TestClient whose routes use the given store."""
    def _build(store) -> TestClient:
        app.dependency_overrides[get_record_store] = lambda: store
        return TestClient(app)

    yield _build
    app.dependency_overrides.clear()
