"""
Pytest configuration and fixtures for SynthVerify tests.

Provides SQLite in-memory databases, the SQL stores bound to them, and
in-memory fakes of the store protocols for exercising the curation core.
"""

import asyncio
from typing import Any, Generator, Optional, Sequence

import pytest
from sqlalchemy import JSON, create_engine, event
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from synthverify.models.analytics import AnalyticsSnapshot
from synthverify.models.db import Base
from synthverify.models.item import Item
from synthverify.notifications import NotificationCenter
from synthverify.stores.sql import SqlBackingStore, SqlSessionStore


# Replace JSONB with JSON for SQLite
@event.listens_for(Base.metadata, "before_create")
def _set_json_type(target, connection, **kw):
    for table in target.tables.values():
        for column in table.columns:
            if isinstance(column.type, postgresql.JSONB):
                column.type = JSON()


@pytest.fixture
def test_engine():
    """Create a fresh SQLite in-memory database per test.

    StaticPool keeps the single in-memory connection alive across the worker
    threads the SQL stores run their queries in.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(bind=test_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    """Database session for repository tests."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def sql_backing_store(session_factory) -> SqlBackingStore:
    return SqlBackingStore(session_factory)


@pytest.fixture
def sql_session_store(session_factory) -> SqlSessionStore:
    return SqlSessionStore(session_factory)


@pytest.fixture
def notifier() -> NotificationCenter:
    return NotificationCenter()


class FakeBackingStore:
    """In-memory backing store.

    ``started`` is set when an ``update_item`` call begins; when ``gate`` is
    set to an event the call waits on it before completing.
    """

    def __init__(self):
        self.enabled = True
        self.records: dict[str, dict[str, Any]] = {}
        self.final: dict[str, list[dict[str, Any]]] = {}
        self.update_calls: list[tuple[str, dict[str, Any]]] = []
        self.fail_with: Optional[Exception] = None
        self.started = asyncio.Event()
        self.gate: Optional[asyncio.Event] = None

    def is_enabled(self) -> bool:
        return self.enabled

    async def update_item(self, item_id: str, fields: dict[str, Any]) -> Optional[Item]:
        self.update_calls.append((item_id, dict(fields)))
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        record = {**self.records.get(item_id, {}), **fields, "id": item_id}
        self.records[item_id] = record
        return Item.model_validate(record)

    async def fetch_item(self, item_id: str) -> Optional[Item]:
        if self.fail_with is not None:
            raise self.fail_with
        record = self.records.get(item_id)
        return Item.model_validate(record) if record is not None else None

    async def save_final_dataset(self, items: Sequence[Item], collection_name: str) -> int:
        if self.fail_with is not None:
            raise self.fail_with
        self.final.setdefault(collection_name, []).extend(item.to_record() for item in items)
        return len(items)


class FakeSessionStore:
    """In-memory session store recording analytics writes."""

    def __init__(self):
        self.snapshots: dict[str, AnalyticsSnapshot] = {}
        self.writes = 0
        self.fail_with: Optional[Exception] = None

    async def update_session_analytics(
        self, session_id: str, snapshot: AnalyticsSnapshot
    ) -> None:
        self.writes += 1
        if self.fail_with is not None:
            raise self.fail_with
        self.snapshots[session_id] = snapshot

    async def get_session_analytics(self, session_id: str) -> Optional[AnalyticsSnapshot]:
        return self.snapshots.get(session_id)


class FakeUploader:
    """Dataset uploader recording every push."""

    def __init__(self):
        self.uploads: list[dict[str, Any]] = []
        self.fail_with: Optional[Exception] = None

    async def upload_dataset(
        self,
        token: str,
        repo_id: str,
        items: Sequence[dict[str, Any]],
        filename: str,
        is_public: bool,
        format: str,
    ) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.uploads.append(
            {
                "token": token,
                "repo_id": repo_id,
                "items": list(items),
                "filename": filename,
                "is_public": is_public,
                "format": format,
            }
        )
        return f"https://hub.test/datasets/{repo_id}"


@pytest.fixture
def fake_backing_store() -> FakeBackingStore:
    return FakeBackingStore()


@pytest.fixture
def fake_session_store() -> FakeSessionStore:
    return FakeSessionStore()


@pytest.fixture
def fake_uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture
def sample_items() -> list[Item]:
    """Five items: one duplicate pair, one discarded, two unique."""
    return [
        Item(id="item-1", query="What is 2+2?", answer="4", score=0.9, status="completed"),
        Item(id="item-2", query="  what is 2+2?", answer="Four", score=0.7, status="completed"),
        Item(id="item-3", query="Name a prime.", answer="7", score=0.5, status="completed"),
        Item(id="item-4", query="What is 2+2?", answer="5", is_discarded=True),
        Item(id="item-5", query="Capital of France?", answer="", status="error", error="timeout"),
    ]


@pytest.fixture
def api_client(session_factory, tmp_path, monkeypatch):
    """Test client for the API bound to the test database.

    The client is used as a context manager so the lifespan runs and all
    requests share one event loop.
    """
    from unittest.mock import patch

    from fastapi.testclient import TestClient

    from synthverify.api.app import app, configure_services
    from synthverify.config import settings
    from synthverify.db.connection import get_db

    def override_get_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    monkeypatch.setattr(settings, "export_dir", str(tmp_path))
    monkeypatch.setattr(settings, "analytics_debounce_seconds", 0.01)
    app.dependency_overrides[get_db] = override_get_db
    configure_services(app, session_factory)

    with patch("synthverify.api.app.setup_logging"), patch(
        "synthverify.api.app.run_all_startup_checks"
    ):
        with TestClient(app) as client:
            yield client

    app.dependency_overrides.clear()
    app.state.registry = None
