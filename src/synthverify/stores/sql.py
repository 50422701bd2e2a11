"""
SQLAlchemy-backed implementations of the backing and session stores.

Repository calls are blocking, so each operation runs in a worker thread via
``asyncio.to_thread``; the awaiting coroutine is the only suspension point the
curation core sees. Database errors are wrapped in ``PersistenceError``.
"""

import asyncio
import logging
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Generator, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from synthverify.db.repositories import CurationSessionRepository, ItemRepository
from synthverify.exceptions import PersistenceError, SessionNotFoundError
from synthverify.models.analytics import AnalyticsSnapshot
from synthverify.models.item import Item

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


def _default_session_factory() -> Session:
    from synthverify.db.connection import SessionLocal

    return SessionLocal()


class _SqlStore:
    """Shared session handling for the SQL stores."""

    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self.session_factory = session_factory or _default_session_factory

    @contextmanager
    def _session(self, action: str) -> Generator[Session, None, None]:
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database error during {action}: {e}")
            raise PersistenceError(f"{action} failed: {e}", cause=e) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


class SqlBackingStore(_SqlStore):
    """Item document store persisted in the ``items`` table."""

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        enabled: bool = True,
    ):
        super().__init__(session_factory)
        self.enabled = enabled

    def is_enabled(self) -> bool:
        return self.enabled

    async def update_item(self, item_id: str, fields: dict[str, Any]) -> Optional[Item]:
        return await asyncio.to_thread(self._update_item, item_id, fields)

    async def fetch_item(self, item_id: str) -> Optional[Item]:
        return await asyncio.to_thread(self._fetch_item, item_id)

    async def save_final_dataset(self, items: Sequence[Item], collection_name: str) -> int:
        records = [item.to_record() for item in items]
        return await asyncio.to_thread(self._save_final_dataset, records, collection_name)

    async def import_items(
        self, items: Sequence[Item], session_id: Optional[str] = None
    ) -> int:
        """Store full item records, e.g. right after a file import."""
        return await asyncio.to_thread(self._import_items, list(items), session_id)

    async def fetch_session_items(self, session_id: str) -> List[Item]:
        """Load every stored item of a session as clean working copies."""
        return await asyncio.to_thread(self._fetch_session_items, session_id)

    def _update_item(self, item_id: str, fields: dict[str, Any]) -> Item:
        with self._session("update_item") as session:
            stored = ItemRepository(session).upsert(item_id, fields)
            record = stored.to_record()
        logger.debug(f"Persisted item {item_id} ({len(fields)} fields)")
        return Item.model_validate(record)

    def _fetch_item(self, item_id: str) -> Optional[Item]:
        with self._session("fetch_item") as session:
            stored = ItemRepository(session).get(item_id)
            record = stored.to_record() if stored is not None else None
        if record is None:
            return None
        return Item.model_validate(record)

    def _save_final_dataset(self, records: List[dict], collection_name: str) -> int:
        with self._session("save_final_dataset") as session:
            count = ItemRepository(session).save_final_dataset(records, collection_name)
        logger.info(f"Saved {count} items to final collection {collection_name!r}")
        return count

    def _import_items(self, items: List[Item], session_id: Optional[str]) -> int:
        with self._session("import_items") as session:
            repo = ItemRepository(session)
            for item in items:
                record = item.model_dump(exclude={"id", "has_unsaved_changes"})
                repo.upsert(item.id, record, session_id=session_id)
        return len(items)

    def _fetch_session_items(self, session_id: str) -> List[Item]:
        with self._session("fetch_session_items") as session:
            records = [s.to_record() for s in ItemRepository(session).get_by_session(session_id)]
        return [Item.model_validate(r) for r in records]


class SqlSessionStore(_SqlStore):
    """Session records with embedded analytics in ``curation_sessions``."""

    async def update_session_analytics(
        self, session_id: str, snapshot: AnalyticsSnapshot
    ) -> None:
        await asyncio.to_thread(
            self._update_session_analytics, session_id, snapshot.model_dump(mode="json")
        )

    async def get_session_analytics(self, session_id: str) -> Optional[AnalyticsSnapshot]:
        data = await asyncio.to_thread(self._get_session_analytics, session_id)
        if not data:
            return None
        return AnalyticsSnapshot.model_validate(data)

    def create_session(self, name: str, description: Optional[str] = None) -> dict[str, Any]:
        """Create a session record and return its plain representation."""
        with self._session("create_session") as session:
            record = CurationSessionRepository(session).create(
                name=name, description=description
            )
            result = _session_to_dict(record)
        logger.info(f"Created curation session {result['id']} ({name!r})")
        return result

    def get_session(self, session_id: str) -> dict[str, Any]:
        """
        Get a session record.

        Raises:
            SessionNotFoundError: If no session has this id
        """
        with self._session("get_session") as session:
            record = CurationSessionRepository(session).get(_parse_session_id(session_id))
            if record is None:
                raise SessionNotFoundError(session_id)
            return _session_to_dict(record)

    def _update_session_analytics(self, session_id: str, data: dict[str, Any]) -> None:
        with self._session("update_session_analytics") as session:
            updated = CurationSessionRepository(session).update_analytics(
                _parse_session_id(session_id), data
            )
            if updated is None:
                raise SessionNotFoundError(session_id)

    def _get_session_analytics(self, session_id: str) -> Optional[dict[str, Any]]:
        with self._session("get_session_analytics") as session:
            record = CurationSessionRepository(session).get(_parse_session_id(session_id))
            if record is None:
                raise SessionNotFoundError(session_id)
            return record.analytics


def _parse_session_id(session_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(session_id))
    except ValueError:
        raise SessionNotFoundError(session_id)


def _session_to_dict(record: Any) -> dict[str, Any]:
    return {
        "id": str(record.id),
        "name": record.name,
        "description": record.description,
        "analytics": record.analytics,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }
