"""
Curation workspace.

Binds one session's item collection to the duplicate resolver, the save
coordinator, the analytics cache and the export service. The collection is
owned by the workspace; every component mutates it through ``set_data``.
"""

import logging
from typing import Callable, Iterable, Optional

from synthverify.config import Settings, settings
from synthverify.curation.analytics import AnalyticsCache
from synthverify.curation.collection import ItemCollection
from synthverify.curation.dedup import DuplicateResolver
from synthverify.curation.export import ExportService, default_export_columns
from synthverify.curation.save import SaveCoordinator
from synthverify.models.item import Item
from synthverify.stores.protocols import BackingStore, DatasetUploader, Notifier, SessionStore

logger = logging.getLogger(__name__)


class CurationWorkspace:
    """Editing state of one curation session."""

    def __init__(
        self,
        session_id: str,
        backing_store: BackingStore,
        session_store: SessionStore,
        uploader: DatasetUploader,
        notifier: Notifier,
        config: Optional[Settings] = None,
    ):
        config = config or settings
        self.session_id = session_id
        self.session_store = session_store
        self.notifier = notifier

        self.collection = ItemCollection()
        self.duplicates = DuplicateResolver(self.collection, config.dedup_key_fields)
        self.saver = SaveCoordinator(
            self.collection,
            backing_store,
            notifier,
            saved_display_seconds=config.save_status_display_seconds,
        )
        self.analytics = AnalyticsCache(
            self.collection,
            session_store,
            cache_ttl=config.analytics_cache_ttl_seconds,
            debounce_seconds=config.analytics_debounce_seconds,
            enabled=config.analytics_enabled,
            auto_update=config.analytics_auto_update,
        )
        self.exporter = ExportService(
            backing_store, uploader, notifier, collection_name=config.final_collection_name
        )
        self.export_columns: dict[str, bool] = {}
        self.is_open = False

    async def open(self, items: Optional[Iterable[Item]] = None) -> None:
        """Load items and activate analytics from the stored session snapshot."""
        if items is not None:
            self.load_items(items)

        try:
            stored = await self.session_store.get_session_analytics(self.session_id)
        except Exception as e:
            logger.warning(f"Could not load stored analytics for {self.session_id}: {e}")
            stored = None

        await self.analytics.activate(self.session_id, stored)
        self.is_open = True
        logger.info(f"Opened workspace for session {self.session_id} ({len(self.collection)} items)")

    def load_items(self, items: Iterable[Item]) -> int:
        """
        Replace the collection with freshly imported items.

        Duplicate analysis runs before the items become visible. Export
        column choices already made are kept for fields that still exist.

        Returns:
            Number of duplicate groups found
        """
        items = list(items)
        groups = self.duplicates.analyze(items)
        self.collection.set_data(items)
        defaults = default_export_columns(items)
        self.export_columns = {
            name: self.export_columns.get(name, checked) for name, checked in defaults.items()
        }
        return groups

    def add_items(self, items: Iterable[Item]) -> int:
        """Append items (replacing same-id items) and re-analyze duplicates."""
        incoming = list(items)
        incoming_ids = {item.id for item in incoming}
        merged = [
            item.model_copy() for item in self.collection.items if item.id not in incoming_ids
        ] + incoming
        return self.load_items(merged)

    async def close(self) -> None:
        """Tear down timers so nothing writes into a closed session."""
        self.saver.close()
        await self.analytics.aclose()
        self.is_open = False
        logger.info(f"Closed workspace for session {self.session_id}")


WorkspaceFactory = Callable[[str], CurationWorkspace]


class WorkspaceRegistry:
    """Open workspaces keyed by session id."""

    def __init__(self, factory: WorkspaceFactory):
        self.factory = factory
        self._workspaces: dict[str, CurationWorkspace] = {}

    def get(self, session_id: str) -> Optional[CurationWorkspace]:
        return self._workspaces.get(session_id)

    async def open(
        self, session_id: str, items: Optional[Iterable[Item]] = None
    ) -> CurationWorkspace:
        """Open (or reopen with new items) the workspace of a session."""
        workspace = self._workspaces.get(session_id)
        if workspace is not None:
            if items is not None:
                workspace.load_items(items)
            return workspace

        workspace = self.factory(session_id)
        await workspace.open(items)
        self._workspaces[session_id] = workspace
        return workspace

    async def close(self, session_id: str) -> bool:
        workspace = self._workspaces.pop(session_id, None)
        if workspace is None:
            return False
        await workspace.close()
        return True

    async def close_all(self) -> None:
        for session_id in list(self._workspaces):
            await self.close(session_id)

    def __len__(self) -> int:
        return len(self._workspaces)
