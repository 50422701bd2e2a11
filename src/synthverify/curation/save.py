"""
Optimistic save coordination.

A save clears the item's dirty flag *before* awaiting the backing store. A
user edit that lands while the persist call is in flight sets the flag again,
and that is what the coordinator checks once the call resolves: a dirty item
keeps its local content and needs its own save. A failed save restores the
flag, so no edit is ever silently dropped.

Callers must not run two saves of the same item concurrently; a second save
request for an item that is still ``saving`` is refused.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Union

from synthverify.curation.collection import ItemCollection
from synthverify.exceptions import (
    ConfigurationError,
    CurationError,
    ItemNotFoundError,
    PersistenceError,
)
from synthverify.models.item import LOCAL_DEDUP_FIELDS, LOCAL_STATE_FIELDS, Item, SaveState
from synthverify.stores.protocols import BackingStore, Notifier

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """Outcome of a coordinator operation; I/O failures are reported, not raised."""

    ok: bool
    item: Optional[Item] = None
    error: Optional[CurationError] = None


class SaveCoordinator:
    """Persists single-item edits and rolls items back to the store version."""

    def __init__(
        self,
        collection: ItemCollection,
        store: BackingStore,
        notifier: Notifier,
        saved_display_seconds: float = 10.0,
    ):
        self.collection = collection
        self.store = store
        self.notifier = notifier
        self.saved_display_seconds = saved_display_seconds
        self._states: dict[str, SaveState] = {}
        self._reset_handles: dict[str, asyncio.TimerHandle] = {}

    def save_state(self, item_id: str) -> SaveState:
        return self._states.get(item_id, SaveState.IDLE)

    def save_states(self) -> dict[str, SaveState]:
        return dict(self._states)

    def _set_state(self, item_id: str, state: SaveState) -> None:
        handle = self._reset_handles.pop(item_id, None)
        if handle is not None:
            handle.cancel()
        if state is SaveState.IDLE:
            self._states.pop(item_id, None)
        else:
            self._states[item_id] = state

    def _schedule_idle(self, item_id: str) -> None:
        loop = asyncio.get_running_loop()
        self._reset_handles[item_id] = loop.call_later(
            self.saved_display_seconds, self._expire_saved, item_id
        )

    def _expire_saved(self, item_id: str) -> None:
        self._reset_handles.pop(item_id, None)
        if self._states.get(item_id) is SaveState.SAVED:
            self._states.pop(item_id, None)

    def _check_enabled(self) -> Optional[ConfigurationError]:
        if self.store.is_enabled():
            return None
        error = ConfigurationError("Backing store not configured.")
        self.notifier.error(error.message)
        return error

    async def handle_db_update(self, item: Union[Item, str]) -> OperationResult:
        """
        Persist one item's current edits to the backing store.

        Args:
            item: The item (or its id); the collection's current version is saved

        Returns:
            OperationResult with the item as it stands after the save
        """
        item_id = item if isinstance(item, str) else item.id

        error = self._check_enabled()
        if error is not None:
            return OperationResult(ok=False, error=error)

        current = self.collection.get(item_id)
        if current is None:
            error = ItemNotFoundError(item_id)
            self.notifier.error(error.message)
            return OperationResult(ok=False, error=error)

        if self.save_state(item_id) is SaveState.SAVING:
            self.notifier.info(f"Save already in progress for item {item_id}.")
            return OperationResult(ok=False, item=current)

        self._set_state(item_id, SaveState.SAVING)
        # Optimistic clear; a concurrent edit sets the flag again
        self.collection.update_item(item_id, has_unsaved_changes=False)
        fields = current.persist_fields()

        try:
            canonical = await self.store.update_item(item_id, fields)
        except Exception as e:
            self.collection.update_item(item_id, has_unsaved_changes=True)
            self._set_state(item_id, SaveState.IDLE)
            logger.error(f"Failed to update item {item_id}: {e}", exc_info=True)
            self.notifier.error(f"Update failed: {e}")
            error = e if isinstance(e, CurationError) else PersistenceError(str(e), cause=e)
            return OperationResult(ok=False, item=self.collection.get(item_id), error=error)

        latest = self.collection.get(item_id)
        if latest is not None and not latest.has_unsaved_changes and canonical is not None:
            self.collection.replace_item(item_id, self._merge_canonical(latest, canonical))
        elif latest is not None and latest.has_unsaved_changes:
            logger.info(f"Item {item_id} was edited during save; keeping local edits")

        self._set_state(item_id, SaveState.SAVED)
        self._schedule_idle(item_id)
        return OperationResult(ok=True, item=self.collection.get(item_id))

    @staticmethod
    def _merge_canonical(local: Item, canonical: Item) -> Item:
        """Store record wins for content; local dedup/discard flags are kept."""
        record = canonical.model_dump(exclude_unset=True, exclude={"id", *LOCAL_STATE_FIELDS})
        preserved = {name: getattr(local, name) for name in LOCAL_STATE_FIELDS}
        preserved["has_unsaved_changes"] = False
        return Item.model_validate({**local.model_dump(), **record, **preserved})

    async def handle_db_rollback(self, item: Union[Item, str]) -> OperationResult:
        """
        Replace the local item with the backing store's version.

        Local dedup flags are kept; the item becomes clean.

        Args:
            item: The item (or its id) to roll back

        Returns:
            OperationResult with the restored item
        """
        item_id = item if isinstance(item, str) else item.id

        error = self._check_enabled()
        if error is not None:
            return OperationResult(ok=False, error=error)

        self.notifier.info("Rolling back from DB...")
        try:
            fresh = await self.store.fetch_item(item_id)
        except Exception as e:
            logger.error(f"Failed to rollback item {item_id}: {e}", exc_info=True)
            self.notifier.error(f"Rollback failed: {e}")
            error = e if isinstance(e, CurationError) else PersistenceError(str(e), cause=e)
            return OperationResult(ok=False, item=self.collection.get(item_id), error=error)

        if fresh is None:
            error = ItemNotFoundError(item_id, where="backing store")
            self.notifier.error("Item not found in DB.")
            return OperationResult(ok=False, item=self.collection.get(item_id), error=error)

        local = self.collection.get(item_id) or (item if isinstance(item, Item) else None)
        dedup = {name: getattr(local, name) for name in LOCAL_DEDUP_FIELDS} if local else {}
        restored = fresh.model_copy(update={**dedup, "has_unsaved_changes": False})

        if not self.collection.replace_item(item_id, restored):
            error = ItemNotFoundError(item_id)
            self.notifier.error(error.message)
            return OperationResult(ok=False, error=error)

        self.notifier.success("Changes reverted to DB version.")
        return OperationResult(ok=True, item=restored)

    def close(self) -> None:
        """Cancel pending "saved" display timers."""
        for handle in self._reset_handles.values():
            handle.cancel()
        self._reset_handles.clear()
