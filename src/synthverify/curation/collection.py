"""
Collection mutation surface.

The working item collection is an immutable tuple replaced wholesale on every
update. Readers holding a previous tuple keep a consistent, unchanged view,
which is what lets the save coordinator re-check an item's dirty flag after an
awaited persist call without any locking.
"""

import logging
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Union

from synthverify.exceptions import ItemNotFoundError
from synthverify.models.item import Item

logger = logging.getLogger(__name__)

Items = tuple[Item, ...]
Updater = Callable[[Items], Iterable[Item]]
Listener = Callable[[Items, Items], None]


class ItemCollection:
    """Ordered, id-keyed collection of items with copy-on-write updates."""

    def __init__(self, items: Iterable[Item] = ()):
        self._items: Items = self._validate(tuple(items))
        self._listeners: list[Listener] = []
        self.generation = 0

    @staticmethod
    def _validate(items: Items) -> Items:
        seen: set[str] = set()
        for item in items:
            if item.id in seen:
                raise ValueError(f"Duplicate item id in collection: {item.id}")
            seen.add(item.id)
        return items

    @property
    def items(self) -> Items:
        return self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def get(self, item_id: str) -> Optional[Item]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def require(self, item_id: str) -> Item:
        """
        Get an item or raise.

        Raises:
            ItemNotFoundError: If the id is not in the collection
        """
        item = self.get(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    def set_data(self, value: Union[Sequence[Item], Updater]) -> Items:
        """
        Replace the whole collection.

        Args:
            value: New items, or a function of the current tuple returning them

        Returns:
            The new tuple
        """
        previous = self._items
        new_items = value(previous) if callable(value) else value
        current = self._validate(tuple(new_items))
        self._items = current
        self.generation += 1

        for listener in list(self._listeners):
            try:
                listener(previous, current)
            except Exception as e:
                logger.error(f"Collection listener failed: {e}", exc_info=True)
        return current

    def update_item(self, item_id: str, **changes: Any) -> Optional[Item]:
        """
        Copy one item with field changes applied.

        Returns:
            The new item, or None if the id is not in the collection
        """
        if self.get(item_id) is None:
            return None

        updated: list[Item] = []

        def apply(items: Items) -> list[Item]:
            result = []
            for item in items:
                if item.id == item_id:
                    item = item.model_copy(update=changes)
                    updated.append(item)
                result.append(item)
            return result

        self.set_data(apply)
        return updated[0]

    def replace_item(self, item_id: str, new_item: Item) -> bool:
        """Swap one item for another version with the same id."""
        if self.get(item_id) is None:
            return False
        self.set_data(
            lambda items: [new_item if item.id == item_id else item for item in items]
        )
        return True

    def edit_item(self, item_id: str, changes: Mapping[str, Any]) -> Item:
        """
        Apply a user edit; the item becomes dirty.

        Args:
            item_id: Id of the item to edit
            changes: Field values to set; an ``id`` key is ignored

        Raises:
            ItemNotFoundError: If the id is not in the collection
            pydantic.ValidationError: If a value does not fit its field
        """
        current = self.require(item_id)
        fields = {key: value for key, value in changes.items() if key != "id"}
        edited = Item.model_validate(
            {**current.model_dump(), **fields, "has_unsaved_changes": True}
        )
        self.replace_item(item_id, edited)
        return edited

    def dirty_items(self) -> list[Item]:
        return [item for item in self._items if item.has_unsaved_changes]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a change listener called with ``(previous, current)``.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
