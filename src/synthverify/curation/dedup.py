"""
Duplicate detection and resolution.

Items are grouped by a normalized content key (see ``Item.dedup_key``). Group
ids are throwaway tags regenerated on every analysis pass; nothing should rely
on a group id's value across passes.
"""

import logging
import uuid
from typing import MutableSequence, Sequence

from synthverify.curation.collection import ItemCollection, Items
from synthverify.models.item import Item

logger = logging.getLogger(__name__)

DEFAULT_KEY_FIELDS = ("query", "full_seed")


def analyze_duplicates(
    items: MutableSequence[Item], key_fields: Sequence[str] = DEFAULT_KEY_FIELDS
) -> int:
    """
    Flag duplicate groups in place.

    Every item's dedup flags are reset first. Discarded items take no part in
    grouping. Empty keys are grouped together like any other key.

    Args:
        items: Items to analyze (mutated in place)
        key_fields: Primary content field followed by fallbacks

    Returns:
        Number of duplicate groups found
    """
    for item in items:
        item.is_duplicate = False
        item.duplicate_group_id = None

    groups: dict[str, list[Item]] = {}
    for item in items:
        if item.is_discarded:
            continue
        groups.setdefault(item.dedup_key(key_fields), []).append(item)

    group_count = 0
    for members in groups.values():
        if len(members) < 2:
            continue
        group_id = str(uuid.uuid4())
        for member in members:
            member.is_duplicate = True
            member.duplicate_group_id = group_id
        group_count += 1

    logger.debug(f"Duplicate analysis: {group_count} groups over {len(items)} items")
    return group_count


def rank_key(item: Item) -> tuple[float, int]:
    """Sort key for auto-resolution: higher score, then longer answer, wins."""
    return (item.score, len(item.answer or ""))


def group_duplicates(items: Sequence[Item]) -> dict[str, list[Item]]:
    """Current duplicate groups of non-discarded items, keyed by group id."""
    groups: dict[str, list[Item]] = {}
    for item in items:
        if item.is_duplicate and not item.is_discarded and item.duplicate_group_id:
            groups.setdefault(item.duplicate_group_id, []).append(item)
    return groups


def select_losers(items: Sequence[Item]) -> set[str]:
    """Ids of every group member except the top-ranked one."""
    losers: set[str] = set()
    for members in group_duplicates(items).values():
        ranked = sorted(members, key=rank_key, reverse=True)
        losers.update(item.id for item in ranked[1:])
    return losers


class DuplicateResolver:
    """Duplicate operations bound to a session's item collection."""

    def __init__(
        self,
        collection: ItemCollection,
        key_fields: Sequence[str] = DEFAULT_KEY_FIELDS,
    ):
        self.collection = collection
        self.key_fields = tuple(key_fields)

    def analyze(self, items: MutableSequence[Item]) -> int:
        return analyze_duplicates(items, self.key_fields)

    def handle_rescan(self) -> list[str]:
        """
        Re-run duplicate analysis over a copy of the collection.

        Items whose dedup flags changed become dirty, since those flags are
        persisted with the item. Dirt is only assigned when the collection
        size did not change in the meantime.

        Returns:
            Ids of items whose dedup flags changed
        """
        changed: list[str] = []

        def rescan(previous: Items) -> list[Item]:
            changed.clear()
            updated = [item.model_copy() for item in previous]
            self.analyze(updated)

            if len(updated) == len(previous):
                for before, after in zip(previous, updated):
                    if (
                        before.is_duplicate != after.is_duplicate
                        or before.duplicate_group_id != after.duplicate_group_id
                    ):
                        after.has_unsaved_changes = True
                        changed.append(after.id)
            return updated

        self.collection.set_data(rescan)
        logger.info(f"Duplicate rescan flagged {len(changed)} changed items")
        return list(changed)

    def toggle_duplicate_status(self, item_id: str) -> Item:
        """
        Manually flip one item's duplicate flag.

        Group membership and other members are left as they are; the override
        stands until the next analysis pass.

        Raises:
            ItemNotFoundError: If the id is not in the collection
        """
        item = self.collection.require(item_id)
        return self.collection.update_item(
            item_id,
            is_duplicate=not item.is_duplicate,
            has_unsaved_changes=True,
        )

    def auto_resolve_duplicates(self) -> set[str]:
        """
        Discard every duplicate except the best item of each group.

        Idempotent: discarded items are excluded from grouping, so a second
        run finds nothing left to discard.

        Returns:
            Ids of the items discarded by this run
        """
        discard_ids = select_losers(self.collection.items)
        if not discard_ids:
            return set()

        self.collection.set_data(
            lambda items: [
                item.model_copy(update={"is_discarded": True, "has_unsaved_changes": True})
                if item.id in discard_ids
                else item
                for item in items
            ]
        )
        logger.info(f"Auto-resolve discarded {len(discard_ids)} duplicate items")
        return discard_ids
