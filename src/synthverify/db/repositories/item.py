"""
Item repository for the backing document store and final datasets.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

from sqlalchemy.orm import Session

from synthverify.db.repositories.base import BaseRepository
from synthverify.models.db import FinalItem, StoredItem

# Local-only flags stripped from records written to a final dataset
FINAL_DATASET_EXCLUDED_FIELDS = ("id", "is_duplicate", "duplicate_group_id", "is_discarded")


class ItemRepository(BaseRepository[StoredItem]):
    """Repository for StoredItem model."""

    def __init__(self, session: Session):
        super().__init__(StoredItem, session)

    def upsert(
        self,
        item_id: str,
        fields: dict[str, Any],
        session_id: Optional[str] = None,
    ) -> StoredItem:
        """
        Merge fields into an item's payload, creating the item if missing.

        Args:
            item_id: Item identifier
            fields: Field values to merge into the stored payload
            session_id: Owning session (only applied when given)

        Returns:
            The stored item after the merge
        """
        fields = {k: v for k, v in fields.items() if k != "id"}
        stored = self.get(item_id)
        if stored is None:
            return self.create(id=item_id, session_id=session_id, payload=fields)

        # Reassign a new dict so the JSON column change is detected
        payload = {**(stored.payload or {}), **fields}
        updates: dict[str, Any] = {"payload": payload}
        if session_id is not None:
            updates["session_id"] = session_id
        return self.update(item_id, **updates)

    def get_by_session(self, session_id: str) -> List[StoredItem]:
        """
        Get all stored items belonging to a session, oldest first.

        Args:
            session_id: Session identifier

        Returns:
            List of stored items
        """
        return (
            self.session.query(StoredItem)
            .filter(StoredItem.session_id == session_id)
            .order_by(StoredItem.created_at, StoredItem.id)
            .all()
        )

    def save_final_dataset(
        self, records: Iterable[dict[str, Any]], collection_name: str
    ) -> int:
        """
        Write records as rows of a final dataset collection.

        Local flags are stripped; ``verified_at`` and ``final_score`` are added.

        Args:
            records: Plain item records
            collection_name: Target collection name

        Returns:
            Number of rows written
        """
        verified_at = datetime.now(timezone.utc)
        count = 0
        for record in records:
            payload = {
                k: v for k, v in record.items() if k not in FINAL_DATASET_EXCLUDED_FIELDS
            }
            payload["verified_at"] = verified_at.isoformat()
            score = record.get("score")
            payload["final_score"] = score
            self.session.add(
                FinalItem(
                    collection_name=collection_name,
                    payload=payload,
                    final_score=score,
                    verified_at=verified_at,
                )
            )
            count += 1
        self.session.flush()
        return count

    def get_final_dataset(self, collection_name: str) -> List[FinalItem]:
        """Get all rows of a final dataset collection."""
        return (
            self.session.query(FinalItem)
            .filter(FinalItem.collection_name == collection_name)
            .order_by(FinalItem.verified_at)
            .all()
        )
