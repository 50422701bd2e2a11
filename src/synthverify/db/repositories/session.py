"""
Curation session repository.
"""

import uuid
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from synthverify.db.repositories.base import BaseRepository
from synthverify.models.db import CurationSession


class CurationSessionRepository(BaseRepository[CurationSession]):
    """Repository for CurationSession model."""

    def __init__(self, session: Session):
        super().__init__(CurationSession, session)

    def get_by_name(self, name: str) -> Optional[CurationSession]:
        """
        Get the most recent session with a given name.

        Args:
            name: Session name

        Returns:
            CurationSession instance or None
        """
        return (
            self.session.query(CurationSession)
            .filter(CurationSession.name == name)
            .order_by(CurationSession.created_at.desc())
            .first()
        )

    def update_analytics(
        self, id: uuid.UUID, analytics: dict[str, Any]
    ) -> Optional[CurationSession]:
        """
        Replace the embedded analytics snapshot of a session.

        Args:
            id: Session UUID
            analytics: JSON-serializable snapshot

        Returns:
            Updated session or None if not found
        """
        return self.update(id, analytics=analytics)

    def get_recent(self, limit: int = 100, offset: int = 0) -> List[CurationSession]:
        """
        Get sessions ordered by creation time, newest first.

        Args:
            limit: Maximum number of sessions
            offset: Number of sessions to skip

        Returns:
            List of sessions
        """
        return (
            self.session.query(CurationSession)
            .order_by(CurationSession.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
