"""
Repository layer for database operations.

Provides a clean API for CRUD operations on database models.
"""

from synthverify.db.repositories.base import BaseRepository
from synthverify.db.repositories.item import ItemRepository
from synthverify.db.repositories.session import CurationSessionRepository

__all__ = [
    "BaseRepository",
    "CurationSessionRepository",
    "ItemRepository",
]
