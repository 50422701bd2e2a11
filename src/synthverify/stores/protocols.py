"""
Interfaces of the collaborators consumed by the curation core.

The core only depends on these narrow protocols; ``synthverify.stores.sql``
and ``synthverify.stores.hub`` provide the default implementations.
"""

from typing import Any, Optional, Protocol, Sequence

from synthverify.models.analytics import AnalyticsSnapshot
from synthverify.models.item import Item


class BackingStore(Protocol):
    """Authoritative document store for item records."""

    def is_enabled(self) -> bool: ...

    async def update_item(self, item_id: str, fields: dict[str, Any]) -> Optional[Item]: ...

    async def fetch_item(self, item_id: str) -> Optional[Item]: ...

    async def save_final_dataset(self, items: Sequence[Item], collection_name: str) -> int: ...


class SessionStore(Protocol):
    """Local store holding session records and their embedded analytics."""

    async def update_session_analytics(
        self, session_id: str, snapshot: AnalyticsSnapshot
    ) -> None: ...

    async def get_session_analytics(self, session_id: str) -> Optional[AnalyticsSnapshot]: ...


class DatasetUploader(Protocol):
    """Object-storage / hub push target for exported datasets."""

    async def upload_dataset(
        self,
        token: str,
        repo_id: str,
        items: Sequence[dict[str, Any]],
        filename: str,
        is_public: bool,
        format: str,
    ) -> str: ...


class Notifier(Protocol):
    """Fire-and-forget user notification sink."""

    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...
