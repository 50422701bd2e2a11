"""
API schemas for SynthVerify.

Pydantic models for request/response validation.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from synthverify.models.analytics import AnalyticsSnapshot
from synthverify.models.item import Item, SaveState

# ===== Sessions =====


class SessionCreate(BaseModel):
    """Request schema for creating a curation session."""

    name: str
    description: Optional[str] = None


class SessionResponse(BaseModel):
    """Response schema for a curation session record."""

    id: str
    name: str
    description: Optional[str] = None
    analytics: Optional[dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime


class SessionOpen(BaseModel):
    """Request schema for opening a workspace.

    Without ``items`` the session's stored items are loaded.
    """

    items: Optional[list[dict[str, Any]]] = None


class WorkspaceSummary(BaseModel):
    """State of an open workspace."""

    session_id: str
    total_items: int
    duplicate_items: int
    discarded_items: int
    unsaved_items: int
    duplicate_groups: int = 0


# ===== Items =====


class ItemImport(BaseModel):
    """Raw records to import; any shape ``normalize_import_item`` accepts."""

    items: list[dict[str, Any]] = Field(default_factory=list)
    persist: bool = True


class ImportResponse(BaseModel):
    """Result of an item import."""

    imported: int
    duplicate_groups: int
    total_items: int


class ItemResponse(BaseModel):
    """An item together with its save state."""

    item: Item
    save_state: SaveState = SaveState.IDLE


class OperationResponse(BaseModel):
    """Outcome of a save or rollback."""

    ok: bool
    item: Optional[Item] = None
    save_state: SaveState = SaveState.IDLE


# ===== Duplicates =====


class RescanResponse(BaseModel):
    changed_ids: list[str]
    duplicate_groups: int


class AutoResolveResponse(BaseModel):
    discarded_ids: list[str]


class DuplicateGroup(BaseModel):
    """Members of one duplicate group, best ranked first."""

    group_id: str
    item_ids: list[str]


# ===== Analytics =====


class AnalyticsResponse(BaseModel):
    """Current analytics with cache bookkeeping."""

    analytics: AnalyticsSnapshot
    metrics: dict[str, float]
    cache_valid: bool
    cache_age_seconds: float
    next_update_in_seconds: float
    is_calculating: bool
    computation_count: int


# ===== Export =====


class ExportColumns(BaseModel):
    """Field include flags for export."""

    columns: dict[str, bool]


class ExportFileResponse(BaseModel):
    path: str
    exported: int


class FinalDatasetResponse(BaseModel):
    saved: int
    collection_name: str


class HubPushRequest(BaseModel):
    """Hub push parameters; empty values fall back to configured defaults."""

    token: Optional[str] = None
    repo_id: Optional[str] = None
    format: Optional[str] = None
    is_public: Optional[bool] = None


class HubPushResponse(BaseModel):
    url: str


# ===== Notifications =====


class NotificationResponse(BaseModel):
    level: str
    message: str
    created_at: datetime
