"""
Curated item model.

An ``Item`` is the working copy of one generated record. Content fields are
free-form (unknown keys are kept as extras); only the dedup key, the score and
the local state flags have meaning to the curation core.
"""

import enum
from typing import Any, Optional, Sequence

from pydantic import BaseModel, ConfigDict, field_validator

# Flags produced by local duplicate analysis, never authoritative in the store
LOCAL_DEDUP_FIELDS = ("is_duplicate", "duplicate_group_id")

# Fields owned by the local session rather than the backing store record
LOCAL_STATE_FIELDS = LOCAL_DEDUP_FIELDS + ("is_discarded", "has_unsaved_changes")

SINGLE_TURN_CONTENT_FIELDS = ("query", "reasoning", "answer")
MULTI_TURN_CONTENT_FIELDS = ("messages",)
SHARED_PERSIST_FIELDS = ("score", "is_duplicate", "duplicate_group_id", "is_discarded")


class SaveState(str, enum.Enum):
    """UI-facing save state of a single item."""

    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"


class Item(BaseModel):
    """One curated record in the working collection."""

    model_config = ConfigDict(extra="allow")

    id: str

    # Content
    query: str = ""
    full_seed: str = ""
    seed_preview: str = ""
    reasoning: str = ""
    answer: str = ""
    messages: Optional[list[dict[str, Any]]] = None
    is_multi_turn: bool = False

    # Provenance
    model_used: Optional[str] = None
    source: Optional[str] = None
    session_uid: Optional[str] = None
    timestamp: Optional[str] = None

    # Generation outcome (read by analytics)
    status: Optional[str] = None
    error: Optional[str] = None
    duration: Optional[float] = None

    # Curation state
    score: float = 0.0
    is_duplicate: bool = False
    duplicate_group_id: Optional[str] = None
    is_discarded: bool = False
    has_unsaved_changes: bool = False
    verified_timestamp: Optional[str] = None

    @field_validator("score", mode="before")
    @classmethod
    def coerce_score(cls, value: Any) -> float:
        """Missing or non-numeric scores rank lowest instead of failing."""
        if value is None or isinstance(value, bool):
            return 0.0
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0

    @field_validator("query", "full_seed", "seed_preview", "reasoning", "answer", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        return str(value)

    @property
    def uses_messages(self) -> bool:
        """True for multi-turn items, which persist their message sequence."""
        return self.is_multi_turn or bool(self.messages)

    def get_value(self, name: str, default: Any = None) -> Any:
        """Read a declared field or an extra field by name."""
        if name in type(self).model_fields:
            return getattr(self, name)
        extra = self.__pydantic_extra__ or {}
        return extra.get(name, default)

    def dedup_key(self, key_fields: Sequence[str] = ("query", "full_seed")) -> str:
        """
        Normalized content key used for duplicate grouping.

        Takes the first non-empty field of ``key_fields``, trimmed and
        case-folded. Items with no usable field share the empty key.
        """
        for name in key_fields:
            value = self.get_value(name)
            if value:
                return str(value).strip().casefold()
        return ""

    def persist_fields(self) -> dict[str, Any]:
        """Field subset sent to the backing store on save."""
        content = MULTI_TURN_CONTENT_FIELDS if self.uses_messages else SINGLE_TURN_CONTENT_FIELDS
        fields = {name: getattr(self, name) for name in content}
        fields.update({name: getattr(self, name) for name in SHARED_PERSIST_FIELDS})
        return fields

    def to_record(self) -> dict[str, Any]:
        """Plain dict of every field, extras included."""
        return self.model_dump()
