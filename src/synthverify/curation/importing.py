"""
Import normalization for item files and store records.

Generated datasets come in many shapes (instruction/output, prompt/response,
chat message lists). ``normalize_import_item`` maps them onto ``Item``.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from synthverify.models.item import Item

logger = logging.getLogger(__name__)

QUERY_KEYS = ("query", "instruction", "question", "prompt", "input")
ANSWER_KEYS = ("answer", "output", "response", "completion")
REASONING_KEYS = (
    "reasoning",
    "reasoning_trace",
    "thought",
    "thoughts",
    "scratchpad",
    "rationale",
    "trace",
)
MODEL_KEYS = ("model_used", "modelUsed", "model", "generator")

# camelCase keys written by the browser client
CAMEL_CASE_FIELDS = {
    "fullSeed": "full_seed",
    "seedPreview": "seed_preview",
    "isMultiTurn": "is_multi_turn",
    "sessionUid": "session_uid",
    "tokenCount": "token_count",
    "responseTime": "response_time",
    "verifiedTimestamp": "verified_timestamp",
}

RESET_FLAGS = (
    "is_duplicate",
    "isDuplicate",
    "duplicate_group_id",
    "duplicateGroupId",
    "is_discarded",
    "isDiscarded",
    "has_unsaved_changes",
    "hasUnsavedChanges",
)


def _first(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value:
            return value
    return None


def _last_message(messages: list, role: str) -> Optional[str]:
    for message in reversed(messages):
        if isinstance(message, Mapping) and message.get("role") == role:
            return message.get("content")
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False) if isinstance(value, (dict, list)) else str(value)


def normalize_import_item(raw: Mapping[str, Any]) -> Item:
    """
    Map a raw record onto an ``Item``.

    Unknown keys are kept as extra fields. Dedup, discard and dirty flags are
    reset; duplicate analysis runs after import.
    """
    data = {CAMEL_CASE_FIELDS.get(key, key): value for key, value in raw.items()}
    for flag in RESET_FLAGS:
        data.pop(flag, None)

    messages = raw.get("messages") if isinstance(raw.get("messages"), list) else None

    query = _first(raw, QUERY_KEYS)
    if not query and messages:
        query = _last_message(messages, "user")

    answer = _first(raw, ANSWER_KEYS)
    if messages:
        answer = _last_message(messages, "assistant") or answer

    model_used = _first(raw, MODEL_KEYS) or "Imported"
    deep_metadata = raw.get("deepMetadata") or raw.get("deep_metadata")
    if model_used == "Imported" and isinstance(deep_metadata, Mapping) and deep_metadata.get("writer"):
        model_used = f"DEEP: {deep_metadata['writer']}"
    data.pop("modelUsed", None)

    query_text = _text(query)
    data.update(
        {
            "id": str(raw.get("id") or uuid.uuid4()),
            "query": query_text,
            "answer": _text(answer),
            "reasoning": _text(_first(raw, REASONING_KEYS)),
            "messages": messages,
            "is_multi_turn": bool(messages),
            "seed_preview": raw.get("seed_preview") or query_text[:100],
            "full_seed": raw.get("full_seed") or raw.get("fullSeed") or query_text,
            "timestamp": raw.get("timestamp") or datetime.now(timezone.utc).isoformat(),
            "model_used": _text(model_used),
            "score": raw.get("score") or 0,
        }
    )
    return Item.model_validate(data)


def parse_items_from_text(text: str) -> list[Item]:
    """
    Parse a JSON array or JSONL document into items.

    Invalid JSONL lines are skipped.

    Raises:
        json.JSONDecodeError: If a JSON array document is malformed
    """
    content = text.strip()
    if not content:
        return []

    if content.startswith("[") and content.endswith("]"):
        parsed = json.loads(content)
        if isinstance(parsed, list):
            return [normalize_import_item(raw) for raw in parsed if isinstance(raw, Mapping)]
        return []

    items = []
    for number, line in enumerate(content.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            raw = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping invalid JSONL line {number}: {e}")
            continue
        if isinstance(raw, Mapping):
            items.append(normalize_import_item(raw))
    return items
