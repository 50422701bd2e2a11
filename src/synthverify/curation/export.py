"""
Export of curated items.

Export selection is a mapping from field name to an include flag. Exported
records contain only included fields and never discarded items.
"""

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Sequence

from synthverify.models.item import Item
from synthverify.stores.protocols import BackingStore, DatasetUploader, Notifier

logger = logging.getLogger(__name__)

EXCLUDED_EXPORT_COLUMNS = frozenset(
    {
        "id",
        "is_duplicate",
        "duplicate_group_id",
        "is_discarded",
        "verified_timestamp",
        "has_unsaved_changes",
    }
)
DEFAULT_CHECKED_COLUMNS = frozenset(
    {"query", "reasoning", "answer", "full_seed", "score", "model_used", "source", "messages"}
)
EXPORT_FILENAME_PREFIX = "synth_verified"


def default_export_columns(items: Iterable[Item]) -> dict[str, bool]:
    """Every field seen across items, with the common content fields pre-checked."""
    columns: dict[str, bool] = {}
    for item in items:
        for key in item.model_dump():
            if key not in EXCLUDED_EXPORT_COLUMNS and key not in columns:
                columns[key] = key in DEFAULT_CHECKED_COLUMNS
    return columns


def get_export_data(items: Iterable[Item], columns: Mapping[str, bool]) -> list[dict[str, Any]]:
    """Ordered plain records of non-discarded items, restricted to included fields."""
    included = [key for key, enabled in columns.items() if enabled]
    records = []
    for item in items:
        if item.is_discarded:
            continue
        data = item.model_dump()
        records.append({key: data[key] for key in included if key in data})
    return records


def export_filename(day: Optional[date] = None) -> str:
    day = day or date.today()
    return f"{EXPORT_FILENAME_PREFIX}_{day.isoformat()}.json"


def write_json_export(
    items: Iterable[Item],
    columns: Mapping[str, bool],
    directory: Path,
    day: Optional[date] = None,
) -> Path:
    """
    Write the export as a UTF-8 JSON array.

    Returns:
        Path of the written file
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(day)
    records = get_export_data(items, columns)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(records, f, indent=2, ensure_ascii=False)
    logger.info(f"Exported {len(records)} items to {path}")
    return path


def hub_filename(format: str) -> str:
    return "train.parquet" if format == "parquet" else "data.jsonl"


class ExportService:
    """Final-dataset save and hub push, reporting through the notifier."""

    def __init__(
        self,
        store: BackingStore,
        uploader: DatasetUploader,
        notifier: Notifier,
        collection_name: str = "synth_verified",
    ):
        self.store = store
        self.uploader = uploader
        self.notifier = notifier
        self.collection_name = collection_name
        self.is_uploading = False

    async def save_final_dataset(self, items: Sequence[Item]) -> Optional[int]:
        """
        Save non-discarded items to the final collection.

        Returns:
            Number of saved items, or None on failure
        """
        to_save = [item for item in items if not item.is_discarded]
        self.is_uploading = True
        try:
            count = await self.store.save_final_dataset(to_save, self.collection_name)
        except Exception as e:
            logger.error(f"Final dataset save failed: {e}", exc_info=True)
            self.notifier.error(f"DB Save Failed: {e}")
            return None
        finally:
            self.is_uploading = False

        self.notifier.success(f"Saved {count} items to '{self.collection_name}' collection.")
        return count

    async def push_to_hub(
        self,
        items: Sequence[Item],
        columns: Mapping[str, bool],
        token: str,
        repo_id: str,
        format: str = "jsonl",
        is_public: bool = False,
    ) -> Optional[str]:
        """
        Push the export selection to a hub dataset repository.

        Returns:
            Repository URL, or None when skipped or failed
        """
        if not token or not repo_id:
            self.notifier.info("Please provide HF Token and Repo ID.")
            return None

        self.is_uploading = True
        try:
            url = await self.uploader.upload_dataset(
                token,
                repo_id,
                get_export_data(items, columns),
                hub_filename(format),
                is_public,
                format,
            )
        except Exception as e:
            logger.error(f"Hub push to {repo_id} failed: {e}")
            self.notifier.error(f"HF Push Failed: {e}")
            return None
        finally:
            self.is_uploading = False

        self.notifier.success(f"Successfully pushed to: {url}")
        return url
