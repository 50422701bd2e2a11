"""
Dataset hub uploader.

Pushes an exported dataset to a Hugging Face dataset repository with
``huggingface_hub``: create the repository (an existing one is fine), then
upload a single file. The hub client is blocking, so both calls run in a
worker thread.
"""

import asyncio
import io
import json
import logging
from typing import Any, Callable, Optional, Sequence

from huggingface_hub import HfApi
from huggingface_hub.utils import HfHubHTTPError

from synthverify.exceptions import PersistenceError

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("jsonl", "parquet")

ApiFactory = Callable[[str], HfApi]


def serialize_jsonl(items: Sequence[dict[str, Any]]) -> bytes:
    """One JSON object per line, UTF-8."""
    return "\n".join(json.dumps(item, ensure_ascii=False) for item in items).encode("utf-8")


def serialize_parquet(items: Sequence[dict[str, Any]]) -> bytes:
    """Columnar parquet bytes via pandas (pyarrow engine)."""
    import pandas as pd

    buffer = io.BytesIO()
    pd.DataFrame.from_records(list(items)).to_parquet(buffer, index=False)
    return buffer.getvalue()


def resolve_filename(filename: str, format: str) -> str:
    """Force the parquet extension when pushing parquet."""
    if format == "parquet" and not filename.endswith(".parquet"):
        if filename.endswith(".jsonl"):
            filename = filename[: -len(".jsonl")]
        return f"{filename}.parquet"
    return filename


class HubUploader:
    """
    Asynchronous wrapper around the hub client for pushing datasets.

    Usage:
        uploader = HubUploader()
        url = await uploader.upload_dataset(token, "org/name", rows, "data.jsonl", False, "jsonl")
    """

    def __init__(
        self,
        endpoint: str = "https://huggingface.co",
        api_factory: Optional[ApiFactory] = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.api_factory = api_factory or self._default_api

    def _default_api(self, token: str) -> HfApi:
        return HfApi(endpoint=self.endpoint, token=token)

    async def upload_dataset(
        self,
        token: str,
        repo_id: str,
        items: Sequence[dict[str, Any]],
        filename: str,
        is_public: bool,
        format: str,
    ) -> str:
        """
        Upload items as one file of a dataset repository.

        Args:
            token: Hub access token
            repo_id: ``namespace/name`` or bare ``name``
            items: Plain export records
            filename: Target path inside the repository
            is_public: Create the repository as public when it does not exist
            format: ``jsonl`` or ``parquet``

        Returns:
            URL of the dataset repository

        Raises:
            ValueError: If there is nothing to upload or the format is unknown
            PersistenceError: If the hub rejects a request or is unreachable
        """
        if not items:
            raise ValueError("No data to upload.")
        if format not in SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported format: {format}")

        filename = resolve_filename(filename, format)
        if format == "parquet":
            try:
                content = serialize_parquet(items)
            except Exception as e:
                raise PersistenceError(f"Parquet conversion failed: {e}", cause=e) from e
        else:
            content = serialize_jsonl(items)

        api = self.api_factory(token)
        try:
            url = await asyncio.to_thread(
                self._push, api, repo_id, filename, content, not is_public
            )
        except HfHubHTTPError as e:
            status = getattr(e.response, "status_code", None)
            logger.error(f"Hub rejected upload to {repo_id} ({status}): {e}")
            raise PersistenceError(f"Hub request failed ({status}): {e}", cause=e) from e
        except Exception as e:
            logger.error(f"Hub upload to {repo_id} failed: {e}")
            raise PersistenceError(f"Network error: {e}", cause=e) from e

        logger.info(f"Uploaded {len(items)} records to {url} as {filename}")
        return url

    def _push(
        self, api: HfApi, repo_id: str, filename: str, content: bytes, private: bool
    ) -> str:
        logger.debug(f"Creating repo {repo_id} if needed...")
        repo_url = api.create_repo(
            repo_id, repo_type="dataset", private=private, exist_ok=True
        )
        api.upload_file(
            path_or_fileobj=content,
            path_in_repo=filename,
            repo_id=repo_id,
            repo_type="dataset",
            commit_message=f"Upload {filename}",
        )
        return str(repo_url)
