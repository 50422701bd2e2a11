"""
Export API routes.

Endpoints for the export column selection, JSON file export, the final
dataset save and the hub push.
"""

from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from synthverify.api.dependencies import get_workspace
from synthverify.api.schemas import (
    ExportColumns,
    ExportFileResponse,
    FinalDatasetResponse,
    HubPushRequest,
    HubPushResponse,
)
from synthverify.config import settings
from synthverify.curation.export import get_export_data, write_json_export
from synthverify.curation.workspace import CurationWorkspace

router = APIRouter()


@router.get("/columns", response_model=ExportColumns)
async def get_export_columns(
    workspace: CurationWorkspace = Depends(get_workspace),
) -> ExportColumns:
    return ExportColumns(columns=workspace.export_columns)


@router.put("/columns", response_model=ExportColumns)
async def update_export_columns(
    body: ExportColumns,
    workspace: CurationWorkspace = Depends(get_workspace),
) -> ExportColumns:
    """Set include flags; fields not mentioned keep their current flag."""
    workspace.export_columns = {**workspace.export_columns, **body.columns}
    return ExportColumns(columns=workspace.export_columns)


@router.get("/preview", response_model=list[dict[str, Any]])
async def preview_export(
    workspace: CurationWorkspace = Depends(get_workspace),
) -> list[dict[str, Any]]:
    """Records as they would be exported (discarded items left out)."""
    return get_export_data(workspace.collection.items, workspace.export_columns)


@router.post("/file", response_model=ExportFileResponse)
async def export_file(
    workspace: CurationWorkspace = Depends(get_workspace),
) -> ExportFileResponse:
    """Write the export as a dated JSON file into the configured export directory."""
    items = workspace.collection.items
    path = write_json_export(items, workspace.export_columns, Path(settings.export_dir))
    return ExportFileResponse(
        path=str(path),
        exported=sum(1 for item in items if not item.is_discarded),
    )


@router.post("/final", response_model=FinalDatasetResponse)
async def save_final_dataset(
    workspace: CurationWorkspace = Depends(get_workspace),
) -> FinalDatasetResponse:
    """
    Save non-discarded items to the final dataset collection.

    Raises:
        HTTPException: 502 if the store write failed
    """
    count = await workspace.exporter.save_final_dataset(workspace.collection.items)
    if count is None:
        raise HTTPException(status_code=502, detail="Final dataset save failed")
    return FinalDatasetResponse(saved=count, collection_name=workspace.exporter.collection_name)


@router.post("/hub", response_model=HubPushResponse)
async def push_to_hub(
    body: HubPushRequest,
    workspace: CurationWorkspace = Depends(get_workspace),
) -> HubPushResponse:
    """
    Push the export selection to a hub dataset repository.

    Raises:
        HTTPException: 400 if token or repository is missing, 502 if the push failed
    """
    token = body.token or settings.hub_token
    repo_id = body.repo_id or settings.hub_repo_id
    url = await workspace.exporter.push_to_hub(
        workspace.collection.items,
        workspace.export_columns,
        token=token,
        repo_id=repo_id,
        format=body.format or settings.hub_format,
        is_public=settings.hub_public if body.is_public is None else body.is_public,
    )
    if url is None:
        if not token or not repo_id:
            raise HTTPException(status_code=400, detail="Hub token and repository are required")
        raise HTTPException(status_code=502, detail="Hub push failed")
    return HubPushResponse(url=url)
