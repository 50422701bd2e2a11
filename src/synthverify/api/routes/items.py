"""
Item API routes.

Endpoints for listing, importing, editing, saving and rolling back the items
of an open workspace.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from synthverify.api.dependencies import (
    get_backing_store,
    get_workspace,
    http_error,
    raise_for_result,
)
from synthverify.api.schemas import (
    ImportResponse,
    ItemImport,
    ItemResponse,
    OperationResponse,
)
from synthverify.curation.importing import normalize_import_item
from synthverify.curation.workspace import CurationWorkspace
from synthverify.exceptions import CurationError
from synthverify.stores.sql import SqlBackingStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=list[ItemResponse])
async def list_items(
    include_discarded: bool = True,
    unsaved_only: bool = False,
    workspace: CurationWorkspace = Depends(get_workspace),
) -> list[ItemResponse]:
    """
    List the workspace's items in collection order.

    Args:
        include_discarded: Include discarded items
        unsaved_only: Only items with unsaved edits
    """
    return [
        ItemResponse(item=item, save_state=workspace.saver.save_state(item.id))
        for item in workspace.collection.items
        if (include_discarded or not item.is_discarded)
        and (not unsaved_only or item.has_unsaved_changes)
    ]


@router.post("/import", response_model=ImportResponse)
async def import_items(
    session_id: str,
    body: ItemImport,
    workspace: CurationWorkspace = Depends(get_workspace),
    backing_store: SqlBackingStore = Depends(get_backing_store),
) -> ImportResponse:
    """
    Import raw records into the workspace and re-run duplicate analysis.

    With ``persist`` the normalized items are also written to the backing
    store under this session.
    """
    if not body.items:
        raise HTTPException(status_code=400, detail="No items to import")

    items = [normalize_import_item(raw) for raw in body.items]
    if body.persist and backing_store.is_enabled():
        try:
            await backing_store.import_items(items, session_id)
        except CurationError as e:
            raise http_error(e)

    groups = workspace.add_items(items)
    logger.info(f"Imported {len(items)} items into session {session_id}")
    return ImportResponse(
        imported=len(items),
        duplicate_groups=groups,
        total_items=len(workspace.collection),
    )


@router.get("/{item_id}", response_model=ItemResponse)
async def get_item(
    item_id: str,
    workspace: CurationWorkspace = Depends(get_workspace),
) -> ItemResponse:
    try:
        item = workspace.collection.require(item_id)
    except CurationError as e:
        raise http_error(e)
    return ItemResponse(item=item, save_state=workspace.saver.save_state(item_id))


@router.patch("/{item_id}", response_model=ItemResponse)
async def edit_item(
    item_id: str,
    changes: dict[str, Any] = Body(...),
    workspace: CurationWorkspace = Depends(get_workspace),
) -> ItemResponse:
    """
    Apply a user edit. The item is marked as having unsaved changes.

    Raises:
        HTTPException: 404 if the item is not in the workspace, 422 if a
            value does not fit its field
    """
    try:
        item = workspace.collection.edit_item(item_id, changes)
    except CurationError as e:
        raise http_error(e)
    except ValidationError as e:
        detail = [
            {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
            for err in e.errors()
        ]
        raise HTTPException(status_code=422, detail=detail)
    return ItemResponse(item=item, save_state=workspace.saver.save_state(item_id))


@router.post("/{item_id}/save", response_model=OperationResponse)
async def save_item(
    item_id: str,
    workspace: CurationWorkspace = Depends(get_workspace),
) -> OperationResponse:
    """
    Persist the item's edits to the backing store.

    Raises:
        HTTPException: 503 if the store is not configured, 404 if the item is
            missing, 409 if a save of the item is in flight, 502 if the store
            call failed
    """
    result = await workspace.saver.handle_db_update(item_id)
    raise_for_result(result)
    return OperationResponse(
        ok=True, item=result.item, save_state=workspace.saver.save_state(item_id)
    )


@router.post("/{item_id}/rollback", response_model=OperationResponse)
async def rollback_item(
    item_id: str,
    workspace: CurationWorkspace = Depends(get_workspace),
) -> OperationResponse:
    """Replace the item with the backing store's version."""
    result = await workspace.saver.handle_db_rollback(item_id)
    raise_for_result(result)
    return OperationResponse(ok=True, item=result.item)


@router.post("/{item_id}/toggle-duplicate", response_model=ItemResponse)
async def toggle_duplicate(
    item_id: str,
    workspace: CurationWorkspace = Depends(get_workspace),
) -> ItemResponse:
    """Manually flip the item's duplicate flag."""
    try:
        item = workspace.duplicates.toggle_duplicate_status(item_id)
    except CurationError as e:
        raise http_error(e)
    return ItemResponse(item=item, save_state=workspace.saver.save_state(item_id))
