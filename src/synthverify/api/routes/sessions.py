"""
Curation session API routes.

Endpoints for creating sessions and opening/closing their workspaces.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from synthverify.api.dependencies import (
    get_backing_store,
    get_registry,
    get_session_store,
    http_error,
)
from synthverify.api.schemas import (
    SessionCreate,
    SessionOpen,
    SessionResponse,
    WorkspaceSummary,
)
from synthverify.curation.dedup import group_duplicates
from synthverify.curation.importing import normalize_import_item
from synthverify.curation.workspace import CurationWorkspace, WorkspaceRegistry
from synthverify.db.connection import get_db
from synthverify.db.repositories import CurationSessionRepository
from synthverify.exceptions import CurationError
from synthverify.stores.sql import SqlBackingStore, SqlSessionStore

logger = logging.getLogger(__name__)
router = APIRouter()


def summarize(workspace: CurationWorkspace) -> WorkspaceSummary:
    items = workspace.collection.items
    return WorkspaceSummary(
        session_id=workspace.session_id,
        total_items=len(items),
        duplicate_items=sum(1 for item in items if item.is_duplicate),
        discarded_items=sum(1 for item in items if item.is_discarded),
        unsaved_items=sum(1 for item in items if item.has_unsaved_changes),
        duplicate_groups=len(group_duplicates(items)),
    )


@router.get("", response_model=list[SessionResponse])
async def list_sessions(
    limit: int = 100,
    offset: int = 0,
    session: Session = Depends(get_db),
) -> list[SessionResponse]:
    """List curation sessions, newest first."""
    records = CurationSessionRepository(session).get_recent(limit=limit, offset=offset)
    return [
        SessionResponse(
            id=str(r.id),
            name=r.name,
            description=r.description,
            analytics=r.analytics,
            created_at=r.created_at,
            updated_at=r.updated_at,
        )
        for r in records
    ]


@router.post("", response_model=SessionResponse, status_code=201)
async def create_session(
    body: SessionCreate,
    session_store: SqlSessionStore = Depends(get_session_store),
) -> SessionResponse:
    """Create a curation session record."""
    return SessionResponse(**session_store.create_session(body.name, body.description))


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    session_store: SqlSessionStore = Depends(get_session_store),
) -> SessionResponse:
    """
    Get a curation session record.

    Raises:
        HTTPException: 404 if the session does not exist
    """
    try:
        return SessionResponse(**session_store.get_session(session_id))
    except CurationError as e:
        raise http_error(e)


@router.post("/{session_id}/open", response_model=WorkspaceSummary)
async def open_session(
    session_id: str,
    body: Optional[SessionOpen] = None,
    registry: WorkspaceRegistry = Depends(get_registry),
    session_store: SqlSessionStore = Depends(get_session_store),
    backing_store: SqlBackingStore = Depends(get_backing_store),
) -> WorkspaceSummary:
    """
    Open the session's workspace.

    Items given in the body replace the collection; otherwise the items
    stored for the session are loaded when the workspace is first opened.

    Raises:
        HTTPException: 404 if the session does not exist
    """
    try:
        session_store.get_session(session_id)
        if body is not None and body.items is not None:
            items = [normalize_import_item(raw) for raw in body.items]
        elif registry.get(session_id) is None:
            items = await backing_store.fetch_session_items(session_id)
        else:
            items = None
    except CurationError as e:
        raise http_error(e)

    workspace = await registry.open(session_id, items)
    return summarize(workspace)


@router.post("/{session_id}/close", status_code=204)
async def close_session(
    session_id: str,
    registry: WorkspaceRegistry = Depends(get_registry),
) -> None:
    """
    Close the session's workspace.

    Raises:
        HTTPException: 404 if the session is not open
    """
    if not await registry.close(session_id):
        raise HTTPException(status_code=404, detail=f"Session {session_id} is not open")
