"""
Shared FastAPI dependencies and helpers for the curation routes.
"""

from fastapi import HTTPException, Request

from synthverify.curation.save import OperationResult
from synthverify.curation.workspace import CurationWorkspace, WorkspaceRegistry
from synthverify.exceptions import CurationError
from synthverify.notifications import NotificationCenter
from synthverify.stores.sql import SqlBackingStore, SqlSessionStore


def get_registry(request: Request) -> WorkspaceRegistry:
    return request.app.state.registry


def get_session_store(request: Request) -> SqlSessionStore:
    return request.app.state.session_store


def get_backing_store(request: Request) -> SqlBackingStore:
    return request.app.state.backing_store


def get_notifier(request: Request) -> NotificationCenter:
    return request.app.state.notifier


def get_workspace(session_id: str, request: Request) -> CurationWorkspace:
    """
    Resolve the open workspace of a session.

    Raises:
        HTTPException: 404 if the session has no open workspace
    """
    workspace = get_registry(request).get(session_id)
    if workspace is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} is not open")
    return workspace


def http_error(error: CurationError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)


def raise_for_result(result: OperationResult) -> None:
    """
    Translate a failed coordinator result into an HTTP error.

    Raises:
        HTTPException: Status of the carried error, 409 for a refused save
    """
    if result.ok:
        return
    if result.error is None:
        raise HTTPException(status_code=409, detail="Operation already in progress")
    raise http_error(result.error)
