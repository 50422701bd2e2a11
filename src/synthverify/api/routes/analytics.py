"""
Session analytics API routes.
"""

from fastapi import APIRouter, Depends

from synthverify.api.dependencies import get_workspace
from synthverify.api.schemas import AnalyticsResponse
from synthverify.curation.workspace import CurationWorkspace

router = APIRouter()


def _response(workspace: CurationWorkspace) -> AnalyticsResponse:
    cache = workspace.analytics
    snapshot = cache.get_current_analytics()
    return AnalyticsResponse(
        analytics=snapshot,
        metrics=snapshot.metrics(),
        cache_valid=cache.is_cache_valid(),
        cache_age_seconds=cache.cache_age(),
        next_update_in_seconds=cache.next_update_in(),
        is_calculating=cache.is_calculating,
        computation_count=cache.computation_count,
    )


@router.get("", response_model=AnalyticsResponse)
async def get_analytics(
    workspace: CurationWorkspace = Depends(get_workspace),
) -> AnalyticsResponse:
    """
    Get session analytics.

    Returns the cached snapshot while it is fresh, otherwise a freshly
    computed one (the cache itself is only refreshed by updates).
    """
    return _response(workspace)


@router.post("/refresh", response_model=AnalyticsResponse)
async def refresh_analytics(
    workspace: CurationWorkspace = Depends(get_workspace),
) -> AnalyticsResponse:
    """Force a recompute and persist the snapshot to the session record."""
    await workspace.analytics.refresh_analytics()
    return _response(workspace)
