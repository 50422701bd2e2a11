"""
Duplicate detection API routes.
"""

from fastapi import APIRouter, Depends

from synthverify.api.dependencies import get_workspace
from synthverify.api.schemas import AutoResolveResponse, DuplicateGroup, RescanResponse
from synthverify.curation.dedup import group_duplicates, rank_key
from synthverify.curation.workspace import CurationWorkspace

router = APIRouter()


@router.get("", response_model=list[DuplicateGroup])
async def list_duplicate_groups(
    workspace: CurationWorkspace = Depends(get_workspace),
) -> list[DuplicateGroup]:
    """Current duplicate groups; the member auto-resolve would keep comes first."""
    return [
        DuplicateGroup(
            group_id=group_id,
            item_ids=[item.id for item in sorted(members, key=rank_key, reverse=True)],
        )
        for group_id, members in group_duplicates(workspace.collection.items).items()
    ]


@router.post("/rescan", response_model=RescanResponse)
async def rescan_duplicates(
    workspace: CurationWorkspace = Depends(get_workspace),
) -> RescanResponse:
    """Re-run duplicate analysis; items whose flags changed become unsaved."""
    changed = workspace.duplicates.handle_rescan()
    return RescanResponse(
        changed_ids=changed,
        duplicate_groups=len(group_duplicates(workspace.collection.items)),
    )


@router.post("/auto-resolve", response_model=AutoResolveResponse)
async def auto_resolve_duplicates(
    workspace: CurationWorkspace = Depends(get_workspace),
) -> AutoResolveResponse:
    """Discard all but the best-ranked item of every duplicate group."""
    discarded = workspace.duplicates.auto_resolve_duplicates()
    return AutoResolveResponse(discarded_ids=sorted(discarded))
