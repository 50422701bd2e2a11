"""
Notification feed API routes.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from synthverify.api.dependencies import get_notifier
from synthverify.api.schemas import NotificationResponse
from synthverify.notifications import NotificationCenter

router = APIRouter()


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    limit: Optional[int] = Query(None, ge=0, description="Most recent N messages"),
    notifier: NotificationCenter = Depends(get_notifier),
) -> list[NotificationResponse]:
    return [
        NotificationResponse(**n.to_dict()) for n in notifier.recent(limit)
    ]


@router.delete("", status_code=204)
async def clear_notifications(
    notifier: NotificationCenter = Depends(get_notifier),
) -> None:
    notifier.clear()
