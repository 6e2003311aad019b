from __future__ import annotations

from fastapi import APIRouter, Depends

from medibook.api.deps import get_notification_center
from medibook.api.schemas.auth import NotificationResponse
from medibook.infrastructure.notifications.notification_center import NotificationCenter


router = APIRouter()


@router.get("/notifications", response_model=list[NotificationResponse])
async def drain_notifications(
    notification_center: NotificationCenter = Depends(get_notification_center),
):
    return [NotificationResponse.from_domain(item) for item in notification_center.drain()]
