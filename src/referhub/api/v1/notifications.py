"""Notifications API v1 endpoints."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from referhub.api.deps import get_notification_service
from referhub.auth.context import CallerContext
from referhub.auth.middleware import require_auth
from referhub.notifications.models import NotificationType
from referhub.notifications.service import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


# ==================== MODELS ====================


class NotificationResponse(BaseModel):
    """Notification for the current user."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: NotificationType
    title: str
    message: str
    data: dict[str, Any] | None
    is_read: bool
    created_at: datetime


class MarkReadRequest(BaseModel):
    """Mark notifications as read."""
    notification_ids: list[int] = Field(..., max_length=500)


# ==================== ENDPOINTS ====================


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    caller: CallerContext = Depends(require_auth),
    service: NotificationService = Depends(get_notification_service),
):
    """Get the current user's latest notifications."""
    return service.list_notifications(caller, unread_only=unread_only, limit=limit)


@router.get("/unread-count")
async def unread_count(
    caller: CallerContext = Depends(require_auth),
    service: NotificationService = Depends(get_notification_service),
):
    return {"unread": service.unread_count(caller)}


@router.put("")
async def mark_read(
    body: MarkReadRequest,
    caller: CallerContext = Depends(require_auth),
    service: NotificationService = Depends(get_notification_service),
):
    """Mark the given notifications of the current user as read."""
    updated = service.mark_read(caller, body.notification_ids)
    return {"success": True, "updated": updated}
