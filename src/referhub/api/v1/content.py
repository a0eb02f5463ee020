"""Content and sharing API v1 endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field, HttpUrl

from referhub.api.deps import get_content_service
from referhub.auth.context import CallerContext
from referhub.auth.middleware import require_admin, require_auth
from referhub.content.models import ContentType, SharePlatform
from referhub.content.service import ContentService

router = APIRouter(prefix="/content", tags=["content"])


# ==================== MODELS ====================


class ContentCreate(BaseModel):
    """Publish content request."""
    title: str = Field(..., min_length=1, max_length=255)
    url: HttpUrl
    content_type: ContentType = ContentType.LINK
    description: str | None = None


class ContentResponse(BaseModel):
    """Content item."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str | None
    content_type: ContentType
    url: str
    is_active: bool
    created_at: datetime


class ShareCreate(BaseModel):
    """Create share request."""
    platform: SharePlatform = SharePlatform.OTHER


class ShareResponse(BaseModel):
    """Tracked share link."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    content_id: int
    user_id: int
    platform: SharePlatform
    share_url: str
    tracking_id: str
    clicks: int
    engagements: int
    created_at: datetime


# ==================== ENDPOINTS ====================


@router.get("", response_model=list[ContentResponse])
async def list_content(
    content_type: ContentType | None = Query(None),
    caller: CallerContext = Depends(require_auth),
    service: ContentService = Depends(get_content_service),
):
    return service.list_content(caller, content_type=content_type)


@router.post("", response_model=ContentResponse, status_code=201)
async def create_content(
    body: ContentCreate,
    caller: CallerContext = Depends(require_admin),
    service: ContentService = Depends(get_content_service),
):
    """Publish a content item."""
    return service.create_content(
        caller,
        title=body.title,
        url=str(body.url),
        content_type=body.content_type,
        description=body.description,
    )


@router.get("/shares", response_model=list[ShareResponse])
async def list_shares(
    all_users: bool = Query(False),
    caller: CallerContext = Depends(require_auth),
    service: ContentService = Depends(get_content_service),
):
    """Shares with their click and engagement counts."""
    return service.list_shares(caller, all_users=all_users)


@router.get("/{content_id}", response_model=ContentResponse)
async def get_content(
    content_id: int,
    caller: CallerContext = Depends(require_auth),
    service: ContentService = Depends(get_content_service),
):
    return service.get_content(caller, content_id)


@router.delete("/{content_id}")
async def deactivate_content(
    content_id: int,
    caller: CallerContext = Depends(require_admin),
    service: ContentService = Depends(get_content_service),
):
    service.deactivate_content(caller, content_id)
    return {"success": True}


@router.post("/{content_id}/shares", response_model=ShareResponse, status_code=201)
async def create_share(
    content_id: int,
    body: ShareCreate,
    caller: CallerContext = Depends(require_auth),
    service: ContentService = Depends(get_content_service),
):
    """Create a tracked share link for the current user."""
    return service.create_share(caller, content_id, platform=body.platform)
