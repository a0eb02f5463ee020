"""Referral status API v1 endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from referhub.api.deps import get_status_service
from referhub.auth.context import CallerContext
from referhub.auth.middleware import require_admin, require_auth
from referhub.statuses.service import StatusService

router = APIRouter(prefix="/statuses", tags=["statuses"])


# ==================== MODELS ====================


class StatusCreate(BaseModel):
    """Create status request."""
    name: str = Field(..., min_length=1, max_length=100)
    color: str | None = Field(None, max_length=20)
    description: str | None = None
    is_default: bool = False


class StatusUpdate(BaseModel):
    """Update status request."""
    name: str | None = Field(None, min_length=1, max_length=100)
    color: str | None = Field(None, max_length=20)
    description: str | None = None
    is_default: bool | None = None


class StatusOrder(BaseModel):
    """New position of one status."""
    id: int
    order: int


class ReorderRequest(BaseModel):
    """Batch reorder request."""
    orders: list[StatusOrder] = Field(..., min_length=1)


class StatusResponse(BaseModel):
    """Referral status."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    color: str | None
    description: str | None
    order: int
    is_default: bool
    is_system: bool
    created_at: datetime


# ==================== ENDPOINTS ====================


@router.get("", response_model=list[StatusResponse])
async def list_statuses(
    caller: CallerContext = Depends(require_auth),
    service: StatusService = Depends(get_status_service),
):
    """Statuses in workflow order."""
    return service.list_statuses(caller)


@router.post("", response_model=StatusResponse, status_code=201)
async def create_status(
    body: StatusCreate,
    caller: CallerContext = Depends(require_admin),
    service: StatusService = Depends(get_status_service),
):
    return service.create_status(
        caller,
        name=body.name,
        color=body.color,
        description=body.description,
        is_default=body.is_default,
    )


@router.put("/reorder", response_model=list[StatusResponse])
async def reorder_statuses(
    body: ReorderRequest,
    caller: CallerContext = Depends(require_admin),
    service: StatusService = Depends(get_status_service),
):
    """Apply new positions to several statuses at once."""
    return service.reorder(caller, [(item.id, item.order) for item in body.orders])


@router.patch("/{status_id}", response_model=StatusResponse)
async def update_status(
    status_id: int,
    body: StatusUpdate,
    caller: CallerContext = Depends(require_admin),
    service: StatusService = Depends(get_status_service),
):
    return service.update_status(
        caller,
        status_id,
        name=body.name,
        color=body.color,
        description=body.description,
        is_default=body.is_default,
    )


@router.delete("/{status_id}")
async def delete_status(
    status_id: int,
    caller: CallerContext = Depends(require_admin),
    service: StatusService = Depends(get_status_service),
):
    """Delete a status; its referrals move to the default status."""
    moved = service.delete_status(caller, status_id)
    return {"success": True, "referrals_moved": moved}
