"""Drawing API v1 endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from referhub.api.deps import get_drawing_service
from referhub.auth.context import CallerContext
from referhub.auth.middleware import require_admin, require_auth
from referhub.drawings.service import DrawingService

router = APIRouter(prefix="/drawings", tags=["drawings"])


# ==================== MODELS ====================


class DrawingCreate(BaseModel):
    """Create drawing request."""
    name: str = Field(..., min_length=1, max_length=255)
    prize: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    min_entries: int = Field(0, ge=0)
    max_entries: int | None = Field(None, ge=1)
    starts_at: datetime | None = None
    ends_at: datetime | None = None


class WinnerRequest(BaseModel):
    """Select a winner; random when no entry is given."""
    entry_id: int | None = None


class DrawingResponse(BaseModel):
    """Drawing."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    prize: str
    min_entries: int
    max_entries: int | None
    starts_at: datetime | None
    ends_at: datetime | None
    is_completed: bool
    winner_entry_id: int | None
    drawn_at: datetime | None
    created_at: datetime


class EntryResponse(BaseModel):
    """Drawing entry."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    drawing_id: int
    user_id: int
    created_at: datetime


# ==================== ENDPOINTS ====================


@router.get("", response_model=list[DrawingResponse])
async def list_drawings(
    caller: CallerContext = Depends(require_auth),
    service: DrawingService = Depends(get_drawing_service),
):
    return service.list_drawings(caller)


@router.post("", response_model=DrawingResponse, status_code=201)
async def create_drawing(
    body: DrawingCreate,
    caller: CallerContext = Depends(require_admin),
    service: DrawingService = Depends(get_drawing_service),
):
    """Create a drawing."""
    return service.create_drawing(caller, **body.model_dump())


@router.get("/{drawing_id}", response_model=DrawingResponse)
async def get_drawing(
    drawing_id: int,
    caller: CallerContext = Depends(require_auth),
    service: DrawingService = Depends(get_drawing_service),
):
    return service.get_drawing(caller, drawing_id)


@router.get("/{drawing_id}/entries", response_model=list[EntryResponse])
async def list_entries(
    drawing_id: int,
    caller: CallerContext = Depends(require_admin),
    service: DrawingService = Depends(get_drawing_service),
):
    return service.list_entries(caller, drawing_id)


@router.post("/{drawing_id}/entries", response_model=EntryResponse, status_code=201)
async def enter_drawing(
    drawing_id: int,
    caller: CallerContext = Depends(require_auth),
    service: DrawingService = Depends(get_drawing_service),
):
    """Enter the current user into a drawing."""
    return service.enter(caller, drawing_id)


@router.post("/{drawing_id}/winner", response_model=EntryResponse)
async def select_winner(
    drawing_id: int,
    body: WinnerRequest,
    caller: CallerContext = Depends(require_admin),
    service: DrawingService = Depends(get_drawing_service),
):
    """Select the winning entry and close the drawing."""
    return service.select_winner(caller, drawing_id, entry_id=body.entry_id)
