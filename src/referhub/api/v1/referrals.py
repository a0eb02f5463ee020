"""Referral API v1 endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from referhub.api.deps import get_referral_service
from referhub.auth.context import CallerContext
from referhub.auth.middleware import require_admin, require_auth
from referhub.referrals.service import ReferralService
from referhub.settings import settings

router = APIRouter(prefix="/referrals", tags=["referrals"])


# ==================== MODELS ====================


class ReferralCreate(BaseModel):
    """Submit a referral."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str | None = Field(None, max_length=50)
    referred_by_id: int | None = None


class ContactUpdate(BaseModel):
    """Edit the referred contact."""
    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)


class TransitionRequest(BaseModel):
    """Move a referral to another status."""
    status_id: int


class ReferralResponse(BaseModel):
    """Referral."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    org_id: int
    referred_by_id: int
    status_id: int
    name: str
    email: str
    phone: str | None
    points_awarded: int
    converted_at: datetime | None
    created_at: datetime
    updated_at: datetime


class NoteCreate(BaseModel):
    """Add a note."""
    content: str = Field(..., min_length=1)
    is_internal: bool = False


class NoteResponse(BaseModel):
    """Referral note."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    referral_id: int
    author_id: int
    content: str
    is_internal: bool
    created_at: datetime


class ReferralCodeResponse(BaseModel):
    """Response with user's referral code."""
    code: str
    link: str
    clicks: int


# ==================== ENDPOINTS ====================


@router.get("", response_model=list[ReferralResponse])
async def list_referrals(
    status_id: int | None = Query(None),
    caller: CallerContext = Depends(require_auth),
    service: ReferralService = Depends(get_referral_service),
):
    """List referrals; clients only see their own."""
    return service.list_referrals(caller, status_id=status_id)


@router.post("", response_model=ReferralResponse, status_code=201)
async def create_referral(
    body: ReferralCreate,
    caller: CallerContext = Depends(require_auth),
    service: ReferralService = Depends(get_referral_service),
):
    """Submit a referral in the default status."""
    return service.create_referral(
        caller,
        name=body.name,
        email=body.email,
        phone=body.phone,
        referred_by_id=body.referred_by_id,
    )


@router.get("/code", response_model=ReferralCodeResponse)
async def get_referral_code(
    caller: CallerContext = Depends(require_auth),
    service: ReferralService = Depends(get_referral_service),
):
    """Get current user's referral code.

    Creates a new code if user doesn't have one.
    """
    referral_code = service.get_or_create_code(caller)
    return ReferralCodeResponse(
        code=referral_code.code,
        link=f"{settings.public_base_url.rstrip('/')}/r/{referral_code.code}",
        clicks=referral_code.clicks,
    )


@router.get("/{referral_id}", response_model=ReferralResponse)
async def get_referral(
    referral_id: int,
    caller: CallerContext = Depends(require_auth),
    service: ReferralService = Depends(get_referral_service),
):
    return service.get_referral(caller, referral_id)


@router.patch("/{referral_id}", response_model=ReferralResponse)
async def update_contact(
    referral_id: int,
    body: ContactUpdate,
    caller: CallerContext = Depends(require_auth),
    service: ReferralService = Depends(get_referral_service),
):
    return service.update_contact(
        caller,
        referral_id,
        name=body.name,
        email=body.email,
        phone=body.phone,
    )


@router.put("/{referral_id}/status", response_model=ReferralResponse)
async def transition_status(
    referral_id: int,
    body: TransitionRequest,
    caller: CallerContext = Depends(require_admin),
    service: ReferralService = Depends(get_referral_service),
):
    """Move a referral to another status.

    The first move into the conversion status awards the referrer.
    """
    return service.transition_status(caller, referral_id, body.status_id)


@router.get("/{referral_id}/notes", response_model=list[NoteResponse])
async def list_notes(
    referral_id: int,
    caller: CallerContext = Depends(require_auth),
    service: ReferralService = Depends(get_referral_service),
):
    return service.list_notes(caller, referral_id)


@router.post("/{referral_id}/notes", response_model=NoteResponse, status_code=201)
async def add_note(
    referral_id: int,
    body: NoteCreate,
    caller: CallerContext = Depends(require_auth),
    service: ReferralService = Depends(get_referral_service),
):
    return service.add_note(caller, referral_id, body.content, is_internal=body.is_internal)
