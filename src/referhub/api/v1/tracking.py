"""Public tracking endpoints: share redirects and referral links.

These endpoints take no bearer token and are rate limited per client IP.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, EmailStr, Field

from referhub.api.deps import get_content_service, get_referral_service
from referhub.api.rate_limit import limiter
from referhub.content.service import ContentService
from referhub.referrals.service import ReferralService

router = APIRouter(tags=["tracking"])


# ==================== MODELS ====================


class PublicReferralCreate(BaseModel):
    """Referral submitted through a public referral link."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str | None = Field(None, max_length=50)


# ==================== ENDPOINTS ====================


@router.get("/t/{tracking_id}")
@limiter.limit("120/minute")
async def follow_share_link(
    request: Request,
    tracking_id: str,
    service: ContentService = Depends(get_content_service),
):
    """Count a click on a share link and redirect to the content."""
    url = service.record_click(tracking_id)
    return RedirectResponse(url=url, status_code=307)


@router.post("/t/{tracking_id}/engagements")
@limiter.limit("60/minute")
async def track_engagement(
    request: Request,
    tracking_id: str,
    service: ContentService = Depends(get_content_service),
):
    """Count an engagement reported for a share."""
    share = service.record_engagement(tracking_id)
    return {"success": True, "engagements": share.engagements}


@router.post("/r/{code}/click")
@limiter.limit("60/minute")
async def track_referral_click(
    request: Request,
    code: str,
    service: ReferralService = Depends(get_referral_service),
):
    """Track a click on a referral link."""
    referral_code = service.track_code_click(code)
    return {"success": True, "clicks": referral_code.clicks}


@router.post("/r/{code}/referrals", status_code=201)
@limiter.limit("10/minute")
async def submit_referral(
    request: Request,
    code: str,
    body: PublicReferralCreate,
    service: ReferralService = Depends(get_referral_service),
):
    """Submit a referral through someone's referral link."""
    referral = service.submit_via_code(code, body.name, body.email, phone=body.phone)
    return {"success": True, "referral_id": referral.id}
