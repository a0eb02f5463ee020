"""Organization API v1 endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from referhub.api.deps import get_organization_service
from referhub.auth.context import CallerContext
from referhub.auth.middleware import require_admin, require_auth, require_super_admin
from referhub.organizations.models import UserRole
from referhub.organizations.service import OrganizationService
from referhub.settings import settings

router = APIRouter(prefix="/organizations", tags=["organizations"])


# ==================== MODELS ====================


class OrganizationCreate(BaseModel):
    """Create organization request."""
    name: str = Field(..., min_length=1, max_length=255)
    conversion_points: int = Field(default_factory=lambda: settings.default_conversion_points, ge=0)
    admin_email: EmailStr | None = None
    admin_name: str | None = None


class OrganizationResponse(BaseModel):
    """Organization details."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    conversion_status_id: int | None
    conversion_points: int
    created_at: datetime


class OrganizationSummary(BaseModel):
    """Organization row of the super admin listing."""
    id: int
    name: str
    slug: str
    conversion_points: int
    conversion_status_id: int | None
    user_count: int


class SettingsUpdate(BaseModel):
    """Referral program settings update."""
    conversion_points: int | None = Field(None, ge=0)
    conversion_status_id: int | None = None


class StatsResponse(BaseModel):
    """Dashboard totals."""
    total_content: int
    total_shares: int
    total_clicks: int
    total_engagements: int
    total_referrals: int
    total_converted: int


class UserCreate(BaseModel):
    """Add user request."""
    email: EmailStr
    name: str | None = None
    role: UserRole = UserRole.CLIENT


class RoleUpdate(BaseModel):
    """Change role request."""
    role: UserRole


class UserResponse(BaseModel):
    """Organization member."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    org_id: int
    email: str
    name: str | None
    role: UserRole
    points: int
    total_earned: int
    is_active: bool
    created_at: datetime


# ==================== ENDPOINTS ====================


@router.post("", response_model=OrganizationResponse, status_code=201)
async def create_organization(
    body: OrganizationCreate,
    caller: CallerContext = Depends(require_super_admin),
    service: OrganizationService = Depends(get_organization_service),
):
    """Create an organization with the default status set."""
    return service.create_organization_with_defaults(
        name=body.name,
        conversion_points=body.conversion_points,
        admin_email=body.admin_email,
        admin_name=body.admin_name,
        caller=caller,
    )


@router.get("", response_model=list[OrganizationSummary])
async def list_organizations(
    caller: CallerContext = Depends(require_super_admin),
    service: OrganizationService = Depends(get_organization_service),
):
    """List every organization."""
    return service.list_organizations(caller)


@router.get("/me", response_model=OrganizationResponse)
async def get_my_organization(
    caller: CallerContext = Depends(require_auth),
    service: OrganizationService = Depends(get_organization_service),
):
    """Get the caller's organization."""
    return service.get_organization(caller)


@router.patch("/me/settings", response_model=OrganizationResponse)
async def update_settings(
    body: SettingsUpdate,
    caller: CallerContext = Depends(require_admin),
    service: OrganizationService = Depends(get_organization_service),
):
    """Change conversion points or the conversion status."""
    return service.update_settings(
        caller,
        conversion_points=body.conversion_points,
        conversion_status_id=body.conversion_status_id,
    )


@router.get("/me/stats", response_model=StatsResponse)
async def get_stats(
    caller: CallerContext = Depends(require_auth),
    service: OrganizationService = Depends(get_organization_service),
):
    """Get dashboard statistics for the caller's organization."""
    return service.get_stats(caller)


@router.get("/me/users", response_model=list[UserResponse])
async def list_users(
    caller: CallerContext = Depends(require_admin),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.list_users(caller)


@router.post("/me/users", response_model=UserResponse, status_code=201)
async def add_user(
    body: UserCreate,
    caller: CallerContext = Depends(require_admin),
    service: OrganizationService = Depends(get_organization_service),
):
    """Add a member to the caller's organization."""
    return service.add_user(body.email, name=body.name, role=body.role, caller=caller)


@router.patch("/me/users/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: int,
    body: RoleUpdate,
    caller: CallerContext = Depends(require_admin),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.update_user_role(caller, user_id, body.role)
