"""Rewards and points API v1 endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from referhub.api.deps import get_reward_service
from referhub.auth.context import CallerContext
from referhub.auth.middleware import require_admin, require_auth
from referhub.rewards.service import RewardService

router = APIRouter(prefix="/rewards", tags=["rewards"])


# ==================== MODELS ====================


class RewardCreate(BaseModel):
    """Create reward request."""
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    points_cost: int = Field(..., gt=0)


class RewardResponse(BaseModel):
    """Catalog reward."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    points_cost: int
    is_active: bool
    created_at: datetime


class RedemptionResponse(BaseModel):
    """Completed redemption."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    reward_id: int
    points_cost: int
    created_at: datetime


class BalanceResponse(BaseModel):
    """Response with user's points balance."""
    user_id: int
    points: int
    total_earned: int
    total_spent: int


class TransactionResponse(BaseModel):
    """Points ledger row."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount: int
    balance_after: int
    operation: str
    reference_id: int | None
    description: str | None
    created_at: datetime


# ==================== ENDPOINTS ====================


@router.get("", response_model=list[RewardResponse])
async def list_rewards(
    include_inactive: bool = Query(False),
    caller: CallerContext = Depends(require_auth),
    service: RewardService = Depends(get_reward_service),
):
    """List the reward catalog."""
    return service.list_rewards(caller, include_inactive=include_inactive and caller.is_admin)


@router.post("", response_model=RewardResponse, status_code=201)
async def create_reward(
    body: RewardCreate,
    caller: CallerContext = Depends(require_admin),
    service: RewardService = Depends(get_reward_service),
):
    return service.create_reward(caller, body.name, body.points_cost, description=body.description)


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    caller: CallerContext = Depends(require_auth),
    service: RewardService = Depends(get_reward_service),
):
    """Get current user's points balance."""
    return service.get_balance(caller)


@router.get("/transactions", response_model=list[TransactionResponse])
async def list_transactions(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    caller: CallerContext = Depends(require_auth),
    service: RewardService = Depends(get_reward_service),
):
    """Get points ledger history."""
    return service.list_transactions(caller, limit=limit, offset=offset)


@router.get("/redemptions", response_model=list[RedemptionResponse])
async def list_redemptions(
    all_users: bool = Query(False),
    caller: CallerContext = Depends(require_auth),
    service: RewardService = Depends(get_reward_service),
):
    return service.list_redemptions(caller, all_users=all_users)


@router.delete("/{reward_id}")
async def delete_reward(
    reward_id: int,
    caller: CallerContext = Depends(require_admin),
    service: RewardService = Depends(get_reward_service),
):
    """Withdraw a reward from the catalog."""
    service.delete_reward(caller, reward_id)
    return {"success": True}


@router.post("/{reward_id}/redeem", response_model=RedemptionResponse, status_code=201)
async def redeem_reward(
    reward_id: int,
    caller: CallerContext = Depends(require_auth),
    service: RewardService = Depends(get_reward_service),
):
    """Spend points on a reward. Responds 402 when the balance is too low."""
    return service.redeem_reward(caller, reward_id)
