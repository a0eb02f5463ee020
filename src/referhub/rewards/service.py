"""Points accounting and reward redemption."""

from typing import Any

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from referhub.auth.context import CallerContext
from referhub.errors import BadRequest, InsufficientPoints, NotFound
from referhub.logging_config import get_logger
from referhub.notifications.models import NotificationType
from referhub.notifications.service import notify
from referhub.organizations.models import User
from referhub.rewards.models import PointsTransaction, Redemption, Reward
from referhub.storage.db import Database

logger = get_logger(__name__)


def award_points(
    session: Session,
    user_id: int,
    amount: int,
    operation: str,
    reference_id: int | None = None,
    description: str | None = None,
) -> PointsTransaction:
    """Credit points to a user inside the caller's transaction.

    Increments both the spendable balance and the lifetime total in one
    statement and appends a ledger row. The user is notified in the same
    transaction. Only the referral conversion transition calls this;
    points are never edited directly.

    Args:
        session: Open session of the enclosing unit of work
        user_id: Receiving user
        amount: Points to add (positive)
        operation: Ledger operation name
        reference_id: Related entity id
        description: Optional description

    Returns:
        Ledger row
    """
    if amount <= 0:
        raise ValueError("Amount must be positive")

    result = session.execute(
        update(User)
        .where(User.id == user_id)
        .values(points=User.points + amount, total_earned=User.total_earned + amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFound("User")

    new_balance = session.query(User.points).filter(User.id == user_id).scalar()
    transaction = PointsTransaction(
        user_id=user_id,
        amount=amount,
        balance_after=new_balance,
        operation=operation,
        reference_id=reference_id,
        description=description,
    )
    session.add(transaction)
    session.flush()

    notify(
        session,
        user_id,
        NotificationType.POINTS_AWARDED,
        title="Points Awarded",
        message=f"You earned {amount} points" + (f": {description}" if description else ""),
        data={"points": amount, "operation": operation, "reference_id": reference_id},
    )

    logger.info(
        "points_awarded",
        user_id=user_id,
        amount=amount,
        operation=operation,
        reference_id=reference_id,
        new_balance=new_balance,
    )
    return transaction


class RewardService:
    """Service for the reward catalog and point spending."""

    def __init__(self, database: Database):
        self.db = database
        self.logger = get_logger(__name__)

    # ==================== CATALOG ====================

    def create_reward(
        self,
        caller: CallerContext,
        name: str,
        points_cost: int,
        description: str | None = None,
    ) -> Reward:
        """Add a reward to the organization's catalog."""
        caller.require_admin()
        if points_cost <= 0:
            raise BadRequest("Points cost must be positive")

        with self.db.session() as session:
            reward = Reward(
                org_id=caller.org_id,
                name=name,
                description=description,
                points_cost=points_cost,
            )
            session.add(reward)
            session.flush()

            self.logger.info("reward_created", org_id=caller.org_id, reward_id=reward.id, cost=points_cost)
            return reward

    def list_rewards(self, caller: CallerContext, include_inactive: bool = False) -> list[Reward]:
        """List the organization's rewards, newest first."""
        with self.db.session() as session:
            query = session.query(Reward).filter(Reward.org_id == caller.org_id)
            if not include_inactive:
                query = query.filter(Reward.is_active == True)  # noqa: E712
            return query.order_by(Reward.created_at.desc(), Reward.id.desc()).all()

    def delete_reward(self, caller: CallerContext, reward_id: int) -> None:
        """Withdraw a reward from the catalog.

        Rewards are deactivated rather than removed so past redemptions
        keep their reference.
        """
        caller.require_admin()

        with self.db.session() as session:
            reward = session.get(Reward, reward_id)
            if reward is None or reward.org_id != caller.org_id:
                raise NotFound("Reward")
            reward.is_active = False

            self.logger.info("reward_deactivated", org_id=caller.org_id, reward_id=reward_id)

    # ==================== REDEMPTION ====================

    def redeem_reward(self, caller: CallerContext, reward_id: int) -> Redemption:
        """Spend the caller's points on a reward.

        The user row is locked and the balance is decremented with a guarded
        UPDATE (``points >= cost``), so concurrent redemptions can never
        spend more than the balance.

        Raises:
            NotFound: Unknown, inactive or foreign reward
            InsufficientPoints: Balance below the reward's cost
        """
        with self.db.session() as session:
            reward = session.get(Reward, reward_id)
            if reward is None or reward.org_id != caller.org_id or not reward.is_active:
                raise NotFound("Reward")

            # SELECT FOR UPDATE serializes redemptions of the same user
            user = session.query(User).filter(
                User.id == caller.user_id
            ).with_for_update().first()
            if user is None or user.org_id != caller.org_id:
                raise NotFound("User")

            cost = reward.points_cost
            result = session.execute(
                update(User)
                .where(User.id == user.id, User.points >= cost)
                .values(points=User.points - cost)
                .execution_options(synchronize_session=False)
            )
            session.refresh(user)

            if result.rowcount != 1:
                self.logger.info(
                    "redemption_rejected",
                    user_id=user.id,
                    reward_id=reward_id,
                    cost=cost,
                    balance=user.points,
                )
                raise InsufficientPoints(cost, user.points)

            redemption = Redemption(
                org_id=caller.org_id,
                user_id=user.id,
                reward_id=reward.id,
                points_cost=cost,
            )
            session.add(redemption)
            session.flush()

            session.add(PointsTransaction(
                user_id=user.id,
                amount=-cost,
                balance_after=user.points,
                operation="redemption",
                reference_id=redemption.id,
                description=f"Redeemed {reward.name}",
            ))
            session.flush()

            self.logger.info(
                "reward_redeemed",
                user_id=user.id,
                reward_id=reward.id,
                cost=cost,
                new_balance=user.points,
            )
            return redemption

    # ==================== BALANCE ====================

    def get_balance(self, caller: CallerContext) -> dict[str, Any]:
        """Current balance, lifetime earnings and total spent."""
        with self.db.session() as session:
            user = session.get(User, caller.user_id)
            if user is None or user.org_id != caller.org_id:
                raise NotFound("User")

            total_spent = session.query(
                func.coalesce(func.sum(Redemption.points_cost), 0)
            ).filter(Redemption.user_id == user.id).scalar()

            return {
                "user_id": user.id,
                "points": user.points,
                "total_earned": user.total_earned,
                "total_spent": int(total_spent),
            }

    def list_transactions(
        self,
        caller: CallerContext,
        limit: int = 50,
        offset: int = 0,
    ) -> list[PointsTransaction]:
        """Points ledger of the caller, newest first."""
        with self.db.session() as session:
            return session.query(PointsTransaction).filter(
                PointsTransaction.user_id == caller.user_id
            ).order_by(
                PointsTransaction.created_at.desc(), PointsTransaction.id.desc()
            ).offset(offset).limit(limit).all()

    def list_redemptions(self, caller: CallerContext, all_users: bool = False) -> list[Redemption]:
        """Redemptions of the caller, or of the whole organization for admins."""
        with self.db.session() as session:
            query = session.query(Redemption).filter(Redemption.org_id == caller.org_id)
            if all_users:
                caller.require_admin()
            else:
                query = query.filter(Redemption.user_id == caller.user_id)
            return query.order_by(Redemption.created_at.desc(), Redemption.id.desc()).all()
