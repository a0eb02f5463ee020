"""
Tests for points accounting and reward redemption.

Covers:
- Reward catalog management
- Redemption success and insufficient balance
- Concurrent redemptions against one balance
- Ledger invariant points = total_earned - redeemed
"""
from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest
from sqlalchemy import func

from conftest import balance_of, caller_for, credit
from referhub.errors import BadRequest, Forbidden, InsufficientPoints, NotFound
from referhub.rewards.models import PointsTransaction, Redemption
from referhub.rewards.service import award_points


def assert_ledger_consistent(database, user_id):
    """Balance equals lifetime earnings minus redemptions, and matches the ledger"""
    with database.session() as session:
        redeemed = session.query(func.coalesce(func.sum(Redemption.points_cost), 0)).filter(
            Redemption.user_id == user_id
        ).scalar()
        ledger = session.query(func.coalesce(func.sum(PointsTransaction.amount), 0)).filter(
            PointsTransaction.user_id == user_id
        ).scalar()
    points, total_earned = balance_of(database, user_id)
    assert points == total_earned - redeemed
    assert points == ledger


class TestAwardPoints:
    """Tests for award_points"""

    def test_increments_balance_and_total(self, database, client_user):
        credit(database, client_user, 30)
        credit(database, client_user, 20)

        assert balance_of(database, client_user.id) == (50, 50)
        assert_ledger_consistent(database, client_user.id)

    def test_rejects_non_positive_amount(self, database, client_user):
        with database.session() as session:
            with pytest.raises(ValueError):
                award_points(session, client_user.id, 0, operation="conversion")

    def test_unknown_user(self, database):
        with pytest.raises(NotFound):
            with database.session() as session:
                award_points(session, 999999, 10, operation="conversion")


class TestCatalog:
    """Tests for the reward catalog"""

    def test_create_and_list(self, reward_service, admin_caller, client_caller):
        reward = reward_service.create_reward(admin_caller, "Gift Card", 100, description="25 EUR")

        listed = reward_service.list_rewards(client_caller)
        assert [r.id for r in listed] == [reward.id]
        assert listed[0].points_cost == 100

    def test_client_cannot_create(self, reward_service, client_caller):
        with pytest.raises(Forbidden):
            reward_service.create_reward(client_caller, "Gift Card", 100)

    def test_cost_must_be_positive(self, reward_service, admin_caller):
        with pytest.raises(BadRequest):
            reward_service.create_reward(admin_caller, "Free lunch", 0)

    def test_deactivated_reward_hidden(self, reward_service, admin_caller, client_caller):
        reward = reward_service.create_reward(admin_caller, "Gift Card", 100)
        reward_service.delete_reward(admin_caller, reward.id)

        assert reward_service.list_rewards(client_caller) == []
        assert len(reward_service.list_rewards(admin_caller, include_inactive=True)) == 1

    def test_rewards_are_per_organization(self, reward_service, admin_caller, other_admin):
        reward_service.create_reward(admin_caller, "Gift Card", 100)
        assert reward_service.list_rewards(caller_for(other_admin)) == []


class TestRedeemReward:
    """Tests for redeem_reward"""

    def test_insufficient_points_scenario(self, reward_service, database, admin_caller, client_caller, client_user):
        """A user with 80 points cannot buy a 100 point reward"""
        reward = reward_service.create_reward(admin_caller, "Gift Card", 100)
        credit(database, client_user, 80)

        with pytest.raises(InsufficientPoints) as exc_info:
            reward_service.redeem_reward(client_caller, reward.id)

        assert exc_info.value.required == 100
        assert exc_info.value.available == 80
        assert balance_of(database, client_user.id) == (80, 80)
        assert reward_service.list_redemptions(client_caller) == []

    def test_successful_redemption(self, reward_service, database, admin_caller, client_caller, client_user):
        reward = reward_service.create_reward(admin_caller, "Gift Card", 100)
        credit(database, client_user, 150)

        redemption = reward_service.redeem_reward(client_caller, reward.id)

        assert redemption.points_cost == 100
        assert redemption.reward_id == reward.id
        assert balance_of(database, client_user.id) == (50, 150)
        assert_ledger_consistent(database, client_user.id)

    def test_exact_balance(self, reward_service, database, admin_caller, client_caller, client_user):
        """Spending the whole balance leaves zero"""
        reward = reward_service.create_reward(admin_caller, "Mug", 60)
        credit(database, client_user, 60)

        reward_service.redeem_reward(client_caller, reward.id)
        assert balance_of(database, client_user.id) == (0, 60)

    def test_redemption_keeps_cost_snapshot(self, reward_service, database, admin_caller, client_caller, client_user):
        """The recorded cost is what was charged"""
        reward = reward_service.create_reward(admin_caller, "Mug", 60)
        credit(database, client_user, 100)
        reward_service.redeem_reward(client_caller, reward.id)

        redemptions = reward_service.list_redemptions(client_caller)
        assert [r.points_cost for r in redemptions] == [60]

    def test_inactive_reward_not_found(self, reward_service, database, admin_caller, client_caller, client_user):
        reward = reward_service.create_reward(admin_caller, "Mug", 10)
        reward_service.delete_reward(admin_caller, reward.id)
        credit(database, client_user, 100)

        with pytest.raises(NotFound):
            reward_service.redeem_reward(client_caller, reward.id)

    def test_foreign_reward_not_found(self, reward_service, database, other_admin, client_caller, client_user):
        reward = reward_service.create_reward(caller_for(other_admin), "Mug", 10)
        credit(database, client_user, 100)

        with pytest.raises(NotFound):
            reward_service.redeem_reward(client_caller, reward.id)

    def test_concurrent_redemptions(self, reward_service, database, admin_caller, client_caller, client_user):
        """Two 60 point redemptions against 100 points: one succeeds, one is refused"""
        reward = reward_service.create_reward(admin_caller, "Mug", 60)
        credit(database, client_user, 100)
        barrier = Barrier(2)

        def redeem():
            barrier.wait()
            try:
                return reward_service.redeem_reward(client_caller, reward.id)
            except InsufficientPoints as e:
                return e

        with ThreadPoolExecutor(max_workers=2) as pool:
            outcomes = [future.result() for future in [pool.submit(redeem), pool.submit(redeem)]]

        successes = [o for o in outcomes if isinstance(o, Redemption)]
        refusals = [o for o in outcomes if isinstance(o, InsufficientPoints)]
        assert len(successes) == 1
        assert len(refusals) == 1
        assert balance_of(database, client_user.id) == (40, 100)
        assert_ledger_consistent(database, client_user.id)


class TestBalance:
    """Tests for balance and history"""

    def test_balance_summary(self, reward_service, database, admin_caller, client_caller, client_user):
        reward = reward_service.create_reward(admin_caller, "Mug", 30)
        credit(database, client_user, 100)
        reward_service.redeem_reward(client_caller, reward.id)

        balance = reward_service.get_balance(client_caller)
        assert balance == {
            "user_id": client_user.id,
            "points": 70,
            "total_earned": 100,
            "total_spent": 30,
        }

    def test_transactions_newest_first(self, reward_service, database, admin_caller, client_caller, client_user):
        reward = reward_service.create_reward(admin_caller, "Mug", 30)
        credit(database, client_user, 100)
        reward_service.redeem_reward(client_caller, reward.id)

        transactions = reward_service.list_transactions(client_caller)
        assert [(t.operation, t.amount, t.balance_after) for t in transactions] == [
            ("redemption", -30, 70),
            ("conversion", 100, 100),
        ]

    def test_all_redemptions_admin_only(self, reward_service, client_caller):
        with pytest.raises(Forbidden):
            reward_service.list_redemptions(client_caller, all_users=True)
