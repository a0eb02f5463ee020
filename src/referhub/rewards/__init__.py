"""Points accounting and reward redemption."""

from referhub.rewards.models import PointsTransaction, Redemption, Reward

__all__ = ["PointsTransaction", "Redemption", "Reward"]
