"""Per-organization referral lifecycle stages."""

from referhub.statuses.models import ReferralStatus

__all__ = ["ReferralStatus"]
