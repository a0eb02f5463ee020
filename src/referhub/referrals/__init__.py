"""Referral ledger: referrals, notes and shareable referral codes."""

from referhub.referrals.models import Referral, ReferralCode, ReferralNote

__all__ = ["Referral", "ReferralCode", "ReferralNote"]
