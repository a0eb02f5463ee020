"""Registry of every model, imported before creating tables."""

from referhub.content.models import Content, ContentShare, ContentType, SharePlatform
from referhub.drawings.models import Drawing, DrawingEntry
from referhub.notifications.models import Notification, NotificationType
from referhub.organizations.models import Organization, User, UserRole
from referhub.referrals.models import Referral, ReferralCode, ReferralNote
from referhub.rewards.models import PointsTransaction, Redemption, Reward
from referhub.statuses.models import ReferralStatus

__all__ = [
    "Content",
    "ContentShare",
    "ContentType",
    "Drawing",
    "DrawingEntry",
    "Notification",
    "NotificationType",
    "Organization",
    "PointsTransaction",
    "Redemption",
    "ReferralCode",
    "ReferralNote",
    "Referral",
    "ReferralStatus",
    "Reward",
    "SharePlatform",
    "User",
    "UserRole",
]
