"""Request-scoped dependencies: the database handle and the services."""

from fastapi import Depends, Request

from referhub.content.service import ContentService
from referhub.drawings.service import DrawingService
from referhub.notifications.service import NotificationService
from referhub.organizations.service import OrganizationService
from referhub.referrals.service import ReferralService
from referhub.rewards.service import RewardService
from referhub.statuses.service import StatusService
from referhub.storage.db import Database


def get_database(request: Request) -> Database:
    """Database owned by the running application."""
    return request.app.state.db


def get_organization_service(db: Database = Depends(get_database)) -> OrganizationService:
    return OrganizationService(db)


def get_status_service(db: Database = Depends(get_database)) -> StatusService:
    return StatusService(db)


def get_referral_service(db: Database = Depends(get_database)) -> ReferralService:
    return ReferralService(db)


def get_reward_service(db: Database = Depends(get_database)) -> RewardService:
    return RewardService(db)


def get_drawing_service(db: Database = Depends(get_database)) -> DrawingService:
    return DrawingService(db)


def get_content_service(db: Database = Depends(get_database)) -> ContentService:
    return ContentService(db)


def get_notification_service(db: Database = Depends(get_database)) -> NotificationService:
    return NotificationService(db)
