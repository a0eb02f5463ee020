"""Notification inbox."""

from typing import Any, Iterable

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from referhub.auth.context import CallerContext
from referhub.logging_config import get_logger
from referhub.notifications.models import Notification, NotificationType
from referhub.organizations.models import User, UserRole
from referhub.storage.db import Database

logger = get_logger(__name__)

# Longest note excerpt copied into a message notification
PREVIEW_LENGTH = 50


def preview(text: str, length: int = PREVIEW_LENGTH) -> str:
    """Shorten text for a notification message."""
    return text if len(text) <= length else text[:length] + "..."


def notify(
    session: Session,
    user_id: int,
    notification_type: NotificationType,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
) -> Notification:
    """Queue a notification inside the caller's transaction.

    The row commits or rolls back together with the event that caused it.
    """
    notification = Notification(
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        data=data,
    )
    session.add(notification)
    logger.debug("notification_queued", user_id=user_id, type=notification_type.value)
    return notification


def notify_many(
    session: Session,
    user_ids: Iterable[int],
    notification_type: NotificationType,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
) -> list[Notification]:
    """Same notification for several users, each listed once."""
    return [
        notify(session, user_id, notification_type, title, message, data)
        for user_id in sorted(set(user_ids))
    ]


def org_admin_ids(session: Session, org_id: int) -> list[int]:
    """Ids of the active admins of an organization."""
    rows = session.query(User.id).filter(
        User.org_id == org_id,
        User.role.in_([UserRole.ADMIN, UserRole.SUPER_ADMIN]),
        User.is_active == True,  # noqa: E712
    ).all()
    return [row.id for row in rows]


class NotificationService:
    """Service for reading a user's notifications."""

    def __init__(self, database: Database):
        self.db = database
        self.logger = get_logger(__name__)

    def list_notifications(
        self,
        caller: CallerContext,
        unread_only: bool = False,
        limit: int = 50,
    ) -> list[Notification]:
        """Caller's notifications, newest first."""
        with self.db.session() as session:
            query = session.query(Notification).filter(Notification.user_id == caller.user_id)
            if unread_only:
                query = query.filter(Notification.is_read == False)  # noqa: E712
            return query.order_by(
                Notification.created_at.desc(), Notification.id.desc()
            ).limit(limit).all()

    def unread_count(self, caller: CallerContext) -> int:
        with self.db.session() as session:
            return session.query(func.count(Notification.id)).filter(
                Notification.user_id == caller.user_id,
                Notification.is_read == False,  # noqa: E712
            ).scalar() or 0

    def mark_read(self, caller: CallerContext, notification_ids: list[int]) -> int:
        """Mark notifications as read.

        Ids belonging to other users are ignored.

        Returns:
            Number of notifications changed
        """
        if not notification_ids:
            return 0

        with self.db.session() as session:
            updated = session.execute(
                update(Notification)
                .where(
                    Notification.id.in_(notification_ids),
                    Notification.user_id == caller.user_id,
                    Notification.is_read == False,  # noqa: E712
                )
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            ).rowcount

            self.logger.info("notifications_read", user_id=caller.user_id, count=updated)
            return updated
