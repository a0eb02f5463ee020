"""In-app notifications for members and admins."""

from referhub.notifications.models import Notification, NotificationType

__all__ = ["Notification", "NotificationType"]
