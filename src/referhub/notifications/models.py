"""Notification model."""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Enum as SQLEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from referhub.storage.models import Base, utcnow


class NotificationType(str, Enum):
    """Events a user is told about."""
    NEW_REFERRAL = "NEW_REFERRAL"      # Admins: a referral was submitted
    NEW_MESSAGE = "NEW_MESSAGE"        # A note was added to a referral
    STATUS_CHANGE = "STATUS_CHANGE"    # Referrer: their referral moved
    POINTS_AWARDED = "POINTS_AWARDED"  # Points were credited
    DRAWING_WIN = "DRAWING_WIN"        # Entry selected as a drawing winner


class Notification(Base):
    """Message for a single user, written in the transaction of the event."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )

    type: Mapped[NotificationType] = mapped_column(SQLEnum(NotificationType), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)  # Related entity ids

    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user={self.user_id}, type={self.type})>"
