"""Marketing content and share tracking models."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, DateTime, Enum as SQLEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from referhub.storage.models import Base, utcnow


class ContentType(str, Enum):
    """Kinds of shareable content."""
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    ARTICLE = "ARTICLE"
    LINK = "LINK"


class SharePlatform(str, Enum):
    """Where a share was posted."""
    FACEBOOK = "FACEBOOK"
    TWITTER = "TWITTER"
    LINKEDIN = "LINKEDIN"
    INSTAGRAM = "INSTAGRAM"
    EMAIL = "EMAIL"
    OTHER = "OTHER"


class Content(Base):
    """Content item an organization publishes for members to share."""

    __tablename__ = "content"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), nullable=False, index=True
    )
    created_by_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    content_type: Mapped[ContentType] = mapped_column(
        SQLEnum(ContentType), default=ContentType.LINK, nullable=False
    )
    url: Mapped[str] = mapped_column(String(2048), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Content(id={self.id}, title='{self.title}')>"


class ContentShare(Base):
    """One user's share of a content item, reachable through ``tracking_id``."""

    __tablename__ = "content_shares"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("content.id"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )

    platform: Mapped[SharePlatform] = mapped_column(
        SQLEnum(SharePlatform), default=SharePlatform.OTHER, nullable=False
    )
    share_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    tracking_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)

    # Statistics
    clicks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    engagements: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("clicks >= 0", name="ck_content_shares_clicks"),
        CheckConstraint("engagements >= 0", name="ck_content_shares_engagements"),
    )

    def __repr__(self) -> str:
        return f"<ContentShare(id={self.id}, tracking_id={self.tracking_id}, clicks={self.clicks})>"
