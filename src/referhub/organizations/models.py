"""Organization (tenant) and user models."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, DateTime, Enum as SQLEnum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from referhub.storage.models import Base, utcnow


class UserRole(str, Enum):
    """Roles a user can hold inside their organization."""
    CLIENT = "CLIENT"            # Submits referrals, shares content, redeems rewards
    ADMIN = "ADMIN"              # Manages statuses, referrals, rewards, drawings, content
    SUPER_ADMIN = "SUPER_ADMIN"  # Admin rights plus tenant creation

    @property
    def is_admin(self) -> bool:
        return self in (UserRole.ADMIN, UserRole.SUPER_ADMIN)


class Organization(Base):
    """Tenant boundary.

    ``conversion_status_id`` designates the single status whose entry awards
    ``conversion_points`` to the referring user. It is kept without a foreign
    key constraint because statuses reference organizations as well.
    """

    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)

    # Referral program
    conversion_status_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    conversion_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("conversion_points >= 0", name="ck_organizations_conversion_points"),
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name='{self.name}')>"


class User(Base):
    """Organization member with a spendable points balance.

    ``points`` is the spendable balance and ``total_earned`` the lifetime sum
    of conversion awards, so ``points == total_earned - sum(redemptions)``.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), nullable=False, index=True
    )

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[UserRole] = mapped_column(SQLEnum(UserRole), default=UserRole.CLIENT, nullable=False)

    # Points
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_earned: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_users_points_non_negative"),
        CheckConstraint("total_earned >= 0", name="ck_users_total_earned_non_negative"),
        CheckConstraint("points <= total_earned", name="ck_users_points_within_earned"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
