"""Add notifications and single default status index

Revision ID: 002_notifications
Revises: 001_initial
Create Date: 2026-10-19

Adds:
- Notifications table (per-user inbox)
- Partial unique index allowing one default status per organization
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "002_notifications"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


NOTIFICATION_TYPES = ("NEW_REFERRAL", "NEW_MESSAGE", "STATUS_CHANGE", "POINTS_AWARDED", "DRAWING_WIN")


def upgrade() -> None:
    """Create notifications and the default status index."""

    # Notifications
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.Enum(*NOTIFICATION_TYPES, name="notificationtype"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"], unique=False)

    # One default status per organization
    op.create_index(
        "uq_referral_statuses_org_default",
        "referral_statuses",
        ["org_id"],
        unique=True,
        sqlite_where=sa.text("is_default"),
        postgresql_where=sa.text("is_default"),
    )


def downgrade() -> None:
    """Drop notifications and the default status index."""
    op.drop_index("uq_referral_statuses_org_default", table_name="referral_statuses")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
