"""Prize drawing models."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from referhub.storage.models import Base, utcnow


class Drawing(Base):
    """Prize drawing run by an organization.

    ``winner_entry_id`` has no foreign key constraint because entries
    reference drawings as well.
    """

    __tablename__ = "drawings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), nullable=False, index=True
    )
    created_by_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    prize: Mapped[str] = mapped_column(String(255), nullable=False)

    # Limits
    min_entries: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_entries: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Schedule (informational)
    starts_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    ends_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Result
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    winner_entry_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    drawn_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Drawing(id={self.id}, name='{self.name}', completed={self.is_completed})>"


class DrawingEntry(Base):
    """A user's single entry into a drawing."""

    __tablename__ = "drawing_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    drawing_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("drawings.id"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("drawing_id", "user_id", name="uq_drawing_entries_drawing_user"),
    )

    def __repr__(self) -> str:
        return f"<DrawingEntry(drawing={self.drawing_id}, user={self.user_id})>"
