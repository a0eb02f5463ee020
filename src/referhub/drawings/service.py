"""Drawing entry registry and winner selection."""

import secrets
from datetime import datetime

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from referhub.auth.context import CallerContext
from referhub.drawings.models import Drawing, DrawingEntry
from referhub.errors import AlreadyEntered, BadRequest, Conflict, DrawingClosed, DrawingFull, NotFound
from referhub.logging_config import get_logger
from referhub.notifications.models import NotificationType
from referhub.notifications.service import notify
from referhub.organizations.models import User
from referhub.storage.db import Database
from referhub.storage.models import utcnow

logger = get_logger(__name__)


def _get_org_drawing(session: Session, org_id: int, drawing_id: int) -> Drawing:
    drawing = session.get(Drawing, drawing_id)
    if drawing is None or drawing.org_id != org_id:
        raise NotFound("Drawing")
    return drawing


class DrawingService:
    """Service for prize drawings."""

    def __init__(self, database: Database):
        self.db = database
        self.logger = get_logger(__name__)

    def create_drawing(
        self,
        caller: CallerContext,
        name: str,
        prize: str,
        description: str | None = None,
        min_entries: int = 0,
        max_entries: int | None = None,
        starts_at: datetime | None = None,
        ends_at: datetime | None = None,
    ) -> Drawing:
        """Create a drawing (ADMIN+).

        Raises:
            BadRequest: Invalid entry limits or ``ends_at`` before ``starts_at``
        """
        caller.require_admin()

        if min_entries < 0:
            raise BadRequest("Minimum entries must not be negative")
        if max_entries is not None and max_entries < max(min_entries, 1):
            raise BadRequest("Maximum entries must be at least the minimum and at least one")
        if starts_at and ends_at and ends_at <= starts_at:
            raise BadRequest("Drawing must end after it starts")

        with self.db.session() as session:
            drawing = Drawing(
                org_id=caller.org_id,
                created_by_id=caller.user_id,
                name=name,
                description=description,
                prize=prize,
                min_entries=min_entries,
                max_entries=max_entries,
                starts_at=starts_at,
                ends_at=ends_at,
            )
            session.add(drawing)
            session.flush()

            self.logger.info("drawing_created", org_id=caller.org_id, drawing_id=drawing.id, prize=prize)
            return drawing

    def list_drawings(self, caller: CallerContext, include_completed: bool = True) -> list[Drawing]:
        """List the organization's drawings, newest first."""
        with self.db.session() as session:
            query = session.query(Drawing).filter(Drawing.org_id == caller.org_id)
            if not include_completed:
                query = query.filter(Drawing.is_completed == False)  # noqa: E712
            return query.order_by(Drawing.created_at.desc(), Drawing.id.desc()).all()

    def get_drawing(self, caller: CallerContext, drawing_id: int) -> Drawing:
        with self.db.session() as session:
            return _get_org_drawing(session, caller.org_id, drawing_id)

    def count_entries(self, caller: CallerContext, drawing_id: int) -> int:
        with self.db.session() as session:
            drawing = _get_org_drawing(session, caller.org_id, drawing_id)
            return session.query(func.count(DrawingEntry.id)).filter(
                DrawingEntry.drawing_id == drawing.id
            ).scalar() or 0

    def list_entries(self, caller: CallerContext, drawing_id: int) -> list[DrawingEntry]:
        """Entries of a drawing in entry order (ADMIN+)."""
        caller.require_admin()
        with self.db.session() as session:
            drawing = _get_org_drawing(session, caller.org_id, drawing_id)
            return session.query(DrawingEntry).filter(
                DrawingEntry.drawing_id == drawing.id
            ).order_by(DrawingEntry.created_at.asc(), DrawingEntry.id.asc()).all()

    def enter(self, caller: CallerContext, drawing_id: int) -> DrawingEntry:
        """Enter the caller into a drawing.

        Checks run in this order: the drawing exists, it is still open, the
        caller has not entered yet, and it is not full. Both the drawing and
        the user are loaded first, so the only integrity error left is the
        unique constraint on ``(drawing_id, user_id)``: two concurrent
        entries by the same user both pass the pre-check and the second
        insert is reported as ``AlreadyEntered``.

        Raises:
            NotFound: Unknown or foreign drawing, or unknown user
            DrawingClosed: Winner already selected
            AlreadyEntered: The caller already has an entry
            DrawingFull: ``max_entries`` reached
        """
        try:
            with self.db.session() as session:
                drawing = _get_org_drawing(session, caller.org_id, drawing_id)
                user = session.get(User, caller.user_id)
                if user is None or user.org_id != caller.org_id:
                    raise NotFound("User")
                if drawing.is_completed:
                    raise DrawingClosed()

                existing = session.query(DrawingEntry.id).filter(
                    DrawingEntry.drawing_id == drawing.id,
                    DrawingEntry.user_id == caller.user_id,
                ).first()
                if existing:
                    raise AlreadyEntered()

                if drawing.max_entries is not None:
                    entry_count = session.query(func.count(DrawingEntry.id)).filter(
                        DrawingEntry.drawing_id == drawing.id
                    ).scalar() or 0
                    if entry_count >= drawing.max_entries:
                        raise DrawingFull()

                entry = DrawingEntry(drawing_id=drawing.id, user_id=caller.user_id)
                session.add(entry)
                session.flush()
        except IntegrityError:
            self.logger.info("drawing_entry_duplicate", drawing_id=drawing_id, user_id=caller.user_id)
            raise AlreadyEntered()

        self.logger.info("drawing_entered", drawing_id=drawing_id, user_id=caller.user_id, entry_id=entry.id)
        return entry

    def select_winner(
        self,
        caller: CallerContext,
        drawing_id: int,
        entry_id: int | None = None,
    ) -> DrawingEntry:
        """Pick the winning entry and close the drawing (ADMIN+).

        Without ``entry_id`` a winner is chosen uniformly at random. Closing
        is a conditional update on ``is_completed``, so a drawing can only be
        drawn once. The winner is notified in the same transaction.

        Raises:
            NotFound: Unknown drawing, or entry not part of the drawing
            DrawingClosed: Winner already selected
            Conflict: Fewer entries than ``min_entries``
        """
        caller.require_admin()

        with self.db.session() as session:
            drawing = _get_org_drawing(session, caller.org_id, drawing_id)
            if drawing.is_completed:
                raise DrawingClosed()

            entries = session.query(DrawingEntry).filter(
                DrawingEntry.drawing_id == drawing.id
            ).order_by(DrawingEntry.id.asc()).all()
            if not entries:
                raise Conflict("Drawing has no entries")
            if len(entries) < drawing.min_entries:
                raise Conflict(
                    f"Drawing needs at least {drawing.min_entries} entries, has {len(entries)}"
                )

            if entry_id is not None:
                winner = next((entry for entry in entries if entry.id == entry_id), None)
                if winner is None:
                    raise NotFound("Entry")
            else:
                winner = secrets.choice(entries)

            closed = session.execute(
                update(Drawing)
                .where(Drawing.id == drawing.id, Drawing.is_completed == False)  # noqa: E712
                .values(is_completed=True, winner_entry_id=winner.id, drawn_at=utcnow())
                .execution_options(synchronize_session=False)
            ).rowcount
            if closed != 1:
                raise DrawingClosed()

            notify(
                session,
                winner.user_id,
                NotificationType.DRAWING_WIN,
                title="Drawing Win",
                message=f"Congratulations! You won {drawing.prize} in the {drawing.name} drawing!",
                data={"drawing_id": drawing.id, "entry_id": winner.id},
            )

            self.logger.info(
                "drawing_winner_selected",
                org_id=caller.org_id,
                drawing_id=drawing.id,
                entry_id=winner.id,
                user_id=winner.user_id,
                entries=len(entries),
            )
            return winner
