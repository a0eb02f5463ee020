"""Referral ledger service: referrals, status transitions, notes and codes."""

import secrets

from sqlalchemy import update
from sqlalchemy.orm import Session

from referhub.auth.context import CallerContext
from referhub.errors import Conflict, Forbidden, NotFound
from referhub.logging_config import get_logger
from referhub.notifications.models import NotificationType
from referhub.notifications.service import notify, notify_many, org_admin_ids, preview
from referhub.organizations.models import Organization, User
from referhub.referrals.models import Referral, ReferralCode, ReferralNote
from referhub.rewards.service import award_points
from referhub.statuses.service import get_default_status, get_org_status
from referhub.storage.db import Database
from referhub.storage.models import utcnow

logger = get_logger(__name__)


def _generate_unique_code(length: int = 8) -> str:
    """Generate a readable referral code.

    Uses uppercase letters and digits, avoiding confusing characters.
    """
    alphabet = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
    return "".join(secrets.choice(alphabet) for _ in range(length))


def _notify_status_change(session: Session, referral: Referral, status_name: str) -> None:
    notify(
        session,
        referral.referred_by_id,
        NotificationType.STATUS_CHANGE,
        title="Status Changed",
        message=f"Referral {referral.name} status changed to {status_name}",
        data={"referral_id": referral.id, "status_id": referral.status_id},
    )


class ReferralService:
    """Service for the referral lifecycle."""

    def __init__(self, database: Database):
        self.db = database
        self.logger = get_logger(__name__)

    # ==================== HELPERS ====================

    def _get_visible_referral(self, session: Session, caller: CallerContext, referral_id: int) -> Referral:
        """Referral of the caller's organization the caller may see.

        Clients only see referrals they submitted.
        """
        referral = session.get(Referral, referral_id)
        if referral is None or referral.org_id != caller.org_id:
            raise NotFound("Referral")
        if not caller.is_admin and referral.referred_by_id != caller.user_id:
            raise NotFound("Referral")
        return referral

    def _insert_referral(
        self,
        session: Session,
        org_id: int,
        referred_by_id: int,
        name: str,
        email: str,
        phone: str | None,
        submitted_by_id: int | None = None,
    ) -> Referral:
        """Insert a referral in the default status and tell the admins."""
        default_status = get_default_status(session, org_id)
        if default_status is None:
            raise Conflict("No default referral status configured")

        referral = Referral(
            org_id=org_id,
            referred_by_id=referred_by_id,
            status_id=default_status.id,
            name=name,
            email=email,
            phone=phone,
            points_awarded=0,
        )
        session.add(referral)
        session.flush()

        notify_many(
            session,
            set(org_admin_ids(session, org_id)) - {referred_by_id, submitted_by_id},
            NotificationType.NEW_REFERRAL,
            title="New Referral",
            message=f"New referral received: {name}",
            data={"referral_id": referral.id},
        )
        return referral

    # ==================== REFERRALS ====================

    def create_referral(
        self,
        caller: CallerContext,
        name: str,
        email: str,
        phone: str | None = None,
        referred_by_id: int | None = None,
    ) -> Referral:
        """Record a referral in the organization's default status.

        Admins may submit on behalf of another member via ``referred_by_id``.

        Raises:
            NotFound: Referring user is not a member of the organization
            Conflict: The organization has no default status
        """
        if referred_by_id is None:
            referred_by_id = caller.user_id
        elif referred_by_id != caller.user_id:
            caller.require_admin()

        with self.db.session() as session:
            referrer = session.get(User, referred_by_id)
            if referrer is None or referrer.org_id != caller.org_id:
                raise NotFound("User")

            referral = self._insert_referral(
                session, caller.org_id, referred_by_id, name, email, phone, submitted_by_id=caller.user_id
            )

            self.logger.info(
                "referral_created",
                org_id=caller.org_id,
                referral_id=referral.id,
                referred_by_id=referred_by_id,
                status_id=referral.status_id,
            )
            return referral

    def get_referral(self, caller: CallerContext, referral_id: int) -> Referral:
        """Get a referral visible to the caller."""
        with self.db.session() as session:
            return self._get_visible_referral(session, caller, referral_id)

    def list_referrals(self, caller: CallerContext, status_id: int | None = None) -> list[Referral]:
        """List referrals, newest first.

        Admins see the whole organization, clients only their own.
        """
        with self.db.session() as session:
            query = session.query(Referral).filter(Referral.org_id == caller.org_id)
            if not caller.is_admin:
                query = query.filter(Referral.referred_by_id == caller.user_id)
            if status_id is not None:
                query = query.filter(Referral.status_id == status_id)
            return query.order_by(Referral.created_at.desc(), Referral.id.desc()).all()

    def update_contact(
        self,
        caller: CallerContext,
        referral_id: int,
        name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
    ) -> Referral:
        """Edit the referred contact's details."""
        with self.db.session() as session:
            referral = self._get_visible_referral(session, caller, referral_id)
            if name is not None:
                referral.name = name
            if email is not None:
                referral.email = email
            if phone is not None:
                referral.phone = phone
            session.flush()
            return referral

    def transition_status(self, caller: CallerContext, referral_id: int, new_status_id: int) -> Referral:
        """Move a referral to another status.

        Entering the organization's conversion status for the first time
        stamps ``converted_at``, records ``points_awarded`` and credits the
        referring user in the same transaction. The check is a conditional
        UPDATE on ``converted_at IS NULL`` and on the referral not already
        sitting in that status, so repeating the transition (or racing it)
        never awards twice. A referral that was already in a status when it
        became the conversion status stays unconverted until it moves out
        and back in.

        Raises:
            Forbidden: Caller is not an admin, or the referral belongs to
                another organization
            NotFound: Unknown referral, or status outside the organization
        """
        caller.require_admin()

        with self.db.session() as session:
            referral = session.get(Referral, referral_id)
            if referral is None:
                raise NotFound("Referral")
            if referral.org_id != caller.org_id:
                raise Forbidden("You do not have permission to update this referral")

            status = get_org_status(session, referral.org_id, new_status_id)
            org = session.get(Organization, referral.org_id)

            if org.conversion_status_id is not None and status.id == org.conversion_status_id:
                now = utcnow()
                points = org.conversion_points
                converted = session.execute(
                    update(Referral)
                    .where(
                        Referral.id == referral.id,
                        Referral.status_id != status.id,
                        Referral.converted_at.is_(None),
                    )
                    .values(
                        status_id=status.id,
                        converted_at=now,
                        points_awarded=points,
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False)
                ).rowcount == 1

                if converted:
                    if points > 0:
                        award_points(
                            session,
                            user_id=referral.referred_by_id,
                            amount=points,
                            operation="conversion",
                            reference_id=referral.id,
                            description=f"Referral #{referral.id} converted",
                        )
                    session.refresh(referral)
                    _notify_status_change(session, referral, status.name)
                    self.logger.info(
                        "referral_converted",
                        org_id=referral.org_id,
                        referral_id=referral.id,
                        referred_by_id=referral.referred_by_id,
                        points_awarded=points,
                    )
                    return referral

            # Plain transition, including re-entering the conversion status
            session.refresh(referral)
            previous_status_id = referral.status_id
            referral.status_id = status.id
            session.flush()
            if previous_status_id != status.id:
                _notify_status_change(session, referral, status.name)

            self.logger.info(
                "referral_status_changed",
                org_id=referral.org_id,
                referral_id=referral.id,
                from_status_id=previous_status_id,
                to_status_id=status.id,
            )
            return referral

    # ==================== NOTES ====================

    def add_note(
        self,
        caller: CallerContext,
        referral_id: int,
        content: str,
        is_internal: bool = False,
    ) -> ReferralNote:
        """Comment on a referral. Only admins may write internal notes."""
        if is_internal:
            caller.require_admin()

        with self.db.session() as session:
            referral = self._get_visible_referral(session, caller, referral_id)
            note = ReferralNote(
                referral_id=referral.id,
                author_id=caller.user_id,
                content=content,
                is_internal=is_internal,
            )
            session.add(note)
            session.flush()

            # Admins and the referrer; internal notes stay with the admins
            recipients = set(org_admin_ids(session, referral.org_id))
            if not is_internal:
                recipients.add(referral.referred_by_id)
            recipients.discard(caller.user_id)
            notify_many(
                session,
                recipients,
                NotificationType.NEW_MESSAGE,
                title="New Message",
                message=f"New message on referral {referral.name}: {preview(content)}",
                data={"referral_id": referral.id, "note_id": note.id},
            )

            self.logger.info("referral_note_added", referral_id=referral.id, note_id=note.id, internal=is_internal)
            return note

    def list_notes(self, caller: CallerContext, referral_id: int) -> list[ReferralNote]:
        """Notes of a referral, newest first; internal notes for admins only."""
        with self.db.session() as session:
            referral = self._get_visible_referral(session, caller, referral_id)
            query = session.query(ReferralNote).filter(ReferralNote.referral_id == referral.id)
            if not caller.is_admin:
                query = query.filter(ReferralNote.is_internal == False)  # noqa: E712
            return query.order_by(ReferralNote.created_at.desc(), ReferralNote.id.desc()).all()

    # ==================== REFERRAL CODES ====================

    def get_or_create_code(self, caller: CallerContext) -> ReferralCode:
        """Get the caller's referral code, creating it on first use."""
        with self.db.session() as session:
            existing = session.query(ReferralCode).filter(
                ReferralCode.user_id == caller.user_id
            ).first()
            if existing:
                return existing

            user = session.get(User, caller.user_id)
            if user is None or user.org_id != caller.org_id:
                raise NotFound("User")

            code = _generate_unique_code()
            attempts = 0
            while attempts < 10:
                taken = session.query(ReferralCode.id).filter(ReferralCode.code == code).first()
                if not taken:
                    break
                code = _generate_unique_code()
                attempts += 1

            referral_code = ReferralCode(org_id=caller.org_id, user_id=caller.user_id, code=code)
            session.add(referral_code)
            session.flush()

            self.logger.info("referral_code_created", user_id=caller.user_id, code=code)
            return referral_code

    def track_code_click(self, code: str) -> ReferralCode:
        """Count one visit of a public referral link."""
        code = code.upper().strip()

        with self.db.session() as session:
            result = session.execute(
                update(ReferralCode)
                .where(ReferralCode.code == code)
                .values(clicks=ReferralCode.clicks + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise NotFound("Referral code")

            referral_code = session.query(ReferralCode).filter(ReferralCode.code == code).one()
            self.logger.info("referral_code_click_tracked", code=code, clicks=referral_code.clicks)
            return referral_code

    def submit_via_code(
        self,
        code: str,
        name: str,
        email: str,
        phone: str | None = None,
    ) -> Referral:
        """Create a referral from a public referral link.

        The referral is attributed to the owner of the code.
        """
        code = code.upper().strip()

        with self.db.session() as session:
            referral_code = session.query(ReferralCode).filter(ReferralCode.code == code).first()
            if referral_code is None:
                raise NotFound("Referral code")

            referral = self._insert_referral(
                session, referral_code.org_id, referral_code.user_id, name, email, phone
            )
            self.logger.info(
                "referral_submitted_via_code",
                org_id=referral.org_id,
                referral_id=referral.id,
                code=code,
            )
            return referral
