"""Organization administration service."""

import re
import secrets
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from referhub.auth.context import CallerContext
from referhub.content.models import Content, ContentShare
from referhub.errors import BadRequest, Conflict, Forbidden, NotFound
from referhub.logging_config import get_logger
from referhub.organizations.models import Organization, User, UserRole
from referhub.referrals.models import Referral
from referhub.statuses.service import create_default_statuses, get_org_status
from referhub.storage.db import Database

logger = get_logger(__name__)


class OrganizationService:
    """Service for tenants, their users and program settings."""

    def __init__(self, database: Database):
        self.db = database
        self.logger = get_logger(__name__)

    def _generate_slug(self, name: str) -> str:
        """Generate URL-friendly slug from organization name."""
        slug = name.lower().strip()
        slug = re.sub(r'[^a-z0-9\s-]', '', slug)
        slug = re.sub(r'[\s_]+', '-', slug)
        slug = re.sub(r'-+', '-', slug)
        slug = slug.strip('-')

        # Add random suffix to ensure uniqueness
        suffix = secrets.token_hex(4)
        return f"{slug}-{suffix}" if slug else suffix

    def create_organization_with_defaults(
        self,
        name: str,
        conversion_points: int,
        admin_email: str | None = None,
        admin_name: str | None = None,
        caller: CallerContext | None = None,
    ) -> Organization:
        """Create an organization with its default statuses.

        The status set comes from ``DEFAULT_STATUSES``; its "Converted" stage
        becomes the conversion status. When ``admin_email`` is given the
        organization also gets a first ADMIN user.

        Args:
            name: Organization name (unique, case-insensitive)
            conversion_points: Points awarded per converted referral
            admin_email: Optional email of the first admin
            admin_name: Optional name of the first admin
            caller: Calling user; None for trusted callers such as the CLI

        Returns:
            Created organization
        """
        if caller is not None:
            caller.require_super_admin()
        if conversion_points < 0:
            raise BadRequest("Conversion points must not be negative")

        name = name.strip()
        try:
            with self.db.session() as session:
                existing = session.query(Organization).filter(
                    func.lower(Organization.name) == name.lower()
                ).first()
                if existing:
                    raise Conflict("Organization with this name already exists")

                org = Organization(
                    name=name,
                    slug=self._generate_slug(name),
                    conversion_points=conversion_points,
                )
                session.add(org)
                session.flush()

                statuses = create_default_statuses(session, org)

                if admin_email:
                    self._ensure_email_free(session, admin_email)
                    session.add(User(
                        org_id=org.id,
                        email=admin_email.lower(),
                        name=admin_name,
                        role=UserRole.ADMIN,
                    ))

                session.flush()
        except IntegrityError:
            raise Conflict("Organization name or admin email already taken")

        self.logger.info(
            "organization_created",
            org_id=org.id,
            name=name,
            statuses=len(statuses),
            conversion_status_id=org.conversion_status_id,
        )
        return org

    def list_organizations(self, caller: CallerContext | None = None) -> list[dict[str, Any]]:
        """List all organizations with member counts (SUPER_ADMIN only)."""
        if caller is not None:
            caller.require_super_admin()

        with self.db.session() as session:
            rows = session.query(
                Organization,
                func.count(User.id),
            ).outerjoin(
                User, User.org_id == Organization.id
            ).group_by(Organization.id).order_by(Organization.name.asc()).all()

            return [
                {
                    "id": org.id,
                    "name": org.name,
                    "slug": org.slug,
                    "conversion_points": org.conversion_points,
                    "conversion_status_id": org.conversion_status_id,
                    "user_count": user_count,
                }
                for org, user_count in rows
            ]

    def get_organization(self, caller: CallerContext) -> Organization:
        """Get the caller's organization."""
        with self.db.session() as session:
            org = session.get(Organization, caller.org_id)
            if org is None:
                raise NotFound("Organization")
            return org

    def update_settings(
        self,
        caller: CallerContext,
        conversion_points: int | None = None,
        conversion_status_id: int | None = None,
    ) -> Organization:
        """Change the referral program settings of the caller's organization."""
        caller.require_admin()

        with self.db.session() as session:
            org = session.get(Organization, caller.org_id)
            if org is None:
                raise NotFound("Organization")

            if conversion_status_id is not None:
                get_org_status(session, caller.org_id, conversion_status_id)
                org.conversion_status_id = conversion_status_id
            if conversion_points is not None:
                if conversion_points < 0:
                    raise BadRequest("Conversion points must not be negative")
                org.conversion_points = conversion_points

            session.flush()
            self.logger.info(
                "organization_settings_updated",
                org_id=org.id,
                conversion_points=org.conversion_points,
                conversion_status_id=org.conversion_status_id,
            )
            return org

    # ==================== USERS ====================

    def _ensure_email_free(self, session, email: str) -> None:
        existing = session.query(User).filter(User.email == email.lower()).first()
        if existing:
            raise Conflict("A user with this email already exists")

    def add_user(
        self,
        email: str,
        name: str | None = None,
        role: UserRole = UserRole.CLIENT,
        caller: CallerContext | None = None,
        org_id: int | None = None,
    ) -> User:
        """Add a user to an organization.

        API callers add to their own organization; trusted callers (CLI)
        pass ``org_id`` instead.

        Raises:
            Conflict: The email is already registered
        """
        if caller is not None:
            caller.require_admin()
            if role == UserRole.SUPER_ADMIN and not caller.is_super_admin:
                raise Forbidden("Only super admins can grant super admin")
            org_id = caller.org_id
        if org_id is None:
            raise NotFound("Organization")

        try:
            with self.db.session() as session:
                if session.get(Organization, org_id) is None:
                    raise NotFound("Organization")
                self._ensure_email_free(session, email)

                user = User(org_id=org_id, email=email.lower(), name=name, role=role)
                session.add(user)
                session.flush()
        except IntegrityError:
            # Lost a race with another insert of the same email
            raise Conflict("A user with this email already exists")

        self.logger.info("user_added", org_id=org_id, user_id=user.id, role=role.value)
        return user

    def list_users(self, caller: CallerContext) -> list[User]:
        """List members of the caller's organization."""
        caller.require_admin()
        with self.db.session() as session:
            return session.query(User).filter(
                User.org_id == caller.org_id
            ).order_by(User.created_at.asc(), User.id.asc()).all()

    def get_user(self, caller: CallerContext, user_id: int) -> User:
        """Get a member of the caller's organization."""
        with self.db.session() as session:
            user = session.get(User, user_id)
            if user is None or user.org_id != caller.org_id:
                raise NotFound("User")
            return user

    def update_user_role(self, caller: CallerContext, user_id: int, role: UserRole) -> User:
        """Change a member's role."""
        caller.require_admin()
        if role == UserRole.SUPER_ADMIN and not caller.is_super_admin:
            raise Forbidden("Only super admins can grant super admin")

        with self.db.session() as session:
            user = session.get(User, user_id)
            if user is None or user.org_id != caller.org_id:
                raise NotFound("User")
            if user.role == UserRole.SUPER_ADMIN and not caller.is_super_admin:
                raise Forbidden("Only super admins can change a super admin")

            user.role = role
            session.flush()
            self.logger.info("user_role_updated", org_id=caller.org_id, user_id=user_id, role=role.value)
            return user

    # ==================== STATS ====================

    def get_stats(self, caller: CallerContext) -> dict[str, int]:
        """Dashboard totals for the caller's organization."""
        with self.db.session() as session:
            content_count = session.query(func.count(Content.id)).filter(
                Content.org_id == caller.org_id
            ).scalar() or 0

            shares_count, clicks, engagements = session.query(
                func.count(ContentShare.id),
                func.coalesce(func.sum(ContentShare.clicks), 0),
                func.coalesce(func.sum(ContentShare.engagements), 0),
            ).join(
                Content, Content.id == ContentShare.content_id
            ).filter(Content.org_id == caller.org_id).one()

            referrals_count = session.query(func.count(Referral.id)).filter(
                Referral.org_id == caller.org_id
            ).scalar() or 0

            converted_count = session.query(func.count(Referral.id)).filter(
                Referral.org_id == caller.org_id,
                Referral.converted_at.isnot(None),
            ).scalar() or 0

            return {
                "total_content": content_count,
                "total_shares": shares_count,
                "total_clicks": int(clicks),
                "total_engagements": int(engagements),
                "total_referrals": referrals_count,
                "total_converted": converted_count,
            }
