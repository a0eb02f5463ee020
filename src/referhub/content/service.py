"""Content sharing and click tracking service."""

import secrets

from sqlalchemy import update
from sqlalchemy.orm import Session

from referhub.auth.context import CallerContext
from referhub.content.models import Content, ContentShare, ContentType, SharePlatform
from referhub.errors import NotFound
from referhub.logging_config import get_logger
from referhub.settings import settings
from referhub.storage.db import Database

logger = get_logger(__name__)


def generate_tracking_id() -> str:
    """Generate an unguessable tracking id for a share link."""
    return secrets.token_urlsafe(16)


def build_share_url(tracking_id: str, base_url: str | None = None) -> str:
    """Public link that counts a click and redirects to the content."""
    base_url = (base_url or settings.public_base_url).rstrip("/")
    return f"{base_url}/api/v1/t/{tracking_id}"


class ContentService:
    """Service for shareable content and tracked share links."""

    def __init__(self, database: Database, public_base_url: str | None = None):
        self.db = database
        self.public_base_url = public_base_url
        self.logger = get_logger(__name__)

    def _get_org_content(self, session: Session, caller: CallerContext, content_id: int) -> Content:
        content = session.get(Content, content_id)
        if content is None or content.org_id != caller.org_id:
            raise NotFound("Content")
        if not content.is_active and not caller.is_admin:
            raise NotFound("Content")
        return content

    # ==================== CONTENT ====================

    def create_content(
        self,
        caller: CallerContext,
        title: str,
        url: str,
        content_type: ContentType = ContentType.LINK,
        description: str | None = None,
    ) -> Content:
        """Publish a content item for members to share (ADMIN+)."""
        caller.require_admin()

        with self.db.session() as session:
            content = Content(
                org_id=caller.org_id,
                created_by_id=caller.user_id,
                title=title,
                description=description,
                content_type=content_type,
                url=url,
            )
            session.add(content)
            session.flush()

            self.logger.info(
                "content_created",
                org_id=caller.org_id,
                content_id=content.id,
                content_type=content_type.value,
            )
            return content

    def list_content(self, caller: CallerContext, content_type: ContentType | None = None) -> list[Content]:
        """Active content of the organization, newest first."""
        with self.db.session() as session:
            query = session.query(Content).filter(
                Content.org_id == caller.org_id,
                Content.is_active == True,  # noqa: E712
            )
            if content_type is not None:
                query = query.filter(Content.content_type == content_type)
            return query.order_by(Content.created_at.desc(), Content.id.desc()).all()

    def get_content(self, caller: CallerContext, content_id: int) -> Content:
        with self.db.session() as session:
            return self._get_org_content(session, caller, content_id)

    def deactivate_content(self, caller: CallerContext, content_id: int) -> Content:
        """Hide a content item; existing share links keep redirecting."""
        caller.require_admin()
        with self.db.session() as session:
            content = self._get_org_content(session, caller, content_id)
            content.is_active = False
            session.flush()
            self.logger.info("content_deactivated", org_id=caller.org_id, content_id=content_id)
            return content

    # ==================== SHARES ====================

    def create_share(
        self,
        caller: CallerContext,
        content_id: int,
        platform: SharePlatform = SharePlatform.OTHER,
    ) -> ContentShare:
        """Create a tracked share link for the caller.

        Raises:
            NotFound: Unknown, inactive or foreign content
        """
        with self.db.session() as session:
            content = session.get(Content, content_id)
            if content is None or content.org_id != caller.org_id or not content.is_active:
                raise NotFound("Content")

            tracking_id = generate_tracking_id()
            share = ContentShare(
                content_id=content.id,
                user_id=caller.user_id,
                platform=platform,
                share_url=build_share_url(tracking_id, self.public_base_url),
                tracking_id=tracking_id,
                clicks=0,
                engagements=0,
            )
            session.add(share)
            session.flush()

            self.logger.info(
                "content_shared",
                content_id=content.id,
                user_id=caller.user_id,
                platform=platform.value,
                share_id=share.id,
            )
            return share

    def list_shares(self, caller: CallerContext, all_users: bool = False) -> list[ContentShare]:
        """Shares made by the caller, or by the whole organization for admins."""
        if all_users:
            caller.require_admin()

        with self.db.session() as session:
            query = session.query(ContentShare).join(
                Content, Content.id == ContentShare.content_id
            ).filter(Content.org_id == caller.org_id)
            if not all_users:
                query = query.filter(ContentShare.user_id == caller.user_id)
            return query.order_by(ContentShare.created_at.desc(), ContentShare.id.desc()).all()

    def _increment(self, session: Session, tracking_id: str, column) -> ContentShare:
        result = session.execute(
            update(ContentShare)
            .where(ContentShare.tracking_id == tracking_id)
            .values({column: column + 1})
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFound("Share")
        return session.query(ContentShare).filter(ContentShare.tracking_id == tracking_id).one()

    def record_click(self, tracking_id: str) -> str:
        """Count one click on a share link and return the content URL.

        Public and not deduplicated; the counter is incremented in the
        database so concurrent clicks are all counted.
        """
        with self.db.session() as session:
            share = self._increment(session, tracking_id, ContentShare.clicks)
            content = session.get(Content, share.content_id)

            self.logger.info("share_click_tracked", share_id=share.id, clicks=share.clicks)
            return content.url

    def record_engagement(self, tracking_id: str) -> ContentShare:
        """Count one engagement (like, comment, reshare) reported for a share."""
        with self.db.session() as session:
            share = self._increment(session, tracking_id, ContentShare.engagements)
            self.logger.info("share_engagement_tracked", share_id=share.id, engagements=share.engagements)
            return share
