"""
Tests for content sharing and click tracking.

Covers:
- Content publishing
- Share creation with tracking links
- Click and engagement counting
"""
from concurrent.futures import ThreadPoolExecutor

import pytest

from conftest import caller_for
from referhub.content.models import ContentShare, ContentType, SharePlatform
from referhub.errors import Forbidden, NotFound


@pytest.fixture
def content(content_service, admin_caller):
    return content_service.create_content(
        admin_caller,
        "Spring launch",
        "https://acme.io/blog/spring-launch",
        content_type=ContentType.ARTICLE,
    )


class TestContent:
    """Tests for content publishing"""

    def test_create_and_list(self, content_service, content, client_caller):
        listed = content_service.list_content(client_caller)
        assert [c.id for c in listed] == [content.id]
        assert listed[0].content_type == ContentType.ARTICLE

    def test_filter_by_type(self, content_service, content, client_caller):
        assert content_service.list_content(client_caller, content_type=ContentType.VIDEO) == []

    def test_client_cannot_publish(self, content_service, client_caller):
        with pytest.raises(Forbidden):
            content_service.create_content(client_caller, "Post", "https://acme.io/post")

    def test_foreign_content_not_found(self, content_service, content, other_admin):
        with pytest.raises(NotFound):
            content_service.get_content(caller_for(other_admin), content.id)

    def test_deactivated_content_hidden(self, content_service, content, admin_caller, client_caller):
        content_service.deactivate_content(admin_caller, content.id)

        assert content_service.list_content(client_caller) == []
        with pytest.raises(NotFound):
            content_service.create_share(client_caller, content.id)


class TestShares:
    """Tests for create_share"""

    def test_share_starts_at_zero(self, content_service, content, client_caller):
        share = content_service.create_share(client_caller, content.id, platform=SharePlatform.LINKEDIN)

        assert share.clicks == 0
        assert share.engagements == 0
        assert share.platform == SharePlatform.LINKEDIN
        assert share.share_url == f"https://ref.acme.io/api/v1/t/{share.tracking_id}"

    def test_tracking_ids_are_unique(self, content_service, content, client_caller):
        first = content_service.create_share(client_caller, content.id)
        second = content_service.create_share(client_caller, content.id)

        assert first.tracking_id != second.tracking_id
        assert len(first.tracking_id) >= 16

    def test_foreign_content(self, content_service, content, other_admin):
        with pytest.raises(NotFound):
            content_service.create_share(caller_for(other_admin), content.id)

    def test_list_shares_scope(self, content_service, content, client_caller, second_client, admin_caller):
        content_service.create_share(client_caller, content.id)
        content_service.create_share(caller_for(second_client), content.id)

        assert len(content_service.list_shares(client_caller)) == 1
        assert len(content_service.list_shares(admin_caller, all_users=True)) == 2
        with pytest.raises(Forbidden):
            content_service.list_shares(client_caller, all_users=True)


class TestClickTracking:
    """Tests for record_click and record_engagement"""

    def test_click_returns_content_url(self, content_service, content, client_caller):
        share = content_service.create_share(client_caller, content.id)
        assert content_service.record_click(share.tracking_id) == "https://acme.io/blog/spring-launch"

    def test_unknown_tracking_id(self, content_service):
        with pytest.raises(NotFound):
            content_service.record_click("does-not-exist")
        with pytest.raises(NotFound):
            content_service.record_engagement("does-not-exist")

    def test_concurrent_clicks_all_counted(self, content_service, content, client_caller, database):
        """N clicks, sequential or concurrent, leave clicks == N"""
        share = content_service.create_share(client_caller, content.id)

        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(lambda _: content_service.record_click(share.tracking_id), range(12)))

        with database.session() as session:
            stored = session.query(ContentShare).filter(ContentShare.id == share.id).one()
            assert stored.clicks == 12
            assert stored.engagements == 0

    def test_engagements(self, content_service, content, client_caller):
        share = content_service.create_share(client_caller, content.id)
        content_service.record_engagement(share.tracking_id)
        updated = content_service.record_engagement(share.tracking_id)

        assert updated.engagements == 2
        assert updated.clicks == 0

    def test_clicks_in_stats(self, content_service, org_service, content, client_caller, admin_caller):
        share = content_service.create_share(client_caller, content.id)
        for _ in range(3):
            content_service.record_click(share.tracking_id)

        stats = org_service.get_stats(admin_caller)
        assert stats["total_content"] == 1
        assert stats["total_shares"] == 1
        assert stats["total_clicks"] == 3
