"""
Tests for organization administration.

Covers:
- Creating organizations with defaults
- Program settings
- Users and roles
"""
from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from conftest import caller_for
from referhub.errors import BadRequest, Conflict, Forbidden, NotFound
from referhub.organizations.models import User, UserRole
from referhub.statuses.models import ReferralStatus


class TestCreateOrganization:
    """Tests for create_organization_with_defaults"""

    def test_creates_statuses_and_admin(self, org_service, database):
        org = org_service.create_organization_with_defaults(
            "Initech", conversion_points=25, admin_email="Boss@Initech.io", admin_name="Bill"
        )

        with database.session() as session:
            statuses = session.query(ReferralStatus).filter(ReferralStatus.org_id == org.id).all()
            admin = session.query(User).filter(User.org_id == org.id).one()

        assert len(statuses) == 5
        assert org.conversion_status_id in {s.id for s in statuses}
        assert admin.email == "boss@initech.io"
        assert admin.role == UserRole.ADMIN
        assert org.slug.startswith("initech-")

    def test_duplicate_name(self, org_service, org):
        with pytest.raises(Conflict):
            org_service.create_organization_with_defaults("ACME", conversion_points=10)

    def test_negative_points(self, org_service):
        with pytest.raises(BadRequest):
            org_service.create_organization_with_defaults("Hooli", conversion_points=-1)

    def test_super_admin_required(self, org_service, admin_caller):
        with pytest.raises(Forbidden):
            org_service.create_organization_with_defaults("Hooli", conversion_points=10, caller=admin_caller)

    def test_super_admin_lists_all(self, org_service, org, other_org):
        root = org_service.add_user("root@acme.io", role=UserRole.SUPER_ADMIN, org_id=org.id)

        listed = org_service.list_organizations(caller_for(root))
        assert [o["name"] for o in listed] == ["Acme", "Globex"]
        assert listed[0]["user_count"] == 1


class TestSettings:
    """Tests for update_settings"""

    def test_update_points(self, org_service, admin_caller):
        org = org_service.update_settings(admin_caller, conversion_points=75)
        assert org.conversion_points == 75
        assert org_service.get_organization(admin_caller).conversion_points == 75

    def test_foreign_conversion_status(self, org_service, admin_caller, database, other_org):
        with database.session() as session:
            foreign = session.query(ReferralStatus).filter(ReferralStatus.org_id == other_org.id).first()
        with pytest.raises(NotFound):
            org_service.update_settings(admin_caller, conversion_status_id=foreign.id)

    def test_client_forbidden(self, org_service, client_caller):
        with pytest.raises(Forbidden):
            org_service.update_settings(client_caller, conversion_points=1)


class TestUsers:
    """Tests for user management"""

    def test_add_user(self, org_service, admin_caller):
        user = org_service.add_user("new@acme.io", name="Nina", caller=admin_caller)
        assert user.org_id == admin_caller.org_id
        assert user.role == UserRole.CLIENT
        assert user.points == 0

    def test_duplicate_email(self, org_service, admin_caller, client_user):
        with pytest.raises(Conflict):
            org_service.add_user("CARLA@acme.io", caller=admin_caller)

    def test_concurrent_same_email(self, org_service, admin_caller, database):
        """Two admins adding the same email at once: one user, one conflict"""
        barrier = Barrier(2)

        def add():
            barrier.wait()
            try:
                return org_service.add_user("twin@acme.io", caller=admin_caller)
            except Conflict as e:
                return e

        with ThreadPoolExecutor(max_workers=2) as pool:
            outcomes = [future.result() for future in [pool.submit(add), pool.submit(add)]]

        assert sum(isinstance(o, User) for o in outcomes) == 1
        assert sum(isinstance(o, Conflict) for o in outcomes) == 1
        with database.session() as session:
            assert session.query(User).filter(User.email == "twin@acme.io").count() == 1

    def test_admin_cannot_grant_super_admin(self, org_service, admin_caller, client_user):
        with pytest.raises(Forbidden):
            org_service.add_user("root@acme.io", role=UserRole.SUPER_ADMIN, caller=admin_caller)
        with pytest.raises(Forbidden):
            org_service.update_user_role(admin_caller, client_user.id, UserRole.SUPER_ADMIN)

    def test_promote_to_admin(self, org_service, admin_caller, client_user):
        promoted = org_service.update_user_role(admin_caller, client_user.id, UserRole.ADMIN)
        assert promoted.role == UserRole.ADMIN

    def test_users_are_per_organization(self, org_service, admin_caller, other_admin):
        with pytest.raises(NotFound):
            org_service.get_user(admin_caller, other_admin.id)
        assert other_admin.id not in {u.id for u in org_service.list_users(admin_caller)}
