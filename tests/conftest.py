"""
Pytest configuration and shared fixtures.

Every test gets its own file-backed SQLite database so service, concurrency
and HTTP tests run against real transactions.
"""
import pytest

from referhub.auth.context import CallerContext
from referhub.content.service import ContentService
from referhub.drawings.service import DrawingService
from referhub.notifications.service import NotificationService
from referhub.organizations.models import Organization, User, UserRole
from referhub.organizations.service import OrganizationService
from referhub.referrals.service import ReferralService
from referhub.rewards.service import RewardService, award_points
from referhub.statuses.models import ReferralStatus
from referhub.statuses.service import StatusService, sorted_statuses_query
from referhub.storage.db import Database


def caller_for(user: User) -> CallerContext:
    """Caller context of a stored user"""
    return CallerContext(user_id=user.id, org_id=user.org_id, role=user.role)


def credit(database: Database, user: User, amount: int) -> None:
    """Give a user points through the regular award path"""
    with database.session() as session:
        award_points(session, user.id, amount, operation="conversion")


def balance_of(database: Database, user_id: int) -> tuple[int, int]:
    """Current (points, total_earned) of a user"""
    with database.session() as session:
        user = session.get(User, user_id)
        return user.points, user.total_earned


@pytest.fixture
def database(tmp_path):
    """Fresh database with all tables"""
    db = Database(f"sqlite:///{tmp_path / 'referhub.db'}", echo=False)
    db.create_tables()
    yield db
    db.dispose()


@pytest.fixture
def org_service(database):
    return OrganizationService(database)


@pytest.fixture
def status_service(database):
    return StatusService(database)


@pytest.fixture
def referral_service(database):
    return ReferralService(database)


@pytest.fixture
def reward_service(database):
    return RewardService(database)


@pytest.fixture
def drawing_service(database):
    return DrawingService(database)


@pytest.fixture
def content_service(database):
    return ContentService(database, public_base_url="https://ref.acme.io")


@pytest.fixture
def notification_service(database):
    return NotificationService(database)


@pytest.fixture
def org(org_service) -> Organization:
    """Organization with the default statuses and 100 points per conversion"""
    return org_service.create_organization_with_defaults("Acme", conversion_points=100)


@pytest.fixture
def other_org(org_service) -> Organization:
    """Second tenant, for isolation tests"""
    return org_service.create_organization_with_defaults("Globex", conversion_points=10)


@pytest.fixture
def admin(org_service, org) -> User:
    return org_service.add_user("admin@acme.io", name="Ada Admin", role=UserRole.ADMIN, org_id=org.id)


@pytest.fixture
def client_user(org_service, org) -> User:
    return org_service.add_user("carla@acme.io", name="Carla Client", org_id=org.id)


@pytest.fixture
def second_client(org_service, org) -> User:
    return org_service.add_user("bruno@acme.io", name="Bruno Client", org_id=org.id)


@pytest.fixture
def other_admin(org_service, other_org) -> User:
    return org_service.add_user("admin@globex.io", role=UserRole.ADMIN, org_id=other_org.id)


@pytest.fixture
def admin_caller(admin) -> CallerContext:
    return caller_for(admin)


@pytest.fixture
def client_caller(client_user) -> CallerContext:
    return caller_for(client_user)


@pytest.fixture
def statuses(database, org) -> dict[str, ReferralStatus]:
    """Default statuses of ``org`` keyed by name"""
    with database.session() as session:
        return {status.name: status for status in sorted_statuses_query(session, org.id).all()}
