"""Referral status registry."""

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from referhub.auth.context import CallerContext
from referhub.errors import Conflict, Forbidden, NotFound
from referhub.logging_config import get_logger
from referhub.organizations.models import Organization
from referhub.referrals.models import Referral
from referhub.statuses.models import ReferralStatus
from referhub.storage.db import Database

logger = get_logger(__name__)

# Status set every new organization starts with
DEFAULT_STATUSES = [
    {"name": "Pending", "color": "#94A3B8", "description": "New referral awaiting review", "is_default": True},
    {"name": "Contacted", "color": "#3B82F6", "description": "Initial contact made with referral"},
    {"name": "In Progress", "color": "#10B981", "description": "Actively working with referral"},
    {"name": "Converted", "color": "#059669", "description": "Referral has become a customer", "is_conversion": True},
    {"name": "Not Interested", "color": "#EF4444", "description": "Referral declined to proceed"},
]


def sorted_statuses_query(session: Session, org_id: int):
    """Statuses of an organization in workflow order."""
    return session.query(ReferralStatus).filter(
        ReferralStatus.org_id == org_id
    ).order_by(
        ReferralStatus.order.asc(),
        ReferralStatus.created_at.asc(),
        ReferralStatus.id.asc(),
    )


def get_default_status(session: Session, org_id: int) -> ReferralStatus | None:
    """Return the status new referrals start in."""
    return session.query(ReferralStatus).filter(
        ReferralStatus.org_id == org_id,
        ReferralStatus.is_default == True,  # noqa: E712
    ).first()


def get_org_status(session: Session, org_id: int, status_id: int) -> ReferralStatus:
    """Load a status of the organization or raise NotFound."""
    status = session.get(ReferralStatus, status_id)
    if status is None or status.org_id != org_id:
        raise NotFound("Status")
    return status


def _clear_default(session: Session, org_id: int) -> None:
    """Drop the default flag from every status of the organization."""
    session.execute(
        update(ReferralStatus)
        .where(
            ReferralStatus.org_id == org_id,
            ReferralStatus.is_default == True,  # noqa: E712
        )
        .values(is_default=False)
    )


def create_default_statuses(session: Session, org: Organization) -> list[ReferralStatus]:
    """Create the default status set inside the caller's transaction.

    The status flagged ``is_conversion`` becomes the organization's
    conversion status. Pending and Converted are system statuses.
    """
    statuses = []
    for order, preset in enumerate(DEFAULT_STATUSES):
        is_default = preset.get("is_default", False)
        is_conversion = preset.get("is_conversion", False)
        status = ReferralStatus(
            org_id=org.id,
            name=preset["name"],
            color=preset["color"],
            description=preset["description"],
            order=order,
            is_default=is_default,
            is_system=is_default or is_conversion,
        )
        session.add(status)
        session.flush()
        if is_conversion:
            org.conversion_status_id = status.id
        statuses.append(status)
    return statuses


class StatusService:
    """Service for managing an organization's referral statuses."""

    def __init__(self, database: Database):
        self.db = database
        self.logger = get_logger(__name__)

    def list_statuses(self, caller: CallerContext) -> list[ReferralStatus]:
        """List statuses sorted by order, ties broken by creation time."""
        with self.db.session() as session:
            return sorted_statuses_query(session, caller.org_id).all()

    def create_status(
        self,
        caller: CallerContext,
        name: str,
        color: str | None = None,
        description: str | None = None,
        is_default: bool = False,
    ) -> ReferralStatus:
        """Append a new status at the end of the workflow.

        The first status of an organization always becomes its default.
        A new default clears the flag on every other status of the
        organization in the same transaction.

        Raises:
            Conflict: A concurrent change claimed the default first
        """
        caller.require_admin()

        try:
            with self.db.session() as session:
                highest_order = session.query(func.max(ReferralStatus.order)).filter(
                    ReferralStatus.org_id == caller.org_id
                ).scalar()

                make_default = is_default or get_default_status(session, caller.org_id) is None
                if make_default:
                    _clear_default(session, caller.org_id)

                status = ReferralStatus(
                    org_id=caller.org_id,
                    name=name,
                    color=color,
                    description=description,
                    order=(highest_order if highest_order is not None else -1) + 1,
                    is_default=make_default,
                    is_system=False,
                )
                session.add(status)
                session.flush()
        except IntegrityError:
            raise Conflict("Another status was made default at the same time")

        self.logger.info(
            "status_created",
            org_id=caller.org_id,
            status_id=status.id,
            name=name,
            is_default=make_default,
        )
        return status

    def update_status(
        self,
        caller: CallerContext,
        status_id: int,
        name: str | None = None,
        color: str | None = None,
        description: str | None = None,
        is_default: bool | None = None,
    ) -> ReferralStatus:
        """Update a status.

        Raises:
            Forbidden: Renaming a system status
            Conflict: Unsetting the default flag of the current default
        """
        caller.require_admin()

        with self.db.session() as session:
            status = get_org_status(session, caller.org_id, status_id)

            if name is not None and name != status.name:
                if status.is_system:
                    raise Forbidden("Cannot rename a system status")
                status.name = name
            if color is not None:
                status.color = color
            if description is not None:
                status.description = description

            if is_default is True and not status.is_default:
                _clear_default(session, caller.org_id)
                status.is_default = True
            elif is_default is False and status.is_default:
                raise Conflict("Set another status as default instead")

            session.flush()
            self.logger.info("status_updated", org_id=caller.org_id, status_id=status_id)
            return status

    def delete_status(self, caller: CallerContext, status_id: int) -> int:
        """Delete a status, moving its referrals to the default status.

        Returns:
            Number of referrals moved
        """
        caller.require_admin()

        with self.db.session() as session:
            status = get_org_status(session, caller.org_id, status_id)

            if status.is_system:
                raise Forbidden("Cannot delete system status")
            if status.is_default:
                raise Forbidden("Cannot delete default status")

            org = session.get(Organization, caller.org_id)
            if org is not None and org.conversion_status_id == status.id:
                raise Forbidden("Cannot delete the conversion status")

            default_status = get_default_status(session, caller.org_id)
            if default_status is None:
                raise Conflict("No default status found to move referrals to")

            moved = session.execute(
                update(Referral)
                .where(Referral.status_id == status.id)
                .values(status_id=default_status.id)
            ).rowcount
            session.delete(status)

            self.logger.info(
                "status_deleted",
                org_id=caller.org_id,
                status_id=status_id,
                referrals_moved=moved,
            )
            return moved

    def reorder(self, caller: CallerContext, orders: list[tuple[int, int]]) -> list[ReferralStatus]:
        """Apply a batch of ``(status_id, new_order)`` pairs atomically.

        Every id is validated before anything is written, so an unknown id
        leaves all orders untouched.
        """
        caller.require_admin()

        with self.db.session() as session:
            statuses = {}
            for status_id, _ in orders:
                statuses[status_id] = get_org_status(session, caller.org_id, status_id)

            for status_id, new_order in orders:
                statuses[status_id].order = new_order
            session.flush()

            self.logger.info("statuses_reordered", org_id=caller.org_id, count=len(orders))
            return sorted_statuses_query(session, caller.org_id).all()
