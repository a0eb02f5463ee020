"""Resolved caller identity."""

from dataclasses import dataclass

from referhub.errors import Forbidden
from referhub.organizations.models import UserRole


@dataclass(frozen=True)
class CallerContext:
    """The ``(user_id, org_id, role)`` tuple every operation is scoped by."""

    user_id: int
    org_id: int
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role.is_admin

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN

    def require_admin(self) -> None:
        """Raise Forbidden unless the caller is an ADMIN or SUPER_ADMIN."""
        if not self.is_admin:
            raise Forbidden("Admin access required")

    def require_super_admin(self) -> None:
        """Raise Forbidden unless the caller is a SUPER_ADMIN."""
        if not self.is_super_admin:
            raise Forbidden("Super admin access required")
