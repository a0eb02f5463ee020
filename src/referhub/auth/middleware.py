"""Authentication dependencies for FastAPI."""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from referhub.auth.context import CallerContext
from referhub.auth.tokens import decode_access_token
from referhub.errors import Unauthorized

# Security scheme
security = HTTPBearer(auto_error=False)


def get_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> CallerContext | None:
    """Resolve the caller from the bearer token, or None when absent."""
    if not credentials:
        return None
    return decode_access_token(credentials.credentials)


def require_auth(caller: CallerContext | None = Depends(get_caller)) -> CallerContext:
    """Require authentication - raises 401 if not authenticated."""
    if caller is None:
        raise Unauthorized("Not authenticated")
    return caller


def require_admin(caller: CallerContext = Depends(require_auth)) -> CallerContext:
    """Require ADMIN or SUPER_ADMIN - raises 403 otherwise."""
    caller.require_admin()
    return caller


def require_super_admin(caller: CallerContext = Depends(require_auth)) -> CallerContext:
    """Require SUPER_ADMIN - raises 403 otherwise."""
    caller.require_super_admin()
    return caller
