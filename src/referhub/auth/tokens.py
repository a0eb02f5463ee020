"""Bearer tokens issued by the identity provider.

The service trusts the claims it can verify with the shared secret and does
no credential checks of its own.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from referhub.auth.context import CallerContext
from referhub.errors import Unauthorized
from referhub.logging_config import get_logger
from referhub.organizations.models import UserRole
from referhub.settings import settings

logger = get_logger(__name__)


def create_access_token(
    user_id: int,
    org_id: int,
    role: UserRole,
    expires_in: timedelta | None = None,
) -> str:
    """Create a signed access token.

    Args:
        user_id: User ID (``sub`` claim)
        org_id: Organization ID
        role: User role
        expires_in: Lifetime (defaults to settings)

    Returns:
        Encoded JWT
    """
    expire = datetime.now(timezone.utc) + (expires_in or timedelta(hours=settings.jwt_expire_hours))
    payload = {
        "sub": str(user_id),
        "org_id": org_id,
        "role": UserRole(role).value,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> CallerContext:
    """Decode and verify an access token.

    Raises:
        Unauthorized: If the token is invalid, expired or missing claims
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.debug("token_rejected", reason=str(e))
        raise Unauthorized("Invalid or expired token")

    try:
        return CallerContext(
            user_id=int(payload["sub"]),
            org_id=int(payload["org_id"]),
            role=UserRole(payload["role"]),
        )
    except (KeyError, TypeError, ValueError):
        raise Unauthorized("Token is missing identity claims")
