"""Rate limiting configuration for the public endpoints."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from referhub.settings import settings

# Single shared limiter instance - off unless enabled in settings
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200/minute"],
    storage_uri="memory://",
    enabled=settings.rate_limit_enabled,
)
