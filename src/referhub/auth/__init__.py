"""Caller identity supplied by the external identity provider."""

from referhub.auth.context import CallerContext

__all__ = ["CallerContext"]
