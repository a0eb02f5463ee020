"""Tenants, their members and program settings."""

from referhub.organizations.models import Organization, User, UserRole

__all__ = ["Organization", "User", "UserRole"]
