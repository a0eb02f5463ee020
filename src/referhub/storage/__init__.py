"""Persistence layer."""

from referhub.storage.db import Database
from referhub.storage.models import Base

__all__ = ["Base", "Database"]
