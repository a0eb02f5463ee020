"""Referhub - referral marketing backend."""

__version__ = "0.1.0"
