"""Shareable content and tracked share links."""

from referhub.content.models import Content, ContentShare, ContentType, SharePlatform

__all__ = ["Content", "ContentShare", "ContentType", "SharePlatform"]
