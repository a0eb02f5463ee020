"""Prize drawings and their entries."""

from referhub.drawings.models import Drawing, DrawingEntry

__all__ = ["Drawing", "DrawingEntry"]
