"""Terminal user interface."""

from .status_screen import StatusScreen

__all__ = ["StatusScreen"]
