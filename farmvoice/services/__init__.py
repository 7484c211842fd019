"""Services layer for farmvoice application logic."""

from .notes_service import NotesService

__all__ = [
    "NotesService",
]
