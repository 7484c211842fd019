"""Speech-to-text module for farmvoice."""

from .base import AbstractRecognitionEngine
from .session import TranscriptionSession
from .publisher import TranscriptionPublisher

__all__ = [
    "AbstractRecognitionEngine",
    "TranscriptionSession",
    "TranscriptionPublisher",
]
