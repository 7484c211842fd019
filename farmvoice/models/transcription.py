"""Transcription-related data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TranscriptionState(Enum):
    """Lifecycle of a transcription session."""
    IDLE = "idle"
    LISTENING = "listening"


class StopOrigin(Enum):
    """Who ended (or is ending) the current listening run."""
    NONE = "none"        # Listening, no stop requested
    MANUAL = "manual"    # Consumer called stop() or cleanup()
    ENGINE = "engine"    # Engine ended on its own, restart pending
    ERROR = "error"      # Engine reported a fatal error


# Error code emitted by recognition engines when nothing was said for a while
NO_SPEECH = "no-speech"


@dataclass
class TranscriptionStatus:
    """Snapshot of a transcription session for consumers."""
    state: TranscriptionState = TranscriptionState.IDLE
    text: str = ""
    error: Optional[str] = None

    @property
    def is_listening(self) -> bool:
        return self.state is TranscriptionState.LISTENING
