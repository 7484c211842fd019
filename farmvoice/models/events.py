"""Platform events delivered by recognition engines and audio recorders.

Backends never touch session state directly: they translate their native
callbacks into one of these events and hand it to the session's
``handle_event``, which maps it onto a state transition.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class RecognitionResultEvent:
    """Current recognition results, each a list of alternatives (best first)."""
    results: List[List[str]] = field(default_factory=list)


@dataclass
class RecognitionErrorEvent:
    """Engine error identified by a short code (e.g. ``no-speech``, ``network``)."""
    error: str
    message: Optional[str] = None


@dataclass
class RecognitionEndEvent:
    """Engine stopped listening, requested or not."""


@dataclass
class ChunkAvailableEvent:
    """One encoded fragment of audio emitted by a recorder."""
    data: bytes
    level: Optional[float] = None  # Peak level 0.0-1.0 when the backend measures it


@dataclass
class RecorderStoppedEvent:
    """Recorder finished flushing; no more chunks will follow."""


@dataclass
class RecorderErrorEvent:
    """Recorder failed while capturing."""
    message: str = ""
