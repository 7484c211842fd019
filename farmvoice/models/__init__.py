"""Data models for the farmvoice application."""

from .transcription import TranscriptionState, StopOrigin, TranscriptionStatus, NO_SPEECH
from .audio import (
    RecordingState,
    PermissionStatus,
    RecordingErrorKind,
    MediaConstraints,
    RecordingSettings,
    RecordedAudio,
    RecordingStatus,
    DEFAULT_MIME_TYPES,
)
from .events import (
    RecognitionResultEvent,
    RecognitionErrorEvent,
    RecognitionEndEvent,
    ChunkAvailableEvent,
    RecorderStoppedEvent,
    RecorderErrorEvent,
)
from .capabilities import Capabilities
from .notes import Note, VoiceNote

__all__ = [
    "Capabilities",
    "TranscriptionState",
    "StopOrigin",
    "TranscriptionStatus",
    "NO_SPEECH",
    "RecordingState",
    "PermissionStatus",
    "RecordingErrorKind",
    "MediaConstraints",
    "RecordingSettings",
    "RecordedAudio",
    "RecordingStatus",
    "DEFAULT_MIME_TYPES",
    # Platform events
    "RecognitionResultEvent",
    "RecognitionErrorEvent",
    "RecognitionEndEvent",
    "ChunkAvailableEvent",
    "RecorderStoppedEvent",
    "RecorderErrorEvent",
    # Backend rows
    "Note",
    "VoiceNote",
]
