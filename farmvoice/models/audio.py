"""Audio recording data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List


class RecordingState(Enum):
    """Lifecycle of an audio capture session."""
    IDLE = "idle"
    RECORDING = "recording"
    STOPPED = "stopped"  # Stopped with a finalized result
    ERROR = "error"


class PermissionStatus(Enum):
    """Microphone permission as last observed by the session."""
    PROMPT = "prompt"
    GRANTED = "granted"
    DENIED = "denied"


class RecordingErrorKind(Enum):
    """Classification of recording failures, each with a user-facing message."""
    UNSUPPORTED = "unsupported"
    INSECURE_CONTEXT = "insecure_context"
    NO_SUPPORTED_FORMAT = "no_supported_format"
    PERMISSION_DENIED = "permission_denied"
    NO_DEVICE = "no_device"
    DEVICE_BUSY = "device_busy"
    CONSTRAINTS = "constraints"
    PLATFORM = "platform"
    RECORDER_FAULT = "recorder_fault"
    NO_DATA = "no_data"

    @property
    def message(self) -> str:
        return ERROR_MESSAGES[self]


ERROR_MESSAGES = {
    RecordingErrorKind.UNSUPPORTED: "Audio recording is not supported in this environment",
    RecordingErrorKind.INSECURE_CONTEXT: (
        "Microphone access requires a secure connection (HTTPS or localhost)"
    ),
    RecordingErrorKind.NO_SUPPORTED_FORMAT: "No supported audio format found",
    RecordingErrorKind.PERMISSION_DENIED: (
        "Microphone access denied. Allow microphone access and try again"
    ),
    RecordingErrorKind.NO_DEVICE: "Microphone not found. Connect a microphone and try again",
    RecordingErrorKind.DEVICE_BUSY: "Microphone is in use by another application",
    RecordingErrorKind.CONSTRAINTS: "Microphone does not support the requested audio settings",
    RecordingErrorKind.PLATFORM: "Could not start recording",
    RecordingErrorKind.RECORDER_FAULT: "Error while recording audio",
    RecordingErrorKind.NO_DATA: "No audio was captured",
}


# Ranked encoder preferences, best first
DEFAULT_MIME_TYPES = [
    "audio/webm;codecs=opus",
    "audio/webm",
    "audio/ogg;codecs=opus",
    "audio/mp4",
    "audio/wav",
]


@dataclass
class MediaConstraints:
    """Audio-only microphone constraints requested from the backend."""
    echo_cancellation: bool = True
    noise_suppression: bool = True
    auto_gain_control: bool = True
    sample_rate: int = 44100
    channel_count: int = 1


@dataclass
class RecordingSettings:
    """Tunable parameters of an audio capture session."""
    mime_types: List[str] = field(default_factory=lambda: list(DEFAULT_MIME_TYPES))
    timeslice_ms: int = 100
    tick_interval: float = 1.0
    audio_bits_per_second: int = 128000
    constraints: MediaConstraints = field(default_factory=MediaConstraints)

    @classmethod
    def from_config(cls, config) -> "RecordingSettings":
        """Build settings from the `recording` section of the configuration."""
        constraints = MediaConstraints(
            echo_cancellation=config.get('recording.echo_cancellation', True),
            noise_suppression=config.get('recording.noise_suppression', True),
            auto_gain_control=config.get('recording.auto_gain_control', True),
            sample_rate=config.get('recording.sample_rate', 44100),
            channel_count=config.get('recording.channels', 1),
        )
        return cls(
            mime_types=config.get('recording.mime_types', list(DEFAULT_MIME_TYPES)),
            timeslice_ms=config.get('recording.timeslice_ms', 100),
            tick_interval=config.get('recording.tick_interval_seconds', 1.0),
            audio_bits_per_second=config.get('recording.audio_bits_per_second', 128000),
            constraints=constraints,
        )


@dataclass
class RecordedAudio:
    """Finalized recording: the concatenated chunks and their MIME type."""
    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        """File extension matching the container of the MIME type."""
        container = self.mime_type.split(';', 1)[0].strip()
        return {
            "audio/webm": "webm",
            "audio/ogg": "ogg",
            "audio/mp4": "m4a",
            "audio/wav": "wav",
        }.get(container, "bin")


@dataclass
class RecordingStatus:
    """Snapshot of an audio capture session for consumers."""
    state: RecordingState = RecordingState.IDLE
    elapsed_seconds: int = 0
    permission: PermissionStatus = PermissionStatus.PROMPT
    error: Optional[str] = None
    error_kind: Optional[RecordingErrorKind] = None
    mime_type: Optional[str] = None
    audio_size: int = 0
    audio_path: Optional[str] = None
    peak_level: float = 0.0

    @property
    def is_recording(self) -> bool:
        return self.state is RecordingState.RECORDING
