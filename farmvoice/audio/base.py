"""Abstract base classes for microphone capture backends."""

from abc import ABC, abstractmethod
from typing import Callable, Any

from ..models.audio import MediaConstraints


class MediaDeviceError(Exception):
    """Base class for failures acquiring or using the microphone."""
    pass


class PermissionDeniedError(MediaDeviceError):
    """The user or the platform refused microphone access."""
    pass


class DeviceNotFoundError(MediaDeviceError):
    """No audio input device is available."""
    pass


class DeviceBusyError(MediaDeviceError):
    """The input device exists but another application holds it."""
    pass


class ConstraintsError(MediaDeviceError):
    """The device cannot satisfy the requested constraints."""
    pass


class AbstractMediaStream(ABC):
    """An acquired microphone stream, owned by exactly one session."""

    @abstractmethod
    def stop_tracks(self) -> None:
        """Release the underlying device. Must be idempotent."""
        pass


class AbstractMediaRecorder(ABC):
    """Encodes a media stream into chunks.

    Recorders report through the listener passed to
    `AbstractCaptureBackend.create_recorder`: a `ChunkAvailableEvent` per
    timeslice, then exactly one `RecorderStoppedEvent` after `stop()`, or a
    `RecorderErrorEvent` on failure.
    """

    @abstractmethod
    def start(self, timeslice_ms: int) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        """Flush pending data and emit the stopped event."""
        pass

    @property
    @abstractmethod
    def active(self) -> bool:
        pass


class AbstractCaptureBackend(ABC):
    """Platform microphone access plus an audio encoder."""

    @abstractmethod
    def has_microphone_api(self) -> bool:
        pass

    @abstractmethod
    def has_encoder_api(self) -> bool:
        pass

    @abstractmethod
    def is_type_supported(self, mime_type: str) -> bool:
        pass

    @abstractmethod
    def acquire_stream(self, constraints: MediaConstraints) -> AbstractMediaStream:
        """Open the microphone.

        Raises:
            MediaDeviceError: one of its subclasses for classified failures
        """
        pass

    @abstractmethod
    def create_recorder(self,
                        stream: AbstractMediaStream,
                        mime_type: str,
                        audio_bits_per_second: int,
                        listener: Callable[[Any], None]) -> AbstractMediaRecorder:
        pass
