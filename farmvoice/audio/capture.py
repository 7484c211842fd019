"""Microphone recording session producing a single finalized audio object."""

import logging
import threading
from typing import Callable, List, Optional, Any

from ..models.capabilities import Capabilities
from ..models.audio import (
    RecordingState,
    PermissionStatus,
    RecordingErrorKind,
    RecordingSettings,
    RecordedAudio,
    RecordingStatus,
)
from ..models.events import ChunkAvailableEvent, RecorderStoppedEvent, RecorderErrorEvent
from ..scheduling import AbstractScheduler, ScheduledHandle, cancel_handle
from ..storage.file_manager import FileManager
from .base import (
    AbstractCaptureBackend,
    AbstractMediaStream,
    AbstractMediaRecorder,
    PermissionDeniedError,
    DeviceNotFoundError,
    DeviceBusyError,
    ConstraintsError,
)
from .mime import negotiate_mime_type

logger = logging.getLogger(__name__)

# Device failures in the order they are checked
DEVICE_ERRORS = [
    (PermissionDeniedError, RecordingErrorKind.PERMISSION_DENIED),
    (DeviceNotFoundError, RecordingErrorKind.NO_DEVICE),
    (DeviceBusyError, RecordingErrorKind.DEVICE_BUSY),
    (ConstraintsError, RecordingErrorKind.CONSTRAINTS),
]


class AudioCaptureSession:
    """Records the microphone into ordered chunks and finalizes them into one object.

    The session exclusively owns the microphone stream and the elapsed-time
    ticker while recording. Both are released on every exit path: stop,
    error, reset and cleanup. Failures never propagate to the caller; they
    are exposed through `error`, `error_kind` and the `ERROR` state.
    """

    def __init__(self,
                 backend: AbstractCaptureBackend,
                 capabilities: Capabilities,
                 scheduler: AbstractScheduler,
                 settings: Optional[RecordingSettings] = None,
                 file_manager: Optional[FileManager] = None,
                 callback: Optional[Callable[[RecordingStatus], None]] = None):
        """Initialize audio capture session.

        Args:
            backend: Platform microphone and encoder
            capabilities: Capability flags detected at startup
            scheduler: Scheduler for the elapsed-time ticker
            settings: Encoder preferences, chunk interval and constraints
            file_manager: Creates transient handles for finalized audio
            callback: Receives a status snapshot after every transition
        """
        self.backend = backend
        self.capabilities = capabilities
        self.scheduler = scheduler
        self.settings = settings or RecordingSettings()
        self.file_manager = file_manager or FileManager()
        self.status_callback = callback

        self.state = RecordingState.IDLE
        self.permission = PermissionStatus.PROMPT
        self.chunks: List[bytes] = []
        self.audio: Optional[RecordedAudio] = None
        self.audio_path: Optional[str] = None
        self.error: Optional[str] = None
        self.error_kind: Optional[RecordingErrorKind] = None
        self.elapsed_seconds = 0
        self.mime_type: Optional[str] = None
        self.peak_level = 0.0

        # Resources owned while recording
        self.stream: Optional[AbstractMediaStream] = None
        self.recorder: Optional[AbstractMediaRecorder] = None
        self.ticker: Optional[ScheduledHandle] = None

        self.lock = threading.RLock()

    @property
    def is_supported(self) -> bool:
        return self.capabilities.recording_supported

    @property
    def is_recording(self) -> bool:
        return self.state is RecordingState.RECORDING

    def get_status(self) -> RecordingStatus:
        with self.lock:
            return self._snapshot()

    def start_recording(self) -> bool:
        """Acquire the microphone and start chunked capture.

        Returns:
            True if recording started; otherwise the reason is in `error`
        """
        with self.lock:
            if self.state is RecordingState.RECORDING:
                logger.warning("Recording already in progress")
                return False

            self._clear_result()

            if not self.capabilities.recording_supported:
                return self._fail(RecordingErrorKind.UNSUPPORTED)
            if not self.capabilities.secure_context:
                return self._fail(RecordingErrorKind.INSECURE_CONTEXT)

            mime_type = negotiate_mime_type(self.backend, self.settings.mime_types)
            if mime_type is None:
                return self._fail(RecordingErrorKind.NO_SUPPORTED_FORMAT)

            logger.info("Requesting microphone access")
            try:
                stream = self.backend.acquire_stream(self.settings.constraints)
            except Exception as e:
                return self._fail_acquisition(e)

            self.permission = PermissionStatus.GRANTED
            self.stream = stream
            self.mime_type = mime_type

            try:
                self.recorder = self.backend.create_recorder(
                    stream,
                    mime_type,
                    self.settings.audio_bits_per_second,
                    self.handle_event,
                )
                # Chunks may arrive as soon as the recorder starts
                self.state = RecordingState.RECORDING
                self.recorder.start(self.settings.timeslice_ms)
            except Exception as e:
                logger.error(f"Error starting recorder: {e}")
                self.recorder = None
                return self._fail(RecordingErrorKind.PLATFORM, str(e))

            self.ticker = self.scheduler.call_every(self.settings.tick_interval, self._tick)
            logger.info(f"Recording started: {mime_type}, "
                        f"{self.settings.timeslice_ms}ms chunks")
            self._publish()
            return True

    def _fail_acquisition(self, exc: Exception) -> bool:
        logger.error(f"Error acquiring microphone: {exc}")
        for error_type, kind in DEVICE_ERRORS:
            if isinstance(exc, error_type):
                if kind is RecordingErrorKind.PERMISSION_DENIED:
                    self.permission = PermissionStatus.DENIED
                return self._fail(kind)
        return self._fail(RecordingErrorKind.PLATFORM, str(exc))

    def stop_recording(self) -> None:
        """Finalize the recording; without an active recording only releases resources."""
        with self.lock:
            recorder = self.recorder if self.state is RecordingState.RECORDING else None
            cancel_handle(self.ticker)
            self.ticker = None
            if recorder is None:
                self._release_resources()
                return
            logger.info("Stopping recording")

        # Recorders may emit their final chunk and stopped event from here,
        # so the lock must not be held
        try:
            recorder.stop()
        except Exception as e:
            logger.error(f"Error stopping recorder: {e}")
            with self.lock:
                self.recorder = None
                if self.state is RecordingState.RECORDING:
                    self._fail(RecordingErrorKind.RECORDER_FAULT)
                return

        with self.lock:
            self._release_resources()

    def reset_recording(self) -> None:
        """Discard any result or error and return to idle. Safe from any state."""
        with self.lock:
            recorder = self.recorder if self.state is RecordingState.RECORDING else None
            self.recorder = None
            # Events from the recorder being stopped are ignored from here on
            self.state = RecordingState.IDLE

        if recorder is not None:
            try:
                recorder.stop()
            except Exception as e:
                logger.error(f"Error stopping recorder during reset: {e}")

        with self.lock:
            self._release_resources()
            self._clear_result()
            self.state = RecordingState.IDLE
            logger.info("Recording reset")
            self._publish()

    def handle_event(self, event: Any) -> None:
        """Apply one recorder event to the session state."""
        with self.lock:
            if isinstance(event, ChunkAvailableEvent):
                self._on_chunk(event)
            elif isinstance(event, RecorderStoppedEvent):
                self._on_stopped()
            elif isinstance(event, RecorderErrorEvent):
                self._on_recorder_error(event)
            else:
                logger.warning(f"Ignoring unknown recorder event: {event!r}")

    def _on_chunk(self, event: ChunkAvailableEvent) -> None:
        if self.state is not RecordingState.RECORDING:
            logger.debug("Chunk received while not recording; dropped")
            return
        if not event.data:
            return
        self.chunks.append(event.data)
        if event.level is not None and event.level > self.peak_level:
            self.peak_level = event.level

    def _on_stopped(self) -> None:
        self.recorder = None
        if self.state is not RecordingState.RECORDING:
            self._release_resources()
            return

        if not self.chunks:
            self._fail(RecordingErrorKind.NO_DATA)
            return

        audio = RecordedAudio(data=b"".join(self.chunks), mime_type=self.mime_type)
        try:
            self.audio_path = self.file_manager.create_handle(audio)
        except OSError as e:
            logger.error(f"Error creating audio handle: {e}")
            self._fail(RecordingErrorKind.PLATFORM, str(e))
            return

        self.audio = audio
        self.state = RecordingState.STOPPED
        self._release_resources()
        logger.info(f"Recording finalized: {len(self.chunks)} chunks, {audio.size} bytes, "
                    f"{self.elapsed_seconds}s")
        self._publish()

    def _on_recorder_error(self, event: RecorderErrorEvent) -> None:
        if self.state is not RecordingState.RECORDING:
            return
        logger.error(f"Recorder error: {event.message}")
        recorder = self.recorder
        self.recorder = None
        self._fail(RecordingErrorKind.RECORDER_FAULT)
        if recorder is not None:
            try:
                recorder.stop()
            except Exception as e:
                logger.debug(f"Recorder did not stop cleanly after error: {e}")

    def _tick(self) -> None:
        with self.lock:
            # The ticker is cleared as soon as a stop is requested, before the recorder flushes
            if self.state is RecordingState.RECORDING and self.ticker is not None:
                self.elapsed_seconds += 1
                self._publish()

    def _fail(self, kind: RecordingErrorKind, message: Optional[str] = None) -> bool:
        self.error_kind = kind
        self.error = message or kind.message
        self.state = RecordingState.ERROR
        self._release_resources()
        logger.error(f"Recording failed ({kind.value}): {self.error}")
        self._publish()
        return False

    def _clear_result(self) -> None:
        self.file_manager.release_handle(self.audio_path)
        self.audio_path = None
        self.audio = None
        self.mime_type = None
        self.chunks = []
        self.error = None
        self.error_kind = None
        self.elapsed_seconds = 0
        self.peak_level = 0.0

    def _release_resources(self) -> None:
        cancel_handle(self.ticker)
        self.ticker = None
        if self.stream is not None:
            try:
                self.stream.stop_tracks()
            except Exception as e:
                logger.error(f"Error releasing microphone: {e}")
            self.stream = None

    def _snapshot(self) -> RecordingStatus:
        return RecordingStatus(
            state=self.state,
            elapsed_seconds=self.elapsed_seconds,
            permission=self.permission,
            error=self.error,
            error_kind=self.error_kind,
            mime_type=self.mime_type,
            audio_size=self.audio.size if self.audio else 0,
            audio_path=self.audio_path,
            peak_level=self.peak_level,
        )

    def _publish(self) -> None:
        if self.status_callback:
            self.status_callback(self._snapshot())

    @staticmethod
    def format_time(seconds: int) -> str:
        """Format elapsed seconds as m:ss."""
        minutes, secs = divmod(int(seconds), 60)
        return f"{minutes}:{secs:02d}"

    def cleanup(self) -> None:
        """Release every resource, including the finalized audio handle."""
        self.reset_recording()
        logger.info("AudioCaptureSession cleaned up")
