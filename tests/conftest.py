"""Pytest configuration and fixtures for farmvoice tests."""

import pytest
import tempfile
import logging
from typing import Any, Callable, List, Optional
from unittest.mock import Mock, patch
import numpy as np

from farmvoice.audio.base import AbstractCaptureBackend, AbstractMediaStream, AbstractMediaRecorder
from farmvoice.models.audio import MediaConstraints
from farmvoice.models.capabilities import Capabilities
from farmvoice.models.events import (
    ChunkAvailableEvent,
    RecorderStoppedEvent,
    RecorderErrorEvent,
    RecognitionResultEvent,
    RecognitionErrorEvent,
    RecognitionEndEvent,
)
from farmvoice.scheduling import AbstractScheduler, ScheduledHandle
from farmvoice.storage.file_manager import FileManager
from farmvoice.transcription.base import AbstractRecognitionEngine


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ManualHandle(ScheduledHandle):

    def __init__(self, due: float, callback: Callable[[], None], interval: Optional[float] = None):
        self.due = due
        self.callback = callback
        self.interval = interval
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not self.cancelled and not self.fired


class ManualScheduler(AbstractScheduler):
    """Scheduler whose clock only moves when a test calls `advance`."""

    def __init__(self):
        self.now = 0.0
        self.handles: List[ManualHandle] = []

    def call_later(self, delay, callback):
        handle = ManualHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    def call_every(self, interval, callback):
        handle = ManualHandle(self.now + interval, callback, interval)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> List[ManualHandle]:
        return [handle for handle in self.handles if handle.active]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [handle for handle in self.pending if handle.due <= target + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: h.due)
            self.now = handle.due
            if handle.interval:
                handle.due += handle.interval
            else:
                handle.fired = True
            handle.callback()
        self.now = target


class FakeStream(AbstractMediaStream):

    def __init__(self):
        self.stop_count = 0

    @property
    def released(self) -> bool:
        return self.stop_count > 0

    def stop_tracks(self) -> None:
        self.stop_count += 1


class FakeRecorder(AbstractMediaRecorder):
    """Recorder driven by the test: chunks are pushed by hand and stop() flushes synchronously."""

    def __init__(self, stream, mime_type: str, listener: Callable[[Any], None]):
        self.stream = stream
        self.mime_type = mime_type
        self.listener = listener
        self.timeslice_ms = None
        self.started = False
        self.stopped = False
        self.stop_calls = 0
        self.final_chunks: List[bytes] = []

    @property
    def active(self) -> bool:
        return self.started and not self.stopped

    def start(self, timeslice_ms: int) -> None:
        self.timeslice_ms = timeslice_ms
        self.started = True

    def emit_chunk(self, data: bytes, level: Optional[float] = None) -> None:
        self.listener(ChunkAvailableEvent(data=data, level=level))

    def fail(self, message: str = "encoder crashed") -> None:
        self.listener(RecorderErrorEvent(message=message))

    def stop(self) -> None:
        self.stop_calls += 1
        if self.stopped:
            return
        self.stopped = True
        for chunk in self.final_chunks:
            self.listener(ChunkAvailableEvent(data=chunk))
        self.listener(RecorderStoppedEvent())


class FakeCaptureBackend(AbstractCaptureBackend):

    def __init__(self,
                 supported_types=("audio/webm;codecs=opus", "audio/webm"),
                 acquire_error: Optional[Exception] = None,
                 microphone: bool = True,
                 encoder: bool = True):
        self.supported_types = supported_types
        self.acquire_error = acquire_error
        self.microphone = microphone
        self.encoder = encoder
        self.acquire_calls: List[MediaConstraints] = []
        self.streams: List[FakeStream] = []
        self.recorders: List[FakeRecorder] = []

    @property
    def recorder(self) -> FakeRecorder:
        return self.recorders[-1]

    def has_microphone_api(self) -> bool:
        return self.microphone

    def has_encoder_api(self) -> bool:
        return self.encoder

    def is_type_supported(self, mime_type: str) -> bool:
        return mime_type in self.supported_types

    def acquire_stream(self, constraints: MediaConstraints) -> FakeStream:
        self.acquire_calls.append(constraints)
        if self.acquire_error is not None:
            raise self.acquire_error
        stream = FakeStream()
        self.streams.append(stream)
        return stream

    def create_recorder(self, stream, mime_type, audio_bits_per_second, listener) -> FakeRecorder:
        recorder = FakeRecorder(stream, mime_type, listener)
        self.recorders.append(recorder)
        return recorder


class FakeRecognitionEngine(AbstractRecognitionEngine):
    """Engine whose events are emitted by the test; stop() and abort() end synchronously."""

    def __init__(self, available: bool = True):
        super().__init__("ru-RU")
        self.available = available
        self.start_calls = 0
        self.stop_calls = 0
        self.abort_calls = 0
        self.start_error: Optional[Exception] = None
        self.running = False

    def is_available(self) -> bool:
        return self.available

    def start(self) -> None:
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error
        self.running = True

    def stop(self) -> None:
        self.stop_calls += 1
        self.end()

    def abort(self) -> None:
        self.abort_calls += 1
        if self.running:
            self.end()

    def result(self, *results) -> None:
        """Emit results; plain strings become single-alternative results."""
        self.emit(RecognitionResultEvent(
            results=[[r] if isinstance(r, str) else list(r) for r in results]
        ))

    def error(self, code: str, message: Optional[str] = None) -> None:
        self.emit(RecognitionErrorEvent(error=code, message=message))

    def end(self) -> None:
        self.running = False
        self.emit(RecognitionEndEvent())


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def capabilities():
    """Everything supported, served from a secure origin."""
    return Capabilities(transcription_supported=True, recording_supported=True, secure_context=True)


@pytest.fixture
def capture_backend():
    return FakeCaptureBackend()


@pytest.fixture
def recognition_engine():
    return FakeRecognitionEngine()


@pytest.fixture
def file_manager(temp_data_dir):
    manager = FileManager(temp_data_dir)
    yield manager
    manager.cleanup()


@pytest.fixture
def status_log():
    """Collects status snapshots passed to a session callback."""
    return []


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # Generate 1024 samples of 16-bit audio (sine wave)
    sample_rate = 16000
    duration = 1024 / sample_rate  # ~0.064 seconds
    freq = 440  # A4 note

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    # Convert to 16-bit integers
    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_device_count.return_value = 1
        mock_pyaudio_instance.get_device_info_by_index.return_value = {'maxInputChannels': 1}
        mock_pyaudio_instance.get_default_input_device_info.return_value = {'index': 0}

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def backend_factory():
    """Build capture backends with non-default formats or acquisition failures."""
    return FakeCaptureBackend
