"""Microphone capture backend on PyAudio with a streaming WAV encoder."""

import logging
import threading
from threading import Thread, Event
from typing import Optional, Callable, Any, Iterator

import numpy as np
import pyaudio

from ..models.audio import MediaConstraints
from ..models.events import ChunkAvailableEvent, RecorderStoppedEvent, RecorderErrorEvent
from .base import (
    AbstractCaptureBackend,
    AbstractMediaStream,
    AbstractMediaRecorder,
    MediaDeviceError,
    PermissionDeniedError,
    DeviceNotFoundError,
    DeviceBusyError,
    ConstraintsError,
)
from .codec import wav_stream_header

logger = logging.getLogger(__name__)

# PortAudio error codes surfaced as OSError.errno
PA_INVALID_CHANNEL_COUNT = -9998
PA_INVALID_SAMPLE_RATE = -9997
PA_INVALID_DEVICE = -9996
PA_DEVICE_UNAVAILABLE = -9985

SAMPLE_WIDTH = 2  # 16-bit PCM


def classify_device_error(error: Exception) -> MediaDeviceError:
    """Map a PyAudio/PortAudio failure onto the device error taxonomy."""
    if isinstance(error, MediaDeviceError):
        return error
    if isinstance(error, PermissionError):
        return PermissionDeniedError(str(error))

    code = getattr(error, 'errno', None)
    if code == PA_INVALID_DEVICE or "No Default Input Device" in str(error):
        return DeviceNotFoundError(str(error))
    if code == PA_DEVICE_UNAVAILABLE:
        return DeviceBusyError(str(error))
    if code in (PA_INVALID_SAMPLE_RATE, PA_INVALID_CHANNEL_COUNT):
        return ConstraintsError(str(error))
    return MediaDeviceError(str(error) or "Audio device error")


def peak_level(pcm: bytes) -> float:
    """Peak amplitude of 16-bit PCM as 0.0-1.0."""
    samples = np.frombuffer(pcm[:len(pcm) - len(pcm) % SAMPLE_WIDTH], dtype=np.int16)
    if samples.size == 0:
        return 0.0
    return float(np.abs(samples.astype(np.int32)).max()) / 32768.0


class PyAudioMediaStream(AbstractMediaStream):
    """An open PortAudio input stream."""

    def __init__(self, pyaudio_instance: pyaudio.PyAudio, stream, sample_rate: int, channels: int):
        self.pyaudio_instance = pyaudio_instance
        self.stream = stream
        self.sample_rate = sample_rate
        self.channels = channels
        self.lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self.stream is not None

    def read(self, frames: int) -> bytes:
        stream = self.stream
        if stream is None:
            raise MediaDeviceError("Stream already released")
        return stream.read(frames, exception_on_overflow=False)

    def stop_tracks(self) -> None:
        with self.lock:
            if self.stream is not None:
                try:
                    self.stream.stop_stream()
                    self.stream.close()
                finally:
                    self.stream = None
            if self.pyaudio_instance is not None:
                self.pyaudio_instance.terminate()
                self.pyaudio_instance = None
                logger.info("Microphone released")


class PyAudioRecorder(AbstractMediaRecorder):
    """Reads a stream in a background thread and emits one WAV chunk per timeslice."""

    def __init__(self, stream: PyAudioMediaStream, mime_type: str, listener: Callable[[Any], None]):
        self.stream = stream
        self.mime_type = mime_type
        self.listener = listener

        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.frames_per_slice = 0
        self.total_chunks = 0

    @property
    def active(self) -> bool:
        return self.recording_thread is not None and self.recording_thread.is_alive()

    def start(self, timeslice_ms: int) -> None:
        if self.active:
            raise RuntimeError("Recorder already started")

        self.frames_per_slice = max(1, int(self.stream.sample_rate * timeslice_ms / 1000))
        self.stop_event.clear()
        self.total_chunks = 0

        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "AudioRecorderThread"
        self.recording_thread.start()
        logger.debug(f"Recorder started: {self.frames_per_slice} frames per chunk")

    def stop(self) -> None:
        self.stop_event.set()
        thread = self.recording_thread
        # Called from the recorder thread itself after an error
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout=2.0)
        if thread.is_alive():
            logger.warning("Recorder thread did not stop cleanly")

    def _record_continuously(self) -> None:
        """Internal method: read loop running in the recorder thread."""
        header = wav_stream_header(self.stream.sample_rate, self.stream.channels, SAMPLE_WIDTH)
        try:
            while not self.stop_event.is_set():
                pcm = self.stream.read(self.frames_per_slice)
                data = pcm
                if self.total_chunks == 0:
                    # Header rides with the first chunk so chunks concatenate into a file
                    data = header + pcm
                self.total_chunks += 1
                self.listener(ChunkAvailableEvent(data=data, level=peak_level(pcm)))
        except Exception as e:
            if not self.stop_event.is_set():
                logger.error(f"Error reading microphone: {e}")
                self.listener(RecorderErrorEvent(message=str(e)))
                return
            logger.debug(f"Read interrupted by stop: {e}")

        logger.debug(f"Recorder flushed after {self.total_chunks} chunks")
        self.listener(RecorderStoppedEvent())


class PyAudioCaptureBackend(AbstractCaptureBackend):
    """Capture backend using the default (or a chosen) PortAudio input device.

    PortAudio exposes raw PCM only, so the encoder produces WAV; the echo
    cancellation, noise suppression and auto gain constraints are accepted
    but not applied.
    """

    SUPPORTED_TYPES = ("audio/wav",)

    def __init__(self, input_device_index: Optional[int] = None, frames_per_buffer: int = 1024):
        self.input_device_index = input_device_index
        self.frames_per_buffer = frames_per_buffer
        self._has_input_device: Optional[bool] = None

    def has_microphone_api(self) -> bool:
        """Whether any input device exists. No stream is opened.

        Enumerating devices initializes and terminates PortAudio, so the answer
        is probed once per backend and cached.
        """
        if self._has_input_device is None:
            self._has_input_device = self._probe_input_devices()
        return self._has_input_device

    def _probe_input_devices(self) -> bool:
        pyaudio_instance = pyaudio.PyAudio()
        try:
            for index in range(pyaudio_instance.get_device_count()):
                info = pyaudio_instance.get_device_info_by_index(index)
                if info.get('maxInputChannels', 0) > 0:
                    return True
            return False
        finally:
            pyaudio_instance.terminate()

    def has_encoder_api(self) -> bool:
        return True

    def is_type_supported(self, mime_type: str) -> bool:
        return mime_type in self.SUPPORTED_TYPES

    def acquire_stream(self, constraints: MediaConstraints) -> PyAudioMediaStream:
        pyaudio_instance = pyaudio.PyAudio()
        try:
            if self.input_device_index is None:
                # Raises when the host has no default input device
                pyaudio_instance.get_default_input_device_info()
            stream = pyaudio_instance.open(
                format=pyaudio.paInt16,
                channels=constraints.channel_count,
                rate=constraints.sample_rate,
                input=True,
                input_device_index=self.input_device_index,
                frames_per_buffer=self.frames_per_buffer,
            )
        except Exception as e:
            pyaudio_instance.terminate()
            raise classify_device_error(e) from e

        logger.info(f"Audio stream opened: {constraints.sample_rate}Hz, "
                    f"{constraints.channel_count} channel(s)")
        return PyAudioMediaStream(pyaudio_instance, stream, constraints.sample_rate, constraints.channel_count)

    def create_recorder(self,
                        stream: AbstractMediaStream,
                        mime_type: str,
                        audio_bits_per_second: int,
                        listener: Callable[[Any], None]) -> PyAudioRecorder:
        if not self.is_type_supported(mime_type):
            raise ValueError(f"Unsupported audio format: {mime_type}")
        # Bit rate is fixed by the PCM format
        return PyAudioRecorder(stream, mime_type, listener)


class PyAudioMicrophoneFeed:
    """Raw 16-bit PCM from the microphone for streaming recognition."""

    def __init__(self, sample_rate: int = 16000, chunk_size: int = 1600, channels: int = 1,
                 backend: Optional[PyAudioCaptureBackend] = None):
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.backend = backend or PyAudioCaptureBackend()
        self.stream: Optional[PyAudioMediaStream] = None
        self.closed = Event()

    def open(self) -> None:
        constraints = MediaConstraints(sample_rate=self.sample_rate, channel_count=self.channels)
        self.stream = self.backend.acquire_stream(constraints)
        self.closed.clear()

    def chunks(self) -> Iterator[bytes]:
        while not self.closed.is_set() and self.stream is not None:
            try:
                yield self.stream.read(self.chunk_size)
            except (MediaDeviceError, OSError) as e:
                logger.debug(f"Microphone feed ended: {e}")
                return

    def close(self) -> None:
        self.closed.set()
        if self.stream is not None:
            self.stream.stop_tracks()
            self.stream = None
