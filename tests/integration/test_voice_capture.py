"""Integration tests for the voice capture workflow with real threads and mocked hardware."""

import time
import wave
from unittest.mock import Mock

import pytest
from pubsub import pub

from farmvoice.audio.audio_pub import RecordingPublisher
from farmvoice.audio.capture import AudioCaptureSession
from farmvoice.audio.pyaudio_backend import PyAudioCaptureBackend
from farmvoice.capabilities import CapabilityDetector
from farmvoice.models.audio import RecordingState, RecordingErrorKind, RecordingSettings
from farmvoice.scheduling import ThreadingScheduler
from farmvoice.services.notes_service import NotesService
from farmvoice.storage.file_manager import FileManager
from farmvoice.transcription.publisher import TranscriptionPublisher
from farmvoice.transcription.session import TranscriptionSession


def wait_for(condition, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


@pytest.fixture
def paced_microphone(mock_pyaudio, sample_audio_chunk):
    """Mocked PyAudio whose stream delivers one chunk every 10ms."""
    def read(frames, exception_on_overflow=True):
        time.sleep(0.01)
        return sample_audio_chunk

    mock_pyaudio['stream'].read.side_effect = read
    return mock_pyaudio


@pytest.mark.integration
class TestRecordingWorkflow:

    def test_record_and_finalize_wav(self, paced_microphone, temp_data_dir, sample_audio_chunk):
        backend = PyAudioCaptureBackend()
        capabilities = CapabilityDetector(backend, origin="http://localhost:8080").detect()
        statuses = []

        def on_status(status):
            statuses.append(status)

        topic = "test.integration.recording"
        pub.subscribe(on_status, topic)
        session = AudioCaptureSession(
            backend,
            capabilities,
            ThreadingScheduler(),
            settings=RecordingSettings(tick_interval=0.1),
            file_manager=FileManager(temp_data_dir),
            callback=RecordingPublisher(topic).publish_status,
        )

        try:
            assert session.start_recording() is True
            assert session.mime_type == "audio/wav"
            assert wait_for(lambda: session.elapsed_seconds >= 2)

            session.stop_recording()
            assert wait_for(lambda: session.state is RecordingState.STOPPED)

            with wave.open(session.audio_path, 'rb') as wf:
                assert wf.getframerate() == 44100
                assert wf.getnchannels() == 1
                assert wf.readframes(len(sample_audio_chunk) // 2) == sample_audio_chunk

            assert (session.audio.size - 44) % len(sample_audio_chunk) == 0
            paced_microphone['stream'].close.assert_called_once()
            paced_microphone['instance'].terminate.assert_called()
            assert statuses[0].state is RecordingState.RECORDING
            assert statuses[-1].state is RecordingState.STOPPED
        finally:
            session.cleanup()
            pub.unsubscribe(on_status, topic)

    def test_busy_microphone(self, mock_pyaudio, temp_data_dir):
        mock_pyaudio['instance'].open.side_effect = OSError(-9985, "Device unavailable")
        backend = PyAudioCaptureBackend()
        capabilities = CapabilityDetector(backend, origin="https://farm.example.com").detect()
        session = AudioCaptureSession(backend, capabilities, ThreadingScheduler(),
                                      file_manager=FileManager(temp_data_dir))

        assert session.start_recording() is False
        assert session.state is RecordingState.ERROR
        assert session.error_kind is RecordingErrorKind.DEVICE_BUSY


@pytest.mark.integration
class TestDictationWorkflow:

    def test_restart_and_draft_binding(self, recognition_engine, capabilities):
        topic = "test.integration.transcription"
        notes = NotesService(Mock())
        notes.bind_transcription(topic)
        session = TranscriptionSession(
            recognition_engine,
            capabilities,
            ThreadingScheduler(),
            restart_delay=0.05,
            callback=TranscriptionPublisher(topic).publish_status,
        )

        try:
            assert session.start() is True
            recognition_engine.result("проверить ", "теплицу")
            recognition_engine.end()

            assert wait_for(lambda: recognition_engine.start_calls == 2)
            assert session.is_listening

            session.stop()

            assert not session.is_listening
            assert notes.draft_text == "проверить теплицу"
        finally:
            session.cleanup()
            notes.cleanup()
