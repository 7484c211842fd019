"""Main application entry point for farmvoice."""

import sys
import time
import asyncio
import argparse
import logging
from pathlib import Path

from farmvoice.audio.audio_pub import RecordingPublisher
from farmvoice.audio.capture import AudioCaptureSession
from farmvoice.audio.pyaudio_backend import PyAudioCaptureBackend, PyAudioMicrophoneFeed
from farmvoice.capabilities import CapabilityDetector
from farmvoice.models.audio import RecordingSettings, RecordingState
from farmvoice.scheduling import ThreadingScheduler
from farmvoice.services.notes_service import NotesService
from farmvoice.storage.file_manager import FileManager
from farmvoice.storage.remote_store import RemoteStoreClient
from farmvoice.transcription.google_backend import GoogleStreamingRecognitionEngine
from farmvoice.transcription.publisher import TranscriptionPublisher
from farmvoice.transcription.session import TranscriptionSession
from farmvoice.ui.status_screen import StatusScreen

from .config import FarmVoiceConfig

logger = logging.getLogger(__name__)

TRANSCRIPTION_TOPIC = "voice.transcription"
RECORDING_TOPIC = "voice.recording"


class Server:

    def __init__(self, config_path: str, log_level: str = None):
        # Load configuration
        self.config = FarmVoiceConfig(config_path)
        # Command line overrides config
        log_level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, log_level)
        self.notes_service = None

    def init(self, with_backend: bool = False):
        logger.info("Initializing services...")

        self.scheduler = ThreadingScheduler()
        self.capture_backend = PyAudioCaptureBackend(
            input_device_index=self.config.get('recording.input_device_index'),
        )

        recognition_rate = self.config.get('recognition.sample_rate', 16000)
        self.recognition_engine = GoogleStreamingRecognitionEngine(
            credentials_path=self.config.get_google_credentials_path(),
            language=self.config.get('recognition.language', 'ru-RU'),
            sample_rate=recognition_rate,
            no_speech_timeout=self.config.get('recognition.no_speech_timeout_seconds', 8.0),
            feed_factory=lambda: PyAudioMicrophoneFeed(sample_rate=recognition_rate,
                                                       chunk_size=recognition_rate // 10),
        )

        detector = CapabilityDetector(
            capture_backend=self.capture_backend,
            recognition_engine=self.recognition_engine,
            origin=self.config.get('app.origin', 'http://localhost'),
        )
        self.capabilities = detector.detect()

        self.transcription_publisher = TranscriptionPublisher(TRANSCRIPTION_TOPIC)
        self.recording_publisher = RecordingPublisher(RECORDING_TOPIC)

        self.transcription_session = TranscriptionSession(
            self.recognition_engine,
            self.capabilities,
            self.scheduler,
            restart_delay=self.config.get('recognition.restart_delay_seconds', 0.1),
            callback=self.transcription_publisher.get_callback(),
        )
        self.file_manager = FileManager(self.config.get('recording.temp_directory'))
        self.capture_session = AudioCaptureSession(
            self.capture_backend,
            self.capabilities,
            self.scheduler,
            settings=RecordingSettings.from_config(self.config),
            file_manager=self.file_manager,
            callback=self.recording_publisher.get_callback(),
        )

        if with_backend:
            store = RemoteStoreClient(**self.config.get_backend_settings())
            self.notes_service = NotesService(
                store,
                notes_table=self.config.get('backend.notes_table', 'notes'),
                voice_notes_table=self.config.get('backend.voice_notes_table', 'voice_notes'),
                bucket=self.config.get('backend.bucket', 'voice-notes'),
            )
            self.notes_service.bind_transcription(TRANSCRIPTION_TOPIC)

        self.screen = StatusScreen(transcription_topic=TRANSCRIPTION_TOPIC,
                                   recording_topic=RECORDING_TOPIC)

    def dictate(self, duration: int, save: bool = False) -> None:
        if not self.transcription_session.start():
            status = self.transcription_session.get_status()
            print(f"❌ Could not start dictation: {status.error or 'speech recognition not supported'}")
            return

        self.screen.show(duration, should_stop=lambda: not self.transcription_session.is_listening)
        self.transcription_session.stop()
        self._wait_until(lambda: not self.transcription_session.is_listening)

        text = self.transcription_session.get_status().text
        print(f"\n📝 {text or '(nothing recognized)'}")
        if save and self.notes_service:
            note = asyncio.run(self.notes_service.add_note())
            if note:
                print(f"✅ Saved note {note.id}")

    def record(self, duration: int, save: bool = False, output: str = None) -> None:
        if not self.capture_session.start_recording():
            print(f"❌ {self.capture_session.error}")
            return

        self.screen.show(duration, should_stop=lambda: not self.capture_session.is_recording)
        self.capture_session.stop_recording()
        self._wait_until(lambda: self.capture_session.state is not RecordingState.RECORDING)

        audio = self.capture_session.audio
        if audio is None:
            print(f"❌ {self.capture_session.error or 'No recording available'}")
            return

        elapsed = self.capture_session.elapsed_seconds
        print(f"\n🎙️ Recorded {AudioCaptureSession.format_time(elapsed)} ({audio.size} bytes, {audio.mime_type})")
        if output:
            saved_path = self.file_manager.save_audio_file(audio, output)
            print(f"💾 Saved to {saved_path}")
        if save and self.notes_service:
            voice_note = asyncio.run(self.notes_service.save_voice_note(audio, elapsed))
            if voice_note:
                print(f"✅ Uploaded voice note: {voice_note.audio_url}")

    def list_notes(self) -> None:
        notes = asyncio.run(self.notes_service.list_notes())
        voice_notes = asyncio.run(self.notes_service.list_voice_notes())
        for note in notes:
            print(f"[{_stamp(note.created_at)}] {note.content}")
        for voice_note in voice_notes:
            print(f"[{_stamp(voice_note.created_at)}] 🎙️ "
                  f"{AudioCaptureSession.format_time(voice_note.duration_seconds)} {voice_note.audio_url}")
        if not notes and not voice_notes:
            print("No notes yet")

    @staticmethod
    def _wait_until(condition, timeout: float = 3.0) -> None:
        deadline = time.monotonic() + timeout
        while not condition() and time.monotonic() < deadline:
            time.sleep(0.05)

    def cleanup(self):
        if getattr(self, 'screen', None):
            self.screen.close()
        for name in ('transcription_session', 'capture_session', 'notes_service', 'file_manager'):
            component = getattr(self, name, None)
            if component is not None:
                try:
                    component.cleanup()
                except Exception as e:
                    logger.error(f"Error cleaning up {name}: {e}")


def _stamp(created_at) -> str:
    return created_at.strftime("%Y-%m-%d %H:%M") if created_at else "-"


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/farmvoice.log')
    console_output = config.get('logging.console_output', True)

    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Keep the live panel readable
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger = logging.getLogger(__name__)
    logger.info("=" * 50)
    logger.info("farmvoice starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for farmvoice."""
    parser = argparse.ArgumentParser(
        description="farmvoice - dictation and voice notes for the farm dashboard",
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: looks for farmvoice.yaml)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, else INFO)"
    )

    parser.add_argument(
        "mode",
        choices=["dictate", "record", "notes"],
        help="dictate: live transcript into a note draft; record: voice note; notes: list saved notes"
    )

    parser.add_argument(
        "--duration",
        type=int,
        default=10,
        help="Seconds to dictate or record (default: 10)"
    )

    parser.add_argument(
        "--save",
        action="store_true",
        help="Save the result to the hosted backend"
    )

    parser.add_argument(
        "--output",
        type=str,
        help="Also write the recording to this file (record mode)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="farmvoice v0.1.0"
    )

    args = parser.parse_args()

    server = Server(args.config, args.log_level)
    try:
        server.init(with_backend=args.save or args.mode == "notes")
        if args.mode == "dictate":
            server.dictate(args.duration, args.save)
        elif args.mode == "record":
            server.record(args.duration, args.save, args.output)
        else:
            server.list_notes()
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except Exception as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)
    finally:
        server.cleanup()


if __name__ == "__main__":
    main()
