"""Google Speech-to-Text streaming recognition engine."""

import time
import logging
from pathlib import Path
from threading import Thread, Event
from typing import Optional, Callable, Iterable, List, Any

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.oauth2 import service_account

from ..models.events import RecognitionResultEvent, RecognitionErrorEvent, RecognitionEndEvent
from ..models.transcription import NO_SPEECH
from .base import AbstractRecognitionEngine

logger = logging.getLogger(__name__)

# Raised when a stream hits the service's maximum duration; the engine just ends
STREAM_LIMIT_ERRORS = (gax_exceptions.OutOfRange, gax_exceptions.DeadlineExceeded)


def classify_api_error(error: Exception) -> str:
    """Map a Google API failure onto a recognition error code."""
    if isinstance(error, (gax_exceptions.ServiceUnavailable, gax_exceptions.GatewayTimeout)):
        return "network"
    if isinstance(error, (gax_exceptions.PermissionDenied, gax_exceptions.Unauthenticated)):
        return "not-allowed"
    if isinstance(error, gax_exceptions.InvalidArgument):
        return "language-not-supported"
    if isinstance(error, OSError):
        return "audio-capture"
    return "service-not-allowed"


class GoogleStreamingRecognitionEngine(AbstractRecognitionEngine):
    """Continuous recognition over `streaming_recognize` with interim results.

    Audio comes from a microphone feed (see `PyAudioMicrophoneFeed`). The
    service closes streams after a few minutes; that surfaces as an end event
    and the owning session restarts the engine.
    """

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 language: str = "ru-RU",
                 sample_rate: int = 16000,
                 no_speech_timeout: float = 8.0,
                 feed_factory: Optional[Callable[[], Any]] = None,
                 client: Optional[speech.SpeechClient] = None):
        """Initialize Google streaming engine.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            language: Language code (e.g., 'ru-RU', 'en-US')
            sample_rate: Sample rate of the microphone feed in Hz
            no_speech_timeout: Seconds of silence before a no-speech error is reported
            feed_factory: Creates a fresh microphone feed for every run
            client: Preconfigured SpeechClient (credentials are not loaded then)
        """
        super().__init__(language)
        self.credentials_path = credentials_path
        self.sample_rate = sample_rate
        self.no_speech_timeout = no_speech_timeout
        self.feed_factory = feed_factory
        self.client = client
        self.service_name = "Google Speech-to-Text"

        self.streaming_config = speech.StreamingRecognitionConfig(
            config=speech.RecognitionConfig(
                encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
                sample_rate_hertz=sample_rate,
                language_code=self.language,
                enable_automatic_punctuation=True,
            ),
            interim_results=self.interim_results,
        )

        self.recognition_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.abort_event = Event()
        self.feed = None
        self.last_speech_time = 0.0

    def is_available(self) -> bool:
        if self.client is not None:
            return True
        return bool(self.credentials_path) and Path(self.credentials_path).exists()

    def initialize(self) -> None:
        """Create the Speech client from service account credentials."""
        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
        self.client = speech.SpeechClient(credentials=credentials)
        logger.info(f"Using Google Cloud project: {credentials.project_id}")

    def start(self) -> None:
        if self.recognition_thread and self.recognition_thread.is_alive():
            raise RuntimeError("Recognition already started")
        if self.feed_factory is None:
            raise RuntimeError("No microphone feed configured")
        if self.client is None:
            self.initialize()

        self.stop_event.clear()
        self.abort_event.clear()
        self.feed = self.feed_factory()
        self.feed.open()
        self.last_speech_time = time.monotonic()

        self.recognition_thread = Thread(target=self._recognize_continuously, daemon=True)
        self.recognition_thread.name = "RecognitionThread"
        self.recognition_thread.start()
        logger.info(f"Streaming recognition started ({self.language})")

    def stop(self) -> None:
        # The request generator ends, the service sends final results, then the thread ends
        self.stop_event.set()

    def abort(self) -> None:
        self.abort_event.set()
        self.stop_event.set()

    def _requests(self, chunks: Iterable[bytes]):
        for chunk in chunks:
            if self.stop_event.is_set():
                return
            if time.monotonic() - self.last_speech_time > self.no_speech_timeout:
                self.last_speech_time = time.monotonic()
                self.emit(RecognitionErrorEvent(error=NO_SPEECH))
            yield speech.StreamingRecognizeRequest(audio_content=chunk)

    def _recognize_continuously(self) -> None:
        """Internal method: one streaming call, running in the recognition thread."""
        try:
            responses = self.client.streaming_recognize(
                config=self.streaming_config,
                requests=self._requests(self.feed.chunks()),
            )
            self.consume_responses(responses)
        except STREAM_LIMIT_ERRORS as e:
            logger.info(f"Recognition stream ended by service: {e}")
        except Exception as e:
            if not self.abort_event.is_set():
                code = classify_api_error(e)
                logger.error(f"Streaming recognition failed ({code}): {e}")
                self.emit(RecognitionErrorEvent(error=code, message=str(e)))
        finally:
            if self.feed is not None:
                self.feed.close()
            self.emit(RecognitionEndEvent())

    def consume_responses(self, responses: Iterable[Any]) -> None:
        """Turn streaming responses into result events carrying all results so far."""
        finalized: List[List[str]] = []
        for response in responses:
            if self.abort_event.is_set():
                return
            if not response.results:
                continue

            interim: List[List[str]] = []
            for result in response.results:
                alternatives = [alternative.transcript for alternative in result.alternatives]
                if not alternatives:
                    continue
                if result.is_final:
                    finalized.append(alternatives)
                else:
                    interim.append(alternatives)

            self.last_speech_time = time.monotonic()
            logger.debug(f"Recognition update: {len(finalized)} final, {len(interim)} interim")
            self.emit(RecognitionResultEvent(results=finalized + interim))
