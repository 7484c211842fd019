"""Continuous speech-to-text session with automatic restart."""

import logging
import threading
from typing import Callable, Optional, Any

from ..models.capabilities import Capabilities
from ..models.events import RecognitionResultEvent, RecognitionErrorEvent, RecognitionEndEvent
from ..models.transcription import TranscriptionState, StopOrigin, TranscriptionStatus, NO_SPEECH
from ..scheduling import AbstractScheduler, ScheduledHandle, cancel_handle
from .base import AbstractRecognitionEngine

logger = logging.getLogger(__name__)


class TranscriptionSession:
    """Drives a recognition engine and exposes its live transcript.

    Engines time out on their own every so often. An end event that the
    consumer did not ask for is treated as a transient interruption: the
    engine is restarted after `restart_delay` seconds and the session stays
    listening. Only `stop()`, `cleanup()` or a fatal engine error bring the
    session back to idle.
    """

    def __init__(self,
                 engine: AbstractRecognitionEngine,
                 capabilities: Capabilities,
                 scheduler: AbstractScheduler,
                 restart_delay: float = 0.1,
                 callback: Optional[Callable[[TranscriptionStatus], None]] = None):
        """Initialize transcription session.

        Args:
            engine: Recognition engine; its events are routed to this session
            capabilities: Capability flags detected at startup
            scheduler: Scheduler used for the restart delay
            restart_delay: Seconds to wait before restarting after an engine timeout
            callback: Receives a status snapshot after every transition
        """
        self.engine = engine
        self.capabilities = capabilities
        self.scheduler = scheduler
        self.restart_delay = restart_delay
        self.status_callback = callback

        self.state = TranscriptionState.IDLE
        self.stop_origin = StopOrigin.MANUAL
        self.text = ""
        self.error: Optional[str] = None
        self.restart_count = 0

        self._restart_handle: Optional[ScheduledHandle] = None
        self.lock = threading.RLock()

        self.engine.bind(self.handle_event)

    @property
    def is_supported(self) -> bool:
        return self.capabilities.transcription_supported

    @property
    def is_listening(self) -> bool:
        return self.state is TranscriptionState.LISTENING

    def get_status(self) -> TranscriptionStatus:
        with self.lock:
            return TranscriptionStatus(state=self.state, text=self.text, error=self.error)

    def start(self) -> bool:
        """Start listening with an empty transcript.

        Returns:
            True if the engine was started
        """
        if not self.is_supported:
            logger.warning("Speech recognition is not supported; not starting")
            return False

        with self.lock:
            if self.state is not TranscriptionState.IDLE:
                logger.warning("Transcription already in progress")
                return False

            self.text = ""
            self.error = None
            self.restart_count = 0
            self.stop_origin = StopOrigin.NONE
            try:
                self.engine.start()
            except Exception as e:
                logger.error(f"Error starting speech recognition: {e}")
                self.stop_origin = StopOrigin.ERROR
                self.error = str(e)
                self._publish()
                return False

            self.state = TranscriptionState.LISTENING
            logger.info("Speech recognition started")
            self._publish()
            return True

    def stop(self) -> None:
        """Stop listening at the consumer's request; no restart follows."""
        with self.lock:
            if self.state is not TranscriptionState.LISTENING:
                return

            restart_pending = self.stop_origin is StopOrigin.ENGINE
            self.stop_origin = StopOrigin.MANUAL
            if restart_pending:
                # Engine already ended; no end event will come
                cancel_handle(self._restart_handle)
                self._restart_handle = None
                logger.info("Stop requested during restart delay; restart skipped")
                self._settle_idle()
                return

            logger.info("Stopping speech recognition")
            self.engine.stop()
            # The engine's end event moves the session to idle

    def handle_event(self, event: Any) -> None:
        """Apply one engine event to the session state."""
        with self.lock:
            if isinstance(event, RecognitionResultEvent):
                self._on_result(event)
            elif isinstance(event, RecognitionErrorEvent):
                self._on_error(event)
            elif isinstance(event, RecognitionEndEvent):
                self._on_end()
            else:
                logger.warning(f"Ignoring unknown recognition event: {event!r}")

    def _on_result(self, event: RecognitionResultEvent) -> None:
        if self.state is not TranscriptionState.LISTENING:
            logger.debug("Result received while idle; ignored")
            return
        # Every event carries the engine's whole reconstruction, so replace
        self.text = "".join(alternatives[0] for alternatives in event.results if alternatives)
        self._publish()

    def _on_error(self, event: RecognitionErrorEvent) -> None:
        if event.error == NO_SPEECH:
            logger.warning("No speech detected; still listening")
            return

        logger.error(f"Speech recognition error: {event.error} {event.message or ''}".rstrip())
        self.error = event.error
        cancel_handle(self._restart_handle)
        self._restart_handle = None
        self.stop_origin = StopOrigin.ERROR
        self._settle_idle()

    def _on_end(self) -> None:
        if self.state is not TranscriptionState.LISTENING:
            logger.debug("End event while idle; nothing to do")
            return

        if self.stop_origin is StopOrigin.NONE:
            self.stop_origin = StopOrigin.ENGINE
            logger.info(f"Recognition ended by engine; restarting in {self.restart_delay}s")
            self._restart_handle = self.scheduler.call_later(self.restart_delay, self._restart)
        elif self.stop_origin is StopOrigin.ENGINE:
            logger.debug("Duplicate end event while restart is pending")
        else:
            self._settle_idle()

    def _restart(self) -> None:
        with self.lock:
            self._restart_handle = None
            if self.stop_origin is not StopOrigin.ENGINE or self.state is not TranscriptionState.LISTENING:
                logger.debug("Restart no longer wanted; skipping")
                if self.state is TranscriptionState.LISTENING:
                    self._settle_idle()
                return

            self.stop_origin = StopOrigin.NONE
            try:
                self.engine.start()
            except Exception as e:
                logger.error(f"Error restarting speech recognition: {e}")
                self.error = str(e)
                self.stop_origin = StopOrigin.ERROR
                self._settle_idle()
                return

            self.restart_count += 1
            logger.debug(f"Speech recognition restarted ({self.restart_count} restarts)")

    def _settle_idle(self) -> None:
        self.state = TranscriptionState.IDLE
        logger.info("Speech recognition idle")
        self._publish()

    def _publish(self) -> None:
        if self.status_callback:
            self.status_callback(TranscriptionStatus(state=self.state, text=self.text, error=self.error))

    def cleanup(self) -> None:
        """Stop the engine unconditionally and release audio input."""
        with self.lock:
            cancel_handle(self._restart_handle)
            self._restart_handle = None
            self.stop_origin = StopOrigin.MANUAL
            try:
                self.engine.abort()
            except Exception as e:
                logger.error(f"Error stopping speech recognition during cleanup: {e}")
            if self.state is not TranscriptionState.IDLE:
                self._settle_idle()
            logger.info("TranscriptionSession cleaned up")
