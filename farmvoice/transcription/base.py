"""Abstract base class for continuous speech recognition engines."""

from abc import ABC, abstractmethod
from typing import Callable, Any, Optional
import logging

logger = logging.getLogger(__name__)


class AbstractRecognitionEngine(ABC):
    """Continuous, streaming speech-to-text engine.

    Engines report through the bound listener: `RecognitionResultEvent` with
    the full list of current results on every update, `RecognitionErrorEvent`
    on failures, and `RecognitionEndEvent` whenever listening ends, whether
    requested through `stop()` or imposed by the platform.
    """

    def __init__(self, language: str = "ru-RU"):
        """Initialize engine with language preference."""
        self.language = language
        self.continuous = True
        self.interim_results = True
        self.listener: Optional[Callable[[Any], None]] = None

    def bind(self, listener: Callable[[Any], None]) -> None:
        """Route engine events to `listener`."""
        self.listener = listener

    def emit(self, event: Any) -> None:
        if self.listener is not None:
            self.listener(event)
        else:
            logger.debug(f"Dropping {type(event).__name__}: no listener bound")

    @abstractmethod
    def is_available(self) -> bool:
        """True if the engine can run continuous recognition here."""
        pass

    @abstractmethod
    def start(self) -> None:
        """Begin listening. Raises RuntimeError if already running or unavailable."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Request a graceful end; an end event follows."""
        pass

    @abstractmethod
    def abort(self) -> None:
        """Stop immediately and release audio input."""
        pass
