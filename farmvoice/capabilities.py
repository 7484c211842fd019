"""Detection of voice-capture capabilities of the running environment."""

import ipaddress
import logging
from typing import Optional
from urllib.parse import urlparse

from .audio.base import AbstractCaptureBackend
from .models.capabilities import Capabilities
from .transcription.base import AbstractRecognitionEngine

logger = logging.getLogger(__name__)

SECURE_SCHEMES = ("https", "wss")
LOCAL_HOSTNAMES = ("localhost",)


def is_secure_origin(origin: Optional[str]) -> bool:
    """True for HTTPS/WSS origins and recognized local development hosts."""
    if not origin:
        return False
    parsed = urlparse(origin)
    if parsed.scheme in SECURE_SCHEMES:
        return True

    host = (parsed.hostname or "").lower()
    if not host:
        return False
    if host in LOCAL_HOSTNAMES or host.endswith(".localhost"):
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


class CapabilityDetector:
    """Probes of the capture backend, recognizer and origin.

    Probing never opens a microphone stream or starts recognition.
    """

    def __init__(self,
                 capture_backend: Optional[AbstractCaptureBackend] = None,
                 recognition_engine: Optional[AbstractRecognitionEngine] = None,
                 origin: Optional[str] = None):
        self.capture_backend = capture_backend
        self.recognition_engine = recognition_engine
        self.origin = origin

    def is_transcription_supported(self) -> bool:
        if self.recognition_engine is None:
            return False
        try:
            return bool(self.recognition_engine.continuous and self.recognition_engine.is_available())
        except Exception as e:
            logger.debug(f"Speech recognition probe failed: {e}")
            return False

    def is_recording_supported(self) -> bool:
        if self.capture_backend is None:
            return False
        try:
            return bool(self.capture_backend.has_microphone_api()
                        and self.capture_backend.has_encoder_api())
        except Exception as e:
            logger.debug(f"Microphone probe failed: {e}")
            return False

    def is_secure_context(self) -> bool:
        try:
            return is_secure_origin(self.origin)
        except Exception as e:
            logger.debug(f"Could not parse origin {self.origin!r}: {e}")
            return False

    def detect(self) -> Capabilities:
        capabilities = Capabilities(
            transcription_supported=self.is_transcription_supported(),
            recording_supported=self.is_recording_supported(),
            secure_context=self.is_secure_context(),
        )
        logger.info(f"Detected capabilities: {capabilities}")
        if not capabilities.transcription_supported:
            logger.warning("Speech recognition is not supported in this environment")
        return capabilities
