"""Encoder MIME type negotiation."""

import logging
from typing import Iterable, Optional

from .base import AbstractCaptureBackend

logger = logging.getLogger(__name__)


def negotiate_mime_type(backend: AbstractCaptureBackend, mime_types: Iterable[str]) -> Optional[str]:
    """Return the first MIME type the backend can encode, or None."""
    for mime_type in mime_types:
        if backend.is_type_supported(mime_type):
            logger.debug(f"Negotiated audio format: {mime_type}")
            return mime_type
    return None
