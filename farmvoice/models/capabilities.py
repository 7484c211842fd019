"""Capability flags of the running environment."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Capabilities:
    """Capability flags computed once at startup and handed to the sessions."""
    transcription_supported: bool = False
    recording_supported: bool = False
    secure_context: bool = False
