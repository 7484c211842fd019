"""Microphone capture and recording module."""

from .capture import AudioCaptureSession
from .mime import negotiate_mime_type
from .base import (
    AbstractCaptureBackend,
    MediaDeviceError,
    PermissionDeniedError,
    DeviceNotFoundError,
    DeviceBusyError,
    ConstraintsError,
)

__all__ = [
    'AudioCaptureSession',
    'negotiate_mime_type',
    'AbstractCaptureBackend',
    'MediaDeviceError',
    'PermissionDeniedError',
    'DeviceNotFoundError',
    'DeviceBusyError',
    'ConstraintsError',
]
