"""Transient audio files and the hosted backend client."""

from .file_manager import FileManager
from .remote_store import RemoteStoreClient, RemoteStoreError

__all__ = [
    "FileManager",
    "RemoteStoreClient",
    "RemoteStoreError",
]
