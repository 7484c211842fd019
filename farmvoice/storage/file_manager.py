"""Transient file handles for finalized recordings."""

import os
import logging
import tempfile
from pathlib import Path
from typing import Optional, Set

from ..models.audio import RecordedAudio

logger = logging.getLogger(__name__)


class FileManager:
    """Materializes recordings as temporary files that can be played or uploaded.

    A handle lives from the moment a recording is finalized until the session
    releases it (reset, new recording or cleanup). Handles are never reused.
    """

    def __init__(self, temp_dir: Optional[str] = None):
        """Initialize file manager.

        Args:
            temp_dir: Directory for transient files (system temp dir if None)
        """
        self.temp_dir = Path(temp_dir) if temp_dir else None
        if self.temp_dir:
            self.temp_dir.mkdir(parents=True, exist_ok=True)
        self.open_handles: Set[str] = set()

        logger.info(f"FileManager initialized with temp_dir: {self.temp_dir or tempfile.gettempdir()}")

    def create_handle(self, audio: RecordedAudio) -> str:
        """Write the recording to a fresh temporary file and return its path."""
        fd, path = tempfile.mkstemp(
            prefix="recording_",
            suffix=f".{audio.extension}",
            dir=str(self.temp_dir) if self.temp_dir else None,
        )
        with os.fdopen(fd, 'wb') as f:
            f.write(audio.data)

        self.open_handles.add(path)
        logger.debug(f"Created audio handle {path} ({audio.size} bytes)")
        return path

    def release_handle(self, path: Optional[str]) -> None:
        """Delete a handle created by `create_handle`. Unknown paths are left alone."""
        if not path or path not in self.open_handles:
            return
        self.open_handles.discard(path)
        try:
            os.unlink(path)
            logger.debug(f"Released audio handle {path}")
        except FileNotFoundError:
            logger.warning(f"Audio handle already gone: {path}")

    def save_audio_file(self, audio: RecordedAudio, filepath: str) -> str:
        """Copy a recording to a user-chosen path (the "download" action).

        Returns:
            Full path to saved audio file
        """
        target = Path(filepath)
        if not target.suffix:
            target = target.with_suffix(f".{audio.extension}")
        target.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(target, 'wb') as f:
                f.write(audio.data)
            logger.info(f"Audio file saved: {target} ({audio.size} bytes)")
            return str(target)
        except Exception as e:
            logger.error(f"Error saving audio file: {e}")
            raise

    def cleanup(self) -> None:
        """Release every outstanding handle."""
        for path in list(self.open_handles):
            self.release_handle(path)
