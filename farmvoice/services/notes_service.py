"""Notes service: binds captured voice to notes persisted in the hosted backend."""

import logging
import uuid
from datetime import datetime
from typing import Optional, List

from pubsub import pub

from ..models.audio import RecordedAudio
from ..models.notes import Note, VoiceNote
from ..models.transcription import TranscriptionStatus
from ..storage.remote_store import RemoteStoreClient

logger = logging.getLogger(__name__)


class NotesService:
    """High-level API for the notes feature.

    This service provides a clean API for clients to:
    1. Keep an editable draft prefilled from live dictation
    2. Save, list and delete text notes
    3. Upload finalized recordings as voice notes (object + metadata row)

    Persistence is delegated entirely to the hosted backend.
    """

    def __init__(self,
                 store: RemoteStoreClient,
                 notes_table: str = "notes",
                 voice_notes_table: str = "voice_notes",
                 bucket: str = "voice-notes"):
        """Initialize notes service.

        Args:
            store: Hosted backend client
            notes_table: Table holding text notes
            voice_notes_table: Table holding voice note metadata
            bucket: Object storage bucket for voice note audio
        """
        self.store = store
        self.notes_table = notes_table
        self.voice_notes_table = voice_notes_table
        self.bucket = bucket

        self.draft_text = ""
        self._subscribed_topic: Optional[str] = None

        logger.info("NotesService initialized")

    def bind_transcription(self, topic: str = "voice.transcription") -> None:
        """Mirror live dictation into the draft text."""
        pub.subscribe(self._on_transcription, topic)
        self._subscribed_topic = topic
        logger.debug(f"NotesService subscribed to {topic}")

    def _on_transcription(self, status: TranscriptionStatus) -> None:
        # An empty transcript (fresh start) keeps whatever the user typed
        if status.text:
            self.draft_text = status.text

    async def list_notes(self) -> List[Note]:
        """Get all text notes, newest first."""
        rows = await self.store.select(self.notes_table, order="created_at")
        return [Note.model_validate(row) for row in rows]

    async def add_note(self, content: Optional[str] = None, user_id: Optional[str] = None) -> Optional[Note]:
        """Save a text note.

        Args:
            content: Note text; the current draft is used when omitted
            user_id: Owner of the note

        Returns:
            The stored note, or None when the content is blank
        """
        content = self.draft_text if content is None else content
        if not content or not content.strip():
            logger.debug("Blank note ignored")
            return None

        rows = await self.store.insert(self.notes_table, [{"content": content, "user_id": user_id}])
        self.draft_text = ""
        note = Note.model_validate(rows[0]) if rows else None
        logger.info(f"Saved note {note.id if note else '?'} ({len(content)} chars)")
        return note

    async def delete_note(self, note_id) -> None:
        await self.store.delete(self.notes_table, "id", note_id)
        logger.info(f"Deleted note {note_id}")

    async def save_voice_note(self,
                              audio: RecordedAudio,
                              duration_seconds: int,
                              user_id: Optional[str] = None) -> Optional[VoiceNote]:
        """Upload a finalized recording and insert its metadata row.

        Args:
            audio: Finalized recording from AudioCaptureSession
            duration_seconds: Elapsed recording time
            user_id: Owner of the note

        Returns:
            The stored voice note metadata
        """
        if audio is None or audio.size == 0:
            raise ValueError("Cannot save an empty recording")

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        folder = user_id or "shared"
        storage_path = f"{folder}/{timestamp}_{uuid.uuid4().hex[:8]}.{audio.extension}"

        await self.store.upload(self.bucket, storage_path, audio.data, audio.mime_type)
        logger.info(f"Uploaded voice note audio: {storage_path} ({audio.size} bytes)")

        row = {
            "audio_url": self.store.public_url(self.bucket, storage_path),
            "storage_path": storage_path,
            "mime_type": audio.mime_type,
            "duration_seconds": duration_seconds,
            "size_bytes": audio.size,
            "user_id": user_id,
        }
        rows = await self.store.insert(self.voice_notes_table, [row])
        return VoiceNote.model_validate(rows[0]) if rows else None

    async def list_voice_notes(self) -> List[VoiceNote]:
        """Get all voice notes, newest first."""
        rows = await self.store.select(self.voice_notes_table, order="created_at")
        return [VoiceNote.model_validate(row) for row in rows]

    async def delete_voice_note(self, note: VoiceNote) -> None:
        """Delete the metadata row and the stored audio object."""
        await self.store.delete(self.voice_notes_table, "id", note.id)
        await self.store.remove_objects(self.bucket, [note.storage_path])
        logger.info(f"Deleted voice note {note.id}")

    def cleanup(self) -> None:
        """Clean up service resources."""
        if self._subscribed_topic:
            pub.unsubscribe(self._on_transcription, self._subscribed_topic)
            self._subscribed_topic = None
        logger.info("NotesService cleaned up")
