"""Row models for notes stored in the hosted backend."""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel


class Note(BaseModel):
    """Text note row (``notes`` table)."""
    id: Union[int, str]
    content: str
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None


class VoiceNote(BaseModel):
    """Voice note metadata row; the audio itself lives in object storage."""
    id: Union[int, str]
    audio_url: str
    storage_path: str
    mime_type: str
    duration_seconds: int = 0
    size_bytes: int = 0
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
