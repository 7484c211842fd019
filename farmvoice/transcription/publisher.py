"""Transcription status publisher module for pub/sub event publishing."""

import logging
from typing import Callable
from pubsub import pub
from ..models.transcription import TranscriptionStatus

logger = logging.getLogger(__name__)


class TranscriptionPublisher:
    """Publishes transcription status snapshots using pubsub.pub."""

    def __init__(self, topic: str = "voice.transcription"):
        """Initialize transcription publisher.

        Args:
            topic: Pub/sub topic name for transcription status
        """
        self.topic = topic
        logger.info(f"TranscriptionPublisher initialized with topic: {topic}")

    def publish_status(self, status: TranscriptionStatus) -> None:
        """Publish a transcription status snapshot to the pub/sub topic.

        Args:
            status: TranscriptionStatus to publish
        """
        pub.sendMessage(self.topic, status=status)
        logger.debug(f"Published transcription status: {status.state.value} ({len(status.text)} chars)")

    def get_callback(self) -> Callable[[TranscriptionStatus], None]:
        """Get callback function for TranscriptionSession to use.

        Returns:
            Callback function that publishes transcription status
        """
        return self.publish_status
