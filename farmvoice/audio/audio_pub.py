"""Recording status publisher module for pub/sub event publishing."""

import logging
from typing import Callable
from pubsub import pub
from ..models.audio import RecordingStatus

logger = logging.getLogger(__name__)


class RecordingPublisher:
    """Publishes recording status snapshots using pubsub.pub."""

    def __init__(self, topic: str = "voice.recording"):
        """Initialize recording publisher.

        Args:
            topic: Pub/sub topic name for recording status
        """
        self.topic = topic
        logger.info(f"RecordingPublisher initialized with topic: {topic}")

    def publish_status(self, status: RecordingStatus) -> None:
        """Publish a recording status snapshot to the pub/sub topic."""
        pub.sendMessage(self.topic, status=status)
        logger.debug(f"Published recording status: {status.state.value} ({status.elapsed_seconds}s)")

    def get_callback(self) -> Callable[[RecordingStatus], None]:
        """Get callback function for AudioCaptureSession to use."""
        return self.publish_status
