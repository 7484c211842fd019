"""Terminal status display for dictation and recording."""

import time
import logging
from typing import Optional, Callable

from pubsub import pub
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.console import Group

from ..audio.capture import AudioCaptureSession
from ..models.audio import RecordingStatus, RecordingState
from ..models.transcription import TranscriptionStatus

logger = logging.getLogger(__name__)


class StatusScreen:
    """Live panel fed by the transcription and recording status topics."""

    def __init__(self,
                 console: Optional[Console] = None,
                 transcription_topic: str = "voice.transcription",
                 recording_topic: str = "voice.recording"):
        self.console = console or Console()
        self.transcription_topic = transcription_topic
        self.recording_topic = recording_topic
        self.transcription = TranscriptionStatus()
        self.recording = RecordingStatus()

        pub.subscribe(self._on_transcription, transcription_topic)
        pub.subscribe(self._on_recording, recording_topic)

    def _on_transcription(self, status: TranscriptionStatus) -> None:
        self.transcription = status

    def _on_recording(self, status: RecordingStatus) -> None:
        self.recording = status

    def render(self) -> Panel:
        """Build the status panel from the latest snapshots."""
        table = Table(show_header=False, box=None)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="white")

        listening = "🔴 Listening" if self.transcription.is_listening else "⏹️ Idle"
        table.add_row("Dictation", listening)

        recording_styles = {
            RecordingState.IDLE: ("⏹️ Idle", "yellow"),
            RecordingState.RECORDING: ("🔴 Recording", "bold red"),
            RecordingState.STOPPED: ("✅ Ready", "green"),
            RecordingState.ERROR: ("❌ Error", "bold red"),
        }
        label, style = recording_styles[self.recording.state]
        table.add_row("Recording", Text(label, style=style))
        table.add_row("Elapsed", AudioCaptureSession.format_time(self.recording.elapsed_seconds))

        peak_bar = "█" * int(self.recording.peak_level * 20)
        table.add_row("Peak Level", f"{peak_bar:<20} {self.recording.peak_level:.3f}")
        if self.recording.audio_size:
            table.add_row("Captured", f"{self.recording.audio_size} bytes ({self.recording.mime_type})")

        error = self.recording.error or self.transcription.error
        if error:
            table.add_row("Error", Text(error, style="bold red"))

        transcript = Text(self.transcription.text or "Say something...",
                          style="white" if self.transcription.text else "dim white italic")
        return Panel(Group(table, Text(""), transcript), title="🎙️ farmvoice", border_style="blue")

    def show(self, duration: float, should_stop: Optional[Callable[[], bool]] = None) -> None:
        """Refresh the panel until `duration` seconds pass or `should_stop` returns True."""
        deadline = time.monotonic() + duration
        with Live(self.render(), console=self.console, refresh_per_second=4) as live:
            while time.monotonic() < deadline:
                if should_stop and should_stop():
                    break
                live.update(self.render())
                time.sleep(0.25)
            live.update(self.render())

    def close(self) -> None:
        pub.unsubscribe(self._on_transcription, self.transcription_topic)
        pub.unsubscribe(self._on_recording, self.recording_topic)
