"""Unit tests for the Server wiring in farmvoice.main."""

import logging
import shutil
from pathlib import Path

import pytest

from farmvoice.main import Server
from farmvoice.models.audio import RecordingState

EXAMPLE_CONFIG = Path(__file__).parents[2] / "farmvoice.yaml.example"


@pytest.fixture
def config_path(temp_data_dir):
    """The shipped example config, copied next to nothing else."""
    path = Path(temp_data_dir) / "farmvoice.yaml"
    shutil.copy(EXAMPLE_CONFIG, path)
    return str(path)


@pytest.fixture
def restore_logging():
    """setup_logging replaces the root handlers; put them back afterwards."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    for handler in root_logger.handlers:
        if handler not in handlers:
            handler.close()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


@pytest.fixture
def server(config_path, mock_pyaudio, restore_logging):
    server = Server(config_path)
    yield server
    server.cleanup()


@pytest.mark.unit
class TestServer:

    def test_init_without_credentials_file(self, server):
        server.init()

        assert server.capabilities.transcription_supported is False
        assert server.capabilities.recording_supported is True
        assert server.capabilities.secure_context is True
        assert server.notes_service is None

    def test_dictation_unavailable_without_credentials(self, server):
        server.init()

        assert server.transcription_session.is_supported is False
        assert server.transcription_session.start() is False
        assert server.transcription_session.is_listening is False

    def test_recording_available_without_credentials(self, server):
        server.init()

        assert server.capture_session.is_supported is True
        assert server.capture_session.state is RecordingState.IDLE

    def test_init_with_credentials_file(self, server, temp_data_dir):
        creds = Path(temp_data_dir) / "credentials" / "google-service-account.json"
        creds.parent.mkdir()
        creds.write_text("{}")

        server.init()

        assert server.capabilities.transcription_supported is True
        assert server.recognition_engine.credentials_path == str(creds.absolute())

    def test_log_file_is_written_next_to_config(self, server, temp_data_dir):
        assert (Path(temp_data_dir) / "data" / "logs" / "farmvoice.log").exists()
