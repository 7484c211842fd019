"""Unit tests for MIME negotiation and the streaming WAV header."""

import io
import struct
import wave

import pytest

from farmvoice.audio.codec import wav_stream_header, WAV_HEADER_SIZE
from farmvoice.audio.mime import negotiate_mime_type
from farmvoice.models.audio import DEFAULT_MIME_TYPES, RecordedAudio


@pytest.mark.unit
class TestMimeNegotiation:

    def test_first_supported_preference_wins(self, backend_factory):
        backend = backend_factory(supported_types=("audio/ogg;codecs=opus", "audio/webm"))

        assert negotiate_mime_type(backend, DEFAULT_MIME_TYPES) == "audio/webm"

    def test_wav_only_backend(self, backend_factory):
        backend = backend_factory(supported_types=("audio/wav",))

        assert negotiate_mime_type(backend, DEFAULT_MIME_TYPES) == "audio/wav"

    def test_nothing_supported(self, backend_factory):
        backend = backend_factory(supported_types=())

        assert negotiate_mime_type(backend, DEFAULT_MIME_TYPES) is None
        assert negotiate_mime_type(backend, []) is None

    @pytest.mark.parametrize("mime_type, extension", [
        ("audio/webm;codecs=opus", "webm"),
        ("audio/webm", "webm"),
        ("audio/ogg;codecs=opus", "ogg"),
        ("audio/mp4", "m4a"),
        ("audio/wav", "wav"),
        ("audio/x-unknown", "bin"),
    ])
    def test_extension_follows_container(self, mime_type, extension):
        assert RecordedAudio(data=b"", mime_type=mime_type).extension == extension


@pytest.mark.unit
class TestWavStreamHeader:

    def test_header_layout(self):
        header = wav_stream_header(44100, channels=1, sample_width=2)

        assert len(header) == WAV_HEADER_SIZE
        assert header[0:4] == b'RIFF'
        assert header[8:16] == b'WAVEfmt '
        assert header[36:40] == b'data'

        fmt_size, tag, channels, rate, byte_rate, block_align, bits = struct.unpack('<IHHIIHH', header[16:36])
        assert (fmt_size, tag, channels, rate) == (16, 1, 1, 44100)
        assert byte_rate == 88200
        assert block_align == 2
        assert bits == 16

    def test_header_plus_pcm_is_readable(self, sample_audio_chunk):
        data = wav_stream_header(16000) + sample_audio_chunk

        with wave.open(io.BytesIO(data), 'rb') as wf:
            assert wf.getnchannels() == 1
            assert wf.getsampwidth() == 2
            assert wf.getframerate() == 16000
            assert wf.readframes(1024) == sample_audio_chunk
