"""Streaming WAV container for PCM capture."""

import struct

WAV_HEADER_SIZE = 44

# Unknown length; players read until end of data
_STREAMING_SIZE = 0xFFFFFFFF


def wav_stream_header(sample_rate: int, channels: int = 1, sample_width: int = 2) -> bytes:
    """Build a WAV header for a stream whose length is not known in advance.

    Prepending this to raw little-endian PCM yields a playable file, so the
    recorder can emit it as the first chunk and the session can concatenate
    chunks without rewriting anything.
    """
    byte_rate = sample_rate * channels * sample_width
    block_align = channels * sample_width
    return struct.pack(
        '<4sI4s4sIHHIIHH4sI',
        b'RIFF',
        _STREAMING_SIZE,
        b'WAVE',
        b'fmt ',
        16,                 # PCM fmt chunk size
        1,                  # PCM format tag
        channels,
        sample_rate,
        byte_rate,
        block_align,
        sample_width * 8,
        b'data',
        _STREAMING_SIZE,
    )
