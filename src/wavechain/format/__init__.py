"""PCM WAVE codec.

This module reads and writes uncompressed PCM WAVE files from file paths or
arbitrary binary streams, exposing samples as channel-interleaved float64
arrays normalized to [-1, 1].

Format Overview
---------------
Only the canonical PCM layout is written:

    +----------------------------------------+
    | RIFF Header ("WAVE")                   |
    +----------------------------------------+
    | fmt  chunk (16 bytes, PCM, code 1)     |
    +----------------------------------------+
    | data chunk (interleaved LE integers)   |
    |   - 1 zero pad byte if size is odd     |
    +----------------------------------------+

Readers skip unknown chunks before the data chunk and ignore everything after it.

Example Usage
-------------
>>> from wavechain.format import WaveStreamHeader, load_wav, save_wav
>>> header, samples = load_wav("input.wav")
>>> save_wav("copy.wav", header, samples)
"""

from wavechain.format.header import WaveStreamHeader
from wavechain.format.riff import FormatError, UnsupportedFormatError
from wavechain.format.stream import (
    BUFFER_SIZE,
    ClosedStreamError,
    IOState,
    WavIOError,
    WavReader,
    WavWriter,
    decode_wav,
    encode_wav,
    load_wav,
    new_wav,
    open_wav,
    save_wav,
)
from wavechain.format.validation import ValidationError, ValidationResult, validate_header

__all__ = [
    # Types
    "WaveStreamHeader",
    "IOState",
    "BUFFER_SIZE",
    # Streams
    "WavReader",
    "WavWriter",
    "open_wav",
    "new_wav",
    # Whole-file helpers
    "decode_wav",
    "encode_wav",
    "load_wav",
    "save_wav",
    # Validation
    "validate_header",
    "ValidationResult",
    # Errors
    "FormatError",
    "UnsupportedFormatError",
    "ValidationError",
    "ClosedStreamError",
    "WavIOError",
]
