"""RIFF/WAVE chunk utilities.

This module provides the low-level pieces of the WAVE container: FourCC
identifiers, chunk header reading, chunk skipping for both seekable files
and forward-only streams, and serialization of the canonical
RIFF + fmt + data header written in front of PCM sample data.
"""

import struct
from typing import TYPE_CHECKING, BinaryIO

if TYPE_CHECKING:
    from wavechain.format.header import WaveStreamHeader

# FourCC identifiers
RIFF_ID = b"RIFF"
WAVE_ID = b"WAVE"
FMT_ID = b"fmt "
DATA_ID = b"data"

# Audio format codes
WAVE_FORMAT_PCM = 1

# Size of the PCM fmt chunk payload
FMT_CHUNK_SIZE = 16

# Size of the RIFF header (RIFF id + size + WAVE id)
RIFF_HEADER_SIZE = 12

# Size of a chunk header (FourCC + little-endian u32 size)
CHUNK_HEADER_SIZE = 8

# Chunk payloads skipped on forward-only streams are discarded in pieces of this size
_SKIP_BLOCK_SIZE = 4096


class FormatError(Exception):
    """Malformed or unsupported WAVE container."""


class UnsupportedFormatError(FormatError):
    """WAVE container using an encoding other than uncompressed PCM."""


def read_exactly(f: BinaryIO, size: int) -> bytes:
    """Read up to ``size`` bytes, retrying short reads until EOF.

    Streams such as pipes and sockets may return fewer bytes than requested
    even though more data follows, so a single ``read`` is not enough.

    Args:
        f: Readable binary stream.
        size: Number of bytes wanted.

    Returns:
        The bytes read; shorter than ``size`` only when the stream ended.
    """
    chunks = []
    remaining = size
    while remaining > 0:
        block = f.read(remaining)
        if not block:
            break
        chunks.append(block)
        remaining -= len(block)
    return b"".join(chunks)


def read_riff_header(f: BinaryIO) -> int:
    """Read and validate the 12-byte RIFF/WAVE header.

    Args:
        f: Stream positioned at the start of the file.

    Returns:
        The RIFF chunk size declared in the header.

    Raises:
        FormatError: If the header is truncated or the magic tags are wrong.
    """
    riff_header = read_exactly(f, RIFF_HEADER_SIZE)
    if len(riff_header) < RIFF_HEADER_SIZE:
        raise FormatError("Not enough wav file bytes for header")

    if riff_header[:4] != RIFF_ID:
        raise FormatError("Invalid wav header data, incorrect riff chunk ID")

    if riff_header[8:12] != WAVE_ID:
        raise FormatError("Invalid wav header data, incorrect riff type ID")

    return struct.unpack("<I", riff_header[4:8])[0]


def read_chunk_header(f: BinaryIO) -> tuple[bytes, int] | None:
    """Read a RIFF chunk header (FourCC + size).

    Args:
        f: Stream positioned at the start of a chunk.

    Returns:
        Tuple of (chunk_id, chunk_size), or None at a clean end of stream.

    Raises:
        FormatError: If the stream ends partway through the header.
    """
    header = read_exactly(f, CHUNK_HEADER_SIZE)
    if not header:
        return None
    if len(header) < CHUNK_HEADER_SIZE:
        raise FormatError("Could not read chunk header")

    chunk_id = header[:4]
    chunk_size = struct.unpack("<I", header[4:8])[0]
    return chunk_id, chunk_size


def padded_size(chunk_size: int) -> int:
    """Chunk payload size including the word alignment pad byte."""
    return chunk_size + (chunk_size % 2)


def skip_bytes(f: BinaryIO, count: int) -> None:
    """Advance past ``count`` bytes of a stream.

    Seekable files are skipped with a relative seek; forward-only streams
    are read and the data discarded.
    """
    if count <= 0:
        return

    if f.seekable():
        f.seek(count, 1)  # Seek relative to current position
        return

    remaining = count
    while remaining > 0:
        block = f.read(min(remaining, _SKIP_BLOCK_SIZE))
        if not block:
            break
        remaining -= len(block)


def parse_fmt_chunk(fmt_data: bytes) -> tuple[int, int, int, int]:
    """Parse the 16-byte PCM fmt chunk payload.

    Args:
        fmt_data: The first 16 bytes of the fmt chunk.

    Returns:
        Tuple of (num_channels, sample_rate, block_align, valid_bits).

    Raises:
        FormatError: If the payload is truncated.
        UnsupportedFormatError: If the compression code is not PCM.
    """
    if len(fmt_data) < FMT_CHUNK_SIZE:
        raise FormatError("fmt chunk too small")

    (
        compression_code,
        num_channels,
        sample_rate,
        _average_bytes_per_second,
        block_align,
        valid_bits,
    ) = struct.unpack("<HHIIHH", fmt_data[:FMT_CHUNK_SIZE])

    if compression_code != WAVE_FORMAT_PCM:
        raise UnsupportedFormatError(f"Compression code {compression_code} not supported")

    return num_channels, sample_rate, block_align, valid_bits


def build_wav_header(header: "WaveStreamHeader") -> bytes:
    """Build the RIFF header, fmt chunk and data chunk header for a PCM stream.

    Args:
        header: Stream parameters (already validated).

    Returns:
        The 44 header bytes that precede the sample data.
    """
    fmt_chunk = struct.pack(
        "<HHIIHH",
        WAVE_FORMAT_PCM,
        header.num_channels,
        header.sample_rate,
        header.average_bytes_per_second,
        header.block_align,
        header.valid_bits,
    )

    wav = bytearray()

    # RIFF header
    wav.extend(RIFF_ID)
    wav.extend(struct.pack("<I", header.riff_chunk_size))
    wav.extend(WAVE_ID)

    # fmt chunk
    wav.extend(FMT_ID)
    wav.extend(struct.pack("<I", FMT_CHUNK_SIZE))
    wav.extend(fmt_chunk)

    # data chunk header
    wav.extend(DATA_ID)
    wav.extend(struct.pack("<I", header.data_chunk_size))

    return bytes(wav)
