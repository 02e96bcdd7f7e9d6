"""Streaming WAVE reader and writer.

Readers and writers work over either a file path (opened and closed by the
handle) or any binary stream supplied by the caller, including forward-only
streams that do not support seeking. Sample bytes pass through a fixed-size
staging buffer in both directions.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import Any, BinaryIO, Self, TypeAlias

import numpy as np
from numpy.typing import NDArray

from wavechain.format.header import WaveStreamHeader
from wavechain.format.pcm import decode_samples, encode_samples
from wavechain.format.riff import (
    DATA_ID,
    FMT_CHUNK_SIZE,
    FMT_ID,
    FormatError,
    build_wav_header,
    padded_size,
    parse_fmt_chunk,
    read_chunk_header,
    read_exactly,
    read_riff_header,
    skip_bytes,
)
from wavechain.format.validation import MAX_VALID_BITS, MIN_VALID_BITS, check_header

logger = logging.getLogger(__name__)

BUFFER_SIZE = 4096

WavSource: TypeAlias = Path | str | BinaryIO


class IOState(Enum):
    READING = "reading"
    WRITING = "writing"
    CLOSED = "closed"


class ClosedStreamError(Exception):
    """Read or write attempted on a closed WAVE stream."""


class WavIOError(OSError):
    """Failure of the byte source or sink underneath a WAVE stream."""


class _WavStream(ABC):
    """State shared by readers and writers."""

    def __init__(
        self,
        stream: BinaryIO,
        header: WaveStreamHeader,
        state: IOState,
        *,
        owns_stream: bool,
        name: str | None,
    ) -> None:
        self._stream = stream
        self._header = header
        self._state = state
        self._owns_stream = owns_stream
        self._name = name
        self._frame_counter = 0

    @property
    def header(self) -> WaveStreamHeader:
        return self._header

    @property
    def state(self) -> IOState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is IOState.CLOSED

    @property
    def frames_remaining(self) -> int:
        """Frames left to read or write before the declared frame count is reached."""
        return self._header.num_frames - self._frame_counter

    def describe(self) -> dict[str, Any]:
        """Summary of the stream for display."""
        return {
            "file": self._name or "Stream",
            "channels": self._header.num_channels,
            "frames": self._header.num_frames,
            "io_state": self._state.value,
            "sample_rate": self._header.sample_rate,
            "block_align": self._header.block_align,
            "valid_bits": self._header.valid_bits,
            "bytes_per_sample": self._header.bytes_per_sample,
        }

    def _require_open(self) -> None:
        if self._state is IOState.CLOSED:
            raise ClosedStreamError(f"Cannot use closed WAVE stream: {self._name or 'Stream'}")

    def _release(self) -> None:
        self._state = IOState.CLOSED
        if self._owns_stream:
            try:
                self._stream.close()
            except OSError as e:
                raise WavIOError(f"Failed to close {self._name}: {e}") from e

    @abstractmethod
    def close(self) -> None:
        """Release the handle; streams opened from a path are closed."""

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class WavReader(_WavStream):
    """Frame-oriented reader for PCM WAVE data.

    The header is parsed on construction; samples are then read on demand.

    Example:
        >>> with WavReader.open("input.wav") as reader:
        ...     samples = reader.read_frames()
    """

    def __init__(
        self,
        stream: BinaryIO,
        *,
        owns_stream: bool = False,
        name: str | None = None,
    ) -> None:
        try:
            riff_chunk_size, header = _parse_header(stream)
        except OSError as e:
            raise WavIOError(f"Failed to read WAVE header: {e}") from e

        super().__init__(stream, header, IOState.READING, owns_stream=owns_stream, name=name)
        self.riff_chunk_size = riff_chunk_size
        self._buffer = b""
        self._buffer_pointer = 0

    @classmethod
    def open(cls, path: Path | str) -> "WavReader":
        """Open a WAVE file for reading.

        Unlike stream sources, files allow the declared RIFF size to be checked
        against the real file length; a mismatch is logged but not fatal.

        Raises:
            WavIOError: If the file cannot be opened.
            FormatError: If the file is not a readable PCM WAVE file.
        """
        path = Path(path)
        try:
            f = open(path, "rb")
        except FileNotFoundError as e:
            raise WavIOError(f"File not found: {path}") from e
        except OSError as e:
            raise WavIOError(f"Cannot open file: {path}") from e

        try:
            reader = cls(f, owns_stream=True, name=path.name)
        except BaseException:
            f.close()
            raise

        file_size = path.stat().st_size
        if file_size != reader.riff_chunk_size + 8:
            logger.warning(
                "Header chunk size (%d) does not match file size (%d) for %s",
                reader.riff_chunk_size,
                file_size,
                path,
            )
        return reader

    def read_frames(self, num_frames: int | None = None) -> NDArray[np.float64]:
        """Read frames as channel-interleaved normalized samples.

        Args:
            num_frames: Frames to read; all remaining frames if None. Requests
                beyond the end of the data chunk are truncated.

        Returns:
            Float64 array of ``frames_read * num_channels`` samples.

        Raises:
            ClosedStreamError: If the reader has been closed.
            FormatError: If the source ends inside the data chunk.
        """
        self._require_open()

        remaining = self.frames_remaining
        frames = remaining if num_frames is None else max(0, min(num_frames, remaining))
        num_bytes = frames * self._header.block_align

        data = self._read_staged(num_bytes)
        if len(data) < num_bytes:
            raise FormatError("Not enough data available")

        self._frame_counter += frames
        return decode_samples(data, self._header.valid_bits)

    def _read_staged(self, num_bytes: int) -> bytes:
        """Pull bytes through the staging buffer, refilling it in fixed-size blocks."""
        out = bytearray()
        while len(out) < num_bytes:
            if self._buffer_pointer == len(self._buffer):
                try:
                    self._buffer = read_exactly(self._stream, BUFFER_SIZE)
                except OSError as e:
                    raise WavIOError(f"Failed to read sample data: {e}") from e
                self._buffer_pointer = 0
                if not self._buffer:
                    break

            take = min(num_bytes - len(out), len(self._buffer) - self._buffer_pointer)
            out += self._buffer[self._buffer_pointer : self._buffer_pointer + take]
            self._buffer_pointer += take
        return bytes(out)

    def close(self) -> None:
        if self._state is IOState.CLOSED:
            return
        self._buffer = b""
        self._buffer_pointer = 0
        self._release()


class WavWriter(_WavStream):
    """Frame-oriented writer for PCM WAVE data.

    The complete header is written on construction from the declared stream
    parameters, so the frame count must be known up front. Writes stop
    silently once the declared number of frames has been written.

    Example:
        >>> header = WaveStreamHeader(num_channels=1, sample_rate=8000, valid_bits=16, num_frames=4)
        >>> with WavWriter.create("out.wav", header) as writer:
        ...     writer.write_frames(samples)
    """

    def __init__(
        self,
        stream: BinaryIO,
        header: WaveStreamHeader,
        *,
        owns_stream: bool = False,
        name: str | None = None,
    ) -> None:
        check_header(header)
        super().__init__(stream, header, IOState.WRITING, owns_stream=owns_stream, name=name)
        self._buffer = bytearray()
        self._write_raw(build_wav_header(header))

    @classmethod
    def create(cls, path: Path | str, header: WaveStreamHeader) -> "WavWriter":
        """Create (or truncate) a WAVE file for writing.

        Raises:
            ValidationError: If the header is out of range; the file is not touched.
            WavIOError: If the file cannot be opened.
        """
        check_header(header)
        path = Path(path)
        try:
            f = open(path, "wb")
        except OSError as e:
            raise WavIOError(f"Cannot open file for writing: {path}") from e

        try:
            return cls(f, header, owns_stream=True, name=path.name)
        except BaseException:
            f.close()
            raise

    def write_frames(self, samples: NDArray[np.floating], num_frames: int | None = None) -> int:
        """Write channel-interleaved normalized samples.

        Args:
            samples: Flat array of interleaved samples.
            num_frames: Frames to take from ``samples``; all whole frames if None.

        Returns:
            The number of frames written, which is less than requested once
            the declared frame count is reached.

        Raises:
            ClosedStreamError: If the writer has been closed.
        """
        self._require_open()

        flat = np.asarray(samples, dtype=np.float64).reshape(-1)
        available = len(flat) // self._header.num_channels
        requested = available if num_frames is None else min(num_frames, available)
        frames = max(0, min(requested, self.frames_remaining))

        if frames:
            chunk = flat[: frames * self._header.num_channels]
            self._stage(encode_samples(chunk, self._header.valid_bits))
            self._frame_counter += frames
        return frames

    def _stage(self, data: bytes) -> None:
        """Append bytes to the staging buffer, writing out every full block."""
        self._buffer.extend(data)
        full = (len(self._buffer) // BUFFER_SIZE) * BUFFER_SIZE
        if full:
            self._write_raw(bytes(self._buffer[:full]))
            del self._buffer[:full]

    def _write_raw(self, data: bytes) -> None:
        try:
            self._stream.write(data)
        except OSError as e:
            raise WavIOError(f"Failed to write WAVE data: {e}") from e

    def close(self) -> None:
        """Flush buffered samples, write the word alignment pad byte and close."""
        if self._state is IOState.CLOSED:
            return

        try:
            if self._buffer:
                self._write_raw(bytes(self._buffer))
                self._buffer.clear()

            if self._header.word_align_adjust:
                self._write_raw(b"\x00")

            try:
                self._stream.flush()
            except OSError as e:
                raise WavIOError(f"Failed to flush WAVE data: {e}") from e
        finally:
            self._release()


def _parse_header(stream: BinaryIO) -> tuple[int, WaveStreamHeader]:
    """Parse RIFF/WAVE chunks up to the start of the sample data.

    Returns:
        Tuple of (riff_chunk_size, header).
    """
    riff_chunk_size = read_riff_header(stream)

    fmt: tuple[int, int, int, int] | None = None
    num_frames: int | None = None

    while num_frames is None:
        chunk = read_chunk_header(stream)
        if chunk is None:
            if fmt is None:
                raise FormatError("Reached end of file without finding format chunk")
            raise FormatError("Did not find a data chunk")

        chunk_id, chunk_size = chunk

        if chunk_id == FMT_ID:
            fmt = parse_fmt_chunk(read_exactly(stream, FMT_CHUNK_SIZE))
            _check_fmt(*fmt)
            skip_bytes(stream, padded_size(chunk_size) - FMT_CHUNK_SIZE)
        elif chunk_id == DATA_ID:
            if fmt is None:
                raise FormatError("Data chunk found before format chunk")
            block_align = fmt[2]
            if chunk_size % block_align != 0:
                raise FormatError("Data chunk size is not multiple of block align")
            num_frames = chunk_size // block_align
        else:
            skip_bytes(stream, padded_size(chunk_size))

    num_channels, sample_rate, _block_align, valid_bits = fmt
    header = WaveStreamHeader(
        num_channels=num_channels,
        sample_rate=sample_rate,
        valid_bits=valid_bits,
        num_frames=num_frames,
    )
    return riff_chunk_size, header


def _check_fmt(num_channels: int, sample_rate: int, block_align: int, valid_bits: int) -> None:
    """Sanity checks on parsed fmt chunk fields."""
    if num_channels == 0:
        raise FormatError("Number of channels specified in header is equal to zero")
    if block_align == 0:
        raise FormatError("Block align specified in header is equal to zero")
    if valid_bits < MIN_VALID_BITS:
        raise FormatError(f"Valid bits specified in header is less than {MIN_VALID_BITS}")
    if valid_bits > MAX_VALID_BITS:
        raise FormatError(f"Valid bits specified in header is greater than {MAX_VALID_BITS}")

    bytes_per_sample = (valid_bits + 7) // 8
    if bytes_per_sample * num_channels != block_align:
        raise FormatError(
            "Block align does not agree with bytes required for valid bits and number of channels"
        )


def open_wav(source: WavSource) -> WavReader:
    """Open a WAVE file path or readable binary stream for reading."""
    if isinstance(source, (str, Path)):
        return WavReader.open(source)
    return WavReader(source)


def new_wav(sink: WavSource, header: WaveStreamHeader) -> WavWriter:
    """Open a WAVE file path or writable binary stream for writing."""
    if isinstance(sink, (str, Path)):
        return WavWriter.create(sink, header)
    return WavWriter(sink, header)


def decode_wav(source: WavSource) -> tuple[WaveStreamHeader, NDArray[np.float64]]:
    """Decode a complete WAVE file or stream.

    Returns:
        Tuple of (header, samples) with samples channel-interleaved.
    """
    with open_wav(source) as reader:
        samples = reader.read_frames()
        return reader.header, samples


def encode_wav(
    sink: WavSource,
    header: WaveStreamHeader,
    samples: NDArray[np.floating],
) -> None:
    """Encode samples as a complete WAVE file or stream."""
    with new_wav(sink, header) as writer:
        writer.write_frames(samples)


def load_wav(path: Path | str) -> tuple[WaveStreamHeader, NDArray[np.float64]]:
    """Load a WAVE file from disk."""
    return decode_wav(Path(path))


def save_wav(
    path: Path | str,
    header: WaveStreamHeader,
    samples: NDArray[np.floating],
) -> None:
    """Save samples to a WAVE file, creating parent directories as needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    encode_wav(path, header, samples)
