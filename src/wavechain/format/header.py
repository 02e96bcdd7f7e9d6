"""WAVE stream header model."""

from dataclasses import dataclass

from wavechain.format.riff import CHUNK_HEADER_SIZE, FMT_CHUNK_SIZE

# Largest value representable in a RIFF u32 size field
MAX_U32 = 0xFFFFFFFF


@dataclass(frozen=True)
class WaveStreamHeader:
    """Parameters of a PCM WAVE stream.

    Created once when a stream is opened, either from the parsed chunks of a
    source or from caller-supplied values for a new stream.
    """

    num_channels: int
    """Channel count (1-65535)."""

    sample_rate: int
    """Sample rate in Hz."""

    valid_bits: int
    """Declared bit depth per sample (2-64)."""

    num_frames: int
    """Number of frames in the data chunk."""

    @property
    def bytes_per_sample(self) -> int:
        """Bytes used to store one sample (valid bits rounded up to whole bytes)."""
        return (self.valid_bits + 7) // 8

    @property
    def block_align(self) -> int:
        """Bytes consumed by one frame."""
        return self.bytes_per_sample * self.num_channels

    @property
    def data_chunk_size(self) -> int:
        """Size of the data chunk payload, excluding the pad byte."""
        return self.block_align * self.num_frames

    @property
    def word_align_adjust(self) -> bool:
        """Whether a pad byte must follow the sample data."""
        return self.data_chunk_size % 2 == 1

    @property
    def riff_chunk_size(self) -> int:
        """RIFF chunk size as written to bytes 4-7 of the file."""
        # 4 (WAVE) + 8+16 (fmt chunk) + 8+data_size (data chunk)
        size = 4 + CHUNK_HEADER_SIZE + FMT_CHUNK_SIZE + CHUNK_HEADER_SIZE + self.data_chunk_size
        if self.word_align_adjust:
            size += 1
        return size

    @property
    def average_bytes_per_second(self) -> int:
        return self.sample_rate * self.block_align

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.num_frames / self.sample_rate
