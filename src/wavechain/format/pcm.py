"""PCM sample conversion.

Converts between raw little-endian PCM bytes and normalized float64 samples.

Samples wider than 8 bits are signed integers scaled by ``2 ** (valid_bits - 1)``.
Samples of 8 bits or less are unsigned bytes scaled by ``0.5 * (2 ** valid_bits - 1)``
around a midpoint, so decoding subtracts 1 after scaling and encoding adds 1
before scaling. The two offsets are inverses of each other: decoding followed by
encoding reproduces the original integers for every valid bit depth up to 53
(the float64 mantissa width).
"""

import numpy as np
from numpy.typing import NDArray

# Width of the int64 container used for sign extension
_CONTAINER_BYTES = 8


def bytes_per_sample(valid_bits: int) -> int:
    """Bytes needed to store a sample of ``valid_bits`` bits."""
    return (valid_bits + 7) // 8


def float_scale(valid_bits: int) -> float:
    """Integer full-scale value for the given bit depth."""
    if valid_bits > 8:
        return float(2 ** (valid_bits - 1))
    return 0.5 * ((1 << valid_bits) - 1)


def decode_samples(data: bytes, valid_bits: int) -> NDArray[np.float64]:
    """Decode raw PCM bytes to normalized float samples.

    Args:
        data: Little-endian sample bytes, a whole number of samples long.
        valid_bits: Declared bit depth of the samples.

    Returns:
        Float64 samples, nominally in [-1, 1].
    """
    width = bytes_per_sample(valid_bits)
    raw = np.frombuffer(data, dtype=np.uint8)
    if len(raw) % width != 0:
        raise ValueError(f"{len(raw)} bytes is not a whole number of {width}-byte samples")

    values = _unpack_integers(raw.reshape(-1, width), signed=width > 1)
    scale = float_scale(valid_bits)

    if valid_bits > 8:
        return values.astype(np.float64) / scale
    return values.astype(np.float64) / scale - 1.0


def encode_samples(samples: NDArray[np.floating], valid_bits: int) -> bytes:
    """Encode normalized float samples to raw PCM bytes.

    Values are rounded to the nearest integer step and clamped to the range
    the bit depth can represent. Non-finite samples are written as silence.

    Args:
        samples: Float samples, nominally in [-1, 1].
        valid_bits: Target bit depth.

    Returns:
        Little-endian sample bytes.
    """
    width = bytes_per_sample(valid_bits)
    x = np.asarray(samples, dtype=np.float64).reshape(-1)
    x = np.where(np.isfinite(x), x, 0.0)
    scale = float_scale(valid_bits)

    if valid_bits > 8:
        # Clamp to [-2^(n-1), 2^(n-1) - 1]; the upper bound is patched in as an
        # integer because it is not representable in float64 above 53 bits
        full_scale = 2 ** (valid_bits - 1)
        scaled = np.clip(np.rint(x * scale), -scale, scale)
        over = scaled >= scale
        scaled[over] = 0.0
        values = scaled.astype(np.int64)
        values[over] = full_scale - 1
    else:
        scaled = np.clip(np.rint((x + 1.0) * scale), 0, (1 << valid_bits) - 1)
        values = scaled.astype(np.int64)

    return _pack_integers(values, width)


def _unpack_integers(raw: NDArray[np.uint8], signed: bool) -> NDArray[np.int64]:
    """Assemble little-endian integers from rows of bytes.

    Args:
        raw: Array of shape (num_samples, width).
        signed: Sign-extend from the most significant byte of each row.

    Returns:
        One int64 per row.
    """
    num_samples, width = raw.shape
    container = np.zeros((num_samples, _CONTAINER_BYTES), dtype=np.uint8)
    container[:, :width] = raw

    if signed and width < _CONTAINER_BYTES:
        negative = (raw[:, width - 1] & 0x80) != 0
        container[negative, width:] = 0xFF

    return container.view("<i8").reshape(-1).astype(np.int64)


def _pack_integers(values: NDArray[np.int64], width: int) -> bytes:
    """Serialize int64 values as little-endian integers of ``width`` bytes."""
    container = values.astype("<i8").view(np.uint8).reshape(-1, _CONTAINER_BYTES)
    return np.ascontiguousarray(container[:, :width]).tobytes()
