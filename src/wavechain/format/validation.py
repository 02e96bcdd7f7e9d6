"""Validation functions for WAVE stream headers.

This module checks caller-supplied stream parameters against the bounds the
WAVE container can represent before any bytes are written.
"""

from dataclasses import dataclass

from wavechain.format.header import MAX_U32, WaveStreamHeader
from wavechain.format.riff import FormatError

MIN_CHANNELS = 1
MAX_CHANNELS = 65535
MIN_VALID_BITS = 2
MAX_VALID_BITS = 64


class ValidationError(FormatError):
    """Out-of-range stream parameters or malformed preset data."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


@dataclass
class ValidationResult:
    """Result of validation with optional warnings."""

    valid: bool
    errors: list[str]
    warnings: list[str]

    @classmethod
    def success(cls, warnings: list[str] | None = None) -> "ValidationResult":
        """Create a successful validation result."""
        return cls(valid=True, errors=[], warnings=warnings or [])

    @classmethod
    def failure(cls, errors: list[str], warnings: list[str] | None = None) -> "ValidationResult":
        """Create a failed validation result."""
        return cls(valid=False, errors=errors, warnings=warnings or [])


def _header_errors(header: WaveStreamHeader) -> list[tuple[str, str]]:
    """Return (field, message) pairs for every out-of-range header value."""
    errors: list[tuple[str, str]] = []

    if not MIN_CHANNELS <= header.num_channels <= MAX_CHANNELS:
        errors.append(
            (
                "num_channels",
                f"num_channels must be within {MIN_CHANNELS}-{MAX_CHANNELS}, "
                f"got {header.num_channels}",
            )
        )

    if header.num_frames < 0:
        errors.append(("num_frames", f"num_frames must be >= 0, got {header.num_frames}"))

    if not MIN_VALID_BITS <= header.valid_bits <= MAX_VALID_BITS:
        errors.append(
            (
                "valid_bits",
                f"valid_bits must be within {MIN_VALID_BITS}-{MAX_VALID_BITS}, "
                f"got {header.valid_bits}",
            )
        )

    if header.sample_rate <= 0:
        errors.append(("sample_rate", f"sample_rate must be > 0, got {header.sample_rate}"))

    # Derived sizes are only meaningful once the fields themselves are in range
    if not errors:
        if header.riff_chunk_size > MAX_U32:
            errors.append(
                (
                    "num_frames",
                    f"data chunk of {header.data_chunk_size} bytes does not fit a RIFF file",
                )
            )
        if header.average_bytes_per_second > MAX_U32:
            errors.append(
                (
                    "sample_rate",
                    f"average bytes per second ({header.average_bytes_per_second}) "
                    "does not fit the fmt chunk",
                )
            )

    return errors


def validate_header(header: WaveStreamHeader) -> ValidationResult:
    """Validate stream parameters for writing.

    This checks:
    - num_channels within 1-65535
    - num_frames >= 0
    - valid_bits within 2-64
    - sample_rate > 0
    - derived sizes fit the u32 fields of the RIFF header

    Args:
        header: The header to validate.

    Returns:
        ValidationResult with errors and warnings.
    """
    errors = [message for _, message in _header_errors(header)]
    warnings: list[str] = []

    if not errors and header.valid_bits % 8 != 0:
        warnings.append(
            f"valid_bits={header.valid_bits} is not a whole number of bytes, "
            "some readers only accept 8/16/24/32-bit PCM"
        )

    if errors:
        return ValidationResult.failure(errors, warnings)
    return ValidationResult.success(warnings)


def check_header(header: WaveStreamHeader) -> None:
    """Raise ValidationError naming the first out-of-range field of ``header``."""
    errors = _header_errors(header)
    if errors:
        field, _ = errors[0]
        messages = [message for _, message in errors]
        raise ValidationError(f"Header validation failed: {messages}", field=field)
