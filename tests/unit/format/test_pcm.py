"""Unit tests for PCM sample conversion."""

import numpy as np
import pytest

from wavechain.format.pcm import bytes_per_sample, decode_samples, encode_samples, float_scale


class TestScales:
    """Tests for sample width and full-scale values."""

    @pytest.mark.parametrize(
        ("valid_bits", "expected"), [(2, 1), (8, 1), (9, 2), (16, 2), (24, 3), (32, 4), (64, 8)]
    )
    def test_bytes_per_sample(self, valid_bits: int, expected: int) -> None:
        assert bytes_per_sample(valid_bits) == expected

    def test_float_scale(self) -> None:
        assert float_scale(16) == 32768.0
        assert float_scale(24) == 8388608.0
        assert float_scale(8) == 127.5
        assert float_scale(4) == 7.5


class TestDecodeSamples:
    """Tests for decode_samples."""

    def test_16_bit(self) -> None:
        data = np.array([0, 16384, -16384, -32768, 32767], dtype="<i2").tobytes()
        decoded = decode_samples(data, 16)

        assert decoded.dtype == np.float64
        np.testing.assert_array_equal(decoded, [0.0, 0.5, -0.5, -1.0, 32767 / 32768])

    def test_24_bit_sign_extension(self) -> None:
        data = b"\x00\x00\x80" + b"\xff\xff\xff" + b"\x00\x00\x40"
        np.testing.assert_array_equal(decode_samples(data, 24), [-1.0, -1 / 8388608, 0.5])

    def test_12_bit_in_two_bytes(self) -> None:
        """Widths that are not whole bytes scale by the declared bit depth."""
        data = np.array([1024, -2048], dtype="<i2").tobytes()
        np.testing.assert_array_equal(decode_samples(data, 12), [0.5, -1.0])

    def test_8_bit_unsigned(self) -> None:
        decoded = decode_samples(bytes([0, 255]), 8)
        np.testing.assert_array_equal(decoded, [-1.0, 1.0])

    def test_8_bit_midpoint_is_near_zero(self) -> None:
        decoded = decode_samples(bytes([128]), 8)
        assert decoded[0] == pytest.approx(0.5 / 127.5)

    def test_partial_sample_rejected(self) -> None:
        with pytest.raises(ValueError):
            decode_samples(b"\x00\x01\x02", 16)

    def test_empty(self) -> None:
        assert decode_samples(b"", 16).size == 0


class TestEncodeSamples:
    """Tests for encode_samples."""

    def test_16_bit(self) -> None:
        encoded = encode_samples(np.array([0.0, 0.5, -0.5, -1.0]), 16)
        np.testing.assert_array_equal(
            np.frombuffer(encoded, dtype="<i2"), [0, 16384, -16384, -32768]
        )

    def test_positive_full_scale_clamps(self) -> None:
        encoded = encode_samples(np.array([1.0, 2.0, -3.0]), 16)
        np.testing.assert_array_equal(np.frombuffer(encoded, dtype="<i2"), [32767, 32767, -32768])

    def test_rounds_to_nearest(self) -> None:
        encoded = encode_samples(np.array([0.7 / 32768, -0.7 / 32768]), 16)
        np.testing.assert_array_equal(np.frombuffer(encoded, dtype="<i2"), [1, -1])

    def test_24_bit_width(self) -> None:
        encoded = encode_samples(np.array([-1.0, 0.5]), 24)
        assert encoded == b"\x00\x00\x80" + b"\x00\x00\x40"

    def test_64_bit_upper_bound(self) -> None:
        encoded = encode_samples(np.array([1.0]), 64)
        assert encoded == b"\xff" * 7 + b"\x7f"

    def test_8_bit_clamps_to_unsigned_range(self) -> None:
        encoded = encode_samples(np.array([-1.0, 1.0, -5.0, 5.0]), 8)
        assert encoded == bytes([0, 255, 0, 255])

    def test_non_finite_written_as_silence(self) -> None:
        encoded = encode_samples(np.array([np.nan, np.inf, -np.inf]), 16)
        assert encoded == b"\x00" * 6
