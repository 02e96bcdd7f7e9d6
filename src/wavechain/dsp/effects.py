"""The six effect algorithms applied by an effect chain.

Every algorithm takes ``(samples, param_level, sample_rate)``, transforms the
float64 sample array in place and returns it. ``param_level`` is the 0-100
control value; each effect maps it to its own physical parameter. Samples are
processed as one flat channel-interleaved sequence, so stateful effects (the
low-pass filter, ring modulator phase and clip envelope) run continuously
across channels in index order.
"""

import math
from enum import IntEnum

import numpy as np
from numba import njit
from numpy.typing import NDArray
from scipy.signal import lfilter

from wavechain.utils import assert_exhaustiveness

TWO_PI = 2.0 * math.pi

# LOW_PASS_CUTOFF
MIN_CUTOFF_HZ = 100.0
MAX_CUTOFF_HZ = 3000.0

# RING_MODULATION
MIN_MOD_FREQ_HZ = 50.0
MAX_MOD_FREQ_HZ = 500.0

# CLIP_AND_DECAY
MIN_HARD_DRIVE = 1.0
MAX_HARD_DRIVE = 5.0
ATTACK_TIME_S = 0.05
MIN_DECAY_TIME_S = 0.1
MAX_DECAY_TIME_S = 0.5
ENVELOPE_FLOOR = 0.05

# BIT_CRUSH
MAX_CRUSH_BITS = 16


class EffectKind(IntEnum):
    """The fixed set of effects.

    Values are the identifiers stored in persisted presets and must not change.
    """

    LOW_PASS_CUTOFF = 0
    """One-pole IIR low-pass filter."""

    RING_MODULATION = 1
    """Multiplication by a sine carrier."""

    CLIP_AND_DECAY = 2
    """Hard clip followed by an attack/decay envelope."""

    BIT_CRUSH = 3
    """Amplitude quantization to a reduced bit depth."""

    DRIVE = 4
    """Linear gain boost."""

    SATURATION = 5
    """Hyperbolic tangent soft clipping."""

    @property
    def display_name(self) -> str:
        """Human-readable name for this effect."""
        names = {
            self.LOW_PASS_CUTOFF: "LPF Cutoff",
            self.RING_MODULATION: "Ring Mod Freq",
            self.CLIP_AND_DECAY: "Clip/Decay Speed",
            self.BIT_CRUSH: "Bitcrush",
            self.DRIVE: "Drive",
            self.SATURATION: "Saturation",
        }
        return names[self]

    def describe_level(self, param_level: int) -> str:
        """Describe the physical parameter a param level maps to."""
        match self:
            case EffectKind.LOW_PASS_CUTOFF:
                return f"cutoff {cutoff_frequency(param_level):.0f} Hz"
            case EffectKind.RING_MODULATION:
                return f"carrier {modulation_frequency(param_level):.0f} Hz"
            case EffectKind.CLIP_AND_DECAY:
                return (
                    f"threshold {clip_threshold(param_level):.3f}, "
                    f"decay {decay_time(param_level):.2f} s"
                )
            case EffectKind.BIT_CRUSH:
                return f"{effective_bits(param_level)} bits"
            case EffectKind.DRIVE:
                return f"gain x{drive_gain(param_level):.2f}"
            case EffectKind.SATURATION:
                return f"tanh amount {saturation_amount(param_level):.2f}"
            case _:
                assert_exhaustiveness(self)


# Parameter mappings
# ------------------


def cutoff_frequency(param_level: int) -> float:
    return MIN_CUTOFF_HZ + (MAX_CUTOFF_HZ - MIN_CUTOFF_HZ) * (param_level / 100.0)


def modulation_frequency(param_level: int) -> float:
    return MIN_MOD_FREQ_HZ + (MAX_MOD_FREQ_HZ - MIN_MOD_FREQ_HZ) * (param_level / 100.0)


def clip_threshold(param_level: int) -> float:
    hard_drive = MIN_HARD_DRIVE + (MAX_HARD_DRIVE - MIN_HARD_DRIVE) * (param_level / 100.0)
    return 1.0 / hard_drive


def decay_time(param_level: int) -> float:
    return MAX_DECAY_TIME_S - (MAX_DECAY_TIME_S - MIN_DECAY_TIME_S) * (param_level / 100.0)


def effective_bits(param_level: int) -> int:
    """Bit depth kept by the bit crusher: 16 at level 0 down to 1 at level 96+."""
    return max(1, MAX_CRUSH_BITS - param_level // 6)


def drive_gain(param_level: int) -> float:
    return 1.0 + param_level / 50.0


def saturation_amount(param_level: int) -> float:
    return 1.0 + param_level / 20.0


# Algorithms
# ----------


def low_pass_cutoff(
    samples: NDArray[np.float64], param_level: int, sample_rate: int
) -> NDArray[np.float64]:
    """One-pole IIR low-pass: ``y[n] = a*x[n] + (1 - a)*y[n-1]`` with ``y[-1] = 0``.

    Args:
        samples: Buffer to filter in place.
        param_level: 0-100, mapped to a 100-3000 Hz cutoff.
        sample_rate: Sample rate in Hz.

    Returns:
        The filtered buffer.
    """
    if samples.size == 0:
        return samples

    rc = 1.0 / (cutoff_frequency(param_level) * TWO_PI)
    alpha = 1.0 / (rc * sample_rate + 1.0)
    samples[:] = lfilter([alpha], [1.0, alpha - 1.0], samples)
    return samples


@njit
def _ring_modulate_core(samples: NDArray[np.float64], increment: float) -> None:
    """Numba-optimized carrier multiplication with a wrapped phase accumulator."""
    two_pi = 2.0 * np.pi
    phase = 0.0
    for i in range(len(samples)):
        samples[i] *= np.sin(phase)
        phase += increment
        if phase >= two_pi:
            phase -= two_pi


def ring_modulation(
    samples: NDArray[np.float64], param_level: int, sample_rate: int
) -> NDArray[np.float64]:
    """Multiply by a sine carrier of 50-500 Hz starting at phase 0.

    Args:
        samples: Buffer to modulate in place.
        param_level: 0-100, mapped to the carrier frequency.
        sample_rate: Sample rate in Hz.

    Returns:
        The modulated buffer.
    """
    increment = TWO_PI * modulation_frequency(param_level) / sample_rate
    _ring_modulate_core(samples, increment)
    return samples


def clip_and_decay(
    samples: NDArray[np.float64], param_level: int, sample_rate: int
) -> NDArray[np.float64]:
    """Hard clip, then shape with an attack / linear decay / floor envelope.

    Higher levels clip harder and decay faster. The envelope ramps up over
    the first 50 ms, decays linearly from ``min(attack, len // 4)`` over the
    decay time, and holds at 0.05 afterwards.

    Args:
        samples: Buffer to process in place.
        param_level: 0-100 drive and decay speed.
        sample_rate: Sample rate in Hz.

    Returns:
        The processed buffer.
    """
    threshold = clip_threshold(param_level)
    np.clip(samples, -threshold, threshold, out=samples)

    n = len(samples)
    attack_samples = int(ATTACK_TIME_S * sample_rate)
    decay_samples = int(decay_time(param_level) * sample_rate)
    start_decay = min(attack_samples, n // 4)

    i = np.arange(n, dtype=np.float64)
    # Divisors are only used where their branch is selected
    attack_ramp = i / max(attack_samples, 1)
    decay_ramp = 1.0 - (i - start_decay) / max(decay_samples, 1)

    envelope = np.where(
        i < attack_samples,
        attack_ramp,
        np.where(i < start_decay + decay_samples, decay_ramp, ENVELOPE_FLOOR),
    )
    np.maximum(envelope, 0.0, out=envelope)

    samples *= envelope
    return samples


def bit_crush(
    samples: NDArray[np.float64], param_level: int, sample_rate: int
) -> NDArray[np.float64]:
    """Quantize to ``2 ** bits - 1`` levels per unit, rounding halves up.

    ``sample_rate`` is unused; the signature matches the other effects.
    """
    levels = float(2 ** effective_bits(param_level) - 1)
    samples[:] = np.floor(samples * levels + 0.5) / levels
    return samples


def drive(samples: NDArray[np.float64], param_level: int, sample_rate: int) -> NDArray[np.float64]:
    """Linear gain of 1x-3x. Output is not limited."""
    samples *= drive_gain(param_level)
    return samples


def saturation(
    samples: NDArray[np.float64], param_level: int, sample_rate: int
) -> NDArray[np.float64]:
    """Soft clip with ``tanh(x * amount)``, amount 1-6."""
    np.tanh(samples * saturation_amount(param_level), out=samples)
    return samples


def apply_effect(
    kind: EffectKind,
    samples: NDArray[np.float64],
    param_level: int,
    sample_rate: int,
) -> NDArray[np.float64]:
    """Run the algorithm for ``kind`` on ``samples`` in place."""
    match kind:
        case EffectKind.LOW_PASS_CUTOFF:
            return low_pass_cutoff(samples, param_level, sample_rate)
        case EffectKind.RING_MODULATION:
            return ring_modulation(samples, param_level, sample_rate)
        case EffectKind.CLIP_AND_DECAY:
            return clip_and_decay(samples, param_level, sample_rate)
        case EffectKind.BIT_CRUSH:
            return bit_crush(samples, param_level, sample_rate)
        case EffectKind.DRIVE:
            return drive(samples, param_level, sample_rate)
        case EffectKind.SATURATION:
            return saturation(samples, param_level, sample_rate)
        case _:
            assert_exhaustiveness(kind)
