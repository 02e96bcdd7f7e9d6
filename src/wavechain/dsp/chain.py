"""Ordered effect chain with per-effect parameter and dry/wet mix levels.

A chain always holds exactly one step per ``EffectKind``. Only the position
of each step and its two levels can change; both levels belong to the effect,
so they move with it when the chain is reordered. Chains are immutable:
every edit returns a new chain.
"""

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, replace

import numpy as np
from numpy.typing import NDArray

from wavechain.dsp.effects import EffectKind, apply_effect
from wavechain.format.validation import ValidationError

logger = logging.getLogger(__name__)

NUM_EFFECTS = len(EffectKind)
MIN_LEVEL = 0
MAX_LEVEL = 100

DEFAULT_ORDER: tuple[EffectKind, ...] = (
    EffectKind.LOW_PASS_CUTOFF,
    EffectKind.RING_MODULATION,
    EffectKind.CLIP_AND_DECAY,
    EffectKind.BIT_CRUSH,
    EffectKind.DRIVE,
    EffectKind.SATURATION,
)

# Effects enabled at full wet when no preset has been saved
DEFAULT_WET_EFFECTS = frozenset(
    {EffectKind.LOW_PASS_CUTOFF, EffectKind.RING_MODULATION, EffectKind.CLIP_AND_DECAY}
)


@dataclass(frozen=True)
class EffectStep:
    """One effect in a chain with its levels."""

    kind: EffectKind
    param_level: int = 0
    """Effect parameter, 0-100."""

    mix_level: int = 0
    """Wet signal percentage, 0-100. 0 bypasses the effect entirely."""


@dataclass(frozen=True)
class EffectChain:
    """An ordered permutation of the six effects."""

    steps: tuple[EffectStep, ...]

    def __post_init__(self) -> None:
        _validate_order([step.kind for step in self.steps])
        for step in self.steps:
            _validate_level(step.param_level, f"param_level[{step.kind.name}]")
            _validate_level(step.mix_level, f"mix_level[{step.kind.name}]")

    @classmethod
    def default(cls) -> "EffectChain":
        """The chain used before any preset is loaded."""
        return cls(
            tuple(
                EffectStep(kind, mix_level=MAX_LEVEL if kind in DEFAULT_WET_EFFECTS else 0)
                for kind in DEFAULT_ORDER
            )
        )

    @classmethod
    def from_tables(
        cls,
        order: Sequence[int],
        param_levels: Sequence[int],
        mix_levels: Sequence[int],
    ) -> "EffectChain":
        """Build a chain from the three parallel tables used for persistence.

        Args:
            order: Effect identifiers in processing order.
            param_levels: Param level per effect, indexed by effect identifier.
            mix_levels: Mix level per effect, indexed by effect identifier.

        Raises:
            ValidationError: If the order is not a permutation of the six
                effects, a table has the wrong length or a level is out of range.
        """
        kinds = _validate_order(order)
        _validate_table(param_levels, "param_levels")
        _validate_table(mix_levels, "mix_levels")
        return cls(
            tuple(
                EffectStep(kind, param_level=param_levels[kind], mix_level=mix_levels[kind])
                for kind in kinds
            )
        )

    @property
    def order(self) -> tuple[EffectKind, ...]:
        return tuple(step.kind for step in self.steps)

    @property
    def param_levels(self) -> list[int]:
        """Param levels indexed by effect identifier."""
        return [self.step(kind).param_level for kind in EffectKind]

    @property
    def mix_levels(self) -> list[int]:
        """Mix levels indexed by effect identifier."""
        return [self.step(kind).mix_level for kind in EffectKind]

    def step(self, kind: EffectKind) -> EffectStep:
        for step in self.steps:
            if step.kind == kind:
                return step
        raise KeyError(kind)

    def to_tables(self) -> tuple[list[int], list[int], list[int]]:
        """Return (order, param_levels, mix_levels) as plain integer lists."""
        return [int(kind) for kind in self.order], self.param_levels, self.mix_levels

    def reorder(self, from_index: int, to_index: int) -> "EffectChain":
        """Move the step at ``from_index`` to ``to_index``, shifting the steps between.

        Raises:
            ValidationError: If either index is outside 0-5.
        """
        for name, index in (("from_index", from_index), ("to_index", to_index)):
            if not 0 <= index < NUM_EFFECTS:
                raise ValidationError(
                    f"{name} must be within 0-{NUM_EFFECTS - 1}, got {index}", field=name
                )

        steps = list(self.steps)
        steps.insert(to_index, steps.pop(from_index))
        return EffectChain(tuple(steps))

    def with_levels(
        self,
        kind: EffectKind,
        *,
        param_level: int | None = None,
        mix_level: int | None = None,
    ) -> "EffectChain":
        """Return a chain with new levels for one effect, keeping its position."""
        changes: dict[str, int] = {}
        if param_level is not None:
            changes["param_level"] = param_level
        if mix_level is not None:
            changes["mix_level"] = mix_level

        return EffectChain(
            tuple(replace(step, **changes) if step.kind == kind else step for step in self.steps)
        )

    def load_preset(
        self,
        order: Sequence[int],
        param_levels: Sequence[int],
        mix_levels: Sequence[int],
    ) -> "EffectChain":
        """Replace the whole chain from persisted tables.

        Invalid presets are rejected: the rejection is logged and this chain
        is returned unchanged.
        """
        try:
            return EffectChain.from_tables(order, param_levels, mix_levels)
        except ValidationError as e:
            logger.warning("Rejected preset, keeping current chain: %s", e)
            return self

    def apply(self, buffer: NDArray[np.floating], sample_rate: int) -> NDArray[np.float64]:
        """Process ``buffer`` through this chain. See ``apply_chain``."""
        return apply_chain(buffer, self.order, self.param_levels, self.mix_levels, sample_rate)

    def __iter__(self) -> Iterator[EffectStep]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)


def apply_chain(
    buffer: NDArray[np.floating],
    order: Sequence[EffectKind],
    param_levels: Sequence[int],
    mix_levels: Sequence[int],
    sample_rate: int,
) -> NDArray[np.float64]:
    """Run a buffer through effects in order, blending each with its dry input.

    Effects compound: each step's dry reference is the output of the previous
    step. A mix level of 0 skips the step, 100 takes the wet signal as is, and
    anything between blends ``wet * m/100 + dry * (1 - m/100)``.

    Args:
        buffer: Channel-interleaved samples. Not modified.
        order: Effects in processing order; any subset of the six, each at most once.
        param_levels: Param level per effect, indexed by effect identifier.
        mix_levels: Mix level per effect, indexed by effect identifier.
        sample_rate: Sample rate of the buffer in Hz.

    Returns:
        A new float64 buffer with the processed samples.

    Raises:
        ValidationError: If the order names an unknown or repeated effect, the
            tables are malformed or the sample rate is not positive.
    """
    kinds = _effect_kinds(order)
    _validate_table(param_levels, "param_levels")
    _validate_table(mix_levels, "mix_levels")
    if sample_rate <= 0:
        raise ValidationError(f"sample_rate must be > 0, got {sample_rate}", field="sample_rate")

    current = np.array(buffer, dtype=np.float64, copy=True).reshape(-1)

    for kind in kinds:
        mix_level = mix_levels[kind]
        if mix_level <= MIN_LEVEL:
            continue

        logger.debug(
            "Applying %s (param=%d, mix=%d) to %d samples",
            kind.display_name,
            param_levels[kind],
            mix_level,
            len(current),
        )
        dry = current
        wet = apply_effect(kind, current.copy(), param_levels[kind], sample_rate)

        if mix_level >= MAX_LEVEL:
            current = wet
        else:
            wet_gain = mix_level / 100.0
            current = wet * wet_gain + dry * (1.0 - wet_gain)

    return current


def _validate_order(order: Sequence[int]) -> list[EffectKind]:
    if len(order) != NUM_EFFECTS:
        raise ValidationError(
            f"order must contain {NUM_EFFECTS} effects, got {len(order)}", field="order"
        )

    return _effect_kinds(order)


def _effect_kinds(order: Sequence[int]) -> list[EffectKind]:
    """Convert identifiers to kinds, rejecting unknown and repeated effects."""
    kinds = []
    for value in order:
        try:
            kinds.append(EffectKind(value))
        except ValueError as e:
            raise ValidationError(f"Unknown effect identifier: {value!r}", field="order") from e

    if len(set(kinds)) != len(kinds):
        raise ValidationError(f"order must not repeat effects, got {list(order)}", field="order")
    return kinds


def _validate_table(levels: Sequence[int], name: str) -> None:
    if len(levels) != NUM_EFFECTS:
        raise ValidationError(
            f"{name} must contain {NUM_EFFECTS} levels, got {len(levels)}", field=name
        )
    for kind, level in zip(EffectKind, levels):
        _validate_level(level, f"{name}[{kind.name}]")


def _validate_level(level: int, name: str) -> None:
    if not MIN_LEVEL <= level <= MAX_LEVEL:
        raise ValidationError(
            f"{name} must be within {MIN_LEVEL}-{MAX_LEVEL}, got {level}", field=name
        )
