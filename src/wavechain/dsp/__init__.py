from wavechain.dsp.chain import (
    DEFAULT_ORDER,
    NUM_EFFECTS,
    EffectChain,
    EffectStep,
    apply_chain,
)
from wavechain.dsp.effects import EffectKind, apply_effect

__all__ = [
    "DEFAULT_ORDER",
    "NUM_EFFECTS",
    "EffectChain",
    "EffectKind",
    "EffectStep",
    "apply_chain",
    "apply_effect",
]
