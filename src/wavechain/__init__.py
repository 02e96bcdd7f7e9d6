"""wavechain - PCM WAVE processing through an ordered effect chain.

This package reads and writes uncompressed PCM WAVE audio and runs it through
a chain of six effects, each with its own parameter and dry/wet mix level.

Effect Chain
------------
The dsp submodule holds the effect algorithms and the chain that orders
them. Chains are immutable; reordering or changing levels returns a new one.

Example Usage
-------------
>>> from wavechain import EffectChain, EffectKind, load_wav, save_wav
>>>
>>> header, samples = load_wav("input.wav")
>>> chain = EffectChain.default().with_levels(EffectKind.BIT_CRUSH, param_level=60, mix_level=50)
>>> chain = chain.reorder(3, 0)  # crush first
>>> save_wav("output.wav", header, chain.apply(samples, header.sample_rate))
"""

from wavechain.dsp import EffectChain, EffectKind, EffectStep, apply_chain
from wavechain.format import (
    ClosedStreamError,
    FormatError,
    UnsupportedFormatError,
    ValidationError,
    WaveStreamHeader,
    WavIOError,
    decode_wav,
    encode_wav,
    load_wav,
    new_wav,
    open_wav,
    save_wav,
)
from wavechain.pipeline import LocalRelocator, apply_in_place, process_stream, render_preview
from wavechain.presets import JsonPresetStore, load_preset, save_preset

__all__ = [
    # Effects
    "EffectChain",
    "EffectKind",
    "EffectStep",
    "apply_chain",
    # Codec
    "WaveStreamHeader",
    "decode_wav",
    "encode_wav",
    "load_wav",
    "save_wav",
    "open_wav",
    "new_wav",
    # Pipeline
    "LocalRelocator",
    "process_stream",
    "render_preview",
    "apply_in_place",
    # Presets
    "JsonPresetStore",
    "save_preset",
    "load_preset",
    # Errors
    "FormatError",
    "UnsupportedFormatError",
    "ValidationError",
    "ClosedStreamError",
    "WavIOError",
]
