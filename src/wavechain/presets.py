"""Saving and restoring effect chains.

A preset is stored as three flat string entries in a key-value store, each a
comma-joined list of six integers::

    DefaultChainPreset_ORDER = "0,1,2,3,4,5"
    DefaultChainPreset_PARAM = "0,0,0,0,0,0"
    DefaultChainPreset_MIX   = "100,100,100,0,0,0"

Order holds effect identifiers in processing order; param and mix levels are
indexed by effect identifier so they stay attached to their effect.
"""

import json
import logging
from pathlib import Path
from typing import Protocol

from wavechain.config import DEFAULT_PRESET_NAME
from wavechain.dsp.chain import EffectChain

logger = logging.getLogger(__name__)

ORDER_SUFFIX = "_ORDER"
PARAM_SUFFIX = "_PARAM"
MIX_SUFFIX = "_MIX"


class PresetError(Exception):
    """The preset store could not be read or written."""


class PresetStore(Protocol):
    """Flat string key-value storage for presets."""

    def get(self, key: str) -> str | None: ...

    def put(self, record: dict[str, str]) -> None: ...


class JsonPresetStore:
    """Preset store backed by a single JSON object on disk."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise PresetError(f"Cannot read preset file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PresetError(f"Preset file {self.path} does not contain a JSON object")
        return {str(k): str(v) for k, v in data.items()}

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def put(self, record: dict[str, str]) -> None:
        """Merge ``record`` into the stored entries and rewrite the file."""
        data = self._load()
        data.update(record)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        except OSError as e:
            raise PresetError(f"Cannot write preset file {self.path}: {e}") from e

    def names(self) -> list[str]:
        """Names of all complete presets in the store."""
        data = self._load()
        return sorted(
            key.removesuffix(ORDER_SUFFIX)
            for key in data
            if key.endswith(ORDER_SUFFIX)
            and key.removesuffix(ORDER_SUFFIX) + PARAM_SUFFIX in data
            and key.removesuffix(ORDER_SUFFIX) + MIX_SUFFIX in data
        )


def _join(values: list[int]) -> str:
    return ",".join(str(v) for v in values)


def _split(text: str) -> list[int]:
    return [int(part) for part in text.split(",")]


def save_preset(store: PresetStore, chain: EffectChain, name: str = DEFAULT_PRESET_NAME) -> None:
    """Persist the chain's order and levels under ``name``."""
    order, params, mixes = chain.to_tables()
    store.put(
        {
            name + ORDER_SUFFIX: _join(order),
            name + PARAM_SUFFIX: _join(params),
            name + MIX_SUFFIX: _join(mixes),
        }
    )
    logger.info("Saved preset %s: order=%s", name, order)


def load_preset(
    store: PresetStore,
    current: EffectChain,
    name: str = DEFAULT_PRESET_NAME,
) -> EffectChain:
    """Restore the chain saved under ``name``.

    Args:
        store: Store to read from.
        current: Chain to keep when nothing usable is stored.
        name: Preset name.

    Returns:
        The restored chain, or ``current`` if the preset is missing,
        unparseable or describes an invalid chain.
    """
    entries = [store.get(name + suffix) for suffix in (ORDER_SUFFIX, PARAM_SUFFIX, MIX_SUFFIX)]
    if any(entry is None for entry in entries):
        logger.debug("No saved preset named %s", name)
        return current

    try:
        order, params, mixes = (_split(entry) for entry in entries)
    except ValueError as e:
        logger.warning("Preset %s is not a list of integers, keeping current chain: %s", name, e)
        return current

    return current.load_preset(order, params, mixes)
