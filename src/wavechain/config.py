"""Runtime settings.

Defaults can be overridden with environment variables so that the CLI and
scripts share one preset file and scratch location.
"""

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

PRESET_FILE_ENV = "WAVECHAIN_PRESET_FILE"
SCRATCH_DIR_ENV = "WAVECHAIN_SCRATCH_DIR"

DEFAULT_PRESET_NAME = "DefaultChainPreset"


def _default_preset_file() -> Path:
    return Path.home() / ".config" / "wavechain" / "presets.json"


def _default_scratch_dir() -> Path:
    return Path(tempfile.gettempdir()) / "wavechain"


@dataclass
class Settings:
    """Locations used by presets and the processing pipeline."""

    preset_file: Path = field(default_factory=_default_preset_file)
    """JSON file holding saved chain presets."""

    preset_name: str = DEFAULT_PRESET_NAME
    """Name under which the chain is saved and restored."""

    scratch_dir: Path = field(default_factory=_default_scratch_dir)
    """Directory for preview renders and intermediate files."""

    @classmethod
    def from_env(cls) -> "Settings":
        settings = cls()
        if preset_file := os.environ.get(PRESET_FILE_ENV):
            settings.preset_file = Path(preset_file).expanduser()
        if scratch_dir := os.environ.get(SCRATCH_DIR_ENV):
            settings.scratch_dir = Path(scratch_dir).expanduser()
        return settings
