"""Unit tests for wavechain.cli module."""

import json
from pathlib import Path

import numpy as np
import pytest

from wavechain.cli.commands import app
from wavechain.config import PRESET_FILE_ENV, SCRATCH_DIR_ENV, Settings
from wavechain.format import WaveStreamHeader, load_wav, save_wav


def write_tone(path: Path) -> None:
    t = np.arange(800) / 8000
    header = WaveStreamHeader(num_channels=1, sample_rate=8000, valid_bits=16, num_frames=800)
    save_wav(path, header, 0.9 * np.sin(2 * np.pi * 440.0 * t))


class TestCliInfo:
    """Test the info command."""

    def test_info_valid_file(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        path = tmp_path / "tone.wav"
        write_tone(path)

        assert app(["info", str(path)]) == 0
        out = capsys.readouterr().out
        assert "Channels: 1" in out
        assert "Sample rate: 8000 Hz" in out
        assert "Frames: 800" in out

    def test_info_missing_file(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        assert app(["info", str(tmp_path / "missing.wav")]) == 1
        assert "does not exist" in capsys.readouterr().out

    def test_info_not_a_wave_file(self, tmp_path: Path) -> None:
        path = tmp_path / "text.wav"
        path.write_text("hello")
        assert app(["info", str(path)]) == 1


class TestCliPresets:
    """Test preset commands."""

    def test_preset_save_and_show(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        preset_file = tmp_path / "presets.json"

        result = app(
            [
                "preset-save",
                "--preset-file",
                str(preset_file),
                "--order",
                "3,0,1,2,4,5",
                "--params",
                "0,0,0,80,0,0",
            ]
        )
        assert result == 0

        stored = json.loads(preset_file.read_text())
        assert stored["DefaultChainPreset_ORDER"] == "3,0,1,2,4,5"
        assert stored["DefaultChainPreset_PARAM"] == "0,0,0,80,0,0"
        assert stored["DefaultChainPreset_MIX"] == "100,100,100,0,0,0"

        capsys.readouterr()
        assert app(["preset-show", "--preset-file", str(preset_file)]) == 0
        assert "Bitcrush" in capsys.readouterr().out

    def test_preset_save_merges_with_saved(self, tmp_path: Path) -> None:
        preset_file = tmp_path / "presets.json"
        app(["preset-save", "--preset-file", str(preset_file), "--order", "5,4,3,2,1,0"])
        app(["preset-save", "--preset-file", str(preset_file), "--mix", "0,0,0,0,100,100"])

        stored = json.loads(preset_file.read_text())
        assert stored["DefaultChainPreset_ORDER"] == "5,4,3,2,1,0"
        assert stored["DefaultChainPreset_MIX"] == "0,0,0,0,100,100"

    def test_preset_show_missing(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        assert app(["preset-show", "--preset-file", str(tmp_path / "none.json")]) == 0
        assert "No preset named" in capsys.readouterr().out

    def test_invalid_order(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        preset_file = tmp_path / "presets.json"
        with pytest.raises(SystemExit):
            app(["preset-save", "--preset-file", str(preset_file), "--order", "0,0,1,2,3,4"])

        assert "permutation" in capsys.readouterr().out
        assert not preset_file.exists()

    def test_invalid_levels(self, tmp_path: Path) -> None:
        preset_file = tmp_path / "presets.json"
        with pytest.raises(SystemExit):
            app(["preset-save", "--preset-file", str(preset_file), "--mix", "0,0,0,0,0,200"])
        assert not preset_file.exists()

    def test_effects_lists_chain(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        result = app(["effects", "--preset-file", str(tmp_path / "presets.json")])
        assert result == 0

        out = capsys.readouterr().out
        for name in ("Bitcrush", "Drive", "Saturation"):
            assert name in out


class TestCliProcessing:
    """Test commands that render audio."""

    def test_process(self, tmp_path: Path) -> None:
        source = tmp_path / "tone.wav"
        output = tmp_path / "out" / "crushed.wav"
        write_tone(source)

        result = app(
            [
                "process",
                str(source),
                str(output),
                "--preset-file",
                str(tmp_path / "presets.json"),
                "--params",
                "0,0,0,100,0,0",
                "--mix",
                "0,0,0,100,0,0",
            ]
        )
        assert result == 0

        header, samples = load_wav(output)
        assert header.num_frames == 800
        assert set(np.unique(samples)) <= {-1.0, 0.0, 32767 / 32768}

    def test_preview(self, tmp_path: Path) -> None:
        source = tmp_path / "tone.wav"
        scratch = tmp_path / "scratch"
        write_tone(source)

        result = app(
            [
                "preview",
                str(source),
                "--preset-file",
                str(tmp_path / "presets.json"),
                "--scratch-dir",
                str(scratch),
            ]
        )
        assert result == 0

        previews = list(scratch.glob("temp_preview_*.wav"))
        assert len(previews) == 1

    def test_apply(self, tmp_path: Path) -> None:
        source = tmp_path / "tone.wav"
        write_tone(source)
        before = source.read_bytes()

        result = app(
            [
                "apply",
                str(source),
                "--preset-file",
                str(tmp_path / "presets.json"),
                "--scratch-dir",
                str(tmp_path / "scratch"),
            ]
        )
        assert result == 0
        assert source.read_bytes() != before
        assert len(source.read_bytes()) == len(before)

    def test_apply_invalid_file(self, tmp_path: Path) -> None:
        source = tmp_path / "broken.wav"
        source.write_bytes(b"RIFF")

        result = app(
            [
                "apply",
                str(source),
                "--preset-file",
                str(tmp_path / "presets.json"),
                "--scratch-dir",
                str(tmp_path / "scratch"),
            ]
        )
        assert result == 1
        assert source.read_bytes() == b"RIFF"


class TestSettings:
    """Test environment configuration."""

    def test_env_overrides(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(PRESET_FILE_ENV, str(tmp_path / "p.json"))
        monkeypatch.setenv(SCRATCH_DIR_ENV, str(tmp_path / "s"))

        settings = Settings.from_env()
        assert settings.preset_file == tmp_path / "p.json"
        assert settings.scratch_dir == tmp_path / "s"
        assert settings.preset_name == "DefaultChainPreset"

    def test_env_preset_file_used_by_cli(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        preset_file = tmp_path / "from_env.json"
        monkeypatch.setenv(PRESET_FILE_ENV, str(preset_file))

        assert app(["preset-save", "--order", "1,0,2,3,4,5"]) == 0
        assert json.loads(preset_file.read_text())["DefaultChainPreset_ORDER"] == "1,0,2,3,4,5"
