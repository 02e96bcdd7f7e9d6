"""Integration tests for preview rendering and in-place processing."""

import errno
import io
import re
import shutil
from datetime import datetime
from pathlib import Path

import numpy as np
import pytest

from wavechain.dsp import EffectChain, EffectKind
from wavechain.format import FormatError, WaveStreamHeader, decode_wav, load_wav, save_wav
from wavechain.pipeline import (
    LocalRelocator,
    apply_in_place,
    process_stream,
    render_preview,
)

SAMPLE_RATE = 8000


def write_tone(path: Path, channels: int = 2, valid_bits: int = 16) -> np.ndarray:
    t = np.arange(SAMPLE_RATE // 4) / SAMPLE_RATE
    tone = 0.9 * np.sin(2 * np.pi * 440.0 * t)
    samples = np.repeat(tone, channels)
    header = WaveStreamHeader(
        num_channels=channels,
        sample_rate=SAMPLE_RATE,
        valid_bits=valid_bits,
        num_frames=len(t),
    )
    save_wav(path, header, samples)
    return load_wav(path)[1]


def crusher() -> EffectChain:
    return EffectChain.from_tables(list(range(6)), [0] * 6, [0] * 6).with_levels(
        EffectKind.BIT_CRUSH, param_level=100, mix_level=100
    )


class FailingMove(LocalRelocator):
    """Relocator whose final move is refused."""

    def move_out(self, scratch: Path, destination: Path) -> str:
        return "ERROR: permission denied"


class FrozenClock:
    """Stands in for ``datetime`` so every scratch name shares one timestamp."""

    @staticmethod
    def now() -> datetime:
        return datetime(2024, 1, 2, 3, 4, 5)


def interrupt_staged_copies(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make copies into ``.tmp`` staging files stop half way with a full disk."""
    copyfile = shutil.copyfile

    def partial_copy(src: Path, dst: Path) -> Path:
        if not str(dst).endswith(".tmp"):
            return copyfile(src, dst)
        data = Path(src).read_bytes()
        Path(dst).write_bytes(data[: len(data) // 2])
        raise OSError(errno.ENOSPC, "No space left on device")

    monkeypatch.setattr("wavechain.pipeline.shutil.copyfile", partial_copy)


class TestProcessStream:
    """Tests for stream to stream processing."""

    def test_keeps_stream_format(self, tmp_path: Path) -> None:
        source = tmp_path / "in.wav"
        write_tone(source, channels=2, valid_bits=24)
        sink = io.BytesIO()

        header = process_stream(source, sink, crusher())
        out_header, processed = decode_wav(io.BytesIO(sink.getvalue()))

        assert out_header == header
        assert header.num_channels == 2
        assert header.valid_bits == 24
        assert header.sample_rate == SAMPLE_RATE
        assert set(np.unique(np.round(processed, 6))) <= {-1.0, 0.0, 1.0}

    def test_default_chain_runs(self, tmp_path: Path) -> None:
        source = tmp_path / "in.wav"
        original = write_tone(source)
        output = tmp_path / "out.wav"

        header = process_stream(source, output, EffectChain.default())
        _, processed = load_wav(output)

        assert header.num_frames * 2 == len(processed) == len(original)
        assert not np.array_equal(processed, original)


class TestRenderPreview:
    """Tests for preview rendering."""

    def test_writes_timestamped_scratch_file(self, tmp_path: Path) -> None:
        source = tmp_path / "in.wav"
        write_tone(source)
        before = source.read_bytes()
        scratch = tmp_path / "scratch"

        preview = render_preview(source, crusher(), scratch)

        assert preview.parent == scratch
        assert re.fullmatch(r"temp_preview_\d{8}_\d{6}(_\d+)?\.wav", preview.name)
        assert source.read_bytes() == before

        _, samples = load_wav(preview)
        assert set(np.unique(samples)) <= {-1.0, 0.0, 32767 / 32768}

    def test_failure_leaves_no_scratch_file(self, tmp_path: Path) -> None:
        source = tmp_path / "not_a_wave.wav"
        source.write_bytes(b"definitely not RIFF data")
        scratch = tmp_path / "scratch"

        with pytest.raises(FormatError):
            render_preview(source, crusher(), scratch)
        assert list(scratch.iterdir()) == []

    def test_same_second_previews_get_distinct_names(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("wavechain.pipeline.datetime", FrozenClock)
        source = tmp_path / "in.wav"
        write_tone(source)
        scratch = tmp_path / "scratch"

        first = render_preview(source, crusher(), scratch)
        second = render_preview(source, crusher(), scratch)

        assert first.name == "temp_preview_20240102_030405.wav"
        assert second.name == "temp_preview_20240102_030405_1.wav"
        assert first.exists() and second.exists()

    def test_failed_render_keeps_earlier_preview(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("wavechain.pipeline.datetime", FrozenClock)
        source = tmp_path / "in.wav"
        write_tone(source)
        broken = tmp_path / "broken.wav"
        broken.write_bytes(b"definitely not RIFF data")
        scratch = tmp_path / "scratch"

        first = render_preview(source, crusher(), scratch)
        rendered = first.read_bytes()
        with pytest.raises(FormatError):
            render_preview(broken, crusher(), scratch)

        assert list(scratch.iterdir()) == [first]
        assert first.read_bytes() == rendered


class TestApplyInPlace:
    """Tests for overwriting the original file."""

    def test_overwrites_original(self, tmp_path: Path) -> None:
        source = tmp_path / "in.wav"
        write_tone(source)
        scratch = tmp_path / "scratch"
        expected = crusher().apply(load_wav(source)[1], SAMPLE_RATE)

        assert apply_in_place(source, crusher(), scratch)

        header, samples = load_wav(source)
        assert header.num_channels == 2
        np.testing.assert_allclose(samples, np.clip(expected, -1.0, 32767 / 32768))
        assert list(scratch.iterdir()) == []

    def test_refused_move_keeps_original(self, tmp_path: Path) -> None:
        source = tmp_path / "in.wav"
        write_tone(source)
        before = source.read_bytes()
        scratch = tmp_path / "scratch"

        assert not apply_in_place(source, crusher(), scratch, relocator=FailingMove())
        assert source.read_bytes() == before
        assert list(scratch.iterdir()) == []

    def test_invalid_source_keeps_original(self, tmp_path: Path) -> None:
        source = tmp_path / "broken.wav"
        source.write_bytes(b"RIFF\x04\x00\x00\x00WAVE")
        scratch = tmp_path / "scratch"

        assert not apply_in_place(source, crusher(), scratch)
        assert source.read_bytes() == b"RIFF\x04\x00\x00\x00WAVE"
        assert list(scratch.iterdir()) == []

    def test_missing_source(self, tmp_path: Path) -> None:
        scratch = tmp_path / "scratch"
        assert not apply_in_place(tmp_path / "missing.wav", crusher(), scratch)
        assert list(scratch.iterdir()) == []

    def test_interrupted_move_keeps_original(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        home = tmp_path / "home"
        home.mkdir()
        source = home / "in.wav"
        write_tone(source)
        before = source.read_bytes()
        scratch = tmp_path / "scratch"
        interrupt_staged_copies(monkeypatch)

        assert not apply_in_place(source, crusher(), scratch)
        assert source.read_bytes() == before
        assert list(home.iterdir()) == [source]
        assert list(scratch.iterdir()) == []


class TestLocalRelocator:
    """Tests for moving files out of the scratch area."""

    def test_move_replaces_destination(self, tmp_path: Path) -> None:
        home = tmp_path / "home"
        home.mkdir()
        destination = home / "in.wav"
        destination.write_bytes(b"old")
        scratch = tmp_path / "applied.wav"
        scratch.write_bytes(b"new contents")

        status = LocalRelocator().move_out(scratch, destination)

        assert status.startswith("Moved")
        assert destination.read_bytes() == b"new contents"
        assert not scratch.exists()
        assert list(home.iterdir()) == [destination]

    def test_move_keeps_destination_mode(self, tmp_path: Path) -> None:
        destination = tmp_path / "in.wav"
        destination.write_bytes(b"old")
        destination.chmod(0o640)
        scratch = tmp_path / "applied.wav"
        scratch.write_bytes(b"new")

        LocalRelocator().move_out(scratch, destination)

        assert destination.stat().st_mode & 0o777 == 0o640

    def test_interrupted_copy_leaves_destination_intact(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        home = tmp_path / "home"
        home.mkdir()
        destination = home / "in.wav"
        destination.write_bytes(b"original bytes")
        scratch = tmp_path / "applied.wav"
        scratch.write_bytes(b"replacement bytes")
        interrupt_staged_copies(monkeypatch)

        status = LocalRelocator().move_out(scratch, destination)

        assert status.startswith("ERROR")
        assert "No space left" in status
        assert destination.read_bytes() == b"original bytes"
        assert list(home.iterdir()) == [destination]

    def test_missing_destination_directory(self, tmp_path: Path) -> None:
        scratch = tmp_path / "applied.wav"
        scratch.write_bytes(b"new")

        status = LocalRelocator().move_out(scratch, tmp_path / "gone" / "in.wav")

        assert status.startswith("ERROR")
        assert scratch.exists()
