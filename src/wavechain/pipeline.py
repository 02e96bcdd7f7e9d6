"""Preview and in-place processing of WAVE files through an effect chain.

Both operations run decode, chain and encode end to end. A preview renders
into a timestamped scratch file for listening. Applying replaces the original
file, and only after the processed output has been encoded completely. Moving
bytes into and out of the scratch area goes through a ``Relocator`` so that
privileged or remote storage can be plugged in.
"""

import logging
import os
import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Protocol

from wavechain.dsp.chain import EffectChain
from wavechain.format.header import WaveStreamHeader
from wavechain.format.riff import FormatError
from wavechain.format.stream import WavSource, decode_wav, encode_wav

logger = logging.getLogger(__name__)

ERROR_PREFIX = "ERROR"
PREVIEW_PREFIX = "temp_preview_"
APPLIED_PREFIX = "applied_"
SOURCE_PREFIX = "source_"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


class Relocator(Protocol):
    """Moves files between their home location and the scratch area.

    Both methods return a status string; one starting with ``ERROR`` signals
    failure and carries the reason.
    """

    def copy_in(self, source: Path, scratch: Path) -> str: ...

    def move_out(self, scratch: Path, destination: Path) -> str: ...


class LocalRelocator:
    """Relocator for files on the local filesystem."""

    def copy_in(self, source: Path, scratch: Path) -> str:
        try:
            shutil.copyfile(source, scratch)
        except OSError as e:
            return f"{ERROR_PREFIX}: copy {source} -> {scratch} failed: {e}"
        return f"Copied {source} -> {scratch}"

    def move_out(self, scratch: Path, destination: Path) -> str:
        # Stage next to the destination so the final rename never crosses devices
        destination = Path(destination)
        staged: Path | None = None
        try:
            fd, name = tempfile.mkstemp(
                prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent
            )
            os.close(fd)
            staged = Path(name)
            shutil.copyfile(scratch, staged)
            if destination.exists():
                shutil.copymode(destination, staged)
            os.replace(staged, destination)
        except OSError as e:
            if staged is not None:
                staged.unlink(missing_ok=True)
            return f"{ERROR_PREFIX}: move {scratch} -> {destination} failed: {e}"

        try:
            Path(scratch).unlink()
        except OSError as e:
            logger.warning("Failed to delete scratch file %s: %s", scratch, e)
        return f"Moved {scratch} -> {destination}"


def is_error_status(status: str) -> bool:
    return status.startswith(ERROR_PREFIX)


def scratch_path(scratch_dir: Path | str, prefix: str) -> Path:
    """Unused ``<prefix><YYYYmmdd_HHMMSS>.wav`` path inside ``scratch_dir``.

    Names already taken within the same second get a ``_1``, ``_2``, ... suffix.
    """
    stem = f"{prefix}{datetime.now().strftime(TIMESTAMP_FORMAT)}"
    path = Path(scratch_dir) / f"{stem}.wav"
    counter = 1
    while path.exists():
        path = path.with_name(f"{stem}_{counter}.wav")
        counter += 1
    return path


def process_stream(source: WavSource, sink: WavSource, chain: EffectChain) -> WaveStreamHeader:
    """Decode ``source``, run it through ``chain`` and encode the result to ``sink``.

    The output keeps the channel count, sample rate, bit depth and frame
    count of the source.

    Returns:
        The header of the written output.
    """
    header, samples = decode_wav(source)
    logger.debug(
        "Processing %d frames (%d ch, %d Hz, %d bits)",
        header.num_frames,
        header.num_channels,
        header.sample_rate,
        header.valid_bits,
    )
    processed = chain.apply(samples, header.sample_rate)
    encode_wav(sink, header, processed)
    return header


def render_preview(source: Path | str, chain: EffectChain, scratch_dir: Path | str) -> Path:
    """Render ``source`` through ``chain`` into a new scratch file.

    Returns:
        Path of the rendered preview file. The caller owns it.

    Raises:
        FormatError: If the source is not a readable PCM WAVE file.
        OSError: If the source cannot be read or the preview cannot be written.
    """
    Path(scratch_dir).mkdir(parents=True, exist_ok=True)
    preview = scratch_path(scratch_dir, PREVIEW_PREFIX)

    try:
        process_stream(Path(source), preview, chain)
    except BaseException:
        preview.unlink(missing_ok=True)
        raise

    logger.info("Rendered preview of %s to %s", source, preview)
    return preview


def apply_in_place(
    source: Path | str,
    chain: EffectChain,
    scratch_dir: Path | str,
    relocator: Relocator | None = None,
) -> bool:
    """Process ``source`` through ``chain`` and overwrite it with the result.

    The source is copied into the scratch area, processed into a second
    scratch file and moved over the original only once encoding succeeded.
    Scratch files are always removed.

    Returns:
        True if the original was replaced. On False the original is untouched.
    """
    source = Path(source)
    relocator = relocator or LocalRelocator()
    Path(scratch_dir).mkdir(parents=True, exist_ok=True)
    staged = scratch_path(scratch_dir, SOURCE_PREFIX)
    output = scratch_path(scratch_dir, APPLIED_PREFIX)

    try:
        status = relocator.copy_in(source, staged)
        if is_error_status(status):
            logger.error("Copy into scratch area failed: %s", status)
            return False

        process_stream(staged, output, chain)

        status = relocator.move_out(output, source)
        if is_error_status(status):
            logger.error("Overwriting %s failed: %s", source, status)
            return False
    except (FormatError, OSError, ValueError) as e:
        logger.error("Applying effects to %s failed: %s", source, e)
        return False
    finally:
        for path in (staged, output):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Failed to delete scratch file %s: %s", path.name, e)

    logger.info("Applied effect chain to %s", source)
    return True
