import logging
import sys
from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from wavechain.cli.validators import (
    parse_int_list,
    validate_level_string,
    validate_order_string,
)
from wavechain.config import Settings
from wavechain.dsp import EffectChain
from wavechain.format import FormatError, ValidationError, WavIOError, open_wav
from wavechain.pipeline import apply_in_place, process_stream, render_preview
from wavechain.presets import JsonPresetStore, PresetError, load_preset, save_preset

app = App(name="wavechain", help="Run PCM WAVE files through an ordered chain of effects")
console = Console()

Order = Annotated[str | None, Parameter(validator=validate_order_string)]
Levels = Annotated[str | None, Parameter(validator=validate_level_string)]


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(message, style="bold red")


def print_success(message: str) -> None:
    """Print a success message in green."""
    console.print(message, style="bold green")


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    console.print(message, style="bold yellow")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def resolve_settings(preset_file: Path | None, scratch_dir: Path | None = None) -> Settings:
    settings = Settings.from_env()
    if preset_file is not None:
        settings.preset_file = preset_file
    if scratch_dir is not None:
        settings.scratch_dir = scratch_dir
    return settings


def resolve_chain(
    settings: Settings,
    order: str | None = None,
    params: str | None = None,
    mix: str | None = None,
) -> EffectChain:
    """Start from the saved preset (or the defaults) and apply command-line overrides."""
    store = JsonPresetStore(settings.preset_file)
    chain = load_preset(store, EffectChain.default(), settings.preset_name)
    if order is None and params is None and mix is None:
        return chain

    saved_order, saved_params, saved_mix = chain.to_tables()
    return EffectChain.from_tables(
        parse_int_list(order) if order is not None else saved_order,
        parse_int_list(params) if params is not None else saved_params,
        parse_int_list(mix) if mix is not None else saved_mix,
    )


def chain_table(chain: EffectChain) -> Table:
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("ID", justify="right")
    table.add_column("Effect", justify="left")
    table.add_column("Param", justify="right")
    table.add_column("Mix", justify="right")
    table.add_column("Setting", justify="left")

    for position, step in enumerate(chain):
        table.add_row(
            str(position),
            str(int(step.kind)),
            step.kind.display_name,
            str(step.param_level),
            f"{step.mix_level}%" if step.mix_level else "off",
            step.kind.describe_level(step.param_level),
        )
    return table


@app.command
def info(file: Path) -> int:
    """
    Display the header of a PCM WAVE file.

    Parameters
    ----------
    file: Path
        The path to the .wav file
    """
    if not file.exists():
        print_error(f"Error: File {file} does not exist")
        return 1

    try:
        with open_wav(file) as reader:
            details = reader.describe()
            header = reader.header
    except (FormatError, WavIOError) as e:
        print_error(f"Error reading {file}: {e}")
        return 1

    console.print(f"WAVE file: {details['file']}")
    console.print(f"  Channels: {details['channels']}")
    console.print(f"  Sample rate: {details['sample_rate']} Hz")
    console.print(f"  Valid bits: {details['valid_bits']}")
    console.print(f"  Bytes per sample: {details['bytes_per_sample']}")
    console.print(f"  Block align: {details['block_align']}")
    console.print(f"  Frames: {details['frames']}")
    console.print(f"  Duration: {header.duration_seconds:.3f} s")
    return 0


@app.command
def effects(
    preset_file: Path | None = None,
    order: Order = None,
    params: Levels = None,
    mix: Levels = None,
) -> int:
    """
    Show the effect chain that would be applied.

    Parameters
    ----------
    preset_file: Path | None
        JSON preset file to read the saved chain from
    order: str | None
        Effect identifiers in processing order, e.g. '3,0,1,2,4,5'
    params: str | None
        Param level (0-100) per effect identifier, e.g. '50,0,0,80,0,0'
    mix: str | None
        Mix level (0-100) per effect identifier, e.g. '100,0,0,50,0,0'
    """
    try:
        chain = resolve_chain(resolve_settings(preset_file), order, params, mix)
    except (ValidationError, PresetError) as e:
        print_error(f"Error: {e}")
        return 1

    console.print(chain_table(chain))
    return 0


@app.command
def process(
    source: Path,
    output: Path,
    preset_file: Path | None = None,
    order: Order = None,
    params: Levels = None,
    mix: Levels = None,
) -> int:
    """
    Process a WAVE file through the effect chain into a new file.

    Parameters
    ----------
    source: Path
        The .wav file to process
    output: Path
        The destination .wav file
    preset_file: Path | None
        JSON preset file to read the saved chain from
    order: str | None
        Effect identifiers in processing order
    params: str | None
        Param level (0-100) per effect identifier
    mix: str | None
        Mix level (0-100) per effect identifier
    """
    if not source.exists():
        print_error(f"Error: File {source} does not exist")
        return 1

    try:
        chain = resolve_chain(resolve_settings(preset_file), order, params, mix)
        output.parent.mkdir(parents=True, exist_ok=True)
        header = process_stream(source, output, chain)
    except (FormatError, PresetError, OSError) as e:
        output.unlink(missing_ok=True)
        print_error(f"Error: {e}")
        return 1

    print_success(f"Processed {source} -> {output}")
    console.print(f"  Frames: {header.num_frames}")
    return 0


@app.command
def preview(
    source: Path,
    preset_file: Path | None = None,
    scratch_dir: Path | None = None,
    order: Order = None,
    params: Levels = None,
    mix: Levels = None,
) -> int:
    """
    Render the effect chain applied to a WAVE file into a scratch file.

    Parameters
    ----------
    source: Path
        The .wav file to preview
    preset_file: Path | None
        JSON preset file to read the saved chain from
    scratch_dir: Path | None
        Directory for the rendered preview
    order: str | None
        Effect identifiers in processing order
    params: str | None
        Param level (0-100) per effect identifier
    mix: str | None
        Mix level (0-100) per effect identifier
    """
    if not source.exists():
        print_error(f"Error: File {source} does not exist")
        return 1

    settings = resolve_settings(preset_file, scratch_dir)
    try:
        chain = resolve_chain(settings, order, params, mix)
        rendered = render_preview(source, chain, settings.scratch_dir)
    except (FormatError, PresetError, OSError) as e:
        print_error(f"Error: {e}")
        return 1

    print_success(f"Preview: {rendered}")
    return 0


@app.command(name="apply")
def apply_(
    source: Path,
    preset_file: Path | None = None,
    scratch_dir: Path | None = None,
    order: Order = None,
    params: Levels = None,
    mix: Levels = None,
) -> int:
    """
    Apply the effect chain to a WAVE file, overwriting it.

    Parameters
    ----------
    source: Path
        The .wav file to overwrite
    preset_file: Path | None
        JSON preset file to read the saved chain from
    scratch_dir: Path | None
        Directory for intermediate files
    order: str | None
        Effect identifiers in processing order
    params: str | None
        Param level (0-100) per effect identifier
    mix: str | None
        Mix level (0-100) per effect identifier
    """
    if not source.exists():
        print_error(f"Error: File {source} does not exist")
        return 1

    settings = resolve_settings(preset_file, scratch_dir)
    try:
        chain = resolve_chain(settings, order, params, mix)
    except (ValidationError, PresetError) as e:
        print_error(f"Error: {e}")
        return 1

    if not apply_in_place(source, chain, settings.scratch_dir):
        print_error(f"Failed to apply effects to {source}; the file was not changed")
        return 1

    print_success(f"Applied effects to {source}")
    return 0


@app.command(name="preset-save")
def preset_save(
    preset_file: Path | None = None,
    name: str | None = None,
    order: Order = None,
    params: Levels = None,
    mix: Levels = None,
) -> int:
    """
    Save an effect chain as a preset.

    Unspecified tables are taken from the currently saved preset.

    Parameters
    ----------
    preset_file: Path | None
        JSON preset file to write
    name: str | None
        Preset name (default: DefaultChainPreset)
    order: str | None
        Effect identifiers in processing order
    params: str | None
        Param level (0-100) per effect identifier
    mix: str | None
        Mix level (0-100) per effect identifier
    """
    settings = resolve_settings(preset_file)
    if name:
        settings.preset_name = name

    try:
        chain = resolve_chain(settings, order, params, mix)
        save_preset(JsonPresetStore(settings.preset_file), chain, settings.preset_name)
    except (ValidationError, PresetError) as e:
        print_error(f"Error: {e}")
        return 1

    print_success(f"Saved preset {settings.preset_name} to {settings.preset_file}")
    console.print(chain_table(chain))
    return 0


@app.command(name="preset-show")
def preset_show(preset_file: Path | None = None, name: str | None = None) -> int:
    """
    Show a saved preset.

    Parameters
    ----------
    preset_file: Path | None
        JSON preset file to read
    name: str | None
        Preset name (default: DefaultChainPreset)
    """
    settings = resolve_settings(preset_file)
    if name:
        settings.preset_name = name

    store = JsonPresetStore(settings.preset_file)
    try:
        names = store.names()
        chain = load_preset(store, EffectChain.default(), settings.preset_name)
    except PresetError as e:
        print_error(f"Error: {e}")
        return 1

    if settings.preset_name not in names:
        print_warning(f"No preset named {settings.preset_name}; showing defaults")

    console.print(f"Preset: {settings.preset_name}")
    console.print(chain_table(chain))
    if names:
        console.print(f"  Saved presets: {', '.join(names)}")
    return 0


@app.meta.default
def launcher(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    verbose: bool = False,
) -> int:
    """
    Parameters
    ----------
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)
    return app(tokens)


def main() -> None:
    sys.exit(app.meta())


if __name__ == "__main__":
    main()
