"""Main CLI entry point for fretline."""

import logging
from collections.abc import Callable
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from fretline import __version__
from fretline.config import get_settings
from fretline.errors import FretlineError
from fretline.models.tuning import DEFAULT_TUNINGS, find_tuning, pitch_name
from fretline.timeline.recording import Recording

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="fretline")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
def main(verbose: bool) -> None:
    """fretline - Record, transcribe and rearrange practice takes.

    Captures audio into recordings, tracks the notes played, and lets you
    cut, move and remove sections of a recording.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def _resolve_recording(recording: str) -> Path:
    """Accept either a path to a recording file or a recording name."""
    path = Path(recording)
    if path.is_file():
        return path

    settings = get_settings()
    named = settings.recordings_dir / f"{recording}{settings.file_extension}"
    if named.is_file():
        return named

    console.print(f"[red]Error: Recording not found: {recording}[/red]")
    raise SystemExit(1)


def _edit_recording(recording: str, edit: Callable[[Recording], bool]) -> Recording:
    """Load a recording, apply ``edit`` and write it back if it changed."""
    from fretline.storage.recording_file import load, write

    path = _resolve_recording(recording)
    try:
        loaded = load(path)
        changed = edit(loaded)
    except (FretlineError, IndexError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    if not changed:
        console.print("[yellow]Nothing changed[/yellow]")
        raise SystemExit(1)

    write(loaded, path)
    return loaded


def _print_sections(recording: Recording) -> None:
    sample_rate = recording.settings.sample_rate
    table = Table(title=f"{recording.name} ({recording.tuning.name})")
    table.add_column("#", justify="right")
    table.add_column("Time steps", justify="right")
    table.add_column("Start", justify="right")
    table.add_column("Length", justify="right")
    table.add_column("Clusters", justify="right")

    for index, section in enumerate(recording.sections):
        table.add_row(
            str(index),
            f"{section.time_step_start}-{section.time_step_end}",
            f"{section.sample_start / sample_rate:.2f}s",
            f"{len(section.samples) / sample_rate:.2f}s",
            str(len(section.clusters)),
        )

    console.print(table)


@main.command()
@click.argument("audio_file", type=click.Path(path_type=Path))
@click.option("--name", type=str, help="Recording name (default: the file name)")
@click.option(
    "--tuning",
    "tuning_name",
    type=str,
    help="Tuning of the instrument (see 'fretline tunings')",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    help="Directory to save the recording in (default: the recordings directory)",
)
def record(
    audio_file: Path,
    name: str | None,
    tuning_name: str | None,
    output: Path | None,
) -> None:
    """Transcribe an audio file into a new recording.

    Processes AUDIO_FILE through the capture pipeline:

    \b
    1. Load the audio and mix it down to mono
    2. Run every frame through the inference engine and track the notes
    3. Save the recording
    """
    from fretline.models.pipeline import CaptureContext
    from fretline.pipeline import create_capture_pipeline
    from fretline.storage.catalog import list_catalog, unique_name

    if not audio_file.exists():
        console.print(f"[red]Error: File not found: {audio_file}[/red]")
        raise SystemExit(1)

    settings = get_settings()
    tuning = find_tuning(tuning_name or settings.default_tuning)
    if tuning is None:
        console.print(f"[red]Error: Unknown tuning: {tuning_name or settings.default_tuning}[/red]")
        raise SystemExit(1)

    output = output or settings.recordings_dir
    existing = [entry.metadata.name for entry in list_catalog(output)]
    recording_name = unique_name(name or audio_file.stem, existing)

    console.print(f"[bold blue]fretline[/bold blue] v{__version__}")
    console.print(f"Recording: [green]{audio_file}[/green] as [green]{recording_name}[/green]")
    console.print(f"Tuning: {tuning.name}")
    console.print()

    context = CaptureContext(
        source_path=audio_file,
        name=recording_name,
        tuning=tuning,
        output_dir=output,
    )
    result = create_capture_pipeline(settings).run(context)

    if result.success:
        console.print("[bold green]Recording saved![/bold green]")
        console.print(f"Output: {result.output_path}")
        if result.warnings:
            console.print("[yellow]Warnings:[/yellow]")
            for warning in result.warnings:
                console.print(f"  - {warning}")
    else:
        console.print("[bold red]Recording failed![/bold red]")
        for error in result.errors:
            console.print(f"[red]Error: {error}[/red]")
        raise SystemExit(1)


@main.command(name="list")
@click.option(
    "-d",
    "--directory",
    type=click.Path(path_type=Path),
    help="Directory to list (default: the recordings directory)",
)
def list_recordings(directory: Path | None) -> None:
    """List saved recordings, most recently edited first."""
    from fretline.storage.catalog import format_length, format_relative_time, list_catalog

    entries = list_catalog(directory)
    if not entries:
        console.print("No recordings yet.")
        return

    table = Table()
    table.add_column("Name")
    table.add_column("Length", justify="right")
    table.add_column("Edited")
    table.add_column("File", style="dim")

    for entry in entries:
        table.add_row(
            entry.metadata.name,
            format_length(entry.metadata.length),
            format_relative_time(entry.metadata.last_edited_at),
            entry.path.name,
        )

    console.print(table)


@main.command()
@click.argument("recording")
@click.option("--notes", is_flag=True, help="Also list every note")
def show(recording: str, notes: bool) -> None:
    """Show the sections of RECORDING (a name or a path)."""
    from fretline.storage.recording_file import load

    try:
        loaded = load(_resolve_recording(recording))
    except FretlineError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    _print_sections(loaded)

    if notes:
        table = Table(title="Notes")
        table.add_column("Time step", justify="right")
        table.add_column("Pitch")
        table.add_column("Duration", justify="right")
        table.add_column("Playable", justify="center")
        for time_step, note in loaded.note_layout():
            table.add_row(
                str(time_step),
                pitch_name(note.pitch),
                str(note.duration),
                "yes" if note.pitch in loaded.tuning else "no",
            )
        console.print(table)


@main.command()
@click.argument("recording")
@click.argument("time_step", type=int)
def cut(recording: str, time_step: int) -> None:
    """Split the section of RECORDING that contains TIME_STEP."""
    edited = _edit_recording(recording, lambda loaded: loaded.cut(time_step))
    console.print(f"[green]Cut at time step {time_step}[/green]")
    _print_sections(edited)


def _apply(method: Callable[..., None], *args: int) -> bool:
    method(*args)
    return True


@main.command()
@click.argument("recording")
@click.argument("from_index", type=int)
@click.argument("to_index", type=int)
def move(recording: str, from_index: int, to_index: int) -> None:
    """Move section FROM_INDEX of RECORDING so it lands before TO_INDEX."""
    edited = _edit_recording(
        recording, lambda loaded: _apply(loaded.re_insert_section, from_index, to_index)
    )
    _print_sections(edited)


@main.command()
@click.argument("recording")
@click.argument("a", type=int)
@click.argument("b", type=int)
def swap(recording: str, a: int, b: int) -> None:
    """Exchange sections A and B of RECORDING."""
    edited = _edit_recording(recording, lambda loaded: _apply(loaded.swap_sections, a, b))
    _print_sections(edited)


@main.command()
@click.argument("recording")
@click.argument("index", type=int)
def remove(recording: str, index: int) -> None:
    """Remove section INDEX from RECORDING."""
    edited = _edit_recording(recording, lambda loaded: _apply(loaded.remove_section, index))
    _print_sections(edited)


@main.command()
@click.argument("recordings", nargs=-1, required=True)
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation")
def delete(recordings: tuple[str, ...], yes: bool) -> None:
    """Delete one or more recordings."""
    paths = [_resolve_recording(recording) for recording in recordings]
    if not yes:
        names = ", ".join(path.name for path in paths)
        click.confirm(f"Delete {names}?", abort=True)

    for path in paths:
        path.unlink()
        console.print(f"Deleted [green]{path}[/green]")


@main.command()
def tunings() -> None:
    """List the built-in tunings."""
    table = Table()
    table.add_column("Name")
    table.add_column("Strings (low to high)")
    table.add_column("Capo", justify="right")
    table.add_column("Max fret", justify="right")

    for tuning in DEFAULT_TUNINGS:
        table.add_row(
            tuning.name,
            " ".join(pitch_name(string) for string in reversed(tuning.strings)),
            str(tuning.capo),
            str(tuning.max_fret),
        )

    console.print(table)


@main.command()
def info() -> None:
    """Show current configuration."""
    settings = get_settings()

    console.print("[bold]Configuration[/bold]")
    console.print(f"  Recordings directory: {settings.recordings_dir}")
    console.print(f"  File extension: {settings.file_extension}")
    console.print(f"  Sample rate: {settings.sample_rate}")
    console.print(f"  Frame size: {settings.frame_size}")
    console.print(f"  Samples per step: {settings.samples_per_step}")
    console.print(f"  Pitch range: {pitch_name(settings.base_pitch)} + {settings.pitch_range} semitones")
    console.print(f"  Confidence cutoff: {settings.confidence_cutoff}")
    console.print(f"  Minimum section length: {settings.min_section_length}")
    console.print(f"  Default tuning: {settings.default_tuning}")


if __name__ == "__main__":
    main()
