"""StagePilot CLI entry point."""

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from stagepilot import __version__
from stagepilot.document_compiler import DocumentCompiler
from stagepilot.drum_kit import (
    MAX_EXTRA_SNARES,
    MAX_FLOOR_TOMS,
    MAX_TOMS,
    STANDARD_9,
    apply_drum_controls,
    resolve_drum_inputs,
)
from stagepilot.errors import StagePilotError
from stagepilot.models import PadConfig
from stagepilot.preset_override import build_changed_summary
from stagepilot.repository import load_repository
from stagepilot.settings import Settings, SettingsError

PAD_CHOICES = ["none", "sfx-mono", "sfx-stereo", "backing-mono", "backing-stereo"]


def _pad_from_choice(choice: str) -> PadConfig:
    if choice == "none":
        return PadConfig()
    mode, channels = choice.split("-", maxsplit=1)
    return PadConfig(enabled=True, mode=mode, channels=channels)


def _fail(message: str) -> NoReturn:
    click.echo(f"  ERROR: {message}", err=True)
    sys.exit(1)


def _compiler(settings: Settings, data: str | None) -> DocumentCompiler:
    """Load the data directory and build a compiler from the current settings."""
    data_root = Path(data) if data is not None else settings.data_root
    repo = load_repository(data_root)
    return DocumentCompiler(
        repo,
        notes_template=settings.notes_template,
        layout_settings=settings.layout_settings(),
    )


data_option = click.option(
    "--data",
    default=None,
    metavar="DIR",
    type=click.Path(exists=True, file_okay=False),
    help="JSON data directory. Defaults to [data] root from the settings file.",
)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="stagepilot")
@click.option("--config", "config_path", default=None, metavar="PATH", help="Settings file (TOML).")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output.")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """StagePilot — input list and stage plan compiler for bands."""
    try:
        settings = Settings.load(config_path)
    except SettingsError as exc:
        _fail(str(exc))
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = settings


# ── compile subcommand ─────────────────────────────────────────────────────────

@main.command("compile")
@click.argument("project_id")
@data_option
@click.pass_obj
def compile_project(settings: Settings, project_id: str, data: str | None) -> None:
    """
    Compile a project and print its input list and monitor table.

    \b
    Examples:
      stagepilot compile 2026-03-07-club
      stagepilot compile 2026-03-07-club --data ./data
    """
    try:
        document = _compiler(settings, data).compile(project_id)
    except StagePilotError as exc:
        _fail(str(exc))

    meta = document.meta
    line = meta.meta_line
    click.echo(meta.band_name)
    click.echo(f"  {line.label} {line.value}" if line.label else f"  {line.value}")
    click.echo()
    click.echo("Input list:")
    for row in document.input_rows:
        note = f"  ({row.note})" if row.note else ""
        click.echo(f"  {row.no:>5}  {row.label}{note}")
    click.echo()
    click.echo("Monitor mixes:")
    for monitor in document.monitor_table_rows:
        click.echo(f"  {monitor.no:>5}  {monitor.output:<16} {monitor.note}")
    click.echo()
    click.echo(f"Stage plan layout: {document.stageplan_plan.layout_id}")


# ── export subcommand ──────────────────────────────────────────────────────────

@main.command()
@click.argument("project_id")
@data_option
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["html", "json"], case_sensitive=False),
    default="html",
    show_default=True,
    help="Output format: printable HTML or the JSON view model.",
)
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination file path. Defaults to the export file name in [document] output_dir.",
)
@click.pass_obj
def export(settings: Settings, project_id: str, data: str | None, output_format: str, output: str | None) -> None:
    """
    Compile a project and write it as HTML or JSON.

    \b
    Examples:
      stagepilot export 2026-03-07-club
      stagepilot export 2026-03-07-club --format json -o club.json
    """
    from stagepilot.document_exporter import DocumentExporter

    normalized_format = output_format.lower()
    click.echo(f"stagepilot v{__version__}")
    click.echo(f"  Project : {project_id}")
    click.echo(f"  Format  : {normalized_format}")
    click.echo()

    click.echo("[1/3] Loading data...")
    try:
        compiler = _compiler(settings, data)
    except StagePilotError as exc:
        _fail(str(exc))

    exporter = DocumentExporter(compiler, output_format=normalized_format)

    click.echo("[2/3] Compiling input list and stage plan...")
    try:
        document = compiler.compile(project_id)
    except StagePilotError as exc:
        _fail(str(exc))

    click.echo(f"[3/3] Writing {normalized_format.upper()} file...")
    try:
        path = exporter.write(document, output_path=output, output_dir=settings.output_dir)
    except OSError as exc:
        _fail(f"Could not write output file — {exc}")

    click.echo()
    if normalized_format == "html":
        click.echo(f"Done!  Open '{path}' in any browser. Use Print → Save as PDF.")
    else:
        click.echo(f"Done!  Wrote '{path}'.")


# ── diff subcommand ────────────────────────────────────────────────────────────

@main.command()
@click.argument("project_id")
@click.argument("musician_id")
@data_option
@click.pass_obj
def diff(settings: Settings, project_id: str, musician_id: str, data: str | None) -> None:
    """Show a musician's default setup next to the effective one for a project."""
    try:
        setups = _compiler(settings, data).resolve_setups(project_id)
    except StagePilotError as exc:
        _fail(str(exc))

    entry = next((item for item in setups if item.musician.id == musician_id), None)
    if entry is None:
        _fail(f"Musician {musician_id} is not in the lineup of {project_id}.")

    setup = entry.setup
    click.echo(f"{entry.musician.display_name} ({entry.role})")
    click.echo("Inputs:")
    for item in setup.diff_meta.inputs:
        click.echo(f"  [{item.change_type:<9}] {item.key:<24} {item.label}  ({item.origin})")
    click.echo("Monitoring:")
    for field in setup.diff_meta.monitoring:
        value = getattr(setup.effective_monitoring, field.field)
        click.echo(f"  [{field.change_type:<9}] {field.field:<24} {value}  ({field.origin})")

    summary = build_changed_summary(setup.default_preset, setup.effective_preset)
    click.echo()
    click.echo(f"Changes: {', '.join(summary) if summary else 'none'}")


# ── drums subcommand ───────────────────────────────────────────────────────────

@main.command()
@click.option("--toms", type=int, default=STANDARD_9.tom_count, show_default=True, help=f"Rack toms (0–{MAX_TOMS}).")
@click.option(
    "--floors",
    type=int,
    default=STANDARD_9.floor_tom_count,
    show_default=True,
    help=f"Floor toms (0–{MAX_FLOOR_TOMS}).",
)
@click.option("--no-hihat", is_flag=True, help="Drop the hi-hat mic.")
@click.option("--no-overheads", is_flag=True, help="Drop the overhead pair.")
@click.option("--extra-snares", type=int, default=0, show_default=True, help=f"Extra snares (0–{MAX_EXTRA_SNARES}).")
@click.option("--pad", type=click.Choice(PAD_CHOICES), default="none", show_default=True, help="Sample pad outputs.")
def drums(toms: int, floors: int, no_hihat: bool, no_overheads: bool, extra_snares: int, pad: str) -> None:
    """
    Print the channels a drum kit configuration produces.

    Counts outside their range are clamped.

    \b
    Examples:
      stagepilot drums --toms 2
      stagepilot drums --toms 3 --floors 2 --pad sfx-stereo
    """
    setup = apply_drum_controls(
        STANDARD_9,
        tom_count=toms,
        floor_tom_count=floors,
        has_hihat=not no_hihat,
        has_overheads=not no_overheads,
        extra_snare_count=extra_snares,
        pad=_pad_from_choice(pad),
    )
    try:
        channels = resolve_drum_inputs(setup)
    except StagePilotError as exc:
        _fail(str(exc))

    for index, channel in enumerate(channels, start=1):
        note = f"  ({channel.note})" if channel.note else ""
        click.echo(f"  {index:>2}  {channel.key:<22} {channel.label}{note}")
