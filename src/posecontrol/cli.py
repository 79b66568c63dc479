"""posecontrol CLI.

Usage:
    posecontrol serve         Start the frame-ingest / event service
    posecontrol listen        Run the engine on NDJSON frames from stdin
    posecontrol gestures      List the built-in gestures
    posecontrol init-config   Write a default config file
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from posecontrol.config import EngineConfig, load_config, save_config
from posecontrol.desktop import Desktop, RecordingDesktop, XdotoolDesktop
from posecontrol.engine import InteractionEngine

app = typer.Typer(
    name="posecontrol",
    help="Body-pose gesture control for the desktop.",
    add_completion=False,
)

logger = logging.getLogger("posecontrol.cli")


@app.callback()
def main_options(
    log_level: str = typer.Option("info", "--log-level", help="Log level"),
):
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_engine(config_path: Optional[str], dry_run: bool) -> InteractionEngine:
    try:
        config = load_config(config_path)
    except (OSError, ValueError) as e:
        typer.echo(f"Could not load config {config_path}: {e}", err=True)
        raise typer.Exit(1)
    desktop: Desktop = RecordingDesktop() if dry_run else XdotoolDesktop()
    return InteractionEngine(desktop, config)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(8765, help="Port"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to posecontrol YAML config"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Record desktop commands instead of sending them"),
):
    """Start the WebSocket service."""
    import uvicorn
    from posecontrol.server import app as fastapi_app, configure

    configure(_build_engine(config, dry_run))
    typer.echo(f"Starting posecontrol on {host}:{port}{' (dry run)' if dry_run else ''}")
    uvicorn.run(fastapi_app, host=host, port=port, log_level=logging.getLevelName(logging.getLogger().level).lower())


@app.command()
def listen(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to posecontrol YAML config"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Record desktop commands instead of sending them"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print ticks with events or desktop commands"),
):
    """Run the engine on newline-delimited JSON frames from stdin.

    Each input line is one frame; each output line is the tick result.
    """
    from posecontrol.frame import PoseFrame

    engine = _build_engine(config, dry_run)
    intrinsics = engine.config.projection.intrinsics()

    for lineno, line in enumerate(sys.stdin, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            frame = PoseFrame.from_dict(json.loads(line), intrinsics=intrinsics)
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning("line %d: bad frame: %s", lineno, e)
            continue
        result = engine.process_frame(frame)
        if quiet and not (result.events or result.mode_changes or result.commands):
            continue
        typer.echo(json.dumps(result.to_dict()))

    stats = engine.stats
    typer.echo(f"{stats.total_frames} frames, {stats.total_gestures} gestures, final mode {stats.mode}", err=True)


@app.command()
def gestures():
    """List the built-in gestures and their segments."""
    from posecontrol.library import default_gestures

    for definition in default_gestures():
        typer.echo(f"{definition.name} ({len(definition)} segments)")
        if definition.description:
            typer.echo(f"    {definition.description}")
        for i, segment in enumerate(definition.segments, start=1):
            typer.echo(f"    {i}. {segment.describe()}")


@app.command("init-config")
def init_config(
    output: str = typer.Option("posecontrol.yml", "-o", help="Output file path"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
):
    """Write the default configuration, including action mappings."""
    from posecontrol.actions import default_mapping_entries

    path = Path(output)
    if path.exists() and not force:
        typer.echo(f"{output} already exists (use --force to overwrite)", err=True)
        raise typer.Exit(1)
    save_config(EngineConfig(mappings=default_mapping_entries()), path)
    typer.echo(f"Wrote {output}")


def main():
    app()


if __name__ == "__main__":
    main()
