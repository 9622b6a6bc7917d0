import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
import yaml
from dotenv import load_dotenv

# Load environment variables BEFORE importing local modules that use them
load_dotenv()

from .config.settings import Config, ConfigurationError
from .config.states import StateRegistry
from .config_loader import EXAMPLE_JOB, load_job, load_palettes
from .pipeline.compose import MapPipeline
from .pipeline.source import OSMFeatureSource
from .types import MapComposeError
from .utils import setup_logging

app = typer.Typer(help="Map composition pipeline: Fetch -> Clip -> Subtract -> Render")


def report_error(error: MapComposeError) -> None:
    """Print a structured pipeline error to stderr."""
    details = error.to_error_dict()
    typer.echo(f"ERROR [{details['error']}] {details['message']}", err=True)
    if details["stage"]:
        typer.echo(f"   Stage: {details['stage']}", err=True)
    if details["source"]:
        typer.echo(f"   Source: {details['source']}", err=True)


@app.command("render")
def render(
    job: Annotated[Path, typer.Argument(help="Path to a YAML map job. Use 'example' for the bundled East Lansing job.")],
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Output image path (overrides the job)")] = None,
    dpi: Annotated[Optional[float], typer.Option("--dpi", help="Output resolution (overrides the job)")] = None,
    env_file: Annotated[Optional[Path], typer.Option("--env-file", help="Explicit .env file")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable detailed logging output")] = False,
    log_to_file: Annotated[bool, typer.Option("--log-to-file", help="Create timestamped log files")] = False,
):
    """
    Fetch, compose and render a map job.

    Examples:
        mapcompose render jobs/east_lansing.yml
        mapcompose render example --output out/el.png --dpi 150
    """
    job_path = EXAMPLE_JOB if str(job) == "example" else job

    try:
        map_job = load_job(job_path, output_path=output, dpi=dpi)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"ERROR loading job: {e}", err=True)
        raise typer.Exit(1)

    log_file = setup_logging(verbose, map_job.name, log_to_file)
    if log_file:
        typer.echo(f"Logging to: {log_file}")

    try:
        config = Config(env_file=env_file)
    except ConfigurationError as e:
        typer.echo(f"ERROR in configuration: {e}", err=True)
        raise typer.Exit(1)

    logging.debug(f"Using {config!r}")

    try:
        result = MapPipeline(config).run(map_job)
    except MapComposeError as e:
        report_error(e)
        raise typer.Exit(1)

    typer.echo(f"Map written to {result.output_path}")
    for layer in result.scene.layers:
        typer.echo(f"   {layer.name}: {len(layer):,} features")


@app.command("bbox")
def bbox(
    place: Annotated[str, typer.Argument(help="Place name, e.g. 'East Lansing, Michigan'")],
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable detailed logging output")] = False,
):
    """Resolve a place name to bounding box coordinates for a job file."""
    setup_logging(verbose)

    try:
        config = Config()
        resolved = OSMFeatureSource(config.sources).geocode(place)
    except ConfigurationError as e:
        typer.echo(f"ERROR in configuration: {e}", err=True)
        raise typer.Exit(1)
    except MapComposeError as e:
        report_error(e)
        raise typer.Exit(1)

    typer.echo(yaml.safe_dump({"bbox": {
        "min_lon": resolved.min_lon,
        "max_lon": resolved.max_lon,
        "min_lat": resolved.min_lat,
        "max_lat": resolved.max_lat,
    }}, sort_keys=False).rstrip())


@app.command("list-palettes")
def list_palettes():
    """List the bundled road palettes."""
    try:
        palettes = load_palettes()
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(1)

    typer.echo("Available Palettes")
    typer.echo("=" * 50)
    for name in sorted(palettes):
        palette = palettes[name]
        typer.echo(f"\n* {name}")
        if palette.get("description"):
            typer.echo(f"   Description: {palette['description']}")
        typer.echo(f"   Color by: {palette.get('color_by', 'tag key')}")
        typer.echo(f"   Categories: {len(palette.get('colors', {}))}")

    typer.echo(f"\nFound {len(palettes)} palettes")


@app.command("states")
def states(
    region: Annotated[Optional[str], typer.Option("--region", "-r", help="Filter by Census region")] = None,
):
    """List known states with USPS and FIPS codes."""
    listed = StateRegistry.list_states()
    if region:
        listed = [s for s in listed if s.region.lower() == region.lower()]
        if not listed:
            typer.echo(f"ERROR: Unknown region '{region}'. Known: {', '.join(StateRegistry.list_regions())}", err=True)
            raise typer.Exit(1)

    for state in listed:
        typer.echo(f"{state.fips}  {state.abbr}  {state.name} ({state.region})")


@app.command("version")
def version():
    """Display version information."""
    from . import __version__
    typer.echo(f"mapcompose version: {__version__}")


if __name__ == "__main__":
    app()
