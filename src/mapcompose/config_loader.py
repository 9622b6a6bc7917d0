"""
Map job loading for the composition pipeline.

This module turns a YAML job file into a validated ``MapJob``:
- job file (area, states, path queries, markers, output)
- data/palettes.yml (bundled per-category road palettes)
- command-line overrides (output path, DPI)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from .domain.models import MapJob, PathQuery
from .utils import load_yaml_file

DATA_DIR = Path(__file__).parent / "data"
PALETTES_FILE = DATA_DIR / "palettes.yml"
EXAMPLE_JOB = DATA_DIR / "east_lansing.yml"


def load_palettes(palettes_path: Optional[Path] = None) -> dict[str, dict[str, Any]]:
    """
    Load palette definitions.

    Args:
        palettes_path: Palette file (defaults to the bundled data/palettes.yml)

    Returns:
        Mapping of palette name to its definition (color_by, default, colors)
    """
    palettes = load_yaml_file(Path(palettes_path or PALETTES_FILE))
    for name, palette in palettes.items():
        if not isinstance(palette, dict) or not isinstance(palette.get("colors", {}), dict):
            raise ValueError(f"Palette '{name}' must be a mapping with a 'colors' mapping")
    return palettes


def get_available_palettes(palettes_path: Optional[Path] = None) -> list[str]:
    """Get sorted palette names."""
    return sorted(load_palettes(palettes_path).keys())


def apply_palette(query: PathQuery, palettes: dict[str, dict[str, Any]]) -> PathQuery:
    """
    Merge the query's named palette into its style.

    Explicit ``category_colors`` in the job win over palette entries; the
    palette's ``color_by`` column defaults to the query's tag key.
    """
    if not query.palette:
        return query
    if query.palette not in palettes:
        raise ValueError(f"Palette '{query.palette}' not found. Available: {sorted(palettes)}")

    palette = palettes[query.palette]
    style = query.style
    merged = style.model_copy(update={
        "color_by": style.color_by or palette.get("color_by") or query.tag_key,
        "category_colors": {**palette.get("colors", {}), **style.category_colors},
        "default_color": style.default_color or palette.get("default"),
    })
    return query.model_copy(update={"style": merged})


def load_job(
    job_path: str | Path,
    output_path: Optional[str | Path] = None,
    dpi: Optional[float] = None,
    palettes_path: Optional[Path] = None,
) -> MapJob:
    """
    Load and validate a map job.

    Args:
        job_path: YAML job file
        output_path: Override for output.path
        dpi: Override for output.dpi

    Returns:
        MapJob with palettes merged into path styles

    Raises:
        FileNotFoundError: Job or palette file missing
        ValueError: Invalid YAML, unknown palette or fields failing validation
    """
    job_path = Path(job_path)
    raw = load_yaml_file(job_path)
    raw.setdefault("name", job_path.stem)

    try:
        job = MapJob(**raw)
    except ValidationError as e:
        raise ValueError(f"Invalid map job {job_path}:\n{e}") from e

    if any(query.palette for query in job.paths):
        palettes = load_palettes(palettes_path)
        job = job.model_copy(update={"paths": [apply_palette(q, palettes) for q in job.paths]})

    output_updates: dict[str, Any] = {}
    if output_path is not None:
        output_updates["path"] = Path(output_path)
    if dpi is not None:
        output_updates["dpi"] = float(dpi)
    if output_updates:
        job = job.model_copy(update={"output": job.output.model_copy(update=output_updates)})

    return job
