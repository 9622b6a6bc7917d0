"""
Pipeline Domain Models

Pydantic models for map jobs, styles and output options.
These models are loaded from YAML job files and passed to the pipeline stages.
"""

from pathlib import Path
from typing import Optional

import geopandas as gpd
from pydantic import BaseModel, Field

from .enums import BoundaryResolution, SizeUnit

DEFAULT_DPI = 300.0


class Style(BaseModel):
    """Drawing style applied uniformly to one layer."""
    color: str = Field(default="#333333", description="Stroke color")
    fill: Optional[str] = Field(None, description="Face color for polygons (defaults to color)")
    width: float = Field(default=0.5, ge=0, description="Stroke width in points")
    alpha: float = Field(default=1.0, ge=0, le=1, description="Opacity")

    # Per-feature coloring from a caller-supplied category mapping
    color_by: Optional[str] = Field(None, description="Attribute column holding the category")
    category_colors: dict[str, str] = Field(default_factory=dict, description="Category to color mapping")
    default_color: Optional[str] = Field(None, description="Color for categories missing from the mapping")

    class Config:
        """Pydantic configuration."""
        frozen = True

    def colors_for(self, gdf: gpd.GeoDataFrame) -> str | list[str]:
        """
        Resolve stroke colors for every row of ``gdf``.

        Returns a single color when per-feature coloring is disabled or the
        category column is absent, otherwise one color per row.
        """
        if not self.color_by or self.color_by not in gdf.columns:
            return self.color
        fallback = self.default_color or self.color
        return [
            self.category_colors.get(str(value), fallback) if value is not None else fallback
            for value in gdf[self.color_by].tolist()
        ]


class Marker(BaseModel):
    """Point marker drawn above all layers."""
    lon: float = Field(..., description="Longitude (x)")
    lat: float = Field(..., description="Latitude (y)")
    color: str = Field(default="red", description="Marker color")
    size: float = Field(default=40.0, gt=0, description="Marker area in points squared")
    shape: str = Field(default="o", description="Matplotlib marker code")
    label: Optional[str] = Field(None, description="Optional annotation text")

    class Config:
        """Pydantic configuration."""
        frozen = True


class BoundsSpec(BaseModel):
    """Explicit bounding box as written in a job file."""
    min_lon: float
    max_lon: float
    min_lat: float
    max_lat: float


class PathQuery(BaseModel):
    """One tagged OSM line query and its style."""
    name: str = Field(..., description="Layer name (roads, sidewalks, ...)")
    tag_key: str = Field(..., min_length=1, description="OSM tag key, e.g. highway")
    tag_values: Optional[list[str]] = Field(None, description="Restrict to these tag values")
    style: Style = Field(default_factory=Style)
    palette: Optional[str] = Field(None, description="Bundled palette name for per-category colors")

    class Config:
        """Pydantic configuration."""
        frozen = True


class OutputOptions(BaseModel):
    """Raster output parameters."""
    path: Path = Field(default=Path("map.png"), description="Output image path")
    width: float = Field(default=6.0, description="Image width in units")
    height: float = Field(default=6.0, description="Image height in units")
    units: SizeUnit = Field(default=SizeUnit.INCHES, description="Width/height units")
    dpi: Optional[float] = Field(None, description="Dots per inch (renderer default when unset)")

    @property
    def effective_dpi(self) -> float:
        return self.dpi if self.dpi is not None else DEFAULT_DPI

    def with_default_dpi(self, dpi: float) -> "OutputOptions":
        """Return options with ``dpi`` filled in when the job left it unset."""
        if self.dpi is not None:
            return self
        return self.model_copy(update={"dpi": dpi})

    def size_inches(self) -> tuple[float, float]:
        return (
            self.units.to_inches(self.width, self.effective_dpi),
            self.units.to_inches(self.height, self.effective_dpi),
        )

    def pixel_size(self) -> tuple[int, int]:
        w_in, h_in = self.size_inches()
        return int(round(w_in * self.effective_dpi)), int(round(h_in * self.effective_dpi))


class MapJob(BaseModel):
    """Complete description of one map render."""
    name: str = Field(default="map", description="Job identifier used for logging")
    place: Optional[str] = Field(None, description="Place name resolved by the geocoder")
    bbox: Optional[BoundsSpec] = Field(None, description="Explicit bounds (takes precedence over place)")
    states: list[str] = Field(default_factory=list, description="States for county and water background")
    boundary_resolution: BoundaryResolution = Field(default=BoundaryResolution.CB_500K)
    background: str = Field(default="#a6cee3", description="Figure background (shows through water)")
    region_style: Style = Field(default_factory=lambda: Style(color="#f2efe9", fill="#f2efe9", width=0))
    paths: list[PathQuery] = Field(default_factory=list)
    markers: list[Marker] = Field(default_factory=list)
    output: OutputOptions = Field(default_factory=OutputOptions)

    class Config:
        """Pydantic configuration."""
        arbitrary_types_allowed = True  # Allow Path types
