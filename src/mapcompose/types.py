"""
Core value types for the map composition pipeline.

This module provides the immutable values passed between pipeline stages
(bounding box, fetched feature sets, administrative regions, water bodies)
and the error hierarchy every stage raises.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

import geopandas as gpd
from shapely.geometry import Polygon, box

if TYPE_CHECKING:
    from .pipeline.source import OSMFeatureSource


WGS84 = "EPSG:4326"


# Pipeline exception hierarchy
class MapComposeError(Exception):
    """Base exception for pipeline errors.

    Attributes:
        message: Human-readable error description.
        stage: Pipeline stage where the error surfaced (e.g. ``"fetch_water"``).
        source: External call or data source involved (e.g. ``"overpass"``).
    """

    default_stage: str = ""

    def __init__(self, message: str = "", *, stage: str = "", source: str = ""):
        self.message = message
        self.stage = stage or self.default_stage
        self.source = source
        super().__init__(message)

    def to_error_dict(self) -> dict[str, str]:
        """Structured payload for logging and CLI output."""
        return {
            "error": type(self).__name__,
            "stage": self.stage,
            "source": self.source,
            "message": self.message,
        }


class InvalidBoundsError(MapComposeError):
    """Bounding box is malformed or degenerate."""
    default_stage = "resolve_bbox"


class DataSourceError(MapComposeError):
    """External data source unreachable, timed out or returned malformed data."""
    pass


class EmptyResultError(MapComposeError):
    """Query succeeded but matched nothing. Callers may continue with empty data."""
    pass


class GeometryError(MapComposeError):
    """Geometry kernel rejected the input."""
    pass


class RenderError(MapComposeError):
    """Invalid output parameters or image size limit exceeded."""
    default_stage = "render"


@dataclass(frozen=True)
class BoundingBox:
    """Rectangular WGS84 query region."""
    min_lon: float
    max_lon: float
    min_lat: float
    max_lat: float

    def __post_init__(self):
        """Validate axis ordering and coordinate ranges."""
        for name in ("min_lon", "max_lon", "min_lat", "max_lat"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or value != value:
                raise InvalidBoundsError(f"{name} must be a number, got {value!r}")

        if not (-180 <= self.min_lon <= 180 and -180 <= self.max_lon <= 180):
            raise InvalidBoundsError(
                f"Longitudes must be within [-180, 180], got {self.min_lon}, {self.max_lon}"
            )
        if not (-90 <= self.min_lat <= 90 and -90 <= self.max_lat <= 90):
            raise InvalidBoundsError(
                f"Latitudes must be within [-90, 90], got {self.min_lat}, {self.max_lat}"
            )
        if self.min_lon >= self.max_lon:
            raise InvalidBoundsError(
                f"min_lon ({self.min_lon}) must be less than max_lon ({self.max_lon})"
            )
        if self.min_lat >= self.max_lat:
            raise InvalidBoundsError(
                f"min_lat ({self.min_lat}) must be less than max_lat ({self.max_lat})"
            )

    @classmethod
    def from_bounds(cls, bounds) -> BoundingBox:
        """Build from a ``(west, south, east, north)`` sequence such as ``total_bounds``."""
        if len(bounds) != 4:
            raise InvalidBoundsError(f"Bounds must have 4 values, got {len(bounds)}")
        west, south, east, north = (float(v) for v in bounds)
        return cls(min_lon=west, max_lon=east, min_lat=south, max_lat=north)

    @classmethod
    def from_place(cls, place: str, source: OSMFeatureSource) -> BoundingBox:
        """Resolve a place name through the geocoder of ``source``."""
        return source.geocode(place)

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Bounds as ``(west, south, east, north)``."""
        return (self.min_lon, self.min_lat, self.max_lon, self.max_lat)

    def to_polygon(self) -> Polygon:
        return box(self.min_lon, self.min_lat, self.max_lon, self.max_lat)

    def contains(self, lon: float, lat: float) -> bool:
        """True when the point lies inside or on the edge of the box."""
        return self.min_lon <= lon <= self.max_lon and self.min_lat <= lat <= self.max_lat

    def expand(self, buffer_degrees: float) -> BoundingBox:
        """Return a new box grown by ``buffer_degrees`` on every side, clamped to the globe."""
        return BoundingBox(
            min_lon=max(-180.0, self.min_lon - buffer_degrees),
            max_lon=min(180.0, self.max_lon + buffer_degrees),
            min_lat=max(-90.0, self.min_lat - buffer_degrees),
            max_lat=min(90.0, self.max_lat + buffer_degrees),
        )


def empty_frame(columns: Optional[list[str]] = None) -> gpd.GeoDataFrame:
    """Empty WGS84 GeoDataFrame with the given attribute columns."""
    return gpd.GeoDataFrame(
        {c: [] for c in (columns or [])}, geometry=[], crs=WGS84
    )


@dataclass(frozen=True)
class FeatureSet:
    """Line features fetched for one tag query."""
    name: str
    tag_key: str
    features: gpd.GeoDataFrame
    tag_values: Optional[tuple[str, ...]] = None

    @classmethod
    def empty(cls, name: str, tag_key: str,
              tag_values: Optional[tuple[str, ...]] = None) -> FeatureSet:
        return cls(name=name, tag_key=tag_key,
                   features=empty_frame([tag_key]), tag_values=tag_values)

    def __len__(self) -> int:
        return len(self.features)

    def with_features(self, features: gpd.GeoDataFrame) -> FeatureSet:
        return FeatureSet(name=self.name, tag_key=self.tag_key,
                          features=features, tag_values=self.tag_values)


@dataclass(frozen=True)
class AdminRegion:
    """County polygons for one state, keyed by ``COUNTYFP``."""
    state_fips: str
    regions: gpd.GeoDataFrame

    @property
    def county_codes(self) -> list[str]:
        if self.regions.empty:
            return []
        return [str(code) for code in self.regions["COUNTYFP"].tolist()]

    def subset_intersecting(self, bbox: BoundingBox) -> AdminRegion:
        """Counties sharing area with ``bbox``. Geometry is not clipped."""
        polygon = bbox.to_polygon()
        geometry = self.regions.geometry
        # Counties that only touch the box edge contribute nothing after clipping
        mask = geometry.intersects(polygon) & ~geometry.touches(polygon)
        return AdminRegion(state_fips=self.state_fips, regions=self.regions[mask].copy())

    def with_regions(self, regions: gpd.GeoDataFrame) -> AdminRegion:
        return AdminRegion(state_fips=self.state_fips, regions=regions)


@dataclass(frozen=True)
class WaterBody:
    """Water polygons gathered for a set of counties."""
    state_fips: str
    county_codes: tuple[str, ...]
    water: gpd.GeoDataFrame = field(default_factory=empty_frame)

    def __len__(self) -> int:
        return len(self.water)

    def with_water(self, water: gpd.GeoDataFrame) -> WaterBody:
        return WaterBody(state_fips=self.state_fips,
                         county_codes=self.county_codes, water=water)
