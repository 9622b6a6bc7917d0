"""
OSMFeatureSource - OpenStreetMap Feature Queries

Fetches tagged line features (roads, footways) inside a bounding box from the
Overpass API through osmnx, and resolves place names to bounding boxes.
"""

import logging
from typing import Optional, Sequence

import geopandas as gpd
import osmnx as ox
import requests
from osmnx._errors import InsufficientResponseError, ResponseStatusCodeError

from ..config.settings import SourceConfig
from ..domain.enums import GeometryKind
from ..types import (
    WGS84,
    BoundingBox,
    DataSourceError,
    EmptyResultError,
    FeatureSet,
    InvalidBoundsError,
)
from ..utils import timer

logger = logging.getLogger(__name__)

SOURCE_NAME = "overpass"

# Attribute columns carried through to the FeatureSet besides the tag column
KEEP_COLUMNS = ["osmid", "name"]


def build_tags(tag_key: str, tag_values: Optional[Sequence[str]] = None) -> dict:
    """
    Build the osmnx tags dict for one tag query.

    Args:
        tag_key: OSM key, e.g. "highway"
        tag_values: Optional subset of values, e.g. ["primary", "residential"]

    Returns:
        ``{tag_key: True}`` for all values, otherwise ``{tag_key: [values]}``
    """
    if not tag_key or not tag_key.strip():
        raise ValueError("tag_key must be a non-empty OSM key")
    if tag_values:
        return {tag_key: [str(v) for v in tag_values]}
    return {tag_key: True}


def select_lines(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Keep only line geometries; polygons and points for the same tag are dropped."""
    kinds = gdf.geom_type.map(lambda t: GeometryKind.from_geom_type(t).value)
    return gdf[kinds == GeometryKind.LINES.value]


class OSMFeatureSource:
    """
    OpenStreetMap vector feature source.

    Every call applies the configured timeout and Overpass endpoint to
    ``osmnx.settings`` before issuing the query. Nothing is retried here;
    callers wanting resilience wrap individual calls.
    """

    def __init__(self, settings: Optional[SourceConfig] = None):
        """
        Initialize the source.

        Args:
            settings: Data source configuration (defaults to SourceConfig())
        """
        self.settings = settings or SourceConfig()

    def _apply_settings(self) -> None:
        ox.settings.requests_timeout = self.settings.request_timeout
        ox.settings.use_cache = self.settings.osm_cache
        if self.settings.overpass_url:
            ox.settings.overpass_url = self.settings.overpass_url

    @timer
    def fetch(
        self,
        bbox: BoundingBox,
        tag_key: str,
        tag_values: Optional[Sequence[str]] = None,
        name: Optional[str] = None,
    ) -> FeatureSet:
        """
        Fetch line features tagged ``tag_key`` inside ``bbox``.

        Args:
            bbox: Query region
            tag_key: OSM key (e.g. "highway", "footway")
            tag_values: Optional subset of tag values to request
            name: FeatureSet name (defaults to tag_key)

        Returns:
            FeatureSet with line geometries in EPSG:4326

        Raises:
            DataSourceError: Overpass unreachable, timed out or malformed response
            EmptyResultError: No line features matched
        """
        tags = build_tags(tag_key, tag_values)
        name = name or tag_key
        values = tuple(tag_values) if tag_values else None

        self._apply_settings()
        logger.info(f"Querying Overpass for {name}: {tags} in {bbox.bounds}")

        try:
            raw = ox.features_from_bbox(bbox=bbox.bounds, tags=tags)
        except InsufficientResponseError as e:
            raise EmptyResultError(
                f"No features tagged {tag_key} in {bbox.bounds}",
                stage="fetch_features", source=SOURCE_NAME,
            ) from e
        except (requests.exceptions.RequestException, ResponseStatusCodeError) as e:
            raise DataSourceError(
                f"Overpass query for {tag_key} failed: {e}",
                stage="fetch_features", source=SOURCE_NAME,
            ) from e

        if not isinstance(raw, gpd.GeoDataFrame) or "geometry" not in raw.columns:
            raise DataSourceError(
                f"Overpass query for {tag_key} returned malformed data ({type(raw).__name__})",
                stage="fetch_features", source=SOURCE_NAME,
            )

        features = self._normalize(select_lines(raw), tag_key)
        logger.debug(f"{name}: {len(raw):,} raw features, {len(features):,} lines")

        if features.empty:
            raise EmptyResultError(
                f"No line features tagged {tag_key} in {bbox.bounds}",
                stage="fetch_features", source=SOURCE_NAME,
            )

        logger.info(f"Fetched {len(features):,} {name} lines")
        return FeatureSet(name=name, tag_key=tag_key, features=features, tag_values=values)

    def _normalize(self, gdf: gpd.GeoDataFrame, tag_key: str) -> gpd.GeoDataFrame:
        """Flatten the osmnx index and keep the tag, id and name columns."""
        if gdf.crs is None:
            gdf = gdf.set_crs(WGS84)
        elif gdf.crs.to_epsg() != 4326:
            gdf = gdf.to_crs(WGS84)

        gdf = gdf.copy()
        # osmnx indexes features by (element, id)
        gdf["osmid"] = [str(v) for v in gdf.index.get_level_values(-1)]

        keep = [tag_key] + [c for c in KEEP_COLUMNS if c in gdf.columns and c != tag_key]
        if tag_key not in gdf.columns:
            gdf[tag_key] = None
        cols = keep + [gdf.geometry.name]
        return gdf[cols].reset_index(drop=True)

    def geocode(self, place: str) -> BoundingBox:
        """
        Resolve a place name to its bounding box.

        Raises:
            DataSourceError: Geocoder unreachable or place not found
            InvalidBoundsError: Place resolved to a point or line
        """
        self._apply_settings()
        logger.info(f"Geocoding '{place}'")

        try:
            gdf = ox.geocode_to_gdf(place)
        except (requests.exceptions.RequestException, ResponseStatusCodeError,
                InsufficientResponseError, TypeError, ValueError) as e:
            raise DataSourceError(
                f"Geocoding '{place}' failed: {e}", stage="resolve_bbox", source="nominatim"
            ) from e

        if gdf.empty:
            raise DataSourceError(
                f"Geocoder returned no result for '{place}'", stage="resolve_bbox", source="nominatim"
            )

        if gdf.crs is not None and gdf.crs.to_epsg() != 4326:
            gdf = gdf.to_crs(WGS84)

        try:
            bbox = BoundingBox.from_bounds(gdf.total_bounds)
        except InvalidBoundsError as e:
            raise InvalidBoundsError(
                f"'{place}' does not resolve to an area: {e.message}", source="nominatim"
            ) from e

        logger.info(f"Resolved '{place}' to {bbox.bounds}")
        return bbox
