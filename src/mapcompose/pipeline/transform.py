"""
GeometryCompositor - Clipping and Water Subtraction

Crops geometry collections to the map bounding box and removes water area
from county polygons. All work is delegated to geopandas/shapely; invalid
input is reported rather than repaired.
"""

from __future__ import annotations

import logging

import geopandas as gpd
from shapely.errors import GEOSException

from ..types import (
    WGS84,
    AdminRegion,
    BoundingBox,
    FeatureSet,
    GeometryError,
    WaterBody,
)

logger = logging.getLogger(__name__)


def ensure_wgs84(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Assume EPSG:4326 for frames without a CRS; reproject anything else."""
    if gdf.crs is None:
        return gdf.set_crs(WGS84)
    if gdf.crs.to_epsg() != 4326:
        return gdf.to_crs(WGS84)
    return gdf


class GeometryCompositor:
    """
    Clip and subtract operations on GeoDataFrames.

    Every method returns a new frame; inputs are never modified.
    """

    def clip(self, gdf: gpd.GeoDataFrame, bbox: BoundingBox) -> gpd.GeoDataFrame:
        """
        Keep only the parts of each geometry inside ``bbox``.

        Rows fully outside the box are dropped and straddling rows are
        truncated to it. Attributes are preserved. Clipping an already clipped
        frame to the same box returns the same geometries.

        Raises:
            GeometryError: Input contains invalid geometry or GEOS fails
        """
        gdf = ensure_wgs84(gdf)
        if gdf.empty:
            return gdf.copy()

        self._check_valid(gdf, "clip")

        try:
            clipped = gpd.clip(gdf, bbox.to_polygon(), keep_geom_type=True)
        except GEOSException as e:
            raise GeometryError(f"Clip to {bbox.bounds} failed: {e}", stage="clip", source="geos") from e

        geometry = clipped.geometry
        clipped = clipped[geometry.notna() & ~geometry.is_empty].sort_index()

        logger.debug(f"Clipped {len(gdf):,} -> {len(clipped):,} features to {bbox.bounds}")
        return clipped

    def subtract(self, land: gpd.GeoDataFrame, water: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
        """
        Remove the union of ``water`` from every polygon of ``land``.

        Water polygons are merged first, since adjoining counties return
        overlapping pieces along shared borders. The result keeps the land
        index and attributes; a polygon fully covered by water stays as an
        empty geometry so identifiers remain aligned.

        Raises:
            GeometryError: Input contains invalid geometry or GEOS fails
        """
        if water is None or water.empty:
            return land.copy()

        if land.crs is not None and water.crs is not None and water.crs != land.crs:
            water = water.to_crs(land.crs)

        self._check_valid(land, "subtract")
        self._check_valid(water, "subtract")

        try:
            water_union = water.geometry.union_all()
            remaining = land.geometry.difference(water_union)
        except GEOSException as e:
            raise GeometryError(f"Water subtraction failed: {e}", stage="subtract", source="geos") from e

        result = land.copy()
        result[land.geometry.name] = remaining.values

        logger.debug(f"Subtracted {len(water):,} water polygons from {len(land):,} regions")
        return result

    def clip_features(self, features: FeatureSet, bbox: BoundingBox) -> FeatureSet:
        return features.with_features(self.clip(features.features, bbox))

    def clip_region(self, region: AdminRegion, bbox: BoundingBox) -> AdminRegion:
        return region.with_regions(self.clip(region.regions, bbox))

    def clip_water(self, water: WaterBody, bbox: BoundingBox) -> WaterBody:
        return water.with_water(self.clip(water.water, bbox))

    def _check_valid(self, gdf: gpd.GeoDataFrame, stage: str) -> None:
        geometry = gdf.geometry
        invalid = geometry.notna() & ~geometry.is_valid
        if invalid.any():
            labels = ", ".join(str(i) for i in gdf.index[invalid][:5])
            raise GeometryError(
                f"{int(invalid.sum())} invalid geometries (rows {labels})",
                stage=stage, source="geos",
            )
