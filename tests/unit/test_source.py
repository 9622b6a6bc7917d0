"""Tests for the OpenStreetMap feature source (osmnx calls are mocked)."""

from __future__ import annotations

from unittest.mock import patch

import geopandas as gpd
import osmnx as ox
import pandas as pd
import pytest
import requests
from osmnx._errors import InsufficientResponseError, ResponseStatusCodeError
from shapely.geometry import LineString, MultiLineString, Point, box

from mapcompose.config.settings import SourceConfig
from mapcompose.pipeline.source import OSMFeatureSource, build_tags, select_lines
from mapcompose.pipeline.transform import GeometryCompositor
from mapcompose.types import (
    WGS84,
    BoundingBox,
    DataSourceError,
    EmptyResultError,
    InvalidBoundsError,
)

FEATURES = "mapcompose.pipeline.source.ox.features_from_bbox"
GEOCODE = "mapcompose.pipeline.source.ox.geocode_to_gdf"


@pytest.fixture()
def source(monkeypatch: pytest.MonkeyPatch) -> OSMFeatureSource:
    # Restore osmnx globals touched by _apply_settings
    for attr in ("requests_timeout", "use_cache", "overpass_url"):
        monkeypatch.setattr(ox.settings, attr, getattr(ox.settings, attr))
    return OSMFeatureSource(SourceConfig(request_timeout=30))


class TestBuildTags:
    def test_all_values(self) -> None:
        assert build_tags("highway") == {"highway": True}

    def test_value_subset(self) -> None:
        assert build_tags("highway", ["primary", "residential"]) == {"highway": ["primary", "residential"]}

    def test_empty_values_means_all(self) -> None:
        assert build_tags("footway", []) == {"footway": True}

    @pytest.mark.parametrize("key", ["", "   "])
    def test_empty_key_rejected(self, key: str) -> None:
        with pytest.raises(ValueError):
            build_tags(key)


class TestSelectLines:
    def test_drops_points_and_polygons(self, osm_response: gpd.GeoDataFrame) -> None:
        lines = select_lines(osm_response)
        assert list(lines.geom_type) == ["LineString", "LineString"]

    def test_keeps_multilines_in_order(self) -> None:
        gdf = gpd.GeoDataFrame(
            {"highway": ["primary", "bus_stop", "service", "parking"]},
            geometry=[
                LineString([(0, 0), (1, 1)]),
                Point(0, 0),
                MultiLineString([[(0, 0), (1, 0)], [(2, 0), (3, 0)]]),
                box(0, 0, 1, 1),
            ],
            crs=WGS84,
        )
        lines = select_lines(gdf)
        assert lines["highway"].tolist() == ["primary", "service"]


class TestFetch:
    def test_returns_lines_only(self, source: OSMFeatureSource, osm_response: gpd.GeoDataFrame,
                                east_lansing_bbox: BoundingBox) -> None:
        with patch(FEATURES, return_value=osm_response) as mock_fetch:
            fs = source.fetch(east_lansing_bbox, "highway", name="roads")

        mock_fetch.assert_called_once_with(bbox=east_lansing_bbox.bounds, tags={"highway": True})
        assert fs.name == "roads"
        assert fs.tag_key == "highway"
        assert fs.tag_values is None
        assert len(fs) == 2
        assert set(fs.features.geom_type) == {"LineString"}

    def test_normalized_columns(self, source: OSMFeatureSource, osm_response: gpd.GeoDataFrame,
                                east_lansing_bbox: BoundingBox) -> None:
        with patch(FEATURES, return_value=osm_response):
            fs = source.fetch(east_lansing_bbox, "highway", ["primary", "footway"])

        gdf = fs.features
        assert list(gdf.columns) == ["highway", "osmid", "name", "geometry"]
        assert gdf["osmid"].tolist() == ["101", "102"]
        assert gdf.crs.to_epsg() == 4326
        assert fs.tag_values == ("primary", "footway")
        # Name defaults to the tag key
        assert fs.name == "highway"

    def test_reprojects_to_wgs84(self, source: OSMFeatureSource, osm_response: gpd.GeoDataFrame,
                                 east_lansing_bbox: BoundingBox) -> None:
        projected = osm_response.to_crs("EPSG:3857")
        with patch(FEATURES, return_value=projected):
            fs = source.fetch(east_lansing_bbox, "highway")
        assert fs.features.crs.to_epsg() == 4326
        x0, y0 = fs.features.geometry.iloc[0].coords[0]
        assert x0 == pytest.approx(-84.49)
        assert y0 == pytest.approx(42.72)

    def test_missing_tag_column_filled(self, source: OSMFeatureSource, east_lansing_bbox: BoundingBox,
                                       osm_response: gpd.GeoDataFrame) -> None:
        raw = osm_response.drop(columns=["highway"])
        with patch(FEATURES, return_value=raw):
            fs = source.fetch(east_lansing_bbox, "highway")
        assert fs.features["highway"].isna().all()

    def test_insufficient_response_is_empty_result(self, source: OSMFeatureSource,
                                                   east_lansing_bbox: BoundingBox) -> None:
        with patch(FEATURES, side_effect=InsufficientResponseError("no data")):
            with pytest.raises(EmptyResultError) as exc_info:
                source.fetch(east_lansing_bbox, "footway")
        assert exc_info.value.stage == "fetch_features"
        assert exc_info.value.source == "overpass"

    def test_only_points_is_empty_result(self, source: OSMFeatureSource, osm_response: gpd.GeoDataFrame,
                                         east_lansing_bbox: BoundingBox) -> None:
        points = osm_response[osm_response.geom_type == "Point"]
        with patch(FEATURES, return_value=points):
            with pytest.raises(EmptyResultError):
                source.fetch(east_lansing_bbox, "highway")

    @pytest.mark.parametrize(
        "error",
        [
            requests.exceptions.Timeout("read timed out"),
            requests.exceptions.ConnectionError("unreachable"),
            ResponseStatusCodeError("504 Gateway Timeout"),
        ],
    )
    def test_transport_errors_are_data_source_errors(self, source: OSMFeatureSource,
                                                     east_lansing_bbox: BoundingBox,
                                                     error: Exception) -> None:
        with patch(FEATURES, side_effect=error):
            with pytest.raises(DataSourceError) as exc_info:
                source.fetch(east_lansing_bbox, "highway")
        assert exc_info.value.stage == "fetch_features"
        assert exc_info.value.__cause__ is error

    def test_malformed_response(self, source: OSMFeatureSource, east_lansing_bbox: BoundingBox) -> None:
        with patch(FEATURES, return_value=pd.DataFrame({"highway": ["primary"]})):
            with pytest.raises(DataSourceError, match="malformed"):
                source.fetch(east_lansing_bbox, "highway")

    def test_applies_settings(self, east_lansing_bbox: BoundingBox, osm_response: gpd.GeoDataFrame,
                              monkeypatch: pytest.MonkeyPatch) -> None:
        for attr in ("requests_timeout", "use_cache", "overpass_url"):
            monkeypatch.setattr(ox.settings, attr, getattr(ox.settings, attr))
        settings = SourceConfig(request_timeout=12, overpass_url="https://overpass.example.org/api", osm_cache=True)

        with patch(FEATURES, return_value=osm_response):
            OSMFeatureSource(settings).fetch(east_lansing_bbox, "highway")

        assert ox.settings.requests_timeout == 12
        assert ox.settings.use_cache is True
        assert ox.settings.overpass_url == "https://overpass.example.org/api"

    def test_fetch_then_clip_stays_in_box(self, source: OSMFeatureSource, osm_response: gpd.GeoDataFrame,
                                          east_lansing_bbox: BoundingBox) -> None:
        with patch(FEATURES, return_value=osm_response):
            fs = source.fetch(east_lansing_bbox, "highway")

        clipped = GeometryCompositor().clip_features(fs, east_lansing_bbox)
        minx, miny, maxx, maxy = clipped.features.total_bounds
        assert minx >= east_lansing_bbox.min_lon
        assert miny >= east_lansing_bbox.min_lat
        assert maxx <= east_lansing_bbox.max_lon
        assert maxy <= east_lansing_bbox.max_lat
        assert len(clipped) == len(fs)


class TestGeocode:
    def test_resolves_to_total_bounds(self, source: OSMFeatureSource) -> None:
        place = gpd.GeoDataFrame({"name": ["East Lansing"]},
                                 geometry=[box(-84.51, 42.70, -84.44, 42.79)], crs=WGS84)
        with patch(GEOCODE, return_value=place) as mock_geocode:
            bbox = source.geocode("East Lansing, Michigan")

        mock_geocode.assert_called_once_with("East Lansing, Michigan")
        assert bbox.bounds == pytest.approx((-84.51, 42.70, -84.44, 42.79))

    def test_not_found(self, source: OSMFeatureSource) -> None:
        with patch(GEOCODE, side_effect=InsufficientResponseError("Nominatim returned no results")):
            with pytest.raises(DataSourceError) as exc_info:
                source.geocode("Nowhere at all")
        assert exc_info.value.source == "nominatim"
        assert exc_info.value.stage == "resolve_bbox"

    def test_point_result_is_invalid_bounds(self, source: OSMFeatureSource) -> None:
        place = gpd.GeoDataFrame({"name": ["Beaumont Tower"]}, geometry=[Point(-84.48, 42.73)], crs=WGS84)
        with patch(GEOCODE, return_value=place):
            with pytest.raises(InvalidBoundsError):
                source.geocode("Beaumont Tower")

    def test_empty_result(self, source: OSMFeatureSource) -> None:
        empty = gpd.GeoDataFrame({"name": []}, geometry=[], crs=WGS84)
        with patch(GEOCODE, return_value=empty):
            with pytest.raises(DataSourceError):
                source.geocode("Atlantis")
