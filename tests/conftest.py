"""Shared pytest fixtures for the mapcompose test suite."""

from pathlib import Path

import geopandas as gpd
import matplotlib
import pandas as pd
import pytest
from shapely.geometry import LineString, Point, Polygon, box

from mapcompose.types import WGS84, AdminRegion, BoundingBox, FeatureSet

matplotlib.use("Agg")

TESTS_DIR = Path(__file__).parent

# ---------------------------------------------------------------------------
# Bounding boxes
# ---------------------------------------------------------------------------


@pytest.fixture()
def unit_bbox() -> BoundingBox:
    """Box from (0, 0) to (10, 10); easy to reason about clipping."""
    return BoundingBox(min_lon=0.0, max_lon=10.0, min_lat=0.0, max_lat=10.0)


@pytest.fixture()
def east_lansing_bbox() -> BoundingBox:
    """Bounding box around Michigan State University's campus."""
    return BoundingBox(min_lon=-84.493675, max_lon=-84.462183, min_lat=42.711814, max_lat=42.735481)


# ---------------------------------------------------------------------------
# Geometry frames
# ---------------------------------------------------------------------------


@pytest.fixture()
def road_lines() -> gpd.GeoDataFrame:
    """Three roads: inside, straddling and outside the unit box."""
    return gpd.GeoDataFrame(
        {
            "highway": ["residential", "primary", "motorway"],
            "osmid": ["1", "2", "3"],
            "name": ["Inner St", "Cross Rd", "Far Hwy"],
        },
        geometry=[
            LineString([(2, 2), (8, 2)]),
            LineString([(5, 5), (15, 5)]),
            LineString([(20, 20), (30, 30)]),
        ],
        crs=WGS84,
    )


@pytest.fixture()
def road_features(road_lines: gpd.GeoDataFrame) -> FeatureSet:
    return FeatureSet(name="roads", tag_key="highway", features=road_lines)


@pytest.fixture()
def osm_response() -> gpd.GeoDataFrame:
    """Frame shaped like an osmnx features_from_bbox result (element, id index)."""
    index = pd.MultiIndex.from_tuples(
        [("way", 101), ("way", 102), ("node", 103), ("way", 104)],
        names=["element", "id"],
    )
    return gpd.GeoDataFrame(
        {
            "highway": ["primary", "footway", "crossing", "pedestrian"],
            "name": ["Grand River Ave", None, None, "Plaza"],
            "surface": ["asphalt", "concrete", None, "paving_stones"],
        },
        geometry=[
            LineString([(-84.49, 42.72), (-84.47, 42.72)]),
            LineString([(-84.48, 42.715), (-84.48, 42.73)]),
            Point(-84.478, 42.724),
            Polygon([(-84.485, 42.725), (-84.484, 42.725), (-84.484, 42.726), (-84.485, 42.726)]),
        ],
        index=index,
        crs=WGS84,
    )


@pytest.fixture()
def counties() -> gpd.GeoDataFrame:
    """Two adjoining counties covering x in [0, 20], y in [0, 10]."""
    return gpd.GeoDataFrame(
        {
            "STATEFP": ["26", "26"],
            "COUNTYFP": ["065", "037"],
            "GEOID": ["26065", "26037"],
            "NAME": ["Ingham", "Clinton"],
        },
        geometry=[box(0, 0, 10, 10), box(10, 0, 20, 10)],
        crs=WGS84,
    )


@pytest.fixture()
def region(counties: gpd.GeoDataFrame) -> AdminRegion:
    return AdminRegion(state_fips="26", regions=counties)


@pytest.fixture()
def lake() -> gpd.GeoDataFrame:
    """One lake straddling the two counties."""
    return gpd.GeoDataFrame(
        {"HYDROID": ["110"], "FULLNAME": ["Lake Lansing"], "MTFCC": ["H2030"], "COUNTYFP": ["065"]},
        geometry=[box(8, 4, 12, 6)],
        crs=WGS84,
    )
