"""
mapcompose: styled street maps from OpenStreetMap and Census geometry.
"""

__version__ = "0.1.0"

from .types import (
    AdminRegion,
    BoundingBox,
    DataSourceError,
    EmptyResultError,
    FeatureSet,
    GeometryError,
    InvalidBoundsError,
    MapComposeError,
    RenderError,
    WaterBody,
)

__all__ = [
    "__version__",
    "AdminRegion",
    "BoundingBox",
    "DataSourceError",
    "EmptyResultError",
    "FeatureSet",
    "GeometryError",
    "InvalidBoundsError",
    "MapComposeError",
    "RenderError",
    "WaterBody",
]
