"""
Pipeline Enumerations

Core enums for type safety and clear interface definitions across the pipeline.
"""

from enum import Enum


class BoundaryResolution(str, Enum):
    """County boundary detail classes offered by the Census Bureau."""
    CB_500K = "500k"    # Cartographic boundary, 1:500,000
    CB_5M = "5m"        # Cartographic boundary, 1:5,000,000
    CB_20M = "20m"      # Cartographic boundary, 1:20,000,000
    FULL = "full"       # Full-resolution TIGER/Line (includes water areas)

    @property
    def is_cartographic(self) -> bool:
        return self is not BoundaryResolution.FULL


class SizeUnit(str, Enum):
    """Units for output image width and height."""
    INCHES = "in"
    CENTIMETERS = "cm"
    MILLIMETERS = "mm"
    PIXELS = "px"

    def to_inches(self, value: float, dpi: float) -> float:
        if self is SizeUnit.INCHES:
            return value
        if self is SizeUnit.CENTIMETERS:
            return value / 2.54
        if self is SizeUnit.MILLIMETERS:
            return value / 25.4
        return value / dpi


class GeometryKind(str, Enum):
    """Geometry families returned by the vector data source."""
    LINES = "lines"
    POLYGONS = "polygons"
    POINTS = "points"

    @classmethod
    def from_geom_type(cls, geom_type: str) -> "GeometryKind":
        if geom_type in ("LineString", "MultiLineString", "LinearRing"):
            return cls.LINES
        if geom_type in ("Polygon", "MultiPolygon"):
            return cls.POLYGONS
        return cls.POINTS
