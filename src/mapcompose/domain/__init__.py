"""
Domain Models and Types

This module contains the map job models, drawing styles and the immutable
scene assembled by the pipeline.

Models:
- MapJob: One map render (area, states, path queries, markers, output)
- PathQuery: Tagged line query with its style
- Style / Marker: Drawing attributes
- OutputOptions: Raster size and resolution
- Layer / Scene: Ordered, immutable drawing input for the renderer

Enums:
- BoundaryResolution: County boundary detail class
- SizeUnit: Output size units
- GeometryKind: Geometry family of fetched features
"""

from .enums import BoundaryResolution, GeometryKind, SizeUnit
from .models import BoundsSpec, MapJob, Marker, OutputOptions, PathQuery, Style
from .scene import Layer, Scene

__all__ = [
    "MapJob", "PathQuery", "Style", "Marker", "OutputOptions", "BoundsSpec",
    "Layer", "Scene",
    "BoundaryResolution", "GeometryKind", "SizeUnit",
]
