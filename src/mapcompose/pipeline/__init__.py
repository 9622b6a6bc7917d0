"""
Map Composition Pipeline Components

This module provides the pipeline architecture following the
Source -> Transform -> Render pattern.

Components:
- source: OSMFeatureSource for tagged OpenStreetMap line queries and geocoding
- transform: GeometryCompositor for clipping and water subtraction
- render: MapRenderer for layered raster output
- compose: MapPipeline orchestrating all stages
"""

from .compose import MapPipeline, PipelineResult
from .render import MapRenderer
from .source import OSMFeatureSource
from .transform import GeometryCompositor

__all__ = ["OSMFeatureSource", "GeometryCompositor", "MapRenderer", "MapPipeline", "PipelineResult"]
