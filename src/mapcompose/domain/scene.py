"""Immutable scene assembled by the pipeline and consumed by the renderer."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

import geopandas as gpd

from ..types import BoundingBox
from .models import Marker, Style


@dataclass(frozen=True)
class Layer:
    """One styled geometry collection."""
    name: str
    gdf: gpd.GeoDataFrame
    style: Style = field(default_factory=Style)

    def __len__(self) -> int:
        return len(self.gdf)


@dataclass(frozen=True)
class Scene:
    """
    Ordered layers plus point markers, cropped to ``bbox`` when rendered.

    Layers are drawn in tuple order, so earlier layers sit underneath later
    ones. Markers are drawn above every layer.
    """
    bbox: BoundingBox
    layers: tuple[Layer, ...] = ()
    markers: tuple[Marker, ...] = ()
    background: str = "white"

    def with_layer(self, layer: Layer) -> Scene:
        return replace(self, layers=self.layers + (layer,))

    def with_marker(self, marker: Marker) -> Scene:
        return replace(self, markers=self.markers + (marker,))

    def layer(self, name: str) -> Layer:
        for candidate in self.layers:
            if candidate.name == name:
                return candidate
        raise KeyError(f"No layer named '{name}' in scene")

    @property
    def layer_names(self) -> list[str]:
        return [layer.name for layer in self.layers]
