"""
MapPipeline - Fetch, Clip, Subtract, Layer, Render

Runs the stages in fixed order. Each stage returns new values, so fetched
features can be reused for several renders with different styling.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

import geopandas as gpd
import pandas as pd

from ..boundaries import TigerBoundarySource
from ..config.settings import Config, RenderConfig, SourceConfig
from ..domain.models import MapJob, OutputOptions, PathQuery
from ..domain.scene import Layer, Scene
from ..types import (
    WGS84,
    AdminRegion,
    BoundingBox,
    EmptyResultError,
    FeatureSet,
    InvalidBoundsError,
    MapComposeError,
    WaterBody,
    empty_frame,
)
from .render import MapRenderer
from .source import OSMFeatureSource
from .transform import GeometryCompositor

logger = logging.getLogger(__name__)

REGION_LAYER = "regions"


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of one pipeline run."""
    scene: Scene
    output_path: Optional[Path]
    features: dict[str, FeatureSet] = field(default_factory=dict)
    timings: dict[str, float] = field(default_factory=dict)


class MapPipeline:
    """
    Orchestrates one map render.

    Stage order: resolve bounding box, fetch path features, fetch counties and
    water, clip, subtract water, assemble the scene, render. The first error
    from any stage propagates with its ``stage`` set; an empty feature query
    is the only recoverable case and becomes an empty layer.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        feature_source: Optional[OSMFeatureSource] = None,
        boundary_source: Optional[TigerBoundarySource] = None,
        compositor: Optional[GeometryCompositor] = None,
        renderer: Optional[MapRenderer] = None,
    ):
        source_settings = config.sources if config else SourceConfig()
        render_settings = config.render if config else RenderConfig()

        self.compositor = compositor or GeometryCompositor()
        self.feature_source = feature_source or OSMFeatureSource(source_settings)
        self.boundary_source = boundary_source or TigerBoundarySource(source_settings)
        self.renderer = renderer or MapRenderer(render_settings, self.compositor)

    @contextmanager
    def _stage(self, name: str, timings: dict[str, float]) -> Iterator[None]:
        start = time.time()
        try:
            yield
        except MapComposeError as e:
            if not e.stage:
                e.stage = name
            logger.error(f"Stage '{e.stage}' failed ({type(e).__name__}): {e.message}")
            raise
        finally:
            timings[name] = timings.get(name, 0.0) + time.time() - start

    # Stages

    def resolve_bbox(self, job: MapJob) -> BoundingBox:
        if job.bbox is not None:
            return BoundingBox(**job.bbox.model_dump())
        if job.place:
            return BoundingBox.from_place(job.place, self.feature_source)
        raise InvalidBoundsError(f"Job '{job.name}' needs either a bbox or a place")

    def fetch_path(self, query: PathQuery, bbox: BoundingBox) -> FeatureSet:
        """Fetch one path query, substituting an empty FeatureSet when nothing matches."""
        try:
            return self.feature_source.fetch(bbox, query.tag_key, query.tag_values, name=query.name)
        except EmptyResultError as e:
            logger.warning(f"{query.name}: {e.message}; continuing with an empty layer")
            values = tuple(query.tag_values) if query.tag_values else None
            return FeatureSet.empty(query.name, query.tag_key, values)

    def fetch_background(self, job: MapJob, bbox: BoundingBox,
                         timings: dict[str, float]) -> tuple[list[AdminRegion], list[WaterBody]]:
        """Fetch counties for every job state, then water for the counties the box touches."""
        if not job.states:
            return [], []

        with self._stage("fetch_regions", timings):
            regions = self.boundary_source.fetch_regions_many(job.states, job.boundary_resolution)

        waters = []
        with self._stage("fetch_water", timings):
            for region in regions:
                waters.append(self.boundary_source.fetch_water(region.subset_intersecting(bbox)))
        return regions, waters

    def subtract_water(self, regions: list[AdminRegion], waters: list[WaterBody]) -> gpd.GeoDataFrame:
        """Union every state's water and remove it from every state's counties."""
        land = _concat([r.regions for r in regions])
        water = _concat([w.water for w in waters])
        return self.compositor.subtract(land, water)

    def build_scene(self, job: MapJob, bbox: BoundingBox, land: Optional[gpd.GeoDataFrame],
                    paths: list[FeatureSet]) -> Scene:
        """Background regions first, then path layers in job order, then markers."""
        scene = Scene(bbox=bbox, background=job.background)

        if land is not None:
            scene = scene.with_layer(Layer(name=REGION_LAYER, gdf=land, style=job.region_style))

        for query, features in zip(job.paths, paths):
            scene = scene.with_layer(Layer(name=query.name, gdf=features.features.copy(), style=query.style))

        for marker in job.markers:
            scene = scene.with_marker(marker)
        return scene

    # Entry points

    def compose(self, job: MapJob, timings: Optional[dict[str, float]] = None) -> tuple[Scene, dict[str, FeatureSet]]:
        """
        Run every stage except rendering.

        Returns:
            The assembled scene and the clipped path FeatureSets by name
        """
        timings = timings if timings is not None else {}

        with self._stage("resolve_bbox", timings):
            bbox = self.resolve_bbox(job)
        logger.info(f"Job '{job.name}': bounding box {bbox.bounds}")

        with self._stage("fetch_features", timings):
            paths = [self.fetch_path(query, bbox) for query in job.paths]

        regions, waters = self.fetch_background(job, bbox, timings)

        with self._stage("clip", timings):
            paths = [self.compositor.clip_features(fs, bbox) for fs in paths]
            regions = [self.compositor.clip_region(r, bbox) for r in regions]
            waters = [self.compositor.clip_water(w, bbox) for w in waters]

        land = None
        if job.states:
            with self._stage("subtract", timings):
                land = self.subtract_water(regions, waters)

        scene = self.build_scene(job, bbox, land, paths)
        logger.info(f"Scene assembled: layers {scene.layer_names}, {len(scene.markers)} markers")
        return scene, {fs.name: fs for fs in paths}

    def run(self, job: MapJob, output: Optional[OutputOptions] = None) -> PipelineResult:
        """Compose and render ``job``; ``output`` overrides the job's output options."""
        timings: dict[str, float] = {}
        scene, features = self.compose(job, timings)

        with self._stage("render", timings):
            path = self.renderer.render(scene, output or job.output)

        summary = ", ".join(f"{k}={v:.2f}s" for k, v in timings.items())
        logger.info(f"Job '{job.name}' finished: {path} ({summary})")
        return PipelineResult(scene=scene, output_path=path, features=features, timings=timings)


def _concat(frames: list[gpd.GeoDataFrame]) -> gpd.GeoDataFrame:
    frames = [f for f in frames if not f.empty]
    if not frames:
        return empty_frame()
    return gpd.GeoDataFrame(pd.concat(frames, ignore_index=True), geometry=frames[0].geometry.name, crs=WGS84)
