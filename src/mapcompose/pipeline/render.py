"""
MapRenderer - Scene Rasterization

Draws an immutable Scene onto a standalone matplotlib Figure (Agg canvas, no
pyplot state) and writes it to an image file or an in-memory buffer.
"""

import io
import logging
import math
from pathlib import Path
from typing import Optional

from matplotlib.axes import Axes
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure

from ..config.settings import RenderConfig
from ..domain.models import Marker, OutputOptions
from ..domain.scene import Layer, Scene
from ..types import BoundingBox, RenderError
from ..utils import ensure_directory
from .transform import GeometryCompositor

logger = logging.getLogger(__name__)

POLYGON_TYPES = ("Polygon", "MultiPolygon")
LINE_TYPES = ("LineString", "MultiLineString", "LinearRing")


class MapRenderer:
    """
    Scene renderer.

    Layers are drawn in scene order (z-order follows layer position) and
    markers above all of them. The scene bounding box is a hard crop: every
    layer is clipped again here and markers outside the box are skipped,
    whether or not the pipeline already clipped upstream.
    """

    def __init__(self, settings: Optional[RenderConfig] = None,
                 compositor: Optional[GeometryCompositor] = None):
        """
        Initialize renderer.

        Args:
            settings: Render limits (defaults to RenderConfig())
            compositor: Compositor used for the final crop
        """
        self.settings = settings or RenderConfig()
        self.compositor = compositor or GeometryCompositor()

    def validate_output(self, output: OutputOptions) -> tuple[int, int]:
        """
        Check output parameters before any drawing or file creation.

        Returns:
            Image size in pixels as (width, height)

        Raises:
            RenderError: Non-positive size or resolution, or too many pixels
        """
        output = output.with_default_dpi(self.settings.default_dpi)
        if output.width <= 0 or output.height <= 0:
            raise RenderError(f"Image size must be positive, got {output.width}x{output.height} {output.units.value}")
        if output.dpi <= 0:
            raise RenderError(f"DPI must be positive, got {output.dpi}")

        width_px, height_px = output.pixel_size()
        if width_px < 1 or height_px < 1:
            raise RenderError(f"Image size rounds to {width_px}x{height_px} pixels")

        if width_px * height_px > self.settings.max_pixels:
            raise RenderError(
                f"Image of {width_px}x{height_px} pixels exceeds the limit of "
                f"{self.settings.max_pixels:,} pixels; lower the size or DPI"
            )
        return width_px, height_px

    def draw(self, scene: Scene, output: OutputOptions) -> Figure:
        """Draw ``scene`` onto a new Figure sized from ``output``."""
        output = output.with_default_dpi(self.settings.default_dpi)
        width_px, height_px = self.validate_output(output)
        width_in, height_in = output.size_inches()

        fig = Figure(figsize=(width_in, height_in), dpi=output.dpi, facecolor=scene.background)
        FigureCanvasAgg(fig)
        ax = fig.add_axes((0, 0, 1, 1))
        ax.set_facecolor(scene.background)
        ax.set_axis_off()

        for zorder, layer in enumerate(scene.layers, start=1):
            self._draw_layer(ax, layer, scene.bbox, zorder)

        self._draw_markers(ax, scene.markers, scene.bbox, zorder=len(scene.layers) + 1)

        bbox = scene.bbox
        ax.set_xlim(bbox.min_lon, bbox.max_lon)
        ax.set_ylim(bbox.min_lat, bbox.max_lat)
        # Same aspect geopandas uses for geographic coordinates
        mid_lat = (bbox.min_lat + bbox.max_lat) / 2
        ax.set_aspect(1 / math.cos(math.radians(mid_lat)))

        logger.debug(f"Drew {len(scene.layers)} layers and {len(scene.markers)} markers "
                     f"on a {width_px}x{height_px} canvas")
        return fig

    def render(self, scene: Scene, output: OutputOptions) -> Path:
        """
        Render ``scene`` to ``output.path``.

        The format follows the file suffix (png when there is none).

        Returns:
            Path of the written image

        Raises:
            RenderError: Invalid output parameters, unsupported format or write failure
        """
        output = output.with_default_dpi(self.settings.default_dpi)
        self.validate_output(output)
        path = Path(output.path)
        if not path.suffix:
            path = path.with_suffix(".png")

        fig = self.draw(scene, output)
        ensure_directory(path.parent)

        try:
            fig.savefig(path, dpi=output.dpi, facecolor=fig.get_facecolor())
        except (ValueError, OSError) as e:
            raise RenderError(f"Could not write {path}: {e}") from e

        logger.info(f"Wrote {path} ({output.width}x{output.height} {output.units.value} @ {output.dpi:g} dpi)")
        return path

    def render_to_buffer(self, scene: Scene, output: OutputOptions, fmt: str = "png") -> bytes:
        """Render ``scene`` to encoded image bytes without touching the filesystem."""
        output = output.with_default_dpi(self.settings.default_dpi)
        fig = self.draw(scene, output)
        buffer = io.BytesIO()
        try:
            fig.savefig(buffer, format=fmt, dpi=output.dpi, facecolor=fig.get_facecolor())
        except ValueError as e:
            raise RenderError(f"Could not encode image as {fmt}: {e}") from e
        return buffer.getvalue()

    def _draw_layer(self, ax: Axes, layer: Layer, bbox: BoundingBox, zorder: int) -> None:
        gdf = self.compositor.clip(layer.gdf, bbox)
        if gdf.empty:
            logger.debug(f"Layer '{layer.name}' is empty inside the bounding box")
            return

        style = layer.style
        geom_types = gdf.geom_type

        polygons = gdf[geom_types.isin(POLYGON_TYPES)]
        if not polygons.empty:
            colors = style.colors_for(polygons)
            if isinstance(colors, list):
                polygons.plot(ax=ax, color=colors, linewidth=style.width,
                              alpha=style.alpha, zorder=zorder)
            else:
                polygons.plot(ax=ax, facecolor=style.fill or colors, edgecolor=colors,
                              linewidth=style.width, alpha=style.alpha, zorder=zorder)

        lines = gdf[geom_types.isin(LINE_TYPES)]
        if not lines.empty:
            lines.plot(ax=ax, color=style.colors_for(lines), linewidth=style.width,
                       alpha=style.alpha, zorder=zorder)

        points = gdf[~geom_types.isin(POLYGON_TYPES + LINE_TYPES)]
        if not points.empty:
            points.plot(ax=ax, color=style.colors_for(points), markersize=max(style.width, 1.0) ** 2,
                        alpha=style.alpha, zorder=zorder)

        logger.debug(f"Layer '{layer.name}': {len(polygons)} polygons, {len(lines)} lines, "
                     f"{len(points)} points")

    def _draw_markers(self, ax: Axes, markers: tuple[Marker, ...], bbox: BoundingBox, zorder: int) -> None:
        for marker in markers:
            if not bbox.contains(marker.lon, marker.lat):
                logger.debug(f"Skipping marker at ({marker.lon}, {marker.lat}) outside the bounding box")
                continue

            ax.scatter([marker.lon], [marker.lat], s=marker.size, c=marker.color,
                       marker=marker.shape, linewidths=0, zorder=zorder)
            if marker.label:
                ax.annotate(marker.label, (marker.lon, marker.lat), xytext=(4, 4),
                            textcoords="offset points", fontsize=8, zorder=zorder)
