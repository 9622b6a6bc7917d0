"""
County boundaries and water areas from the US Census Bureau.

Downloads the national county file (cartographic boundary or full TIGER/Line)
for a state and the per-county TIGER AREAWATER files that go with it. County
water downloads fan out over a thread pool and are gathered into a single
collection; the first failed download aborts the whole gather.
"""

from __future__ import annotations

import logging
import tempfile
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Iterable, Optional

import geopandas as gpd
import pandas as pd
import requests

from .config.settings import SourceConfig
from .config.states import StateInfo, StateRegistry
from .domain.enums import BoundaryResolution
from .types import WGS84, AdminRegion, DataSourceError, WaterBody, empty_frame
from .utils import timer

logger = logging.getLogger(__name__)

COUNTY_COLUMNS = ["STATEFP", "COUNTYFP", "GEOID", "NAME"]
WATER_COLUMNS = ["HYDROID", "FULLNAME", "MTFCC"]


class TigerBoundarySource:
    """
    Census county and area-water source.

    Files are streamed into a temporary directory that is removed as soon as
    the layer has been read, so nothing persists between calls.
    """

    SOURCE_NAME = "census-tiger"

    def __init__(self, settings: Optional[SourceConfig] = None,
                 resolution: BoundaryResolution = BoundaryResolution.CB_500K):
        """
        Initialize boundary source.

        Args:
            settings: Data source configuration (defaults to SourceConfig())
            resolution: County boundary detail class
        """
        self.settings = settings or SourceConfig()
        self.resolution = BoundaryResolution(resolution)

    # URL builders

    def county_url(self, resolution: Optional[BoundaryResolution] = None) -> str:
        resolution = BoundaryResolution(resolution or self.resolution)
        base = self.settings.tiger_base_url.rstrip("/")
        year = self.settings.tiger_year
        if resolution.is_cartographic:
            return f"{base}/GENZ{year}/shp/cb_{year}_us_county_{resolution.value}.zip"
        return f"{base}/TIGER{year}/COUNTY/tl_{year}_us_county.zip"

    def water_url(self, state_fips: str, county_fips: str) -> str:
        base = self.settings.tiger_base_url.rstrip("/")
        year = self.settings.tiger_year
        return f"{base}/TIGER{year}/AREAWATER/tl_{year}_{state_fips}{county_fips}_areawater.zip"

    # Public operations

    @timer
    def fetch_regions(self, state: str,
                      resolution: Optional[BoundaryResolution] = None) -> AdminRegion:
        """
        Fetch county polygons for one state.

        Args:
            state: State name, USPS abbreviation or FIPS code
            resolution: Override the source's boundary detail class

        Returns:
            AdminRegion in EPSG:4326 with STATEFP, COUNTYFP, GEOID and NAME columns

        Raises:
            ValueError: Unknown state
            DataSourceError: Download failed or the file lacks the expected fields
        """
        return self.fetch_regions_many([state], resolution)[0]

    def fetch_regions_many(self, states: Iterable[str],
                           resolution: Optional[BoundaryResolution] = None) -> list[AdminRegion]:
        """Fetch county polygons for several states from a single national download."""
        infos = [StateRegistry.require_state(s) for s in states]
        if not infos:
            return []

        url = self.county_url(resolution)
        logger.info(f"Fetching counties for {', '.join(i.abbr for i in infos)} from {url}")
        counties = self._download_layer(url, stage="fetch_regions")

        missing = [c for c in COUNTY_COLUMNS if c not in counties.columns]
        if missing:
            raise DataSourceError(
                f"County file {url} is missing fields: {', '.join(missing)}",
                stage="fetch_regions", source=self.SOURCE_NAME,
            )

        counties = _to_wgs84(counties)
        return [self._select_state(counties, info, url) for info in infos]

    def _select_state(self, counties: gpd.GeoDataFrame, info: StateInfo, url: str) -> AdminRegion:
        selected = counties[counties["STATEFP"].astype(str) == info.fips]
        if selected.empty:
            raise DataSourceError(
                f"No counties for {info.name} (FIPS {info.fips}) in {url}",
                stage="fetch_regions", source=self.SOURCE_NAME,
            )

        regions = selected[COUNTY_COLUMNS + [selected.geometry.name]].reset_index(drop=True)
        logger.info(f"Fetched {len(regions)} counties for {info.name}")
        return AdminRegion(state_fips=info.fips, regions=regions)

    @timer
    def fetch_water(self, region: AdminRegion) -> WaterBody:
        """
        Fetch and gather area water for every county of ``region``.

        One download per county code runs on a bounded thread pool. The gather
        waits for all downloads; the first failure cancels the queued ones, waits
        for those already running and aborts the call. Results are concatenated
        in county-code order.

        Raises:
            DataSourceError: Any county download failed
        """
        codes = region.county_codes
        if not codes:
            logger.info("No counties selected, skipping water download")
            return WaterBody(state_fips=region.state_fips, county_codes=(), water=empty_frame(WATER_COLUMNS))

        workers = min(self.settings.water_workers, len(codes))
        logger.info(f"Fetching water for {len(codes)} counties in state {region.state_fips} "
                    f"({workers} workers)")

        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="water")
        try:
            futures = {
                executor.submit(self.fetch_county_water, region.state_fips, code): code
                for code in codes
            }
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)

            failed = [f for f in done if f.exception() is not None]
            if failed:
                for future in pending:
                    future.cancel()
                code = futures[failed[0]]
                error = failed[0].exception()
                logger.error(f"Water download for county {code} failed, aborting: {error}")
                if isinstance(error, DataSourceError):
                    raise error
                raise DataSourceError(
                    f"Water download for county {region.state_fips}{code} failed: {error}",
                    stage="fetch_water", source=self.SOURCE_NAME,
                ) from error

            by_code = {futures[f]: f.result() for f in done}
        finally:
            # Queued downloads are dropped, running ones are joined before returning
            executor.shutdown(wait=True, cancel_futures=True)

        frames = [by_code[code] for code in codes]
        water = gpd.GeoDataFrame(pd.concat(frames, ignore_index=True), geometry="geometry", crs=WGS84)

        logger.info(f"Gathered {len(water):,} water polygons for {len(codes)} counties")
        return WaterBody(state_fips=region.state_fips, county_codes=tuple(codes), water=water)

    def fetch_county_water(self, state_fips: str, county_fips: str) -> gpd.GeoDataFrame:
        """Fetch area water for one county, tagged with its COUNTYFP."""
        url = self.water_url(state_fips, county_fips)
        logger.debug(f"Fetching water: {url}")
        water = _to_wgs84(self._download_layer(url, stage="fetch_water"))

        keep = [c for c in WATER_COLUMNS if c in water.columns]
        water = water[keep + [water.geometry.name]].copy()
        water["COUNTYFP"] = county_fips
        return water.rename_geometry("geometry") if water.geometry.name != "geometry" else water

    # Download helpers

    def _download_layer(self, url: str, stage: str) -> gpd.GeoDataFrame:
        """Stream a zipped shapefile into a temporary directory and read it."""
        with tempfile.TemporaryDirectory(prefix="mapcompose_") as tmp:
            archive = Path(tmp) / url.rsplit("/", 1)[-1]

            try:
                response = requests.get(url, stream=True, timeout=self.settings.request_timeout)
                response.raise_for_status()
                with open(archive, "wb") as f:
                    for chunk in response.iter_content(chunk_size=8192):
                        if chunk:
                            f.write(chunk)
            except requests.exceptions.RequestException as e:
                raise DataSourceError(
                    f"Download of {url} failed: {e}", stage=stage, source=self.SOURCE_NAME
                ) from e

            try:
                return gpd.read_file(f"zip://{archive}")
            except Exception as e:
                raise DataSourceError(
                    f"Could not read {archive.name}: {e}", stage=stage, source=self.SOURCE_NAME
                ) from e


def _to_wgs84(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    # Census files ship in NAD83 (EPSG:4269)
    if gdf.crs is None:
        return gdf.set_crs(WGS84)
    if gdf.crs.to_epsg() != 4326:
        return gdf.to_crs(WGS84)
    return gdf
