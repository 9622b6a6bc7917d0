"""
Configuration management for the map composition pipeline.

Usage:
    from mapcompose.config.settings import Config
    config = Config()
    timeout = config.sources.request_timeout

Environment Variables (MAPCOMPOSE_ prefix):
    MAPCOMPOSE_REQUEST_TIMEOUT: Timeout in seconds for every external request
    MAPCOMPOSE_OVERPASS_URL: Overpass API endpoint override
    MAPCOMPOSE_OSM_CACHE: Enable the osmnx response cache (true/false)
    MAPCOMPOSE_TIGER_BASE_URL: Census TIGER download root
    MAPCOMPOSE_TIGER_YEAR: TIGER/Line vintage
    MAPCOMPOSE_WATER_WORKERS: Parallel per-county water downloads
    MAPCOMPOSE_MAX_PIXELS: Largest image (width * height pixels) the renderer writes
    MAPCOMPOSE_DEFAULT_DPI: Resolution used when a job does not set one
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@dataclass
class SourceConfig:
    """External data source configuration."""
    request_timeout: float = 180.0
    overpass_url: Optional[str] = None
    osm_cache: bool = False
    tiger_base_url: str = "https://www2.census.gov/geo/tiger"
    tiger_year: int = 2023
    water_workers: int = 4

    def __post_init__(self):
        """Validate data source configuration."""
        if self.request_timeout <= 0:
            raise ValueError("Request timeout must be positive")

        if not self.tiger_base_url.startswith(('http://', 'https://')):
            raise ValueError("TIGER base URL must include protocol (https://)")

        if self.overpass_url and not self.overpass_url.startswith(('http://', 'https://')):
            raise ValueError("Overpass URL must include protocol (https://)")

        # Cartographic boundary files start in 2013
        if not 2013 <= self.tiger_year <= 2100:
            raise ValueError(f"TIGER year {self.tiger_year} is out of range")

        if self.water_workers < 1:
            raise ValueError("Water worker count must be positive")


@dataclass
class RenderConfig:
    """Raster output limits and defaults."""
    max_pixels: int = 100_000_000
    default_dpi: float = 300.0

    def __post_init__(self):
        """Validate render configuration."""
        if self.max_pixels < 1:
            raise ValueError("Maximum pixel count must be positive")
        if self.default_dpi <= 0:
            raise ValueError("Default DPI must be positive")


class ConfigurationError(Exception):
    """Raised when configuration is invalid or incomplete."""
    pass


def _env_bool(key: str, default: str) -> bool:
    return os.getenv(key, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """
    Centralized configuration for the map composition pipeline.

    Environment variables loaded (in order of preference):
    1. Explicit environment file passed to constructor
    2. .env.{ENVIRONMENT} (where ENVIRONMENT=development|production|staging)
    3. .env file in project root
    4. System environment variables

    Example:
        # Defaults plus any .env in the project root
        config = Config()

        # Explicit env file
        config = Config(env_file=Path("/srv/maps/production.env"))
    """

    def __init__(self,
                 environment: Optional[str] = None,
                 env_file: Optional[Path] = None,
                 validate_on_init: bool = True):
        """
        Initialize configuration.

        Args:
            environment: Target environment (development|staging|production)
            env_file: Explicit path to environment file
            validate_on_init: Whether to validate all settings on initialization
        """
        self.environment = environment or os.getenv("ENVIRONMENT", "development")
        self.project_root = self._find_project_root()

        self._load_environment_variables(env_file)

        self._load_source_config()
        self._load_render_config()

        if validate_on_init:
            self.validate()

    def _find_project_root(self) -> Path:
        """Find project root directory containing pyproject.toml, .git or a .env file."""
        current = Path(__file__).resolve()

        for parent in current.parents:
            if any((parent / marker).exists() for marker in ['pyproject.toml', '.git']):
                return parent

        for parent in current.parents:
            if (parent / '.env').exists():
                return parent

        return Path.cwd()

    def _load_environment_variables(self, env_file: Path | None) -> None:
        """Load environment variables from appropriate source."""
        loaded_files = []

        if env_file:
            if env_file.exists():
                load_dotenv(env_file)
                loaded_files.append(str(env_file))
                logger.info(f"Loaded configuration from {env_file}")
            else:
                raise ConfigurationError(f"Specified env file not found: {env_file}")

        else:
            env_specific_file = self.project_root / f".env.{self.environment}"
            if env_specific_file.exists():
                load_dotenv(env_specific_file)
                loaded_files.append(str(env_specific_file))
                logger.info(f"Loaded environment-specific config: {env_specific_file}")

            generic_env_file = self.project_root / ".env"
            if generic_env_file.exists():
                load_dotenv(generic_env_file)
                loaded_files.append(str(generic_env_file))
                logger.info(f"Loaded generic config: {generic_env_file}")

        if not loaded_files:
            logger.debug("No .env files found, using system environment variables only")

        self._loaded_env_files = loaded_files

        logger.debug(f"Project root: {self.project_root}")
        logger.debug(f"Environment: {self.environment}")

    def _load_source_config(self) -> None:
        """Load external data source configuration with sensible defaults."""
        try:
            self.sources = SourceConfig(
                request_timeout=float(os.getenv("MAPCOMPOSE_REQUEST_TIMEOUT", "180")),
                overpass_url=os.getenv("MAPCOMPOSE_OVERPASS_URL") or None,
                osm_cache=_env_bool("MAPCOMPOSE_OSM_CACHE", "false"),
                tiger_base_url=os.getenv("MAPCOMPOSE_TIGER_BASE_URL", "https://www2.census.gov/geo/tiger"),
                tiger_year=int(os.getenv("MAPCOMPOSE_TIGER_YEAR", "2023")),
                water_workers=int(os.getenv("MAPCOMPOSE_WATER_WORKERS", "4")),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid data source configuration: {e}")

    def _load_render_config(self) -> None:
        """Load render limits."""
        try:
            self.render = RenderConfig(
                max_pixels=int(os.getenv("MAPCOMPOSE_MAX_PIXELS", "100000000")),
                default_dpi=float(os.getenv("MAPCOMPOSE_DEFAULT_DPI", "300")),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid render configuration: {e}")

    def get_source_settings(self) -> dict[str, Any]:
        """
        Get data source settings as dictionary.

        Returns:
            Dictionary of data source settings
        """
        return {
            'request_timeout': self.sources.request_timeout,
            'overpass_url': self.sources.overpass_url,
            'osm_cache': self.sources.osm_cache,
            'tiger_base_url': self.sources.tiger_base_url,
            'tiger_year': self.sources.tiger_year,
            'water_workers': self.sources.water_workers,
        }

    def get_render_settings(self) -> dict[str, Any]:
        """
        Get render settings as dictionary.

        Returns:
            Dictionary of render settings
        """
        return {
            'max_pixels': self.render.max_pixels,
            'default_dpi': self.render.default_dpi,
        }

    def validate(self) -> None:
        """
        Cross-section configuration validation.

        Raises:
            ConfigurationError: If any configuration is invalid
        """
        validation_errors = []

        if self.sources.water_workers > 32:
            validation_errors.append("Water worker count > 32 will be throttled by the Census servers")

        if self.render.default_dpi * self.render.default_dpi > self.render.max_pixels:
            validation_errors.append("Default DPI cannot produce even a one-inch image under the pixel limit")

        if validation_errors:
            raise ConfigurationError(
                "Configuration validation failed:\n" +
                "\n".join(f"  - {error}" for error in validation_errors)
            )

        logger.debug("Configuration validation passed")

    def __repr__(self) -> str:
        return (
            f"Config(environment={self.environment}, "
            f"tiger_year={self.sources.tiger_year}, "
            f"timeout={self.sources.request_timeout}s)"
        )
