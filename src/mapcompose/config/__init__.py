"""
Configuration module for the map composition pipeline.
"""

from .settings import (
    Config,
    ConfigurationError,
    RenderConfig,
    SourceConfig,
)
from .states import StateInfo, StateRegistry

__all__ = [
    'Config',
    'ConfigurationError',
    'RenderConfig',
    'SourceConfig',
    'StateInfo',
    'StateRegistry',
]
