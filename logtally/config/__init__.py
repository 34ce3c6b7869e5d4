"""Configuration module for LogTally."""

from logtally.config.settings import (
    APISettings,
    DatabaseSettings,
    GeoIPSettings,
    PipelineSettings,
    Settings,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "APISettings",
    "DatabaseSettings",
    "GeoIPSettings",
    "PipelineSettings",
]
