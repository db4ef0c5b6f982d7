"""Configuration module for echometa."""

from .settings import (
    DatabaseSettings,
    EnrichmentSettings,
    FanartSettings,
    HttpSettings,
    ImageSettings,
    LastfmSettings,
    MusicBrainzSettings,
    ObservabilitySettings,
    Settings,
    get_settings,
)

__all__ = [
    "DatabaseSettings",
    "EnrichmentSettings",
    "FanartSettings",
    "HttpSettings",
    "ImageSettings",
    "LastfmSettings",
    "MusicBrainzSettings",
    "ObservabilitySettings",
    "Settings",
    "get_settings",
]
