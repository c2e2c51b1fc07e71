"""Configuration module for scrobblestats."""

from .settings import (
    ImageSettings,
    LastfmSettings,
    ObservabilitySettings,
    SampleSource,
    Settings,
    SpotifySettings,
    TagSettings,
    WeightingPolicy,
    get_settings,
)

__all__ = [
    "ImageSettings",
    "LastfmSettings",
    "ObservabilitySettings",
    "SampleSource",
    "Settings",
    "SpotifySettings",
    "TagSettings",
    "WeightingPolicy",
    "get_settings",
]
