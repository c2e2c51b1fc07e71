"""Application settings loaded from environment variables.

Hey future me - every knob of the tag/image pipeline lives here. Each concern gets its
own BaseSettings class with an env prefix, so LASTFM_API_KEY ends up in
LastfmSettings.api_key and TAGS_BATCH_SIZE in TagSettings.batch_size. Settings is the
aggregate that the session context receives.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SampleSource(str, Enum):
    """Which ranked list the top-tags fallback samples."""

    ALBUMS = "albums"
    TRACKS = "tracks"


class WeightingPolicy(str, Enum):
    """How a sampled entity's tags are weighted during aggregation.

    RANK: max(1, 5 - index), the album-chart scheme.
    RANK_PLAYCOUNT: max(1, ceil((50 - index) / 10)) * log10(playcount).
    """

    RANK = "rank"
    RANK_PLAYCOUNT = "rank_playcount"


class LastfmSettings(BaseSettings):
    """Last.fm API configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LASTFM_", env_file=".env", extra="ignore"
    )

    api_key: str = ""
    api_secret: str = ""
    api_base_url: str = "https://ws.audioscrobbler.com/2.0/"
    request_timeout: float = Field(default=10.0, gt=0)


class SpotifySettings(BaseSettings):
    """Spotify catalog API configuration (client credentials flow only)."""

    model_config = SettingsConfigDict(
        env_prefix="SPOTIFY_", env_file=".env", extra="ignore"
    )

    client_id: str = ""
    client_secret: str = ""
    token_url: str = "https://accounts.spotify.com/api/token"  # nosec B105 - public endpoint URL
    api_base_url: str = "https://api.spotify.com/v1"
    request_timeout: float = Field(default=10.0, gt=0)

    @property
    def has_credentials(self) -> bool:
        """True when both client id and secret are set (whitespace counts as unset)."""
        return bool(self.client_id.strip() and self.client_secret.strip())


class ImageSettings(BaseSettings):
    """Image resolution pacing and placeholders."""

    model_config = SettingsConfigDict(
        env_prefix="IMAGE_", env_file=".env", extra="ignore"
    )

    batch_size: int = Field(default=10, ge=1)
    batch_delay_seconds: float = Field(default=1.0, ge=0)
    placeholder_artist: str = "https://via.placeholder.com/300?text=No+Artist+Image"
    placeholder_album: str = "https://via.placeholder.com/300?text=No+Album+Image"
    placeholder_track: str = "https://via.placeholder.com/300?text=No+Track+Image"


class TagSettings(BaseSettings):
    """Top-tags fallback configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TAGS_", env_file=".env", extra="ignore"
    )

    sample_source: SampleSource = SampleSource.ALBUMS
    # None = pick the policy that matches sample_source
    weighting: WeightingPolicy | None = None
    album_sample_size: int = Field(default=5, ge=1)
    track_sample_size: int = Field(default=50, ge=1)
    batch_size: int = Field(default=5, ge=1)
    batch_delay_seconds: float = Field(default=0.3, ge=0)

    @property
    def effective_weighting(self) -> WeightingPolicy:
        """Weighting policy after resolving the sample-source default."""
        if self.weighting is not None:
            return self.weighting
        if self.sample_source is SampleSource.TRACKS:
            return WeightingPolicy.RANK_PLAYCOUNT
        return WeightingPolicy.RANK

    @property
    def sample_size(self) -> int:
        """Number of entities to sample for the configured source."""
        if self.sample_source is SampleSource.TRACKS:
            return self.track_sample_size
        return self.album_sample_size


class ObservabilitySettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_", env_file=".env", extra="ignore")

    level: str = "INFO"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def _validate_level(cls, value: str) -> str:
        normalized = value.upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return normalized


class Settings(BaseSettings):
    """Aggregate settings for one application/session."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "scrobblestats"
    lastfm: LastfmSettings = Field(default_factory=LastfmSettings)
    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    images: ImageSettings = Field(default_factory=ImageSettings)
    tags: TagSettings = Field(default_factory=TagSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)


# Hey future me - cached on purpose, env vars are read exactly once per process.
# Tests that tweak env vars must call get_settings.cache_clear() first!
@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
