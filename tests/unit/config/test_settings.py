"""Tests for settings loading."""

import pytest
from pydantic import ValidationError

from scrobblestats.config import (
    ImageSettings,
    ObservabilitySettings,
    SampleSource,
    Settings,
    SpotifySettings,
    TagSettings,
    WeightingPolicy,
    get_settings,
)


class TestTagSettings:
    """Test tag fallback settings."""

    def test_defaults(self) -> None:
        """Test album sampling with rank weighting by default."""
        settings = TagSettings()
        assert settings.sample_source is SampleSource.ALBUMS
        assert settings.sample_size == 5
        assert settings.effective_weighting is WeightingPolicy.RANK
        assert settings.batch_size == 5
        assert settings.batch_delay_seconds == 0.3

    def test_track_sampling_defaults_to_playcount_weighting(self) -> None:
        """Test weighting follows the sample source unless set."""
        settings = TagSettings(sample_source=SampleSource.TRACKS)
        assert settings.sample_size == 50
        assert settings.effective_weighting is WeightingPolicy.RANK_PLAYCOUNT

    def test_explicit_weighting_wins(self) -> None:
        """Test configured weighting overrides the source default."""
        settings = TagSettings(
            sample_source=SampleSource.TRACKS, weighting=WeightingPolicy.RANK
        )
        assert settings.effective_weighting is WeightingPolicy.RANK

    def test_env_vars(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test TAGS_ prefix."""
        monkeypatch.setenv("TAGS_SAMPLE_SOURCE", "tracks")
        monkeypatch.setenv("TAGS_BATCH_SIZE", "3")

        settings = TagSettings()

        assert settings.sample_source is SampleSource.TRACKS
        assert settings.batch_size == 3

    def test_batch_size_must_be_positive(self) -> None:
        """Test validation."""
        with pytest.raises(ValidationError):
            TagSettings(batch_size=0)


class TestOtherSettings:
    """Test Spotify, image and logging settings."""

    def test_spotify_credentials(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test has_credentials from env."""
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "id")
        monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "secret")
        assert SpotifySettings().has_credentials
        assert not SpotifySettings(client_id=" ", client_secret="x").has_credentials

    def test_image_defaults(self) -> None:
        """Test image batch pacing defaults."""
        settings = ImageSettings()
        assert settings.batch_size == 10
        assert settings.batch_delay_seconds == 1.0

    def test_log_level_normalized(self) -> None:
        """Test level is upper-cased and validated."""
        assert ObservabilitySettings(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError):
            ObservabilitySettings(level="chatty")


class TestGetSettings:
    """Test cached settings accessor."""

    def test_cached(self) -> None:
        """Test same instance until cache_clear()."""
        get_settings.cache_clear()
        first = get_settings()
        assert get_settings() is first
        assert isinstance(first, Settings)
        get_settings.cache_clear()
