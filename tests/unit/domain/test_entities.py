"""Tests for domain entities and exceptions."""

import pytest

from scrobblestats.domain.entities import Entity, EntityType, Tag, Token
from scrobblestats.domain.exceptions import (
    CredentialsMissingError,
    ExternalServiceError,
    NoTagsAvailableError,
    RateLimitExceededError,
    TokenExchangeError,
)


class TestEntity:
    """Test Entity invariants."""

    def test_negative_playcount_rejected(self) -> None:
        """Test playcount must be non-negative."""
        with pytest.raises(ValueError):
            Entity(name="X", entity_type=EntityType.ARTIST, playcount=-1)

    def test_defaults(self) -> None:
        """Test optional fields default to empty."""
        entity = Entity(name="X", entity_type=EntityType.TRACK)
        assert entity.images == []
        assert entity.image_url is None
        assert entity.rank is None


class TestTag:
    """Test Tag helpers."""

    def test_count_value(self) -> None:
        """Test numeric count parsing."""
        assert Tag(name="rock", count="12", url="u").count_value == 12
        assert Tag(name="rock", count="n/a", url="u").count_value == 0


class TestToken:
    """Test token validity window."""

    def test_valid_before_expiry(self) -> None:
        """Test token is reusable while now < expiry."""
        token = Token(value="abc", expires_at_epoch_ms=1_000)
        assert token.is_valid(999)
        assert not token.is_valid(1_000)

    def test_empty_value_is_never_valid(self) -> None:
        """Test empty token value."""
        assert not Token(value="", expires_at_epoch_ms=1_000).is_valid(0)


class TestExceptions:
    """Test exception attributes."""

    def test_token_exchange_error_is_spotify_service_error(self) -> None:
        """Test TokenExchangeError carries service and status."""
        error = TokenExchangeError("boom", status_code=401)
        assert isinstance(error, ExternalServiceError)
        assert error.service == "spotify"
        assert error.status_code == 401
        assert error.message == "boom"

    def test_rate_limit_error(self) -> None:
        """Test RateLimitExceededError is a 429."""
        error = RateLimitExceededError("slow down", service="spotify", retry_after=5)
        assert error.status_code == 429
        assert error.retry_after == 5

    def test_credentials_missing_default_message(self) -> None:
        """Test default message mentions the env vars."""
        assert "SPOTIFY_CLIENT_ID" in CredentialsMissingError().message

    def test_no_tags_available_message(self) -> None:
        """Test user/period/reason end up in the message."""
        error = NoTagsAvailableError("rj", "7day", reason="no listening sample")
        assert error.username == "rj"
        assert "7day" in error.message
        assert "no listening sample" in error.message
