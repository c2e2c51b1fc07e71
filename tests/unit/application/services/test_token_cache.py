"""Tests for the Spotify token cache."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from scrobblestats.application.services.token_cache import (
    TOKEN_EXPIRY_STORE_KEY,
    TOKEN_STORE_KEY,
    TokenCache,
)
from scrobblestats.domain.exceptions import (
    CredentialsMissingError,
    ExternalServiceError,
    TokenExchangeError,
)
from scrobblestats.infrastructure.persistence import InMemoryKeyValueStore


class FakeClock:
    """Settable epoch-ms clock."""

    def __init__(self, now_ms: float = 1_000_000.0) -> None:
        self.now_ms = now_ms

    def __call__(self) -> float:
        return self.now_ms


@pytest.fixture
def clock() -> FakeClock:
    """Create fake clock."""
    return FakeClock()


@pytest.fixture
def spotify_client() -> AsyncMock:
    """Create Spotify client mock returning a one-hour token."""
    client = AsyncMock()
    client.request_client_credentials_token.return_value = {
        "access_token": "token-1",
        "token_type": "Bearer",
        "expires_in": 3600,
    }
    return client


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    """Create empty store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def token_cache(
    spotify_client: AsyncMock, store: InMemoryKeyValueStore, clock: FakeClock
) -> TokenCache:
    """Create token cache."""
    return TokenCache(spotify_client, store, clock=clock)


class TestGetToken:
    """Test token reuse and refresh."""

    async def test_two_calls_one_exchange(
        self, token_cache: TokenCache, spotify_client: AsyncMock
    ) -> None:
        """Test token is reused inside the expiry window."""
        assert await token_cache.get_token() == "token-1"
        assert await token_cache.get_token() == "token-1"
        assert spotify_client.request_client_credentials_token.await_count == 1

    async def test_expiry_triggers_new_exchange(
        self, token_cache: TokenCache, spotify_client: AsyncMock, clock: FakeClock
    ) -> None:
        """Test now >= expiry fetches a new token."""
        await token_cache.get_token()
        spotify_client.request_client_credentials_token.return_value = {
            "access_token": "token-2",
            "expires_in": 3600,
        }

        clock.now_ms += 3600 * 1000
        assert await token_cache.get_token() == "token-2"
        assert spotify_client.request_client_credentials_token.await_count == 2

    async def test_concurrent_callers_share_refresh(
        self, token_cache: TokenCache, spotify_client: AsyncMock
    ) -> None:
        """Test cold-start fan-out issues exactly one exchange."""
        release = asyncio.Event()

        async def _slow_exchange() -> dict:
            await release.wait()
            return {"access_token": "shared", "expires_in": 3600}

        spotify_client.request_client_credentials_token.side_effect = _slow_exchange

        pending = asyncio.gather(*(token_cache.get_token() for _ in range(10)))
        await asyncio.sleep(0)
        release.set()

        assert await pending == ["shared"] * 10
        assert spotify_client.request_client_credentials_token.await_count == 1

    async def test_expiry_written_to_store(
        self, token_cache: TokenCache, store: InMemoryKeyValueStore, clock: FakeClock
    ) -> None:
        """Test token and epoch-ms expiry are mirrored into the store."""
        await token_cache.get_token()

        assert store.get(TOKEN_STORE_KEY) == "token-1"
        assert store.get(TOKEN_EXPIRY_STORE_KEY) == str(int(clock.now_ms + 3_600_000))

    async def test_token_loaded_from_store(
        self, spotify_client: AsyncMock, clock: FakeClock
    ) -> None:
        """Test a still-valid stored token is used without an exchange."""
        store = InMemoryKeyValueStore(
            {
                TOKEN_STORE_KEY: "stored",
                TOKEN_EXPIRY_STORE_KEY: str(int(clock.now_ms + 60_000)),
            }
        )
        cache = TokenCache(spotify_client, store, clock=clock)

        assert await cache.get_token() == "stored"
        assert spotify_client.request_client_credentials_token.await_count == 0


class TestFailures:
    """Test error translation."""

    async def test_missing_credentials(
        self, token_cache: TokenCache, spotify_client: AsyncMock
    ) -> None:
        """Test CredentialsMissingError propagates from get_token."""
        spotify_client.request_client_credentials_token.side_effect = (
            CredentialsMissingError()
        )

        with pytest.raises(CredentialsMissingError):
            await token_cache.get_token()
        assert await token_cache.try_get_token() is None

    async def test_failed_exchange_is_retried_next_call(
        self, token_cache: TokenCache, spotify_client: AsyncMock
    ) -> None:
        """Test TokenExchangeError then success on the following call."""
        spotify_client.request_client_credentials_token.side_effect = [
            TokenExchangeError("HTTP 500", status_code=500),
            {"access_token": "token-ok", "expires_in": 3600},
        ]

        with pytest.raises(TokenExchangeError):
            await token_cache.get_token()
        assert await token_cache.get_token() == "token-ok"

    async def test_other_service_errors_become_exchange_errors(
        self, token_cache: TokenCache, spotify_client: AsyncMock
    ) -> None:
        """Test generic ExternalServiceError is wrapped."""
        spotify_client.request_client_credentials_token.side_effect = (
            ExternalServiceError("timeout", service="spotify")
        )

        with pytest.raises(TokenExchangeError):
            await token_cache.get_token()

    async def test_invalidate(
        self,
        token_cache: TokenCache,
        spotify_client: AsyncMock,
        store: InMemoryKeyValueStore,
    ) -> None:
        """Test invalidate forces a new exchange and clears the store."""
        await token_cache.get_token()
        token_cache.invalidate()

        assert store.get(TOKEN_STORE_KEY) is None
        await token_cache.get_token()
        assert spotify_client.request_client_credentials_token.await_count == 2
