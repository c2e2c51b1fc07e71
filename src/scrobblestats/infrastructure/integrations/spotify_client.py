"""Spotify catalog client (client credentials flow, search only)."""

import base64
import logging
from typing import Any, cast

import httpx

from scrobblestats.config.settings import SpotifySettings
from scrobblestats.domain.exceptions import (
    CredentialsMissingError,
    ExternalServiceError,
    RateLimitExceededError,
    TokenExchangeError,
)
from scrobblestats.domain.ports import ISpotifyClient
from scrobblestats.infrastructure.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


def _retry_after(response: httpx.Response) -> int | None:
    """Retry-After in whole seconds, None when missing or not a number."""
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return max(0, int(float(raw)))
    except ValueError:
        return None


class SpotifyClient(ISpotifyClient):
    """HTTP client for the Spotify Web API, app-only (no user auth).

    We only need cover art, so there's no PKCE / user token here - just the
    client credentials exchange and /search.
    """

    # Hey future me, the HTTP client is lazy-loaded in _get_client(). Creating
    # httpx.AsyncClient in __init__ ties it to whatever loop is (not) running at import time.
    def __init__(
        self,
        settings: SpotifySettings,
        rate_limiter: RateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            settings: Client id/secret, token URL, API base URL
            rate_limiter: Limiter for API calls (defaults to RateLimiter.for_spotify())
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.settings = settings
        self._rate_limiter = rate_limiter or RateLimiter.for_spotify()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.request_timeout, transport=self._transport
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # Hey future me - ALL catalog calls go through here.
    # - Token bucket pacing (prevents most 429s)
    # - Retry on 429 honoring Retry-After, max 3 retries
    # - Anything else is returned as-is, caller decides
    async def _api_request(
        self,
        method: str,
        url: str,
        access_token: str,
        params: dict[str, Any] | None = None,
        max_retries: int = 3,
    ) -> httpx.Response:
        """Make rate-limited API request with automatic retry on 429.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Full URL to request
            access_token: Bearer token
            params: Query parameters
            max_retries: Max retries on 429 (default 3)

        Returns:
            httpx.Response object

        Raises:
            RateLimitExceededError: Still 429 after max_retries
            ExternalServiceError: Transport failure or timeout
        """
        client = await self._get_client()
        headers = {"Authorization": f"Bearer {access_token}"}

        for attempt in range(max_retries + 1):
            try:
                async with self._rate_limiter:
                    response = await client.request(
                        method=method, url=url, params=params, headers=headers
                    )
            except httpx.HTTPError as e:
                raise ExternalServiceError(
                    f"Spotify request to {url} failed: {e}", service="spotify"
                ) from e

            if response.status_code != 429:
                self._rate_limiter.reset_backoff()
                return response

            retry_after = _retry_after(response)

            if attempt >= max_retries:
                error_msg = (
                    f"Spotify API rate limited (429) after {max_retries} retries. "
                    f"URL: {url}. Retry-After: {retry_after if retry_after is not None else 'not provided'} seconds."
                )
                logger.error(error_msg)
                raise RateLimitExceededError(
                    error_msg, service="spotify", retry_after=retry_after
                )

            wait_time = await self._rate_limiter.backoff(retry_after)
            logger.warning(
                "Spotify 429 Rate Limit (attempt %d/%d): waited %.1fs, retrying %s",
                attempt + 1,
                max_retries,
                wait_time,
                url,
            )

        # Loop always returns or raises
        raise AssertionError("unreachable")

    # Yo future me, this is the app-only OAuth dance: POST form-encoded
    # grant_type=client_credentials with Basic base64(id:secret). No refresh token comes back,
    # when it expires (usually 3600s) you just ask again. NEVER log the secret or the token.
    async def request_client_credentials_token(self) -> dict[str, Any]:
        """
        Exchange client id/secret for an app access token.

        Returns:
            Token response with access_token, token_type, expires_in

        Raises:
            CredentialsMissingError: If client_id or client_secret is not configured
            TokenExchangeError: If the exchange fails (HTTP error, timeout, bad body)
        """
        if not self.settings.has_credentials:
            raise CredentialsMissingError()

        credentials = base64.b64encode(
            f"{self.settings.client_id}:{self.settings.client_secret}".encode()
        ).decode("ascii")

        client = await self._get_client()
        try:
            response = await client.post(
                self.settings.token_url,
                data={"grant_type": "client_credentials"},
                headers={
                    "Authorization": f"Basic {credentials}",
                    "Content-Type": "application/x-www-form-urlencoded",
                },
            )
        except httpx.HTTPError as e:
            raise TokenExchangeError(f"Spotify token request failed: {e}") from e

        if response.status_code != 200:
            raise TokenExchangeError(
                f"Spotify token request returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise TokenExchangeError("Spotify token response is not JSON") from e

        if not isinstance(data, dict) or not data.get("access_token"):
            raise TokenExchangeError("Spotify token response has no access_token")

        return cast(dict[str, Any], data)

    # Yo future me, Spotify search has its own query syntax ("track:X artist:Y"). Results
    # are ranked by popularity, not by how close the name is - best-effort only.
    async def search(
        self, query: str, search_type: str, access_token: str, limit: int = 1
    ) -> dict[str, Any]:
        """
        Search the catalog.

        Args:
            query: Search query (supports field filters like "artist:")
            search_type: artist | album | track
            access_token: Bearer token from request_client_credentials_token()
            limit: Max results (1-50)

        Returns:
            Search response, e.g. {"artists": {"items": [...]}}

        Raises:
            ExternalServiceError: Non-2xx answer or transport failure
            RateLimitExceededError: Persistent 429
        """
        response = await self._api_request(
            method="GET",
            url=f"{self.settings.api_base_url}/search",
            access_token=access_token,
            params={"q": query, "type": search_type, "limit": min(max(limit, 1), 50)},
        )
        if response.is_error:
            raise ExternalServiceError(
                f"Spotify search returned HTTP {response.status_code}",
                service="spotify",
                status_code=response.status_code,
            )
        return cast(dict[str, Any], response.json())

    async def __aenter__(self) -> "SpotifyClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
