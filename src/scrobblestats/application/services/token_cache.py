"""Spotify app-token cache with single-flight refresh.

Hey future me - image lookups fan out 10 at a time, and on a cold start ALL of them see
"no token". Without the single-flight guard that's 10 token exchanges in the same second.
So: the first caller that finds the token missing/expired starts ONE refresh task, everybody
else awaits that same task. When it finishes (success or failure) the slot is cleared, so a
failed exchange is simply retried on the next call - no backoff policy here.

The token is mirrored into the key-value store (spotify_access_token /
spotify_token_expiry in epoch ms) and re-read from it on first use.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from scrobblestats.domain.entities import Token
from scrobblestats.domain.exceptions import (
    CredentialsMissingError,
    ExternalServiceError,
    TokenExchangeError,
)
from scrobblestats.domain.ports import IKeyValueStore, ISpotifyClient
from scrobblestats.infrastructure.persistence import InMemoryKeyValueStore

logger = logging.getLogger(__name__)

TOKEN_STORE_KEY = "spotify_access_token"  # nosec B105 - storage key name, not a secret
TOKEN_EXPIRY_STORE_KEY = "spotify_token_expiry"  # nosec B105


def _epoch_ms() -> float:
    return time.time() * 1000


class TokenCache:
    """Holds the Spotify bearer token and refreshes it when expired."""

    def __init__(
        self,
        spotify_client: ISpotifyClient,
        store: IKeyValueStore | None = None,
        clock: Callable[[], float] = _epoch_ms,
    ) -> None:
        """
        Args:
            spotify_client: Client performing the client-credentials exchange
            store: Durable store for token + expiry (defaults to in-memory)
            clock: Returns "now" in epoch milliseconds (injectable for tests)
        """
        self._client = spotify_client
        self._store = store or InMemoryKeyValueStore()
        self._clock = clock
        self._token: Token | None = None
        self._loaded_from_store = False
        self._refresh_task: asyncio.Task[Token] | None = None

    @property
    def current_token(self) -> Token | None:
        """Token currently held (may be expired)."""
        return self._token

    def _load_from_store(self) -> None:
        if self._loaded_from_store:
            return
        self._loaded_from_store = True
        value = self._store.get(TOKEN_STORE_KEY)
        expiry = self._store.get(TOKEN_EXPIRY_STORE_KEY)
        if not value or not expiry:
            return
        try:
            self._token = Token(value=value, expires_at_epoch_ms=float(expiry))
        except ValueError:
            logger.debug("Ignoring stored Spotify token with unreadable expiry %r", expiry)

    def _valid_token(self) -> Token | None:
        self._load_from_store()
        if self._token is not None and self._token.is_valid(self._clock()):
            return self._token
        return None

    async def get_token(self) -> str:
        """Return a valid bearer token, exchanging credentials if needed.

        Raises:
            CredentialsMissingError: client id/secret not configured
            TokenExchangeError: the exchange failed (retry happens on the next call)
        """
        token = self._valid_token()
        if token is not None:
            return token.value

        if self._refresh_task is None:
            task = asyncio.ensure_future(self._refresh())
            self._refresh_task = task
            task.add_done_callback(self._clear_refresh_task)

        # shield: a cancelled caller must not cancel the refresh the others wait on
        token = await asyncio.shield(self._refresh_task)
        return token.value

    async def try_get_token(self) -> str | None:
        """Non-raising variant: None when credentials are missing or the exchange failed."""
        try:
            return await self.get_token()
        except CredentialsMissingError:
            logger.debug("Spotify credentials missing, catalog lookups disabled")
            return None
        except TokenExchangeError as e:
            logger.warning("Spotify token exchange failed: %s", e.message)
            return None

    def invalidate(self) -> None:
        """Forget the token (e.g. after a 401). Next get_token() exchanges again."""
        self._token = None
        self._store.delete(TOKEN_STORE_KEY)
        self._store.delete(TOKEN_EXPIRY_STORE_KEY)

    def _clear_refresh_task(self, task: "asyncio.Task[Token]") -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        # Mark the exception as retrieved even when every waiter got cancelled
        if not task.cancelled():
            task.exception()

    async def _refresh(self) -> Token:
        logger.debug("Requesting new Spotify access token")
        try:
            data = await self._client.request_client_credentials_token()
        except (CredentialsMissingError, TokenExchangeError):
            raise
        except ExternalServiceError as e:
            raise TokenExchangeError(e.message, status_code=e.status_code) from e

        try:
            expires_in = float(data.get("expires_in", 3600))
        except (TypeError, ValueError) as e:
            raise TokenExchangeError("Spotify token response has invalid expires_in") from e

        token = Token(
            value=str(data["access_token"]),
            expires_at_epoch_ms=self._clock() + expires_in * 1000,
        )
        self._token = token
        self._store.set(TOKEN_STORE_KEY, token.value)
        self._store.set(TOKEN_EXPIRY_STORE_KEY, str(int(token.expires_at_epoch_ms)))
        logger.info("New Spotify token acquired, expires in %ds", int(expires_in))
        return token
