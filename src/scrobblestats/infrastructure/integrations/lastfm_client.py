"""Last.fm web service client (read-only, api_key auth, JSON format)."""

import logging
from typing import Any, cast

import httpx

from scrobblestats.config.settings import LastfmSettings
from scrobblestats.domain.exceptions import ConfigurationError, ExternalServiceError
from scrobblestats.domain.ports import ILastfmClient
from scrobblestats.infrastructure.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class LastfmClient(ILastfmClient):
    """HTTP client for Last.fm API operations.

    Thin pass-through: every method maps to one Last.fm method and returns the JSON dict.
    Shape normalisation happens in domain/value_objects/lastfm_payloads.py.
    """

    def __init__(
        self,
        settings: LastfmSettings,
        rate_limiter: RateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            settings: API key, base URL and timeout
            rate_limiter: Limiter to pace requests (defaults to RateLimiter.for_lastfm())
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.settings = settings
        self._rate_limiter = rate_limiter or RateLimiter.for_lastfm()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.api_base_url,
                timeout=self.settings.request_timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Release the pooled connections (the client is recreated on next use)."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _make_request(
        self, method: str, params: dict[str, Any]
    ) -> dict[str, Any] | None:
        """
        Call one Last.fm method and return the decoded JSON body.

        None-valued params are left out of the query string. An HTTP 404 or a
        Last.fm error payload ({"error": 6, ...}) yields None.

        Raises:
            ConfigurationError: If no API key is configured
            ExternalServiceError: If the request fails or times out
        """
        if not self.settings.api_key:
            raise ConfigurationError("LASTFM_API_KEY is not configured")

        client = await self._get_client()

        request_params = {
            "method": method,
            "api_key": self.settings.api_key,
            "format": "json",
            **{key: value for key, value in params.items() if value is not None},
        }

        try:
            async with self._rate_limiter:
                response = await client.get("", params=request_params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise ExternalServiceError(
                f"Last.fm {method} failed with HTTP {e.response.status_code}",
                service="lastfm",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(
                f"Last.fm {method} request failed: {e}", service="lastfm"
            ) from e
        except ValueError as e:
            raise ExternalServiceError(
                f"Last.fm {method} returned invalid JSON", service="lastfm"
            ) from e

        # Last.fm answers errors with HTTP 200 and {"error": 6, "message": "..."}
        if not isinstance(data, dict) or "error" in data:
            logger.debug(
                "Last.fm %s returned error payload: %s",
                method,
                data.get("message") if isinstance(data, dict) else data,
            )
            return None

        return cast(dict[str, Any], data)

    async def _fetch_unwrapped(
        self, method: str, root: str, params: dict[str, Any]
    ) -> dict[str, Any] | None:
        """Call a *.getInfo style method and return the object under `root`."""
        payload = await self._make_request(method, params)
        if payload is None:
            return None
        inner = payload.get(root)
        return inner if isinstance(inner, dict) else None

    async def _user_chart(
        self, method: str, username: str, period: str, limit: int, page: int
    ) -> dict[str, Any] | None:
        return await self._make_request(
            method, {"user": username, "period": period, "limit": limit, "page": page}
        )

    # === User charts ===

    async def get_user_top_tags(
        self, username: str, limit: int | None = None
    ) -> dict[str, Any] | None:
        """user.getTopTags, raw payload (toptags.tag)."""
        return await self._make_request(
            "user.getTopTags", {"user": username, "limit": limit}
        )

    async def get_top_artists(
        self, username: str, period: str = "overall", limit: int = 50, page: int = 1
    ) -> dict[str, Any] | None:
        """
        user.getTopArtists, raw payload (topartists.artist).

        Args:
            username: Last.fm username
            period: overall | 7day | 1month | 3month | 6month | 12month
            limit: Page size
            page: Page number (1-based)
        """
        return await self._user_chart("user.getTopArtists", username, period, limit, page)

    async def get_top_albums(
        self, username: str, period: str = "overall", limit: int = 50, page: int = 1
    ) -> dict[str, Any] | None:
        """user.getTopAlbums (topalbums.album)."""
        return await self._user_chart("user.getTopAlbums", username, period, limit, page)

    async def get_top_tracks(
        self, username: str, period: str = "overall", limit: int = 50, page: int = 1
    ) -> dict[str, Any] | None:
        """user.getTopTracks (toptracks.track)."""
        return await self._user_chart("user.getTopTracks", username, period, limit, page)

    async def get_recent_tracks(
        self, username: str, limit: int = 10, page: int = 1
    ) -> dict[str, Any] | None:
        """user.getRecentTracks (recenttracks.track), newest first."""
        return await self._make_request(
            "user.getRecentTracks", {"user": username, "limit": limit, "page": page}
        )

    async def get_weekly_chart_list(self, username: str) -> dict[str, Any] | None:
        """Available weekly ranges (weeklychartlist.chart[].from/to)."""
        return await self._make_request("user.getWeeklyChartList", {"user": username})

    # No range given = Last.fm picks the most recent week
    async def get_weekly_artist_chart(
        self, username: str, date_from: int | None = None, date_to: int | None = None
    ) -> dict[str, Any] | None:
        return await self._make_request(
            "user.getWeeklyArtistChart",
            {"user": username, "from": date_from, "to": date_to},
        )

    async def get_weekly_album_chart(
        self, username: str, date_from: int | None = None, date_to: int | None = None
    ) -> dict[str, Any] | None:
        return await self._make_request(
            "user.getWeeklyAlbumChart",
            {"user": username, "from": date_from, "to": date_to},
        )

    async def get_weekly_track_chart(
        self, username: str, date_from: int | None = None, date_to: int | None = None
    ) -> dict[str, Any] | None:
        return await self._make_request(
            "user.getWeeklyTrackChart",
            {"user": username, "from": date_from, "to": date_to},
        )

    async def get_user_info(self, username: str) -> dict[str, Any] | None:
        """Profile of `username` (playcount, registered, image, ...)."""
        return await self._fetch_unwrapped("user.getInfo", "user", {"user": username})

    # === Entity lookups ===

    async def get_artist_correction(self, artist: str) -> dict[str, Any] | None:
        """Raw artist.getCorrection payload; its shape varies, see lastfm_payloads."""
        return await self._make_request("artist.getCorrection", {"artist": artist})

    async def get_artist_info(
        self, artist: str, mbid: str | None = None
    ) -> dict[str, Any] | None:
        """
        artist.getInfo, unwrapped. Carries tags.tag.

        A MusicBrainz id wins over the name when both are given.
        """
        params = {"mbid": mbid} if mbid else {"artist": artist}
        return await self._fetch_unwrapped("artist.getInfo", "artist", params)

    async def get_album_info(
        self, artist: str, album: str, username: str | None = None
    ) -> dict[str, Any] | None:
        """
        album.getInfo, unwrapped. Carries tags.tag.

        autocorrect=1 lets Last.fm fix misspelled artist names server side.

        Args:
            artist: Artist name
            album: Album title
            username: Adds userplaycount to the answer when given
        """
        return await self._fetch_unwrapped(
            "album.getInfo",
            "album",
            {"artist": artist, "album": album, "autocorrect": 1, "username": username},
        )

    async def get_track_info(
        self, artist: str, track: str, username: str | None = None
    ) -> dict[str, Any] | None:
        """track.getInfo, unwrapped. Tags live under toptags.tag here, not tags.tag."""
        return await self._fetch_unwrapped(
            "track.getInfo",
            "track",
            {"artist": artist, "track": track, "username": username},
        )

    async def __aenter__(self) -> "LastfmClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
