"""Ports (interfaces) the core services depend on.

Hey future me - the services only ever talk to these ABCs. The concrete httpx clients live in
infrastructure/integrations, the stores in infrastructure/persistence. Tests swap in
AsyncMock(spec=ILastfmClient) etc. without touching the network.
"""

from abc import ABC, abstractmethod
from typing import Any


class ILastfmClient(ABC):
    """Port for Last.fm API client operations.

    Ranked-list and tag-list methods return the raw JSON payload (shape normalisation is
    the caller's job, see domain/value_objects/lastfm_payloads.py). The *_info methods
    return the unwrapped entity object ("artist", "album", "track").
    All methods return None when Last.fm reports "not found".
    """

    @abstractmethod
    async def get_user_top_tags(
        self, username: str, limit: int | None = None
    ) -> dict[str, Any] | None:
        """Get the user's own top tags (user.getTopTags)."""
        pass

    @abstractmethod
    async def get_top_artists(
        self, username: str, period: str = "overall", limit: int = 50, page: int = 1
    ) -> dict[str, Any] | None:
        """Get the user's top artists (user.getTopArtists)."""
        pass

    @abstractmethod
    async def get_top_albums(
        self, username: str, period: str = "overall", limit: int = 50, page: int = 1
    ) -> dict[str, Any] | None:
        """Get the user's top albums (user.getTopAlbums)."""
        pass

    @abstractmethod
    async def get_top_tracks(
        self, username: str, period: str = "overall", limit: int = 50, page: int = 1
    ) -> dict[str, Any] | None:
        """Get the user's top tracks (user.getTopTracks)."""
        pass

    @abstractmethod
    async def get_artist_correction(self, artist: str) -> dict[str, Any] | None:
        """Get Last.fm's canonical spelling for an artist (artist.getCorrection)."""
        pass

    @abstractmethod
    async def get_artist_info(
        self, artist: str, mbid: str | None = None
    ) -> dict[str, Any] | None:
        """artist.getInfo; tags under tags.tag. mbid wins over the name."""
        pass

    @abstractmethod
    async def get_album_info(
        self, artist: str, album: str, username: str | None = None
    ) -> dict[str, Any] | None:
        """album.getInfo; tags under tags.tag."""
        pass

    @abstractmethod
    async def get_track_info(
        self, artist: str, track: str, username: str | None = None
    ) -> dict[str, Any] | None:
        """track.getInfo; tags under toptags.tag (note the different container)."""
        pass


class ISpotifyClient(ABC):
    """Port for the Spotify catalog operations we need (client credentials only)."""

    @abstractmethod
    async def request_client_credentials_token(self) -> dict[str, Any]:
        """Exchange client id/secret for {"access_token", "expires_in", ...}.

        Raises:
            CredentialsMissingError: id/secret not configured
            TokenExchangeError: exchange failed
        """
        pass

    @abstractmethod
    async def search(
        self, query: str, search_type: str, access_token: str, limit: int = 1
    ) -> dict[str, Any]:
        """Search the catalog (GET /search?q=...&type=...&limit=...)."""
        pass


class IKeyValueStore(ABC):
    """Durable string key-value store (browser-storage style).

    Only used to keep the Spotify token across calls of one session.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return stored value or None."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key (overwrites)."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key if present."""
        pass


__all__ = ["IKeyValueStore", "ILastfmClient", "ISpotifyClient"]
