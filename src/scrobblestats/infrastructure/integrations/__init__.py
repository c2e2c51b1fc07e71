"""External API integrations."""

from scrobblestats.infrastructure.integrations.lastfm_client import LastfmClient
from scrobblestats.infrastructure.integrations.spotify_client import SpotifyClient

__all__ = ["LastfmClient", "SpotifyClient"]
