"""Per-session wiring of clients, caches and services.

Hey future me - there are NO module-level singletons for the token or the image cache. One
ScrobbleSession is built per application/session and every service gets its collaborators
passed in. Two sessions never share a token, a cache entry or a correction memo.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx

from scrobblestats.application.cache import ImageCache
from scrobblestats.application.services.image_resolver import ImageSourceResolver
from scrobblestats.application.services.name_correction_service import (
    NameCorrectionService,
)
from scrobblestats.application.services.tag_aggregator import TagAggregator
from scrobblestats.application.services.tag_collector import TagCollector
from scrobblestats.application.services.token_cache import TokenCache
from scrobblestats.application.services.top_tags_service import TopTagsService
from scrobblestats.config.settings import Settings, get_settings
from scrobblestats.domain.ports import IKeyValueStore
from scrobblestats.infrastructure.integrations import LastfmClient, SpotifyClient
from scrobblestats.infrastructure.observability import (
    configure_logging,
    set_correlation_id,
)
from scrobblestats.infrastructure.persistence import InMemoryKeyValueStore

logger = logging.getLogger(__name__)


@dataclass
class ScrobbleSession:
    """Everything one session needs, constructed once and passed by reference."""

    settings: Settings
    lastfm: LastfmClient
    spotify: SpotifyClient
    store: IKeyValueStore
    token_cache: TokenCache
    image_cache: ImageCache
    name_correction: NameCorrectionService
    image_resolver: ImageSourceResolver
    tag_collector: TagCollector
    tag_aggregator: TagAggregator
    top_tags: TopTagsService
    correlation_id: str = ""

    @classmethod
    def build(
        cls,
        settings: Settings | None = None,
        store: IKeyValueStore | None = None,
        lastfm_transport: httpx.AsyncBaseTransport | None = None,
        spotify_transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ScrobbleSession":
        """Wire a new session. Transports are for tests (httpx.MockTransport)."""
        settings = settings or get_settings()
        store = store or InMemoryKeyValueStore()

        lastfm = LastfmClient(settings.lastfm, transport=lastfm_transport)
        spotify = SpotifyClient(settings.spotify, transport=spotify_transport)
        token_cache = TokenCache(spotify, store)
        image_cache = ImageCache()
        name_correction = NameCorrectionService(lastfm)
        tag_collector = TagCollector(lastfm)
        tag_aggregator = TagAggregator()

        return cls(
            settings=settings,
            lastfm=lastfm,
            spotify=spotify,
            store=store,
            token_cache=token_cache,
            image_cache=image_cache,
            name_correction=name_correction,
            image_resolver=ImageSourceResolver(
                spotify,
                token_cache,
                image_cache,
                settings.images,
                name_correction=name_correction,
            ),
            tag_collector=tag_collector,
            tag_aggregator=tag_aggregator,
            top_tags=TopTagsService(lastfm, tag_collector, tag_aggregator, settings.tags),
        )

    async def close(self) -> None:
        """Close both HTTP clients."""
        await self.lastfm.close()
        await self.spotify.close()


@asynccontextmanager
async def open_session(
    settings: Settings | None = None,
    store: IKeyValueStore | None = None,
    lastfm_transport: httpx.AsyncBaseTransport | None = None,
    spotify_transport: httpx.AsyncBaseTransport | None = None,
    setup_logging: bool = False,
) -> AsyncIterator[ScrobbleSession]:
    """Build a session, tag its logs with a fresh correlation id, close clients on exit.

    With setup_logging=True the root logger is configured from settings.observability
    first (scripts and notebooks; embedding apps configure logging themselves).

    Example:
        >>> async with open_session() as session:
        ...     result = await session.top_tags.get_top_tags("rj")
    """
    session = ScrobbleSession.build(
        settings,
        store,
        lastfm_transport=lastfm_transport,
        spotify_transport=spotify_transport,
    )
    if setup_logging:
        configure_logging(
            log_level=session.settings.observability.level,
            json_format=session.settings.observability.json_format,
            app_name=session.settings.app_name,
        )
    session.correlation_id = set_correlation_id()
    logger.debug("Session %s opened", session.correlation_id)
    try:
        yield session
    finally:
        await session.close()
        logger.debug(
            "Session %s closed (%d cached images)",
            session.correlation_id,
            len(session.image_cache),
        )
