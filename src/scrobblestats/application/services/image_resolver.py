"""Image resolution across Spotify catalog, Last.fm images and placeholders.

Hey future me - this is the single place that decides which picture a chart/collage shows.

PRIORITY (first hit wins):
    1. session cache for `name`
    2. session cache for the corrected name (artists: asks NameCorrectionService)
    3. Spotify catalog search (limit 1) -> best-fit image, written to the cache
    4. Last.fm's own image array (extralarge > large > medium > small > anything)
    5. type-specific placeholder

Spotify being unavailable (no credentials, token exchange failed, timeout, 429) is NOT an
error here - we just fall through to step 4. Only catalog hits are cached; Last.fm images
come with the entity every fetch anyway and placeholders must not block a later catalog hit.
"""

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from scrobblestats.application.cache import ImageCache, ImageSource
from scrobblestats.application.services.name_correction_service import (
    NameCorrectionService,
)
from scrobblestats.application.services.token_cache import TokenCache
from scrobblestats.config.settings import ImageSettings
from scrobblestats.domain.entities import Entity, EntityType
from scrobblestats.domain.exceptions import ExternalServiceError
from scrobblestats.domain.ports import ISpotifyClient
from scrobblestats.domain.value_objects.lastfm_image import LastfmImage
from scrobblestats.domain.value_objects.lastfm_payloads import best_lastfm_image

logger = logging.getLogger(__name__)

# Spotify search result container per search type
_RESULT_KEYS: dict[str, str] = {"artist": "artists", "album": "albums", "track": "tracks"}


@dataclass
class ImageRequest:
    """Everything the resolver may use for one entity."""

    entity_type: EntityType
    name: str
    artist_name: str | None = None
    corrected_name: str | None = None
    lastfm_images: list[LastfmImage] = field(default_factory=list)

    @classmethod
    def from_entity(cls, entity: Entity) -> "ImageRequest":
        return cls(
            entity_type=entity.entity_type,
            name=entity.name,
            artist_name=entity.artist_name,
            lastfm_images=list(entity.images),
        )


def select_best_fit_image(images: Sequence[Any]) -> str | None:
    """Pick the medium asset from Spotify's image list (largest first).

    Spotify orders images 640 / 300 / 64. The second one is plenty for charts and a third of
    the payload. With a single image we take what we get.
    """
    urls = [
        image.get("url")
        for image in images
        if isinstance(image, dict) and isinstance(image.get("url"), str) and image["url"]
    ]
    if not urls:
        return None
    if len(urls) >= 2:
        return urls[1]
    return urls[0]


def build_catalog_query(request: ImageRequest, name: str) -> tuple[str, str]:
    """Return (query, search_type) for a catalog search."""
    if request.entity_type is EntityType.TRACK and request.artist_name:
        return f"track:{name} artist:{request.artist_name}", "track"
    if request.entity_type is EntityType.TRACK:
        return f"track:{name}", "track"
    if request.entity_type is EntityType.ALBUM and request.artist_name:
        return f"album:{name} artist:{request.artist_name}", "album"
    if request.entity_type is EntityType.ALBUM:
        return f"album:{name}", "album"
    return name, "artist"


class ImageSourceResolver:
    """Resolves one best-available image URL per entity."""

    def __init__(
        self,
        spotify_client: ISpotifyClient,
        token_cache: TokenCache,
        cache: ImageCache,
        settings: ImageSettings,
        name_correction: NameCorrectionService | None = None,
    ) -> None:
        self._spotify = spotify_client
        self._tokens = token_cache
        self._cache = cache
        self._settings = settings
        self._corrections = name_correction

    @property
    def cache(self) -> ImageCache:
        return self._cache

    def placeholder_for(self, entity_type: EntityType) -> str:
        """Type-specific placeholder URL."""
        if entity_type is EntityType.ARTIST:
            return self._settings.placeholder_artist
        if entity_type is EntityType.ALBUM:
            return self._settings.placeholder_album
        return self._settings.placeholder_track

    async def resolve_image(
        self,
        entity_type: EntityType,
        name: str,
        corrected_name: str | None = None,
        artist_name: str | None = None,
        lastfm_images: list[LastfmImage] | None = None,
    ) -> str:
        """Resolve an image URL, never raising. Placeholder as last resort."""
        return await self.resolve(
            ImageRequest(
                entity_type=entity_type,
                name=name,
                artist_name=artist_name,
                corrected_name=corrected_name,
                lastfm_images=lastfm_images or [],
            )
        )

    async def resolve(self, request: ImageRequest) -> str:
        """Resolve an ImageRequest through the full priority chain."""
        url = await self.lookup_catalog_image(request)
        if url:
            return url

        url = best_lastfm_image(request.lastfm_images)
        if url:
            logger.debug("Using Last.fm image for %s %r", request.entity_type.value, request.name)
            return url

        return self.placeholder_for(request.entity_type)

    async def resolve_entity(self, entity: Entity) -> str:
        """Resolve an Entity, honoring an image_url already attached to it."""
        if entity.image_url:
            await self._cache.put(
                entity.entity_type, entity.name, entity.image_url, ImageSource.CATALOG
            )
            return entity.image_url
        return await self.resolve(ImageRequest.from_entity(entity))

    async def lookup_catalog_image(self, request: ImageRequest) -> str | None:
        """Steps 1-3 only: cache by name, cache by corrected name, catalog search.

        Returns None when nothing was found. Never raises.
        """
        cached = await self._cache.get_url(request.entity_type, request.name)
        if cached:
            return cached

        corrected = request.corrected_name
        if (
            corrected is None
            and request.entity_type is EntityType.ARTIST
            and self._corrections is not None
        ):
            corrected = await self._corrections.correct(request.name)

        if corrected and corrected != request.name:
            cached = await self._cache.get_url(request.entity_type, corrected)
            if cached:
                # Back-fill the original spelling so the next lookup is a direct hit
                await self._cache.put(
                    request.entity_type, request.name, cached, ImageSource.CATALOG
                )
                return cached

        url = await self._search_catalog(request, corrected or request.name)
        if url is None:
            return None

        await self._cache.put(request.entity_type, request.name, url, ImageSource.CATALOG)
        if corrected and corrected != request.name:
            await self._cache.put(request.entity_type, corrected, url, ImageSource.CATALOG)
        return url

    async def _search_catalog(self, request: ImageRequest, name: str) -> str | None:
        token = await self._tokens.try_get_token()
        if token is None:
            return None

        query, search_type = build_catalog_query(request, name)
        try:
            response = await self._spotify.search(query, search_type, token, limit=1)
        except ExternalServiceError as e:
            if e.status_code == 401:
                # Token rejected before its expiry, exchange a fresh one next time
                self._tokens.invalidate()
            logger.warning("Spotify %s search for %r failed: %s", search_type, name, e)
            return None
        except Exception as e:
            logger.warning("Spotify %s search for %r failed: %s", search_type, name, e)
            return None

        container = response.get(_RESULT_KEYS[search_type]) if isinstance(response, dict) else None
        items = container.get("items") if isinstance(container, dict) else None
        if not items or not isinstance(items[0], dict):
            logger.debug("No Spotify %s found for %r", search_type, name)
            return None

        item = items[0]
        if search_type == "track":
            album = item.get("album")
            images = album.get("images", []) if isinstance(album, dict) else []
        else:
            images = item.get("images", [])

        url = select_best_fit_image(images or [])
        if url is None:
            logger.debug("Spotify %s %r has no images", search_type, item.get("name"))
        return url

    async def resolve_images(
        self,
        names: Iterable[str],
        entity_type: EntityType = EntityType.ARTIST,
    ) -> dict[str, str | None]:
        """Catalog-resolve many names in paced batches.

        Batches of ImageSettings.batch_size run concurrently, with batch_delay_seconds
        between batches (not after the last). A name that fails or isn't found maps to None
        - one bad name never sinks the batch.
        """
        unique_names = list(dict.fromkeys(name for name in names if name))
        results: dict[str, str | None] = {}
        batch_size = self._settings.batch_size

        for start in range(0, len(unique_names), batch_size):
            batch = unique_names[start : start + batch_size]
            logger.debug(
                "Resolving image batch %d (%d names)", start // batch_size + 1, len(batch)
            )
            outcomes = await asyncio.gather(
                *(
                    self.lookup_catalog_image(ImageRequest(entity_type=entity_type, name=name))
                    for name in batch
                ),
                return_exceptions=True,
            )
            for name, outcome in zip(batch, outcomes, strict=True):
                if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                    # CancelledError and friends end the whole batch
                    raise outcome
                if isinstance(outcome, Exception):
                    logger.warning("Image lookup for %r failed: %s", name, outcome)
                    results[name] = None
                else:
                    results[name] = outcome

            if start + batch_size < len(unique_names):
                await asyncio.sleep(self._settings.batch_delay_seconds)

        found = sum(1 for url in results.values() if url)
        logger.info("Resolved catalog images for %d/%d names", found, len(results))
        return results

    async def attach_images(self, entities: Sequence[Entity]) -> None:
        """Batch-resolve artist entities and set image_url on the ones that got a hit."""
        pending = [
            entity
            for entity in entities
            if entity.entity_type is EntityType.ARTIST and not entity.image_url
        ]
        if not pending:
            return
        urls = await self.resolve_images([entity.name for entity in pending])
        for entity in pending:
            url = urls.get(entity.name)
            if url:
                entity.image_url = url
