"""Per-entity tag collection from Last.fm's *.getInfo endpoints."""

import asyncio
import logging
from collections.abc import Sequence

from scrobblestats.domain.entities import Entity, EntityType, TopItemTags
from scrobblestats.domain.ports import ILastfmClient
from scrobblestats.domain.value_objects.lastfm_payloads import normalize_tag_names

logger = logging.getLogger(__name__)


class TagCollector:
    """Fetches the tag names of single artists, albums and tracks.

    Hey future me - tag collection is best-effort PER ITEM. Any failure (network, 404,
    missing container, weird shape) means "this item has no tags", never an exception.
    The fallback aggregation just gets one empty list for that position.

    Where the tags live:
        artist.getInfo -> artist.tags.tag
        album.getInfo  -> album.tags.tag
        track.getInfo  -> track.toptags.tag
    """

    def __init__(self, lastfm_client: ILastfmClient) -> None:
        self._lastfm = lastfm_client

    async def collect_tags(
        self,
        entity_type: EntityType,
        primary_key: str,
        secondary_key: str | None = None,
    ) -> list[str]:
        """Lowercased, trimmed tag names for one entity ([] on any failure).

        Args:
            entity_type: artist / album / track
            primary_key: Artist name for artists, artist name for albums and tracks
            secondary_key: Album or track title (unused for artists)
        """
        if not primary_key:
            return []
        if entity_type is not EntityType.ARTIST and not secondary_key:
            logger.debug("No %s title given for artist %r", entity_type.value, primary_key)
            return []

        try:
            if entity_type is EntityType.ARTIST:
                info = await self._lastfm.get_artist_info(primary_key)
                container_key = "tags"
            elif entity_type is EntityType.ALBUM:
                info = await self._lastfm.get_album_info(primary_key, secondary_key or "")
                container_key = "tags"
            else:
                info = await self._lastfm.get_track_info(primary_key, secondary_key or "")
                container_key = "toptags"
        except Exception as e:
            logger.warning(
                "Tag lookup for %s %r / %r failed: %s",
                entity_type.value,
                primary_key,
                secondary_key,
                e,
            )
            return []

        if not isinstance(info, dict):
            return []
        return normalize_tag_names(info.get(container_key))

    async def collect_entity_tags(self, entity: Entity) -> list[str]:
        """collect_tags() with the keys taken from a ranked Entity."""
        if entity.entity_type is EntityType.ARTIST:
            return await self.collect_tags(EntityType.ARTIST, entity.name)
        return await self.collect_tags(
            entity.entity_type, entity.artist_name or "", entity.name
        )

    async def collect_many(
        self,
        entities: Sequence[Entity],
        batch_size: int = 5,
        delay: float = 0.3,
    ) -> list[list[str]]:
        """Collect tags for many entities, `batch_size` at a time.

        Result is aligned with `entities` (same order, one list each), no matter in which
        order the responses arrive. Sleeps `delay` seconds between batches, not after the
        last one.
        """
        results: list[list[str]] = []
        for start in range(0, len(entities), batch_size):
            batch = entities[start : start + batch_size]
            results.extend(
                await asyncio.gather(*(self.collect_entity_tags(e) for e in batch))
            )
            if start + batch_size < len(entities) and delay > 0:
                await asyncio.sleep(delay)

        tagged = sum(1 for tags in results if tags)
        logger.debug("Collected tags for %d/%d entities", tagged, len(entities))
        return results

    async def collect_for_top_items(
        self,
        top_artist: Entity | None,
        top_album: Entity | None,
        top_track: Entity | None,
        limit: int = 3,
    ) -> TopItemTags:
        """First `limit` tags of the user's #1 artist, album and track (stat cards)."""

        async def _tags(entity: Entity | None) -> list[str]:
            if entity is None:
                return []
            return (await self.collect_entity_tags(entity))[:limit]

        artist_tags, album_tags, track_tags = await asyncio.gather(
            _tags(top_artist), _tags(top_album), _tags(top_track)
        )
        return TopItemTags(
            artist_tags=artist_tags, album_tags=album_tags, track_tags=track_tags
        )
