"""Top tags for a user, with a sampling fallback when Last.fm has none.

Flow:
    DirectFetch          user.getTopTags -> non-empty? done.
        | empty / missing / error
        v
    FallbackBySampling   top albums (or tracks) for the period
                         -> tags per entity (TagCollector, small paced batches)
                         -> weighted aggregation (TagAggregator)
                         -> non-empty? done. Otherwise NoTagsAvailableError.

A new call for the same user supersedes older ones. We can't cancel an in-flight run, so
every result carries a per-user generation number and is_current() tells the caller whether
a newer call was started meanwhile (last write wins).
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from scrobblestats.application.services.tag_aggregator import (
    TagAggregator,
    weight_function_for,
)
from scrobblestats.application.services.tag_collector import TagCollector
from scrobblestats.config.settings import SampleSource, TagSettings
from scrobblestats.domain.entities import Entity, EntityType, Tag
from scrobblestats.domain.exceptions import DomainException, NoTagsAvailableError
from scrobblestats.domain.ports import ILastfmClient
from scrobblestats.domain.value_objects.lastfm_payloads import (
    normalize_top_tags,
    parse_ranked_entities,
)
from scrobblestats.infrastructure.observability import log_operation

logger = logging.getLogger(__name__)


class TagSource(str, Enum):
    """Which path produced a top-tags list."""

    DIRECT = "direct"
    SAMPLED_ALBUMS = "sampled_albums"
    SAMPLED_TRACKS = "sampled_tracks"


@dataclass
class TopTagsResult:
    """Outcome of one get_top_tags() call."""

    username: str
    period: str
    tags: list[Tag] = field(default_factory=list)
    source: TagSource = TagSource.DIRECT
    generation: int = 0


class TopTagsService:
    """Orchestrates direct fetch and sampling fallback for user top tags."""

    def __init__(
        self,
        lastfm_client: ILastfmClient,
        collector: TagCollector,
        aggregator: TagAggregator,
        settings: TagSettings,
    ) -> None:
        self._lastfm = lastfm_client
        self._collector = collector
        self._aggregator = aggregator
        self._settings = settings
        self._generations: dict[str, int] = {}

    def is_current(self, result: TopTagsResult) -> bool:
        """False if a newer get_top_tags() for the same user was started since."""
        return self._generations.get(result.username) == result.generation

    async def get_top_tags(self, username: str, period: str = "overall") -> TopTagsResult:
        """Return the user's top tags, sorted by count descending.

        Raises:
            NoTagsAvailableError: direct fetch was empty AND the fallback produced nothing
        """
        generation = self._generations.get(username, 0) + 1
        self._generations[username] = generation

        async with log_operation(logger, "top_tags", username=username, period=period):
            tags = await self._direct_fetch(username)
            if tags:
                return TopTagsResult(
                    username=username,
                    period=period,
                    tags=tags,
                    source=TagSource.DIRECT,
                    generation=generation,
                )

            logger.info("No direct top tags for %s, falling back to sampling", username)
            tags, source = await self._fallback_by_sampling(username, period)
            return TopTagsResult(
                username=username,
                period=period,
                tags=tags,
                source=source,
                generation=generation,
            )

    async def _direct_fetch(self, username: str) -> list[Tag]:
        try:
            payload = await self._lastfm.get_user_top_tags(username)
        # Missing API key (ConfigurationError) counts as "no direct tags" too
        except DomainException as e:
            logger.warning("user.getTopTags for %s failed: %s", username, e.message)
            return []
        return normalize_top_tags(payload)

    async def _fallback_by_sampling(
        self, username: str, period: str
    ) -> tuple[list[Tag], TagSource]:
        sample = await self._fetch_sample(username, period)
        if not sample:
            raise NoTagsAvailableError(username, period, reason="no listening sample")

        tag_lists = await self._collector.collect_many(
            sample,
            batch_size=self._settings.batch_size,
            delay=self._settings.batch_delay_seconds,
        )
        tags = self._aggregator.aggregate(
            tag_lists,
            weight_fn=weight_function_for(self._settings.effective_weighting),
            playcounts=[entity.playcount for entity in sample],
        )
        if not tags:
            raise NoTagsAvailableError(
                username, period, reason=f"none of {len(sample)} sampled items had tags"
            )

        source = (
            TagSource.SAMPLED_TRACKS
            if self._settings.sample_source is SampleSource.TRACKS
            else TagSource.SAMPLED_ALBUMS
        )
        logger.info(
            "Aggregated %d tags for %s from %d sampled items", len(tags), username, len(sample)
        )
        return tags, source

    async def _fetch_sample(self, username: str, period: str) -> list[Entity]:
        limit = self._settings.sample_size
        try:
            if self._settings.sample_source is SampleSource.TRACKS:
                payload = await self._lastfm.get_top_tracks(username, period=period, limit=limit)
                entity_type = EntityType.TRACK
            else:
                payload = await self._lastfm.get_top_albums(username, period=period, limit=limit)
                entity_type = EntityType.ALBUM
        except DomainException as e:
            raise NoTagsAvailableError(
                username, period, reason=f"sample fetch failed: {e.message}"
            ) from e

        return parse_ranked_entities(payload, entity_type)[:limit]
