"""Weighted tag aggregation over a ranked sample.

Pure code - no network, no clock, no randomness. Same inputs, same output.
"""

import math
from collections.abc import Callable, Sequence

from scrobblestats.config.settings import WeightingPolicy
from scrobblestats.domain.entities import Tag, WeightedContribution
from scrobblestats.domain.value_objects.lastfm_payloads import (
    normalize_tag_name,
    tag_url,
)

# (0-based position in the sample, playcount of that entity) -> weight
WeightFn = Callable[[int, int], float]


def rank_position_weight(index: int, playcount: int = 0) -> float:
    """Ranked-list weight: 5 for the #1 entity, minus 1 per position, floored at 1."""
    return float(max(1, 5 - index))


def rank_playcount_weight(index: int, playcount: int = 0) -> float:
    """Track-sample weight: steep position decay over a 50-item sample, times log10(plays).

    A track with 0 or 1 plays contributes nothing (log10(1) == 0).
    """
    position_weight = max(1, math.ceil((50 - index) / 10))
    return position_weight * math.log10(playcount or 1)


def weight_function_for(policy: WeightingPolicy) -> WeightFn:
    """Map a configured policy to its weight function."""
    if policy is WeightingPolicy.RANK_PLAYCOUNT:
        return rank_playcount_weight
    return rank_position_weight


def contributions(
    tag_names: Sequence[str], index: int, playcount: int, weight_fn: WeightFn
) -> list[WeightedContribution]:
    """Weighted contributions of one sampled entity.

    Names are normalized and de-duplicated (an entity listing "Rock" and "rock" counts
    once). Non-positive weights produce no contributions.
    """
    weight = weight_fn(index, playcount)
    if weight <= 0:
        return []

    seen: set[str] = set()
    result: list[WeightedContribution] = []
    for raw in tag_names:
        name = normalize_tag_name(raw)
        if name is None or name in seen:
            continue
        seen.add(name)
        result.append(WeightedContribution(tag_name=name, weight=weight))
    return result


def round_count(total: float) -> str:
    """Round half up and render as a string, the way toptags counts look."""
    return str(int(math.floor(total + 0.5)))


class TagAggregator:
    """Sums weighted tag contributions into a sorted Tag list."""

    def aggregate(
        self,
        tag_lists: Sequence[Sequence[str]],
        weight_fn: WeightFn = rank_position_weight,
        playcounts: Sequence[int] | None = None,
    ) -> list[Tag]:
        """Aggregate per-entity tag lists (in rank order) into a top-tags list.

        Args:
            tag_lists: One list of tag names per sampled entity, best-ranked first
            weight_fn: Weight of the entity at a given position
            playcounts: Playcount per entity, aligned with tag_lists (missing = 0)

        Returns:
            One Tag per distinct normalized name whose count rounds to at least 1, sorted
            by count descending. Ties keep the order in which the tag was first seen.
        """
        totals: dict[str, float] = {}
        for index, tag_names in enumerate(tag_lists):
            playcount = 0
            if playcounts is not None and index < len(playcounts):
                playcount = playcounts[index]
            for contribution in contributions(tag_names, index, playcount, weight_fn):
                totals[contribution.tag_name] = (
                    totals.get(contribution.tag_name, 0.0) + contribution.weight
                )

        tags = [
            Tag(name=name, count=count, url=tag_url(name))
            for name, total in totals.items()
            if (count := round_count(total)) != "0"
        ]
        # sorted() is stable, so equal counts stay in first-seen order
        return sorted(tags, key=lambda tag: int(tag.count), reverse=True)
