"""Tests for weighted tag aggregation."""

import math

import pytest

from scrobblestats.application.services.tag_aggregator import (
    TagAggregator,
    contributions,
    rank_playcount_weight,
    rank_position_weight,
    round_count,
    weight_function_for,
)
from scrobblestats.config.settings import WeightingPolicy


@pytest.fixture
def aggregator() -> TagAggregator:
    """Create aggregator."""
    return TagAggregator()


class TestWeightFunctions:
    """Test the two weighting policies."""

    @pytest.mark.parametrize(
        ("index", "expected"), [(0, 5), (1, 4), (3, 2), (4, 1), (5, 1), (20, 1)]
    )
    def test_rank_position_weight(self, index: int, expected: float) -> None:
        """Test 5 - index floored at 1."""
        assert rank_position_weight(index) == expected

    def test_rank_playcount_weight(self) -> None:
        """Test position weight times log10(playcount)."""
        assert rank_playcount_weight(0, 100) == pytest.approx(5 * 2)
        assert rank_playcount_weight(15, 1000) == pytest.approx(4 * 3)
        assert rank_playcount_weight(49, 10) == pytest.approx(1.0)
        assert rank_playcount_weight(60, 10) == pytest.approx(1.0)

    def test_rank_playcount_weight_zero_plays(self) -> None:
        """Test 0 plays counts like 1 play, which contributes nothing."""
        assert rank_playcount_weight(0, 0) == 0

    def test_weight_function_for(self) -> None:
        """Test policy lookup."""
        assert weight_function_for(WeightingPolicy.RANK) is rank_position_weight
        assert weight_function_for(WeightingPolicy.RANK_PLAYCOUNT) is rank_playcount_weight


class TestContributions:
    """Test per-entity contribution building."""

    def test_duplicates_within_entity_count_once(self) -> None:
        """Test "Rock" and "rock" in one entity produce one contribution."""
        result = contributions(["Rock", "rock ", "pop"], 0, 0, rank_position_weight)
        assert [(c.tag_name, c.weight) for c in result] == [("rock", 5.0), ("pop", 5.0)]

    def test_non_positive_weight_yields_nothing(self) -> None:
        """Test zero-weight entities are dropped."""
        assert contributions(["rock"], 0, 1, rank_playcount_weight) == []


class TestRoundCount:
    """Test count rendering."""

    @pytest.mark.parametrize(
        ("total", "expected"), [(9.0, "9"), (2.5, "3"), (2.49, "2"), (0.4, "0")]
    )
    def test_round_half_up(self, total: float, expected: str) -> None:
        """Test rounding to an integer string."""
        assert round_count(total) == expected


class TestTagAggregator:
    """Test aggregation and ordering."""

    def test_album_sample_scenario(self, aggregator: TagAggregator) -> None:
        """Test five sampled albums with rank weighting."""
        tag_lists = [["rock"], ["rock", "pop"], [], ["jazz"], ["pop"]]

        tags = aggregator.aggregate(tag_lists)

        assert [(tag.name, tag.count) for tag in tags] == [
            ("rock", "9"),
            ("pop", "5"),
            ("jazz", "2"),
        ]
        assert tags[0].url == "https://www.last.fm/tag/rock"

    def test_each_name_once_with_summed_count(self, aggregator: TagAggregator) -> None:
        """Test case/whitespace variants across entities merge into one tag."""
        tags = aggregator.aggregate([["Rock"], [" rock"], ["ROCK", "indie"]])

        names = [tag.name for tag in tags]
        assert names.count("rock") == 1
        assert {tag.name: tag.count for tag in tags} == {"rock": "12", "indie": "3"}

    def test_ties_keep_insertion_order(self, aggregator: TagAggregator) -> None:
        """Test equal counts keep first-seen order."""
        # b and a both reach 10, c gets 5
        tags = aggregator.aggregate(
            [["b", "a"], ["c"]],
            weight_fn=lambda index, playcount: 10.0 if index == 0 else 5.0,
        )

        assert [(tag.name, tag.count) for tag in tags] == [
            ("b", "10"),
            ("a", "10"),
            ("c", "5"),
        ]

    def test_output_is_non_increasing(self, aggregator: TagAggregator) -> None:
        """Test sort order."""
        tags = aggregator.aggregate([["x"], ["y", "x"], ["z"], ["z", "y"], ["z"]])
        counts = [int(tag.count) for tag in tags]
        assert counts == sorted(counts, reverse=True)

    def test_idempotent(self, aggregator: TagAggregator) -> None:
        """Test same inputs give identical output."""
        tag_lists = [["rock", "pop"], ["pop"], ["jazz", "rock"]]
        assert aggregator.aggregate(tag_lists) == aggregator.aggregate(tag_lists)

    def test_playcount_weighting(self, aggregator: TagAggregator) -> None:
        """Test track-sample weighting uses aligned playcounts."""
        tags = aggregator.aggregate(
            [["rock"], ["rock", "pop"]],
            weight_fn=rank_playcount_weight,
            playcounts=[100, 10],
        )

        # rock: 5*log10(100) + 5*log10(10) = 15, pop: 5
        assert [(tag.name, tag.count) for tag in tags] == [("rock", "15"), ("pop", "5")]

    def test_missing_playcounts_default_to_zero(self, aggregator: TagAggregator) -> None:
        """Test entities beyond the playcount list contribute nothing."""
        tags = aggregator.aggregate(
            [["rock"], ["pop"]], weight_fn=rank_playcount_weight, playcounts=[1000]
        )
        assert [tag.name for tag in tags] == ["rock"]
        assert tags[0].count == str(round(5 * math.log10(1000)))

    def test_totals_rounding_to_zero_are_dropped(self, aggregator: TagAggregator) -> None:
        """Test a tag whose summed weight rounds to 0 is not emitted."""
        tag_lists: list[list[str]] = [["rock"]] + [[] for _ in range(48)] + [["obscure"]]
        playcounts = [100] + [0] * 48 + [2]

        # obscure: 1 * log10(2) ~= 0.3
        tags = aggregator.aggregate(
            tag_lists, weight_fn=rank_playcount_weight, playcounts=playcounts
        )

        assert [(tag.name, tag.count) for tag in tags] == [("rock", "10")]

    def test_no_tags(self, aggregator: TagAggregator) -> None:
        """Test empty input gives empty output."""
        assert aggregator.aggregate([]) == []
        assert aggregator.aggregate([[], []]) == []
