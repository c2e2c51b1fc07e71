"""Tests for tag list presentation helpers."""

import pytest

from scrobblestats.application.services.tag_presentation import (
    chart_color,
    format_playcount,
    sorted_top_tags,
    tag_chart_data,
)
from scrobblestats.domain.entities import Tag


def tag(name: str, count: str) -> Tag:
    return Tag(name=name, count=count, url=f"https://www.last.fm/tag/{name}")


class TestSortedTopTags:
    """Test top-N selection."""

    def test_sorted_by_numeric_count(self) -> None:
        """Test "100" sorts above "20" (numeric, not lexical)."""
        tags = [tag("a", "20"), tag("b", "100"), tag("c", "3")]
        assert [t.name for t in sorted_top_tags(tags)] == ["b", "a", "c"]

    def test_limit(self) -> None:
        """Test list is cut to the limit."""
        tags = [tag(f"t{i}", str(i)) for i in range(30)]
        assert len(sorted_top_tags(tags)) == 20
        assert len(sorted_top_tags(tags, limit=5)) == 5


class TestTagChartData:
    """Test bar chart data."""

    def test_parallel_lists(self) -> None:
        """Test labels, values and colors line up."""
        data = tag_chart_data([tag("rock", "9"), tag("pop", "5")])

        assert data.labels == ["rock", "pop"]
        assert data.values == [9, 5]
        assert data.colors == [
            "hsla(0, 70%, 60%, 0.8)",
            "hsla(20, 70%, 60%, 0.8)",
        ]

    def test_default_limit_is_15(self) -> None:
        """Test only 15 bars by default."""
        data = tag_chart_data([tag(f"t{i}", str(i)) for i in range(20)])
        assert len(data.labels) == 15

    def test_hue_wraps(self) -> None:
        """Test hue stays within 0-359."""
        assert chart_color(18) == "hsla(0, 70%, 60%, 0.8)"


class TestFormatPlaycount:
    """Test short playcount formatting."""

    @pytest.mark.parametrize(
        ("count", "expected"),
        [
            (1_234_567, "1.2M"),
            ("3400", "3.4K"),
            (999, "999"),
            (0, "0"),
            ("", "0"),
            (None, "0"),
            ("garbage", "0"),
        ],
    )
    def test_format(self, count: object, expected: str) -> None:
        """Test thresholds and empty input."""
        assert format_playcount(count) == expected  # type: ignore[arg-type]
