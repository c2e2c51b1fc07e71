"""Helpers that shape top-tag lists for the UI (tag cloud, bar chart, stat cards)."""

from collections.abc import Sequence
from dataclasses import dataclass

from scrobblestats.domain.entities import Tag


@dataclass(frozen=True)
class TagChartData:
    """Parallel label/value/color lists for a bar chart."""

    labels: list[str]
    values: list[int]
    colors: list[str]


def sorted_top_tags(tags: Sequence[Tag], limit: int = 20) -> list[Tag]:
    """Top `limit` tags by numeric count, stable for ties."""
    return sorted(tags, key=lambda tag: tag.count_value, reverse=True)[:limit]


def chart_color(index: int) -> str:
    """Evenly spaced hue per bar."""
    return f"hsla({index * 20 % 360}, 70%, 60%, 0.8)"


def tag_chart_data(tags: Sequence[Tag], limit: int = 15) -> TagChartData:
    top = sorted_top_tags(tags, limit)
    return TagChartData(
        labels=[tag.name for tag in top],
        values=[tag.count_value for tag in top],
        colors=[chart_color(index) for index in range(len(top))],
    )


def format_playcount(count: int | str | None) -> str:
    """Short human playcount: 1234567 -> "1.2M", 3400 -> "3.4K", 999 -> "999".

    Empty / unparseable input gives "0".
    """
    if count is None or count == "":
        return "0"
    try:
        value = int(float(count))
    except (TypeError, ValueError):
        return "0"

    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{value / 1_000:.1f}K"
    return str(value)
