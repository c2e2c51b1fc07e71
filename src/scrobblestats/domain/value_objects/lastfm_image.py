"""Normalized Last.fm image entry."""

from dataclasses import dataclass

# Largest first - this is the order we try sizes in.
LASTFM_SIZE_PRIORITY: tuple[str, ...] = ("extralarge", "large", "medium", "small")


@dataclass(frozen=True)
class LastfmImage:
    """One entry of a Last.fm `image` array after normalization.

    Last.fm mixes plain URL strings (XML converted to JSON), {"size", "#text"} objects and
    {"size", "content"} objects in the same array. All of them end up here.
    size is None for bare strings, url is "" when the entry carried no text.
    """

    url: str
    size: str | None = None

    @property
    def has_url(self) -> bool:
        return bool(self.url)
