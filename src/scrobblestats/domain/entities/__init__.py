"""Domain entities for listening statistics.

Hey future me - these are created fresh per fetch and thrown away on the next fetch for
the same user/period. Nothing here is persisted. Entity names are case-sensitive as
Last.fm returns them and NOT unique (misspellings and alternate spellings exist), which is
why images are keyed by (entity_type, name) and corrections are tracked separately.
"""

from dataclasses import dataclass, field
from enum import Enum

from scrobblestats.domain.value_objects.lastfm_image import LastfmImage


class EntityType(str, Enum):
    """Kind of music entity."""

    ARTIST = "artist"
    ALBUM = "album"
    TRACK = "track"


@dataclass
class Entity:
    """An artist, album or track from a ranked Last.fm list.

    Attributes:
        name: Name as returned by Last.fm
        entity_type: artist / album / track
        artist_name: Owning artist for albums and tracks
        playcount: Non-negative play count (Last.fm sends it as a string)
        rank: 1-based position in the ranked list, None when not from a ranking
        images: Normalized Last.fm image list
        image_url: Pre-attached resolved image (e.g. a Spotify image from an earlier batch)
        url: Last.fm page URL
    """

    name: str
    entity_type: EntityType
    artist_name: str | None = None
    playcount: int = 0
    rank: int | None = None
    images: list[LastfmImage] = field(default_factory=list)
    image_url: str | None = None
    url: str = ""

    def __post_init__(self) -> None:
        if self.playcount < 0:
            raise ValueError(f"playcount must be non-negative, got {self.playcount}")


@dataclass(frozen=True)
class Tag:
    """One entry of a top-tags list, in Last.fm's own toptags shape.

    count stays a string because that's what user.getTopTags returns and what the
    charts consume. Use count_value for arithmetic.
    """

    name: str
    count: str
    url: str

    @property
    def count_value(self) -> int:
        """Numeric count (0 if Last.fm sent garbage)."""
        try:
            return int(float(self.count))
        except ValueError:
            return 0

    def to_dict(self) -> dict[str, str]:
        """Serialize to the {name, count, url} shape."""
        return {"name": self.name, "count": self.count, "url": self.url}


@dataclass(frozen=True)
class Token:
    """Spotify bearer token with absolute expiry in epoch milliseconds."""

    value: str
    expires_at_epoch_ms: float

    def is_valid(self, now_epoch_ms: float) -> bool:
        """Token is reusable while now < expiry."""
        return bool(self.value) and now_epoch_ms < self.expires_at_epoch_ms


@dataclass(frozen=True)
class WeightedContribution:
    """One (tag, weight) pair produced while aggregating. Never stored."""

    tag_name: str
    weight: float


@dataclass
class TopItemTags:
    """Top tags of the user's #1 artist, album and track."""

    artist_tags: list[str] = field(default_factory=list)
    album_tags: list[str] = field(default_factory=list)
    track_tags: list[str] = field(default_factory=list)


__all__ = [
    "Entity",
    "EntityType",
    "Tag",
    "Token",
    "TopItemTags",
    "WeightedContribution",
]
