"""Normalisers for Last.fm's inconsistent JSON shapes.

Hey future me - Last.fm's JSON is a direct XML translation, so ANY list field becomes a
single object when it has exactly one element, disappears when it has none, and sometimes
arrives as a plain string array. Image arrays are even worse (strings, {#text}, {content}).

RULE: nothing outside this module touches raw Last.fm payloads. Everything gets mapped into
Entity / Tag / LastfmImage / plain str lists here, and the core services only ever see
those canonical types.

Functions that can't find what they need raise UpstreamFormatError where the caller has a
meaningful fallback (extract_corrected_name), and return empty results otherwise.
"""

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

from scrobblestats.domain.entities import Entity, EntityType, Tag
from scrobblestats.domain.exceptions import UpstreamFormatError
from scrobblestats.domain.value_objects.lastfm_image import (
    LASTFM_SIZE_PRIORITY,
    LastfmImage,
)

LASTFM_TAG_BASE_URL = "https://www.last.fm/tag/"

# Characters encodeURIComponent leaves alone (on top of alphanumerics and "-_.").
_URI_COMPONENT_SAFE = "!~*'()"


def as_list(value: Any) -> list[Any]:
    """Turn Last.fm's "object if one, list if many, missing if none" into a list."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def tag_url(name: str) -> str:
    """Build the deterministic Last.fm tag page URL for a tag name."""
    return f"{LASTFM_TAG_BASE_URL}{quote(name, safe=_URI_COMPONENT_SAFE)}"


def normalize_tag_name(raw: Any) -> str | None:
    """Lowercase + trim a single tag (string or {"name": ...}). None if unusable."""
    if isinstance(raw, str):
        name = raw
    elif isinstance(raw, Mapping):
        name = raw.get("name")
        if not isinstance(name, str):
            return None
    else:
        return None

    name = name.strip().lower()
    return name or None


def normalize_tag_names(container: Any) -> list[str]:
    """Flatten a tag container into lowercase, trimmed, non-empty names.

    Accepts every shape we've seen:
    - None / "" (no tags)
    - {"tag": [...]} or {"tag": {...}} (the usual wrapper)
    - a single tag object {"name": "rock", ...}
    - a list of tag objects or plain strings

    Order is preserved, duplicates inside one entity are kept once.
    """
    if not container:
        return []

    if isinstance(container, Mapping):
        if "tag" in container:
            raw_tags = as_list(container.get("tag"))
        elif "name" in container:
            raw_tags = [container]
        else:
            return []
    else:
        raw_tags = as_list(container)

    names: list[str] = []
    for raw in raw_tags:
        name = normalize_tag_name(raw)
        if name is not None and name not in names:
            names.append(name)
    return names


def normalize_top_tags(payload: Mapping[str, Any] | None) -> list[Tag]:
    """Map a user.getTopTags response to Tag objects.

    Missing count defaults to "0", missing url to the derived tag URL. Entries without a
    usable name are dropped. Returns [] when the payload has no toptags.tag at all.
    """
    if not payload:
        return []
    toptags = payload.get("toptags")
    if not isinstance(toptags, Mapping):
        return []

    tags: list[Tag] = []
    seen: set[str] = set()
    for raw in as_list(toptags.get("tag")):
        name = normalize_tag_name(raw)
        if name is None or name in seen:
            continue
        seen.add(name)
        count = raw.get("count") if isinstance(raw, Mapping) else None
        url = raw.get("url") if isinstance(raw, Mapping) else None
        tags.append(
            Tag(
                name=name,
                count=str(count) if count not in (None, "") else "0",
                url=url or tag_url(name),
            )
        )
    return tags


def normalize_images(raw_images: Any) -> list[LastfmImage]:
    """Map a Last.fm image array (any mix of shapes) to LastfmImage entries.

    For objects, "content" wins over "#text" (XML-converted payloads put the URL there).
    """
    images: list[LastfmImage] = []
    for raw in as_list(raw_images):
        if isinstance(raw, str):
            images.append(LastfmImage(url=raw.strip()))
        elif isinstance(raw, Mapping):
            text = raw.get("content") or raw.get("#text") or ""
            size = raw.get("size")
            images.append(
                LastfmImage(
                    url=text.strip() if isinstance(text, str) else "",
                    size=size if isinstance(size, str) and size else None,
                )
            )
    return images


def best_lastfm_image(images: list[LastfmImage]) -> str | None:
    """Pick the best URL: extralarge > large > medium > small, then any entry with a URL.

    Size priority beats array order - [{small}, {extralarge: X}] gives X.
    """
    for size in LASTFM_SIZE_PRIORITY:
        for image in images:
            if image.size == size and image.has_url:
                return image.url

    for image in images:
        if image.has_url:
            return image.url
    return None


def extract_corrected_name(payload: Mapping[str, Any] | None) -> str | None:
    """Pull artist.name out of an artist.getCorrection response.

    Three shapes seen in the wild:
    - {"corrections": {"correction": [{"artist": {...}}]}}   (array)
    - {"corrections": {"correction": {"artist": {...}}}}     (singular)
    - {"corrections": {"artist": {...}}}                     (bare artist)

    Returns None when there is no correction at all (Last.fm sends an empty
    "corrections" string / no field in that case).

    Raises:
        UpstreamFormatError: corrections present but no artist name inside
    """
    if not payload:
        return None
    corrections = payload.get("corrections")
    if not isinstance(corrections, Mapping):
        return None

    artist: Any = None
    if "correction" in corrections:
        entries = as_list(corrections.get("correction"))
        if not entries:
            return None
        first = entries[0]
        artist = first.get("artist") if isinstance(first, Mapping) else None
    elif "artist" in corrections:
        artist = corrections.get("artist")
    else:
        return None

    name = artist.get("name") if isinstance(artist, Mapping) else None
    if not isinstance(name, str) or not name.strip():
        raise UpstreamFormatError(
            "Correction entry without artist name",
            payload_path="corrections.correction.artist.name",
        )
    return name.strip()


def _artist_name_of(raw_artist: Any) -> str | None:
    # Top lists use {"name": ...}, recent tracks / weekly charts use {"#text": ...}
    if isinstance(raw_artist, str):
        return raw_artist or None
    if isinstance(raw_artist, Mapping):
        name = raw_artist.get("name") or raw_artist.get("#text")
        return name if isinstance(name, str) and name else None
    return None


def _parse_playcount(raw: Any) -> int:
    try:
        return max(0, int(raw))
    except (TypeError, ValueError):
        return 0


_RANKED_LIST_KEYS: dict[EntityType, tuple[str, str]] = {
    EntityType.ARTIST: ("topartists", "artist"),
    EntityType.ALBUM: ("topalbums", "album"),
    EntityType.TRACK: ("toptracks", "track"),
}

_WEEKLY_LIST_KEYS: dict[EntityType, tuple[str, str]] = {
    EntityType.ARTIST: ("weeklyartistchart", "artist"),
    EntityType.ALBUM: ("weeklyalbumchart", "album"),
    EntityType.TRACK: ("weeklytrackchart", "track"),
}


def parse_ranked_entities(
    payload: Mapping[str, Any] | None,
    entity_type: EntityType,
    weekly: bool = False,
) -> list[Entity]:
    """Map a user.getTop* (or user.getWeekly*Chart) response to ranked entities.

    Rank is the 1-based position in the returned array - we do NOT trust
    @attr.rank because weekly charts omit it. Entries without a name are skipped
    (the rank of the following ones still reflects their array position).
    """
    if not payload:
        return []
    outer_key, inner_key = (_WEEKLY_LIST_KEYS if weekly else _RANKED_LIST_KEYS)[
        entity_type
    ]
    container = payload.get(outer_key)
    if not isinstance(container, Mapping):
        return []

    entities: list[Entity] = []
    for position, raw in enumerate(as_list(container.get(inner_key)), start=1):
        if not isinstance(raw, Mapping):
            continue
        name = raw.get("name")
        if not isinstance(name, str) or not name:
            continue
        entities.append(
            Entity(
                name=name,
                entity_type=entity_type,
                artist_name=(
                    None
                    if entity_type is EntityType.ARTIST
                    else _artist_name_of(raw.get("artist"))
                ),
                playcount=_parse_playcount(raw.get("playcount")),
                rank=position,
                images=normalize_images(raw.get("image")),
                url=raw.get("url") or "",
            )
        )
    return entities
