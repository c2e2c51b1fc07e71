"""Session-scoped image URL cache."""

import asyncio
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from scrobblestats.domain.entities import EntityType


class ImageSource(IntEnum):
    """Where a cached URL came from. Higher value = higher priority."""

    PLACEHOLDER = 0
    LASTFM = 1
    CATALOG = 2


@dataclass(frozen=True)
class CachedImage:
    """Cached URL plus the source it came from."""

    url: str
    source: ImageSource


class ImageCache:
    """In-memory (entity_type, name) -> image URL cache.

    Listen up future me, this cache lives exactly as long as the session that owns it - no
    TTL, no persistence, re-fetched next session. The one rule: an entry is NEVER overwritten
    by a lower-priority source (a Spotify cover beats a Last.fm image beats a placeholder).
    Equal priority overwrites, so a fresh catalog hit replaces an older one.

    The _lock keeps concurrent resolve_images() fan-out from interleaving the
    read-compare-write in put().
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[EntityType, str], CachedImage] = {}
        self._lock = asyncio.Lock()

    async def get(self, entity_type: EntityType, name: str) -> CachedImage | None:
        """Return the cached entry for (entity_type, name), if any."""
        async with self._lock:
            return self._entries.get((entity_type, name))

    async def get_url(self, entity_type: EntityType, name: str) -> str | None:
        """Shortcut for get(...).url."""
        entry = await self.get(entity_type, name)
        return entry.url if entry else None

    async def put(
        self,
        entity_type: EntityType,
        name: str,
        url: str,
        source: ImageSource,
    ) -> bool:
        """Store url unless a higher-priority entry already exists.

        Returns:
            True if the entry was written, False if it was kept as-is
        """
        if not name or not url:
            return False
        key = (entity_type, name)
        async with self._lock:
            existing = self._entries.get(key)
            if existing is not None and existing.source > source:
                return False
            self._entries[key] = CachedImage(url=url, source=source)
            return True

    async def delete(self, entity_type: EntityType, name: str) -> bool:
        """Drop an entry. Returns True if it existed."""
        async with self._lock:
            return self._entries.pop((entity_type, name), None) is not None

    async def clear(self) -> None:
        """Forget everything (new session / user switch)."""
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    # Not locked - stats are for debugging, a slightly stale count is fine.
    def get_stats(self) -> dict[str, Any]:
        """Entry counts per source."""
        by_source = {source.name.lower(): 0 for source in ImageSource}
        for entry in self._entries.values():
            by_source[entry.source.name.lower()] += 1
        return {"total_entries": len(self._entries), **by_source}
