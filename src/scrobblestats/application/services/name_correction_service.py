"""Artist name canonicalisation via Last.fm's artist.getCorrection."""

import asyncio
import logging
from typing import Any

from scrobblestats.domain.exceptions import UpstreamFormatError
from scrobblestats.domain.ports import ILastfmClient
from scrobblestats.domain.value_objects.lastfm_payloads import extract_corrected_name

logger = logging.getLogger(__name__)


class NameCorrectionService:
    """Best-effort artist name correction with a per-session memo.

    Hey future me - this NEVER raises. A transport error, a weird payload or "no correction"
    all end up as "use the name you passed in". The memo maps original -> corrected for the
    whole session (including identity mappings, so we don't re-ask Last.fm about names it
    had nothing to say about). Transport failures are NOT memoized - next call retries.
    """

    def __init__(self, lastfm_client: ILastfmClient) -> None:
        self._lastfm = lastfm_client
        self._corrections: dict[str, str] = {}
        self._pending: dict[str, asyncio.Task[str | None]] = {}

    def cached_correction(self, name: str) -> str | None:
        """Corrected name if already known this session, else None. No network."""
        return self._corrections.get(name)

    @property
    def corrections(self) -> dict[str, str]:
        """Copy of the original -> corrected memo."""
        return dict(self._corrections)

    async def correct(self, name: str) -> str:
        """Return Last.fm's canonical spelling of an artist name (or name itself)."""
        if not name:
            return name
        known = self._corrections.get(name)
        if known is not None:
            return known

        # Same name requested by several concurrent lookups -> one request
        task = self._pending.get(name)
        if task is None:
            task = asyncio.ensure_future(self._fetch_correction(name))
            self._pending[name] = task
        try:
            corrected = await asyncio.shield(task)
        finally:
            if task.done() and self._pending.get(name) is task:
                del self._pending[name]

        if corrected is None:
            return name
        self._corrections[name] = corrected
        if corrected != name:
            logger.debug("Artist %r corrected to %r", name, corrected)
        return corrected

    async def _fetch_correction(self, name: str) -> str | None:
        """Corrected (or unchanged) name, or None on transport failure (not memoized)."""
        try:
            payload = await self._lastfm.get_artist_correction(name)
        except Exception as e:
            logger.warning("Artist correction for %r failed: %s", name, e)
            return None

        try:
            corrected = extract_corrected_name(payload)
        except UpstreamFormatError as e:
            logger.debug("Unusable correction payload for %r: %s", name, e.message)
            corrected = None
        return corrected or name

    async def get_artist_info_with_correction(self, name: str) -> dict[str, Any] | None:
        """Correct the name first, then fetch artist.getInfo with the canonical name.

        Raises:
            ExternalServiceError: artist.getInfo itself failed (correction never raises)
        """
        corrected = await self.correct(name)
        logger.debug(
            "Fetching artist info using %s name %r",
            "corrected" if corrected != name else "original",
            corrected,
        )
        return await self._lastfm.get_artist_info(corrected)
