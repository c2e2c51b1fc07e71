"""Key-value stores backing the Spotify token cache.

Hey future me - the token cache only needs get/set/delete of strings. InMemoryKeyValueStore
is the default (token lives as long as the process). JsonFileKeyValueStore keeps it across
restarts in a single JSON file - useful for CLIs/notebooks that start often and would
otherwise burn a token exchange every run.
"""

import json
import logging
from pathlib import Path

from scrobblestats.domain.exceptions import ConfigurationError
from scrobblestats.domain.ports import IKeyValueStore

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore(IKeyValueStore):
    """Dict-backed store, process lifetime only."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore(IKeyValueStore):
    """Store persisted as one flat JSON object on disk.

    Writes go to a sibling temp file first and are then renamed over the target, so a crash
    mid-write never leaves a truncated file behind. A corrupt or unreadable file is treated
    as empty (logged) - losing a cached token only costs one extra exchange.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigurationError(
                f"Unable to create directory for key-value store '{self.path.parent}': {exc}"
            ) from exc
        self._data = self._load()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable key-value store %s: %s", self.path, exc)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Ignoring key-value store %s: not a JSON object", self.path)
            return {}
        return {str(key): str(value) for key, value in raw.items()}

    def _flush(self) -> None:
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        tmp_path.write_text(json.dumps(self._data, sort_keys=True), encoding="utf-8")
        tmp_path.replace(self.path)

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    def delete(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()
