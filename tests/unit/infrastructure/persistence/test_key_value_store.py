"""Tests for key-value stores."""

import json
from pathlib import Path

import pytest

from scrobblestats.infrastructure.persistence import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
)


class TestInMemoryKeyValueStore:
    """Test dict-backed store."""

    def test_get_set_delete(self) -> None:
        """Test basic operations."""
        store = InMemoryKeyValueStore({"a": "1"})
        assert store.get("a") == "1"
        assert store.get("missing") is None

        store.set("b", "2")
        store.delete("a")
        store.delete("never-there")

        assert store.get("a") is None
        assert store.get("b") == "2"


class TestJsonFileKeyValueStore:
    """Test file-backed store."""

    def test_persists_across_instances(self, tmp_path: Path) -> None:
        """Test values survive a new store instance."""
        path = tmp_path / "state" / "tokens.json"

        JsonFileKeyValueStore(path).set("spotify_access_token", "abc")

        assert JsonFileKeyValueStore(path).get("spotify_access_token") == "abc"
        assert json.loads(path.read_text()) == {"spotify_access_token": "abc"}

    def test_delete_flushes(self, tmp_path: Path) -> None:
        """Test deletes are written to disk."""
        path = tmp_path / "tokens.json"
        store = JsonFileKeyValueStore(path)
        store.set("k", "v")
        store.delete("k")

        assert json.loads(path.read_text()) == {}

    @pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
    def test_corrupt_file_is_treated_as_empty(
        self, tmp_path: Path, content: str
    ) -> None:
        """Test unreadable content does not raise."""
        path = tmp_path / "tokens.json"
        path.write_text(content)

        store = JsonFileKeyValueStore(path)

        assert store.get("anything") is None
        store.set("k", "v")
        assert json.loads(path.read_text()) == {"k": "v"}

    def test_no_temp_file_left_behind(self, tmp_path: Path) -> None:
        """Test atomic write cleans up its temp file."""
        path = tmp_path / "tokens.json"
        JsonFileKeyValueStore(path).set("k", "v")

        assert sorted(p.name for p in tmp_path.iterdir()) == ["tokens.json"]
