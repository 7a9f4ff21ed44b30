"""Tests for shared/storage.py: JSON-file key-value storage."""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from shared.storage import JsonStorage, PersistenceError


@pytest.fixture()
def storage(tmp_path):
    return JsonStorage(tmp_path / "store")


class TestJsonStorage:
    def test_get_missing_is_none(self, storage):
        assert storage.get("favorites") is None
        assert not storage.exists("favorites")

    def test_set_creates_directory_and_round_trips(self, storage):
        storage.set("annotations", {"sumula_1": "nota com acentuação"})
        assert storage.exists("annotations")
        assert storage.get("annotations") == {"sumula_1": "nota com acentuação"}

    def test_unicode_written_unescaped(self, storage):
        storage.set("tags", {"a": ["ação"]})
        assert "ação" in (storage.directory / "tags.json").read_text(encoding="utf-8")

    def test_no_temp_file_left(self, storage):
        storage.set("favorites", ["a"])
        assert [p.name for p in storage.directory.iterdir()] == ["favorites.json"]

    def test_corrupted_raises(self, storage):
        storage.directory.mkdir(parents=True)
        (storage.directory / "tags.json").write_text("{oops", encoding="utf-8")
        with pytest.raises(PersistenceError) as exc_info:
            storage.get("tags")
        assert exc_info.value.key == "tags"

    def test_unserializable_value_raises(self, storage):
        with pytest.raises(PersistenceError):
            storage.set("favorites", {object()})

    def test_write_os_error_raises(self, storage):
        with patch.object(Path, "write_text", side_effect=OSError("read-only")):
            with pytest.raises(PersistenceError):
                storage.set("favorites", [])

    def test_remove(self, storage):
        storage.set("favorites", ["a"])
        assert storage.remove("favorites") is True
        assert storage.remove("favorites") is False

    def test_keys_sorted(self, storage):
        assert storage.keys() == []
        storage.set("tags", {})
        storage.set("favorites", [])
        assert storage.keys() == ["favorites", "tags"]

    def test_unsafe_key_characters_dropped(self, storage):
        storage.set("../escape", 1)
        assert storage.keys() == ["escape"]

    def test_empty_key_rejected(self, storage):
        with pytest.raises(ValueError):
            storage.get("../")
