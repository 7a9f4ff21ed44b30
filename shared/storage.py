"""Durable key-value storage backed by JSON files.

Each key is stored as its own JSON file (e.g. "favorites.json") under a
data directory. Values are any JSON-serialisable structure. Writes go to a
temporary file first and are then moved into place, so a reader never sees
a half-written key.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


class PersistenceError(Exception):
    """A stored key could not be read or written."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key


def _safe_key(key: str) -> str:
    safe = "".join(c for c in key if c.isalnum() or c in "-_")
    if not safe:
        raise ValueError(f"Invalid storage key: {key!r}")
    return safe


class JsonStorage:
    """Get/set/remove JSON blobs by string key inside *directory*."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{_safe_key(key)}.json"

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def get(self, key: str) -> Any | None:
        """Load a key's value. Returns None if the key was never written.

        Raises PersistenceError when the file exists but cannot be read or
        does not contain valid JSON.
        """
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise PersistenceError(key, f"corrupted data ({exc})") from exc
        except OSError as exc:
            raise PersistenceError(key, f"read failed ({exc})") from exc

    def set(self, key: str, value: Any) -> None:
        """Write a key's value. Creates the directory if needed."""
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(value, indent=2, ensure_ascii=False), encoding="utf-8")
            tmp.replace(path)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(key, f"write failed ({exc})") from exc

    def remove(self, key: str) -> bool:
        """Delete a key. Returns True if it existed."""
        path = self._path(key)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as exc:
            raise PersistenceError(key, f"remove failed ({exc})") from exc
        return True

    def keys(self) -> list[str]:
        """Return all stored keys, sorted."""
        if not self.directory.exists():
            return []
        return sorted(p.stem for p in self.directory.glob("*.json"))
