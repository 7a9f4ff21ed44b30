"""Personal data for the Juris Catalog tool: favorites, notes, tags, links.

Everything here is keyed by item id and survives dataset reloads. Each
collection lives under its own storage key, so a corrupted file only resets
that collection. Every mutating method updates memory and then writes the
affected key before returning; if the write fails, PersistenceError is raised
and the in-memory change stays visible for the rest of the session.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, ValidationError

import sys as _sys
from pathlib import Path
_sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared.storage import JsonStorage, PersistenceError

from app.dataset import bulletin_from_record, thesis_from_record

logger = logging.getLogger(__name__)

FAVORITES = "favorites"
ANNOTATIONS = "annotations"
TAGS = "tags"
CORRELATIONS = "correlations"
BULLETINS = "bulletins"
THESES = "theses"

STORAGE_KEYS: tuple[str, ...] = (FAVORITES, ANNOTATIONS, TAGS, CORRELATIONS, BULLETINS, THESES)


# ---------------------------------------------------------------------------
# Shape checks and cleanup for loaded data
# ---------------------------------------------------------------------------


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def _is_text_map(value: Any) -> bool:
    return isinstance(value, dict) and all(isinstance(v, str) for v in value.values())


def _is_list_map(value: Any) -> bool:
    return isinstance(value, dict) and all(_is_str_list(v) for v in value.values())


def _is_record_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, dict) for v in value)


_VALIDATORS = {
    FAVORITES: _is_str_list,
    ANNOTATIONS: _is_text_map,
    TAGS: _is_list_map,
    CORRELATIONS: _is_list_map,
    BULLETINS: _is_record_list,
    THESES: _is_record_list,
}


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def _clean_annotations(raw: dict[str, str]) -> dict[str, str]:
    return {k: v.strip() for k, v in raw.items() if v.strip()}


def _clean_tags(raw: dict[str, list[str]]) -> dict[str, list[str]]:
    cleaned: dict[str, list[str]] = {}
    for item_id, tags in raw.items():
        kept = _unique([t.strip() for t in tags if t.strip()])
        if kept:
            cleaned[item_id] = kept
    return cleaned


def _symmetric(raw: dict[str, list[str]]) -> dict[str, list[str]]:
    """Rebuild a correlation map so every edge exists on both sides."""
    graph: dict[str, list[str]] = {}
    for item_id, related in raw.items():
        for other in related:
            if other == item_id:
                continue
            graph.setdefault(item_id, [])
            graph.setdefault(other, [])
            if other not in graph[item_id]:
                graph[item_id].append(other)
            if item_id not in graph[other]:
                graph[other].append(item_id)
    return graph



def _record_id(record: dict[str, Any]) -> str:
    return str(record.get("id") or "").strip()


def _fill_upload_ids(bulletins: list[dict[str, Any]], theses: list[dict[str, Any]]) -> list[str]:
    """Give id-less upload records the id the merger would compute, kept unique.

    Returns the storage keys whose records changed.
    """
    taken = {_record_id(r) for r in bulletins + theses if _record_id(r)}
    changed: list[str] = []
    for key, records, build in (
        (BULLETINS, bulletins, bulletin_from_record),
        (THESES, theses, thesis_from_record),
    ):
        for record in records:
            if _record_id(record):
                continue
            base = build(record).id
            item_id, suffix = base, 2
            while item_id in taken:
                item_id = f"{base}_{suffix}"
                suffix += 1
            record["id"] = item_id
            taken.add(item_id)
            if key not in changed:
                changed.append(key)
    return changed

# ---------------------------------------------------------------------------
# Backup bundle
# ---------------------------------------------------------------------------


class BackupBundle(BaseModel):
    """Exported personal data. Accepts the legacy Portuguese key names too."""

    favorites: list[str] | None = Field(None, validation_alias=AliasChoices("favorites", "favoritos"))
    annotations: dict[str, str] | None = Field(None, validation_alias=AliasChoices("annotations", "anotacoes"))
    tags: dict[str, list[str]] | None = None
    correlations: dict[str, list[str]] | None = Field(
        None, validation_alias=AliasChoices("correlations", "correlacoes")
    )
    bulletins: list[dict[str, Any]] | None = Field(
        None, validation_alias=AliasChoices("bulletins", "informativos")
    )
    theses: list[dict[str, Any]] | None = Field(
        None, validation_alias=AliasChoices("theses", "tesesVinculantes")
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class UserDataStore:
    """Favorites, annotations, tags, correlations and uploaded documents."""

    def __init__(self, storage: JsonStorage) -> None:
        self.storage = storage
        self.load_errors: list[PersistenceError] = []
        self._favorites: list[str] = []
        self._annotations: dict[str, str] = {}
        self._tags: dict[str, list[str]] = {}
        self._correlations: dict[str, list[str]] = {}
        self._bulletins: list[dict[str, Any]] = []
        self._theses: list[dict[str, Any]] = []

    # -- Loading and saving -------------------------------------------------

    def _read(self, key: str) -> Any | None:
        try:
            value = self.storage.get(key)
        except PersistenceError as exc:
            logger.warning("Discarding stored %s: %s", key, exc)
            self.load_errors.append(exc)
            return None
        if value is not None and not _VALIDATORS[key](value):
            exc = PersistenceError(key, "unexpected data shape")
            logger.warning("Discarding stored %s: %s", key, exc)
            self.load_errors.append(exc)
            return None
        return value

    def load(self) -> list[PersistenceError]:
        """Load every collection; a bad key resets only that collection.

        Returns the errors met while loading (also kept in ``load_errors``).
        """
        self.load_errors = []
        self._favorites = _unique(self._read(FAVORITES) or [])
        self._annotations = _clean_annotations(self._read(ANNOTATIONS) or {})
        self._tags = _clean_tags(self._read(TAGS) or {})
        self._correlations = _symmetric(self._read(CORRELATIONS) or {})
        self._bulletins = list(self._read(BULLETINS) or [])
        self._theses = list(self._read(THESES) or [])
        filled = _fill_upload_ids(self._bulletins, self._theses)
        if filled:
            try:
                self._save(*filled)
            except PersistenceError as exc:
                logger.warning("Assigned upload ids could not be saved: %s", exc)
        return list(self.load_errors)

    def _snapshot(self, key: str) -> Any:
        return {
            FAVORITES: self._favorites,
            ANNOTATIONS: self._annotations,
            TAGS: self._tags,
            CORRELATIONS: self._correlations,
            BULLETINS: self._bulletins,
            THESES: self._theses,
        }[key]

    def _save(self, *keys: str) -> None:
        """Write each key; try them all, then raise the first failure."""
        first_error: PersistenceError | None = None
        for key in keys:
            try:
                self.storage.set(key, self._snapshot(key))
            except PersistenceError as exc:
                logger.error("Could not save %s: %s", key, exc)
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    # -- Read access --------------------------------------------------------

    @property
    def favorites(self) -> list[str]:
        return list(self._favorites)

    @property
    def annotations(self) -> dict[str, str]:
        return dict(self._annotations)

    @property
    def tags(self) -> dict[str, list[str]]:
        return {k: list(v) for k, v in self._tags.items()}

    @property
    def correlations(self) -> dict[str, list[str]]:
        return {k: list(v) for k, v in self._correlations.items()}

    @property
    def bulletins(self) -> list[dict[str, Any]]:
        return [dict(r) for r in self._bulletins]

    @property
    def theses(self) -> list[dict[str, Any]]:
        return [dict(r) for r in self._theses]

    # -- Favorites ----------------------------------------------------------

    def is_favorite(self, item_id: str) -> bool:
        return item_id in self._favorites

    def toggle_favorite(self, item_id: str) -> bool:
        """Add or remove a favorite. Returns True if it is now a favorite."""
        if item_id in self._favorites:
            self._favorites.remove(item_id)
            now_favorite = False
        else:
            self._favorites.append(item_id)
            now_favorite = True
        self._save(FAVORITES)
        return now_favorite

    # -- Annotations --------------------------------------------------------

    def get_annotation(self, item_id: str) -> str | None:
        return self._annotations.get(item_id)

    def set_annotation(self, item_id: str, text: str | None) -> None:
        """Store the trimmed note; blank text removes it."""
        cleaned = (text or "").strip()
        if cleaned:
            self._annotations[item_id] = cleaned
        elif item_id in self._annotations:
            del self._annotations[item_id]
        else:
            return
        self._save(ANNOTATIONS)

    # -- Tags ---------------------------------------------------------------

    def get_tags(self, item_id: str) -> list[str]:
        return list(self._tags.get(item_id, []))

    def add_tag(self, item_id: str, tag: str) -> bool:
        """Append a tag. Blank or already-present tags (exact match) are ignored."""
        cleaned = (tag or "").strip()
        if not cleaned or cleaned in self._tags.get(item_id, []):
            return False
        self._tags.setdefault(item_id, []).append(cleaned)
        self._save(TAGS)
        return True

    def remove_tag(self, item_id: str, tag: str) -> bool:
        current = self._tags.get(item_id)
        if not current or tag not in current:
            return False
        current.remove(tag)
        if not current:
            del self._tags[item_id]
        self._save(TAGS)
        return True

    # -- Correlations -------------------------------------------------------

    def get_correlations(self, item_id: str) -> list[str]:
        return list(self._correlations.get(item_id, []))

    def add_correlation(self, id1: str, id2: str) -> bool:
        """Link two items both ways. Returns False if they were already linked.

        Raises:
            ValueError: *id1* and *id2* are the same item.
        """
        if id1 == id2:
            raise ValueError(f"Cannot correlate an item with itself: {id1}")
        first = self._correlations.setdefault(id1, [])
        second = self._correlations.setdefault(id2, [])
        changed = False
        if id2 not in first:
            first.append(id2)
            changed = True
        if id1 not in second:
            second.append(id1)
            changed = True
        if changed:
            self._save(CORRELATIONS)
        return changed

    def _unlink(self, owner: str, target: str) -> bool:
        related = self._correlations.get(owner)
        if not related or target not in related:
            return False
        related.remove(target)
        if not related:
            del self._correlations[owner]
        return True

    def remove_correlation(self, id1: str, id2: str) -> bool:
        changed = self._unlink(id1, id2)
        changed = self._unlink(id2, id1) or changed
        if changed:
            self._save(CORRELATIONS)
        return changed

    # -- Uploaded documents -------------------------------------------------

    def add_bulletin(self, record: dict[str, Any]) -> None:
        self._bulletins.append(dict(record))
        self._save(BULLETINS)

    def add_thesis(self, record: dict[str, Any]) -> None:
        self._theses.append(dict(record))
        self._save(THESES)

    def remove_uploaded(self, item_id: str) -> bool:
        """Drop an uploaded bulletin or thesis record by id."""
        changed: list[str] = []
        remaining = [r for r in self._bulletins if _record_id(r) != item_id]
        if len(remaining) != len(self._bulletins):
            self._bulletins = remaining
            changed.append(BULLETINS)
        remaining = [r for r in self._theses if _record_id(r) != item_id]
        if len(remaining) != len(self._theses):
            self._theses = remaining
            changed.append(THESES)
        if changed:
            self._save(*changed)
        return bool(changed)

    # -- Cascade and bulk operations ----------------------------------------

    def remove_all_for(self, item_id: str) -> None:
        """Forget an item: its favorite, note, tags and every correlation edge."""
        changed: list[str] = []
        if item_id in self._favorites:
            self._favorites = [f for f in self._favorites if f != item_id]
            changed.append(FAVORITES)
        if self._annotations.pop(item_id, None) is not None:
            changed.append(ANNOTATIONS)
        if self._tags.pop(item_id, None) is not None:
            changed.append(TAGS)

        touched = self._correlations.pop(item_id, None) is not None
        for owner in list(self._correlations):
            touched = self._unlink(owner, item_id) or touched
        if touched:
            changed.append(CORRELATIONS)

        if changed:
            self._save(*changed)

    def export_backup(self) -> dict[str, Any]:
        return BackupBundle(
            favorites=self.favorites,
            annotations=self.annotations,
            tags=self.tags,
            correlations=self.correlations,
            bulletins=self.bulletins,
            theses=self.theses,
        ).model_dump()

    def import_backup(self, data: Any) -> list[str]:
        """Replace the collections present in *data*. Returns the keys replaced.

        Raises:
            ValueError: *data* is not a valid backup.
        """
        try:
            bundle = BackupBundle.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid backup: {exc}") from exc

        replaced: list[str] = []
        if bundle.favorites is not None:
            self._favorites = _unique(bundle.favorites)
            replaced.append(FAVORITES)
        if bundle.annotations is not None:
            self._annotations = _clean_annotations(bundle.annotations)
            replaced.append(ANNOTATIONS)
        if bundle.tags is not None:
            self._tags = _clean_tags(bundle.tags)
            replaced.append(TAGS)
        if bundle.correlations is not None:
            self._correlations = _symmetric(bundle.correlations)
            replaced.append(CORRELATIONS)
        if bundle.bulletins is not None:
            self._bulletins = [dict(r) for r in bundle.bulletins]
            replaced.append(BULLETINS)
        if bundle.theses is not None:
            self._theses = [dict(r) for r in bundle.theses]
            replaced.append(THESES)
        _fill_upload_ids(self._bulletins, self._theses)
        if replaced:
            self._save(*replaced)
        return replaced

    def clear(self) -> None:
        """Erase all personal data, in memory and on disk."""
        self._favorites = []
        self._annotations = {}
        self._tags = {}
        self._correlations = {}
        self._bulletins = []
        self._theses = []
        first_error: PersistenceError | None = None
        for key in STORAGE_KEYS:
            try:
                self.storage.remove(key)
            except PersistenceError as exc:
                logger.error("Could not remove %s: %s", key, exc)
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error
