"""Catalog context: the single owner of loaded items and personal data.

The dashboard creates one CatalogContext at startup (``CatalogContext.init``)
and passes it around; nothing in the tool keeps module-level state. The
context merges the dataset with the user's uploads, answers searches, and
keeps the item map and the personal store consistent when documents are
added or removed.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import sys as _sys
from pathlib import Path
_sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared.storage import JsonStorage

from app.config import Settings, get_settings
from app.dataset import load_payload, merge
from app.errors import DatasetUnavailableError, MalformedDatasetError, MissingItemError
from app.extraction import extract_text, is_supported
from app.identity import assign_id, new_upload_key
from app.models import (
    THESIS_KINDS,
    BulletinItem,
    CatalogItem,
    ItemKind,
    SourceGroup,
    ThesisItem,
    format_size,
    parse_kind,
)
from app.search import SearchFilters, query
from app.stats import CatalogStats, compute_stats, usage_summary
from app.stores import UserDataStore

logger = logging.getLogger(__name__)


class CatalogContext:
    """Loaded catalog items plus the personal data store."""

    def __init__(
        self,
        store: UserDataStore,
        dataset_source: str | None = None,
        fetch_timeout: float = 30.0,
    ) -> None:
        self.store = store
        self.dataset_source = dataset_source
        self.fetch_timeout = fetch_timeout
        self._payload: dict[str, Any] = {}
        self._items: dict[str, CatalogItem] = {}
        self.dataset_error: str | None = None

    @classmethod
    def init(cls, settings: Settings | None = None) -> CatalogContext:
        """Open the store under ``settings.data_dir`` and load the dataset."""
        settings = settings or get_settings()
        store = UserDataStore(JsonStorage(settings.data_dir))
        store.load()
        context = cls(store, settings.dataset_source, settings.fetch_timeout)
        context.load_dataset()
        return context

    # -- Items --------------------------------------------------------------

    @property
    def items(self) -> list[CatalogItem]:
        return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def get(self, item_id: str) -> CatalogItem:
        """Look up an item by id.

        Raises:
            MissingItemError: no item has this id.
        """
        try:
            return self._items[item_id]
        except KeyError:
            raise MissingItemError(item_id) from None

    def find(self, item_id: str) -> CatalogItem | None:
        return self._items.get(item_id)

    def _existing(self, ids: list[str], context: str) -> list[CatalogItem]:
        found: list[CatalogItem] = []
        for item_id in ids:
            item = self._items.get(item_id)
            if item is None:
                logger.info("Skipping missing item %s in %s", item_id, context)
                continue
            found.append(item)
        return found

    def favorite_items(self) -> list[CatalogItem]:
        """Favorites in the order they were added; ids no longer loaded are skipped."""
        return self._existing(self.store.favorites, "favorites")

    def related_items(self, item_id: str) -> list[CatalogItem]:
        return self._existing(self.store.get_correlations(item_id), f"correlations of {item_id}")

    # -- Loading ------------------------------------------------------------

    def apply_payload(self, payload: Any) -> None:
        """Merge *payload* with the stored uploads and swap in the result.

        Raises:
            MalformedDatasetError: *payload* is not a JSON object; the
                current items are left untouched.
        """
        items = merge(payload, self.store.bulletins, self.store.theses)
        self._payload = dict(payload)
        self._items = {item.id: item for item in items}

    def rebuild(self) -> None:
        """Re-merge the last good payload, picking up upload changes."""
        self.apply_payload(self._payload)

    def load_dataset(self, source: str | None = None) -> str | None:
        """Fetch and merge the dataset.

        Returns None on success, or an error message to show the user. On
        failure the previously loaded items stay in place.
        """
        location = source or self.dataset_source
        if not location:
            self.rebuild()
            return None
        try:
            payload = load_payload(location, timeout=self.fetch_timeout)
            self.apply_payload(payload)
        except (DatasetUnavailableError, MalformedDatasetError) as exc:
            logger.error("Dataset load failed: %s", exc)
            if not self._items:
                self.rebuild()
            self.dataset_error = str(exc)
            return self.dataset_error
        self.dataset_error = None
        logger.info("Loaded %d catalog items from %s", len(self._items), location)
        return None

    # -- Queries ------------------------------------------------------------

    def search(self, filters: SearchFilters | None = None) -> list[CatalogItem]:
        return query(
            self.items,
            filters,
            annotations=self.store.annotations,
            tags=self.store.tags,
        )

    def stats(self) -> CatalogStats:
        return compute_stats(self._items.values())

    def summary(self) -> dict[str, int]:
        return usage_summary(self._items.values(), self.store)

    # -- Correlations -------------------------------------------------------

    def link(self, id1: str, id2: str) -> bool:
        """Correlate two loaded items.

        Raises:
            MissingItemError: either id is not loaded.
            ValueError: both ids are the same.
        """
        self.get(id1)
        self.get(id2)
        return self.store.add_correlation(id1, id2)

    def unlink(self, id1: str, id2: str) -> bool:
        return self.store.remove_correlation(id1, id2)

    # -- Uploaded documents -------------------------------------------------

    def add_document(
        self,
        file_name: str,
        data: bytes,
        group: SourceGroup | str,
        *,
        kind: str | None = None,
        theme: str | None = None,
        representative_case: str | None = None,
        title: str = "",
    ) -> CatalogItem:
        """Store an uploaded bulletin or thesis and add it to the catalog.

        Text is extracted for search; if extraction fails the document is
        still added, with ``extracted_text`` set to None.

        Raises:
            ValueError: unsupported file type, unknown group, or a thesis
                kind other than IRR/IRDR/IAC.
        """
        if not is_supported(file_name):
            raise ValueError(f"Only PDF or TXT files are supported: {file_name}")
        group = SourceGroup(group)
        uploaded_at = datetime.now().isoformat(timespec="seconds")
        text = extract_text(file_name, data)
        size = format_size(len(data))

        if group is SourceGroup.BULLETIN:
            item: CatalogItem = BulletinItem(
                id=assign_id(ItemKind.INFORMATIVO, new_upload_key()),
                name=file_name,
                uploaded_at=uploaded_at,
                title=title,
                size=size,
                extracted_text=text,
            )
            save = self.store.add_bulletin
        elif group is SourceGroup.THESIS:
            thesis_kind = parse_kind(kind, ItemKind.IRR.value)
            if thesis_kind not in THESIS_KINDS:
                raise ValueError(f"Unknown thesis kind: {kind}")
            theme = (theme or "").strip() or None
            item_id = assign_id(thesis_kind, theme if theme else new_upload_key())
            if item_id in self._items:
                item_id = assign_id(thesis_kind, f"{theme}{new_upload_key()}")
            item = ThesisItem(
                id=item_id,
                kind=thesis_kind,
                name=file_name,
                uploaded_at=uploaded_at,
                theme=theme,
                representative_case=(representative_case or "").strip() or None,
                title=title,
                size=size,
                extracted_text=text,
            )
            save = self.store.add_thesis
        else:
            raise ValueError("Case-law items come from the dataset and cannot be uploaded")

        try:
            save(item.to_dict())
        finally:
            self.rebuild()
        logger.info("Added %s %s", group.value, item.id)
        return self._items[item.id]

    def remove_document(self, item_id: str) -> None:
        """Delete an uploaded document and everything stored against it.

        Raises:
            MissingItemError: no item has this id.
            ValueError: the item is case law, which cannot be deleted.
        """
        item = self.get(item_id)
        if item.is_case_law:
            raise ValueError(f"Case-law items cannot be removed: {item_id}")
        del self._items[item_id]
        try:
            self.store.remove_uploaded(item_id)
        finally:
            self.store.remove_all_for(item_id)
        logger.info("Removed %s", item_id)

    # -- Bulk personal data -------------------------------------------------

    def export_backup(self) -> dict[str, Any]:
        return self.store.export_backup()

    def import_backup(self, data: Any) -> list[str]:
        try:
            return self.store.import_backup(data)
        finally:
            self.rebuild()

    def reset(self) -> None:
        """Erase all personal data and uploads; keep the dataset items."""
        try:
            self.store.clear()
        finally:
            self.rebuild()
