"""Compound filtering and free-text search over the merged catalog.

All filters are optional and combine with AND. Matching is accent- and
case-insensitive; result order is always the input order.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

from app.models import CatalogItem, ItemKind, ThesisItem, kind_label
from app.text import contains_normalized, normalize

ANY = "todos"
MIN_TOKEN_LENGTH = 3


class StatusFilter(str, Enum):
    ALL = "todos"
    ACTIVE = "vigentes"
    REVOKED = "canceladas"


class View(str, Enum):
    CASE_LAW = "jurisprudencia"
    FAVORITES = "favoritos"
    BULLETINS = "informativos"
    THESES = "teses"


@dataclass
class SearchFilters:
    """Filter settings coming from the search form.

    ``kind`` is a display label ("Súmula", "OJ", ...), the same value the
    kind dropdown shows. ``tags`` is a comma-separated list of required tags.
    """

    status: StatusFilter = StatusFilter.ALL
    kind: str = ANY
    organ: str = ANY
    number: str = ""
    tags: str = ""
    free_text: str = ""
    view: View = View.CASE_LAW


def _is_set(value: str | None) -> bool:
    return bool(value) and value.strip() != "" and value != ANY


def tokenize(free_text: str | None) -> list[str]:
    """Normalized search terms, ignoring words of two characters or fewer."""
    return [t for t in normalize(free_text).split() if len(t) >= MIN_TOKEN_LENGTH]


def required_tags(tag_filter: str | None) -> list[str]:
    """Split a comma-separated tag filter, dropping blanks."""
    if not tag_filter:
        return []
    return [t.strip() for t in tag_filter.split(",") if t.strip()]


def _candidates(items: Sequence[CatalogItem], filters: SearchFilters) -> list[CatalogItem]:
    # Outside the case-law view, a free-text search reaches uploaded documents too.
    if filters.view != View.CASE_LAW and (filters.free_text or "").strip():
        return list(items)
    return [item for item in items if item.is_case_law]


def _matches_status(item: CatalogItem, status: StatusFilter) -> bool:
    if status == StatusFilter.ACTIVE:
        return not item.revoked
    if status == StatusFilter.REVOKED:
        return item.revoked
    return True


def _matches_organ(item: CatalogItem, organ_filter: str) -> bool:
    if item.kind != ItemKind.OJ:
        return True
    organ = getattr(item, "organ", None)
    return bool(organ) and organ_filter.strip().upper() in organ


def _matches_tags(item_tags: Iterable[str], wanted: list[str]) -> bool:
    item_tags = list(item_tags)
    return all(any(contains_normalized(tag, w) for tag in item_tags) for w in wanted)


def _search_blob(item: CatalogItem, annotation: str | None) -> str:
    parts = item.searchable_parts()
    if annotation:
        parts.append(annotation)
    return normalize(" ".join(p for p in parts if p))


def query(
    items: Sequence[CatalogItem],
    filters: SearchFilters | None = None,
    annotations: Mapping[str, str] | None = None,
    tags: Mapping[str, list[str]] | None = None,
) -> list[CatalogItem]:
    """Return the items matching every active filter, in input order.

    Args:
        items: The merged catalog.
        filters: Filter settings; None means no restriction.
        annotations: Item id -> note text, searched by the free-text filter.
        tags: Item id -> tag list, used by the tag filter.
    """
    filters = filters or SearchFilters()
    annotations = annotations or {}
    tags = tags or {}

    terms = tokenize(filters.free_text)
    wanted_tags = required_tags(filters.tags)
    number = filters.number.strip() if filters.number else ""

    results: list[CatalogItem] = []
    for item in _candidates(items, filters):
        if not _matches_status(item, filters.status):
            continue
        if _is_set(filters.kind) and kind_label(item.kind) != filters.kind:
            continue
        if _is_set(filters.organ) and not _matches_organ(item, filters.organ):
            continue
        if number and getattr(item, "number", None) != number:
            continue
        if wanted_tags and not _matches_tags(tags.get(item.id, []), wanted_tags):
            continue
        if terms:
            blob = _search_blob(item, annotations.get(item.id))
            if not all(term in blob for term in terms):
                continue
        results.append(item)
    return results


def filter_theses(items: Iterable[CatalogItem], kind: str = ANY) -> list[ThesisItem]:
    """Uploaded theses, optionally restricted to one subkind ("irr", "irdr", "iac")."""
    theses = [item for item in items if isinstance(item, ThesisItem)]
    if not _is_set(kind):
        return theses
    return [t for t in theses if t.kind == kind.strip().lower()]
