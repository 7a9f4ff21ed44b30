"""Catalog counts for the dashboard header and the diagnostics panel."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from app.models import CatalogItem, SourceGroup

if TYPE_CHECKING:
    from app.stores import UserDataStore


@dataclass(frozen=True)
class CatalogStats:
    total: int
    active: int
    revoked: int


def compute_stats(items: Iterable[CatalogItem]) -> CatalogStats:
    """Count case-law items, split into active and revoked."""
    active = revoked = 0
    for item in items:
        if not item.is_case_law:
            continue
        if item.revoked:
            revoked += 1
        else:
            active += 1
    return CatalogStats(total=active + revoked, active=active, revoked=revoked)


def usage_summary(items: Iterable[CatalogItem], store: UserDataStore) -> dict[str, int]:
    """Item counts per source group plus how much personal data is stored."""
    by_group = {group: 0 for group in SourceGroup}
    revoked = 0
    for item in items:
        by_group[item.source_group] += 1
        if item.revoked:
            revoked += 1
    return {
        "items": sum(by_group.values()),
        "case_law": by_group[SourceGroup.CASE_LAW],
        "bulletins": by_group[SourceGroup.BULLETIN],
        "theses": by_group[SourceGroup.THESIS],
        "revoked": revoked,
        "favorites": len(store.favorites),
        "annotated": len(store.annotations),
        "tagged": len(store.tags),
        "correlated": len(store.correlations),
    }
