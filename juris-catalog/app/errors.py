"""Error taxonomy for the Juris Catalog tool.

Library code raises these; the catalog context and the dashboard are the
boundaries that turn them into user-visible messages.
"""

from __future__ import annotations

import sys as _sys
from pathlib import Path

_sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared.storage import PersistenceError


class CatalogError(Exception):
    """Base class for catalog errors."""


class MalformedDatasetError(CatalogError, ValueError):
    """The dataset payload is not a well-formed object."""


class DatasetUnavailableError(CatalogError):
    """The dataset source could not be read."""


class MissingItemError(CatalogError, KeyError):
    """A lookup by id found no item (it no longer exists)."""

    def __init__(self, item_id: str) -> None:
        super().__init__(item_id)
        self.item_id = item_id

    def __str__(self) -> str:
        return f"Item not found: {self.item_id}"


class UnknownKindWarning(UserWarning):
    """An item kind has no known id prefix; a generic one was used."""


__all__ = [
    "CatalogError",
    "DatasetUnavailableError",
    "MalformedDatasetError",
    "MissingItemError",
    "PersistenceError",
    "UnknownKindWarning",
]
