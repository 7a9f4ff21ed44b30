"""Accent- and case-insensitive text comparison."""

from __future__ import annotations

import unicodedata


def remove_accents(text: str | None) -> str:
    """Drop diacritical marks (NFD decomposition, combining marks removed)."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize(text: str | None) -> str:
    """Lowercase, strip accents and trim. None and "" both give ""."""
    if not text:
        return ""
    return remove_accents(str(text).lower()).strip()


def contains_normalized(haystack: str | None, needle: str | None) -> bool:
    """True if normalized *needle* occurs in normalized *haystack*.

    An empty needle or haystack never matches.
    """
    hay = normalize(haystack)
    pin = normalize(needle)
    if not hay or not pin:
        return False
    return pin in hay
