"""Stable identifiers for catalog records.

An id is derived only from the record's kind and natural key, so favorites,
notes, tags and correlations stored against it stay valid every time the
dataset is reloaded.
"""

from __future__ import annotations

import re
import time
import uuid
import warnings
from typing import Any

from app.errors import UnknownKindWarning
from app.models import THESIS_KINDS, kind_tag

_PREFIXES: dict[str, str] = {
    "sumula": "sumula",
    "oj": "oj",
    "precedente": "precedente",
    "informativo": "informativo",
}

# Thesis ids use "tese-" (hyphen). Existing stored ids depend on it.
_THESIS_TAGS = THESIS_KINDS | {"tese"}

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def clean_key(natural_key: Any) -> str:
    """Stringify a natural key and keep only ASCII letters and digits."""
    if natural_key is None:
        return ""
    return _NON_ALNUM.sub("", str(natural_key))


def assign_id(kind: str, natural_key: Any) -> str:
    """Return the id for a record of *kind* with *natural_key*.

    >>> assign_id("sumula", 331)
    'sumula_331'
    >>> assign_id("irr", "Tema 7")
    'tese-Tema7'
    """
    tag = kind_tag(kind)
    key = clean_key(natural_key)
    if tag in _THESIS_TAGS:
        return f"tese-{key}"
    prefix = _PREFIXES.get(tag)
    if prefix is None:
        warnings.warn(
            f"Unknown item kind {tag!r}; using generic id prefix",
            UnknownKindWarning,
            stacklevel=2,
        )
        prefix = tag
    return f"{prefix}_{key}"


def new_upload_key() -> str:
    """Natural key for an upload with no stable key: ms timestamp + random suffix."""
    return f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
