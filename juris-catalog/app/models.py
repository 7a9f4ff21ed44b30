"""Catalog data model for the Juris Catalog tool.

Every record is one of three dataclasses sharing the CatalogItem union:
case-law entries (súmulas, OJs, precedentes normativos) rebuilt from the
dataset on each load, and user-uploaded bulletins and binding theses that
persist between sessions.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, ClassVar, Union


# ---------------------------------------------------------------------------
# Kinds and source groups
# ---------------------------------------------------------------------------


class ItemKind(str, Enum):
    SUMULA = "sumula"
    OJ = "oj"
    PRECEDENTE = "precedente"
    INFORMATIVO = "informativo"
    IRR = "irr"
    IRDR = "irdr"
    IAC = "iac"


THESIS_KINDS: frozenset[str] = frozenset({ItemKind.IRR.value, ItemKind.IRDR.value, ItemKind.IAC.value})
CASE_LAW_KINDS: tuple[str, ...] = (ItemKind.SUMULA.value, ItemKind.OJ.value, ItemKind.PRECEDENTE.value)


class SourceGroup(str, Enum):
    CASE_LAW = "jurisprudencia"
    BULLETIN = "informativo"
    THESIS = "tese"


KIND_LABELS: dict[str, str] = {
    "sumula": "Súmula",
    "oj": "OJ",
    "precedente": "Precedente Normativo",
    "informativo": "Informativo",
    "irr": "IRR",
    "irdr": "IRDR",
    "iac": "IAC",
}


def kind_tag(kind: str | Enum) -> str:
    """Plain string tag for a kind given as an ItemKind member or a string."""
    if isinstance(kind, Enum):
        return str(kind.value)
    return str(kind)


def kind_label(kind: str) -> str:
    """Display label for a kind tag; unknown tags display as themselves."""
    tag = kind_tag(kind)
    return KIND_LABELS.get(tag, tag)


def parse_kind(raw: Any, default: str) -> str:
    """Return the ItemKind value for *raw*, the raw tag if unknown, or *default*."""
    if raw is None or raw == "":
        return default
    text = kind_tag(raw).strip().lower()
    try:
        return ItemKind(text).value
    except ValueError:
        return text


_SBDI_RE = re.compile(r"SBDI-?([12])(?!\d)")


def normalize_organ(name: str | None) -> str | None:
    """Uppercase an organ name, turn '_' into '-', and split SBDI1/SBDI2.

    >>> normalize_organ("sbdi1")
    'SBDI-1'
    >>> normalize_organ("sbdi_1_transitoria")
    'SBDI-1-TRANSITORIA'
    """
    if name is None:
        return None
    organ = str(name).strip().upper().replace("_", "-")
    if not organ:
        return None
    return _SBDI_RE.sub(r"SBDI-\1", organ)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class _Record:
    """Behaviour shared by every catalog record."""

    source_group: ClassVar[SourceGroup]

    @property
    def label(self) -> str:
        return kind_label(self.kind)  # type: ignore[attr-defined]

    @property
    def is_case_law(self) -> bool:
        return self.source_group is SourceGroup.CASE_LAW

    def searchable_parts(self) -> list[str]:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)  # type: ignore[call-overload]


@dataclass
class CaseLawItem(_Record):
    """A súmula, OJ or precedente normativo from the dataset."""

    id: str
    kind: str
    number: str
    title: str = ""
    full_text: str = ""
    organ: str | None = None
    revoked: bool = False
    revocation_note: str | None = None

    source_group: ClassVar[SourceGroup] = SourceGroup.CASE_LAW

    def searchable_parts(self) -> list[str]:
        return [self.number, self.title, self.full_text]


@dataclass
class BulletinItem(_Record):
    """An uploaded reference document, searchable through its extracted text."""

    id: str
    name: str
    uploaded_at: str
    kind: str = ItemKind.INFORMATIVO.value
    number: str | None = None
    title: str = ""
    size: str = ""
    extracted_text: str | None = None
    revoked: bool = False

    source_group: ClassVar[SourceGroup] = SourceGroup.BULLETIN

    def searchable_parts(self) -> list[str]:
        return [self.number or "", self.title, self.name, self.extracted_text or ""]


@dataclass
class ThesisItem(_Record):
    """An uploaded binding thesis (IRR, IRDR or IAC), keyed by its theme."""

    id: str
    kind: str
    name: str
    uploaded_at: str
    theme: str | None = None
    representative_case: str | None = None
    title: str = ""
    size: str = ""
    extracted_text: str | None = None
    revoked: bool = False

    source_group: ClassVar[SourceGroup] = SourceGroup.THESIS

    def searchable_parts(self) -> list[str]:
        return [
            self.theme or "",
            self.title,
            self.name,
            self.representative_case or "",
            self.extracted_text or "",
        ]


CatalogItem = Union[CaseLawItem, BulletinItem, ThesisItem]


def item_number(item: CatalogItem) -> str | None:
    """The natural key shown next to the label: number, theme, or None."""
    if isinstance(item, ThesisItem):
        return item.theme
    return item.number


def display_name(item: CatalogItem) -> str:
    """Heading text such as 'Súmula 331' or 'IRR 12 - arquivo.pdf'."""
    key = item_number(item)
    if isinstance(item, CaseLawItem):
        return f"{item.label} {key}".strip()
    parts = [item.label]
    if key:
        parts.append(key)
    head = " ".join(parts)
    return f"{head} - {item.title or item.name}"


def format_size(num_bytes: int) -> str:
    """Human-readable file size: 0 -> '0 Bytes', 2048 -> '2 KB', 1536 -> '1.5 KB'."""
    if num_bytes <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    size = float(num_bytes)
    unit = 0
    while size >= 1024 and unit < len(units) - 1:
        size /= 1024
        unit += 1
    return f"{round(size, 2):g} {units[unit]}"
