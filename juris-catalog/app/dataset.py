"""Dataset loading and merging for the Juris Catalog tool.

The dataset is a single JSON object shaped like::

    {
        "sumulas": [{"numero": 1, "titulo": "...", "texto": "...", "cancelada": false}],
        "ojs": {"sbdi1": [...], "sbdi2": [...], "tribunal_pleno": [...]},
        "precedentes_normativos": [...]
    }

``merge`` flattens it, together with the user's uploaded bulletins and
theses, into one list of uniquely identified CatalogItem records.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import requests

from app.errors import DatasetUnavailableError, MalformedDatasetError
from app.identity import assign_id
from app.models import (
    BulletinItem,
    CaseLawItem,
    CatalogItem,
    ItemKind,
    ThesisItem,
    normalize_organ,
    parse_kind,
)

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"true", "1", "sim", "yes"}


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _opt_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _pick(raw: Mapping[str, Any], *names: str) -> Any:
    """First present, non-None value among *names* (English name first, then legacy)."""
    for name in names:
        value = raw.get(name)
        if value is not None:
            return value
    return None


def _document_text(raw: Mapping[str, Any]) -> str | None:
    """Uploaded text; "conteudo" holding a data: URL is file content, not text."""
    for name in ("extracted_text", "texto", "conteudo"):
        value = _opt_text(raw.get(name))
        if value and not value.startswith("data:"):
            return value
    return None


def _records(entries: Iterable[Any], collection: str) -> list[Mapping[str, Any]]:
    records: list[Mapping[str, Any]] = []
    for position, entry in enumerate(entries):
        if isinstance(entry, Mapping):
            records.append(entry)
        else:
            logger.warning("Skipping non-object entry %d in %s", position, collection)
    return records


# ---------------------------------------------------------------------------
# Record builders
# ---------------------------------------------------------------------------


def _case_law_item(raw: Mapping[str, Any], default_kind: str, organ: str | None = None) -> CaseLawItem:
    kind = parse_kind(raw.get("tipo"), default_kind)
    number = _text(raw.get("numero")).strip()
    if organ is None:
        organ = normalize_organ(raw.get("orgao"))
    return CaseLawItem(
        id=assign_id(kind, number),
        kind=kind,
        number=number,
        title=_text(raw.get("titulo")),
        full_text=_text(raw.get("texto_completo") or raw.get("texto")),
        organ=organ,
        revoked=_flag(raw.get("cancelada")),
        revocation_note=_opt_text(raw.get("referencia")),
    )


def _bulletin_item(raw: Mapping[str, Any]) -> BulletinItem:
    number = _opt_text(_pick(raw, "number", "numero"))
    uploaded_at = _text(_pick(raw, "uploaded_at", "dataUpload"))
    item_id = _opt_text(raw.get("id"))
    if item_id is None:
        item_id = assign_id(ItemKind.INFORMATIVO, number if number is not None else uploaded_at)
    return BulletinItem(
        id=item_id,
        name=_text(_pick(raw, "name", "nome")),
        uploaded_at=uploaded_at,
        number=number,
        title=_text(_pick(raw, "title", "titulo")),
        size=_text(_pick(raw, "size", "tamanho")),
        extracted_text=_document_text(raw),
    )


def _thesis_item(raw: Mapping[str, Any]) -> ThesisItem:
    kind = parse_kind(_pick(raw, "kind", "tipo"), ItemKind.IRR.value)
    theme = _opt_text(_pick(raw, "theme", "tema"))
    uploaded_at = _text(_pick(raw, "uploaded_at", "dataUpload"))
    item_id = _opt_text(raw.get("id"))
    if item_id is None:
        item_id = assign_id(kind, theme if theme is not None else uploaded_at)
    return ThesisItem(
        id=item_id,
        kind=kind,
        name=_text(_pick(raw, "name", "nome")),
        uploaded_at=uploaded_at,
        theme=theme,
        representative_case=_opt_text(
            _pick(raw, "representative_case", "processoRepresentativo", "processo_representativo")
        ),
        title=_text(_pick(raw, "title", "titulo")),
        size=_text(_pick(raw, "size", "tamanho")),
        extracted_text=_document_text(raw),
    )


def bulletin_from_record(raw: Mapping[str, Any]) -> BulletinItem:
    """Rebuild a stored bulletin record."""
    return _bulletin_item(raw)


def thesis_from_record(raw: Mapping[str, Any]) -> ThesisItem:
    """Rebuild a stored thesis record."""
    return _thesis_item(raw)


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def _flatten_ojs(raw_ojs: Any) -> list[CaseLawItem]:
    """OJs arrive grouped by organ ({organ: [...]}) or as a flat list."""
    items: list[CaseLawItem] = []
    if isinstance(raw_ojs, Mapping):
        for group, entries in raw_ojs.items():
            if not isinstance(entries, list):
                logger.warning("Skipping OJ group %r: not a list", group)
                continue
            organ = normalize_organ(group)
            for raw in _records(entries, f"ojs.{group}"):
                items.append(_case_law_item(raw, ItemKind.OJ.value, organ=organ))
    else:
        for raw in _records(_as_list(raw_ojs), "ojs"):
            items.append(_case_law_item(raw, ItemKind.OJ.value))
    return items


def _ensure_unique_ids(items: list[CatalogItem]) -> None:
    seen: set[str] = set()
    for item in items:
        if item.id in seen:
            suffix = 2
            while f"{item.id}_{suffix}" in seen:
                suffix += 1
            renamed = f"{item.id}_{suffix}"
            logger.warning("Duplicate id %s; using %s", item.id, renamed)
            item.id = renamed
        seen.add(item.id)


def merge(
    raw_payload: Any,
    bulletins: Iterable[Any] | None = None,
    theses: Iterable[Any] | None = None,
) -> list[CatalogItem]:
    """Flatten a dataset payload plus uploaded documents into one item list.

    Order is súmulas, OJs, precedentes normativos, bulletins, theses; each
    category keeps its source order. Uploaded records that already carry an
    id keep it.

    Raises:
        MalformedDatasetError: *raw_payload* is not a JSON object.
    """
    if not isinstance(raw_payload, Mapping):
        raise MalformedDatasetError(
            f"Dataset must be a JSON object, got {type(raw_payload).__name__}"
        )

    precedentes = raw_payload.get("precedentes_normativos")
    if precedentes is None:
        precedentes = raw_payload.get("precedentes")

    items: list[CatalogItem] = []
    for raw in _records(_as_list(raw_payload.get("sumulas")), "sumulas"):
        items.append(_case_law_item(raw, ItemKind.SUMULA.value))
    items.extend(_flatten_ojs(raw_payload.get("ojs")))
    for raw in _records(_as_list(precedentes), "precedentes_normativos"):
        items.append(_case_law_item(raw, ItemKind.PRECEDENTE.value))
    for raw in _records(bulletins or [], "bulletins"):
        items.append(_bulletin_item(raw))
    for raw in _records(theses or [], "theses"):
        items.append(_thesis_item(raw))

    _ensure_unique_ids(items)
    return items


# ---------------------------------------------------------------------------
# Dataset source
# ---------------------------------------------------------------------------


def load_payload(source: str | Path, timeout: float = 30.0) -> dict[str, Any]:
    """Read the dataset JSON from a file path or an http(s) URL.

    Raises:
        DatasetUnavailableError: the source could not be read.
        MalformedDatasetError: the content is not a JSON object.
    """
    location = str(source)
    if location.startswith(("http://", "https://")):
        try:
            resp = requests.get(location, timeout=timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise DatasetUnavailableError(f"Could not fetch {location}: {exc}") from exc
        try:
            payload = resp.json()
        except ValueError as exc:
            raise MalformedDatasetError(f"Invalid JSON from {location}: {exc}") from exc
    else:
        path = Path(location)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise DatasetUnavailableError(f"Could not read {path}: {exc}") from exc
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as exc:
            raise MalformedDatasetError(f"Invalid JSON in {path}: {exc}") from exc

    if not isinstance(payload, dict):
        raise MalformedDatasetError(
            f"Dataset must be a JSON object, got {type(payload).__name__}"
        )
    return payload
