"""Juris Catalog -- Streamlit dashboard.

Searchable catalog of TST súmulas, OJs and precedentes normativos, with
personal favorites, notes, tags and correlations, plus uploaded bulletins
and binding theses. Works entirely with local persistence.

Run with: streamlit run juris-catalog/app/dashboard.py
"""

from __future__ import annotations

import html as html_mod
import json
import logging
import sys
from datetime import date
from pathlib import Path

import streamlit as st

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared.storage import PersistenceError

from app.catalog import CatalogContext
from app.errors import MissingItemError
from app.models import (
    CASE_LAW_KINDS,
    CaseLawItem,
    CatalogItem,
    ItemKind,
    SourceGroup,
    ThesisItem,
    display_name,
    kind_label,
)
from app.search import ANY, SearchFilters, StatusFilter, View, filter_theses

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

# -- Page config --------------------------------------------------------------

st.set_page_config(
    page_title="Juris Catalog",
    layout="wide",
    initial_sidebar_state="expanded",
)

# -- CSS ----------------------------------------------------------------------

st.markdown(
    """
<style>
#MainMenu, footer { display: none !important; }

.section-label {
    font-size: 0.75rem;
    font-weight: 700;
    text-transform: uppercase;
    letter-spacing: 0.06em;
    color: #5a6a85;
    margin-bottom: 6px;
}

.kind-badge {
    display: inline-block;
    padding: 1px 8px;
    border-radius: 10px;
    background: #e8eef8;
    color: #1a2e4a;
    font-size: 0.75rem;
    font-weight: 600;
    margin-right: 6px;
}

.revoked-badge {
    display: inline-block;
    padding: 1px 8px;
    border-radius: 10px;
    background: #fdecea;
    color: #a12a1e;
    font-size: 0.75rem;
    font-weight: 600;
}

.user-tag {
    display: inline-block;
    padding: 1px 7px;
    border-radius: 8px;
    background: #f1f3f6;
    color: #333;
    font-size: 0.72rem;
    margin: 0 4px 4px 0;
}

.item-text {
    font-size: 0.9rem;
    line-height: 1.55;
    white-space: pre-wrap;
}
</style>
""",
    unsafe_allow_html=True,
)

# -- Session state ------------------------------------------------------------

_DEFAULTS: dict = {
    "catalog": None,
    "dataset_error": None,
    "flash_msg": "",
    "flash_warn": "",
}
for _k, _v in _DEFAULTS.items():
    if _k not in st.session_state:
        st.session_state[_k] = _v

if st.session_state.catalog is None:
    try:
        st.session_state.catalog = CatalogContext.init()
    except PersistenceError as exc:
        st.error(f"Could not open the personal data folder: {exc}")
        st.stop()
    st.session_state.dataset_error = st.session_state.catalog.dataset_error

catalog: CatalogContext = st.session_state.catalog


# -- Helpers ------------------------------------------------------------------


def _esc(text: str) -> str:
    """HTML-escape a string."""
    return html_mod.escape(str(text))


def _flash(message: str) -> None:
    st.session_state.flash_msg = message


def _guarded(action, *args, **kwargs):
    """Run a store-mutating action, reporting save failures without losing the change."""
    try:
        return action(*args, **kwargs)
    except PersistenceError as exc:
        st.session_state.flash_warn = f"Change kept for this session but not saved to disk: {exc}"
    except (ValueError, MissingItemError) as exc:
        st.session_state.flash_warn = str(exc)
    return None


def _organ_options(items: list[CatalogItem]) -> list[str]:
    organs = sorted({i.organ for i in items if isinstance(i, CaseLawItem) and i.organ})
    return [ANY] + organs


def _render_header(item: CatalogItem) -> None:
    badge = f'<span class="kind-badge">{_esc(item.label)}</span>'
    if isinstance(item, CaseLawItem) and item.organ:
        badge += f'<span class="kind-badge">{_esc(item.organ)}</span>'
    if item.revoked:
        badge += '<span class="revoked-badge">Cancelada</span>'
    tags_html = "".join(
        f'<span class="user-tag">{_esc(t)}</span>' for t in catalog.store.get_tags(item.id)
    )
    st.markdown(f"{badge}<br>{tags_html}", unsafe_allow_html=True)


def _render_body(item: CatalogItem) -> None:
    if isinstance(item, CaseLawItem):
        if item.title:
            st.markdown(f"**{_esc(item.title)}**", unsafe_allow_html=True)
        st.markdown(f'<div class="item-text">{_esc(item.full_text)}</div>', unsafe_allow_html=True)
        if item.revoked and item.revocation_note:
            st.caption(item.revocation_note)
        return
    st.caption(f"{item.name} · {item.size} · enviado em {item.uploaded_at}")
    if isinstance(item, ThesisItem) and item.representative_case:
        st.caption(f"Processo representativo: {item.representative_case}")
    if item.extracted_text:
        with st.container(height=220):
            st.markdown(f'<div class="item-text">{_esc(item.extracted_text)}</div>', unsafe_allow_html=True)
    else:
        st.info("No searchable text could be extracted from this file.")


def _render_personal(item: CatalogItem, scope: str) -> None:
    key = f"{scope}_{item.id}"
    store = catalog.store

    fav_label = "Remove favorite" if store.is_favorite(item.id) else "Add favorite"
    cols = st.columns([1, 1, 3])
    with cols[0]:
        if st.button(fav_label, key=f"fav_{key}", use_container_width=True):
            _guarded(store.toggle_favorite, item.id)
            st.rerun()
    with cols[1]:
        if not item.is_case_law and st.button("Delete", key=f"del_{key}", use_container_width=True):
            _guarded(catalog.remove_document, item.id)
            _flash(f"Removed {display_name(item)}")
            st.rerun()

    note = st.text_area(
        "Note",
        value=store.get_annotation(item.id) or "",
        key=f"note_{key}",
        height=80,
    )
    if st.button("Save note", key=f"save_note_{key}"):
        _guarded(store.set_annotation, item.id, note)
        st.rerun()

    tag_cols = st.columns([3, 1])
    with tag_cols[0]:
        new_tag = st.text_input("Add tag", key=f"tag_{key}", label_visibility="collapsed", placeholder="New tag")
    with tag_cols[1]:
        if st.button("Add tag", key=f"add_tag_{key}", use_container_width=True):
            _guarded(store.add_tag, item.id, new_tag)
            st.rerun()
    for t_idx, tag in enumerate(store.get_tags(item.id)):
        if st.button(f"✕ {tag}", key=f"rm_tag_{key}_{t_idx}"):
            _guarded(store.remove_tag, item.id, tag)
            st.rerun()

    related = catalog.related_items(item.id)
    if related:
        st.markdown('<div class="section-label">Related</div>', unsafe_allow_html=True)
        for other in related:
            rel_cols = st.columns([4, 1])
            with rel_cols[0]:
                st.markdown(f"- {_esc(display_name(other))}", unsafe_allow_html=True)
            with rel_cols[1]:
                if st.button("Unlink", key=f"unlink_{key}_{other.id}"):
                    _guarded(catalog.unlink, item.id, other.id)
                    st.rerun()

    link_target = st.selectbox(
        "Correlate with",
        options=[""] + [i.id for i in catalog.items if i.id != item.id],
        format_func=lambda x: display_name(catalog.get(x)) if x else "Select...",
        key=f"link_sel_{key}",
    )
    if link_target and st.button("Link", key=f"link_{key}"):
        _guarded(catalog.link, item.id, link_target)
        st.rerun()


def _render_items(items: list[CatalogItem], scope: str) -> None:
    if not items:
        st.info("No items match the current filters.")
        return
    st.markdown(f"**{len(items)} result(s)**")
    for item in items:
        with st.expander(display_name(item)):
            _render_header(item)
            _render_body(item)
            st.divider()
            _render_personal(item, scope)


def _upload_form(group: SourceGroup) -> None:
    with st.form(f"upload_{group.value}", clear_on_submit=True):
        uploaded = st.file_uploader("PDF or TXT", type=["pdf", "txt"])
        title = st.text_input("Title")
        kind = theme = case = None
        if group is SourceGroup.THESIS:
            kind = st.selectbox(
                "Kind",
                options=[ItemKind.IRR.value, ItemKind.IRDR.value, ItemKind.IAC.value],
                format_func=kind_label,
            )
            theme = st.text_input("Theme (Tema)")
            case = st.text_input("Representative case")
        if st.form_submit_button("Upload") and uploaded is not None:
            item = _guarded(
                catalog.add_document,
                uploaded.name,
                uploaded.getvalue(),
                group,
                kind=kind,
                theme=theme,
                representative_case=case,
                title=title,
            )
            if item is not None:
                _flash(f"Added {display_name(item)}")
                st.rerun()


# -- Sidebar ------------------------------------------------------------------

with st.sidebar:
    st.markdown("#### Filters")
    status = st.radio(
        "Status",
        options=list(StatusFilter),
        format_func=lambda s: {"todos": "All", "vigentes": "Active", "canceladas": "Revoked"}[s.value],
        horizontal=True,
    )
    kind_filter = st.selectbox(
        "Kind",
        options=[ANY] + [kind_label(k) for k in CASE_LAW_KINDS],
        format_func=lambda x: "All" if x == ANY else x,
    )
    organ_filter = st.selectbox(
        "Organ (OJs)",
        options=_organ_options(catalog.items),
        format_func=lambda x: "All" if x == ANY else x,
    )
    number_filter = st.text_input("Number", placeholder="e.g. 331")
    tag_filter = st.text_input("Tags", placeholder="comma-separated")

    st.divider()

    st.markdown("#### Dataset")
    if st.button("Reload dataset", use_container_width=True):
        st.session_state.dataset_error = catalog.load_dataset()
        st.rerun()

    st.markdown("#### Backup")
    st.download_button(
        "Export personal data",
        data=json.dumps(catalog.export_backup(), indent=2, ensure_ascii=False),
        file_name=f"juris_catalog_backup_{date.today().isoformat()}.json",
        mime="application/json",
        use_container_width=True,
    )
    backup_file = st.file_uploader("Import backup", type=["json"])
    if backup_file is not None and st.button("Import", use_container_width=True):
        try:
            data = json.loads(backup_file.getvalue().decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            st.error(f"Not a valid backup file: {exc}")
        else:
            replaced = _guarded(catalog.import_backup, data)
            if replaced is not None:
                _flash(f"Imported: {', '.join(replaced) or 'nothing'}")
                st.rerun()

    confirm_clear = st.checkbox("I understand this erases all personal data")
    if st.button("Clear all personal data", disabled=not confirm_clear, use_container_width=True):
        _guarded(catalog.reset)
        _flash("Personal data cleared")
        st.rerun()

    with st.expander("Diagnostics"):
        st.json(catalog.summary())


# -- Main area ----------------------------------------------------------------

st.title("Juris Catalog")

if st.session_state.dataset_error:
    st.error(f"Dataset could not be loaded: {st.session_state.dataset_error}")
for _err in catalog.store.load_errors:
    st.warning(f"Stored {_err.key} was unreadable and has been reset.")
if st.session_state.flash_msg:
    st.success(st.session_state.flash_msg)
    st.session_state.flash_msg = ""
if st.session_state.flash_warn:
    st.warning(st.session_state.flash_warn)
    st.session_state.flash_warn = ""

stats = catalog.stats()
m_cols = st.columns(3)
m_cols[0].metric("Total", stats.total)
m_cols[1].metric("Active", stats.active)
m_cols[2].metric("Revoked", stats.revoked)

free_text = st.text_input(
    "Search",
    placeholder="Words of three or more letters; every word must match",
    label_visibility="collapsed",
)


def _filters(view: View) -> SearchFilters:
    return SearchFilters(
        status=status,
        kind=kind_filter,
        organ=organ_filter,
        number=number_filter,
        tags=tag_filter,
        free_text=free_text,
        view=view,
    )


tab_case_law, tab_favorites, tab_bulletins, tab_theses = st.tabs(
    ["Jurisprudência", "Favoritos", "Informativos", "Teses"]
)

with tab_case_law:
    _render_items(catalog.search(_filters(View.CASE_LAW)), "cl")

with tab_favorites:
    favorite_ids = set(catalog.store.favorites)
    if free_text.strip():
        matches = [i for i in catalog.search(_filters(View.FAVORITES)) if i.id in favorite_ids]
    else:
        matches = catalog.favorite_items()
    _render_items(matches, "fav")

with tab_bulletins:
    _upload_form(SourceGroup.BULLETIN)
    if free_text.strip():
        bulletins = [
            i for i in catalog.search(_filters(View.BULLETINS))
            if i.source_group is SourceGroup.BULLETIN
        ]
    else:
        bulletins = [i for i in catalog.items if i.source_group is SourceGroup.BULLETIN]
    _render_items(bulletins, "inf")

with tab_theses:
    _upload_form(SourceGroup.THESIS)
    thesis_kind = st.radio(
        "Thesis kind",
        options=[ANY, ItemKind.IRR.value, ItemKind.IRDR.value, ItemKind.IAC.value],
        format_func=lambda x: "All" if x == ANY else kind_label(x),
        horizontal=True,
    )
    if free_text.strip():
        pool = catalog.search(_filters(View.THESES))
    else:
        pool = catalog.items
    _render_items(filter_theses(pool, thesis_kind), "tes")
