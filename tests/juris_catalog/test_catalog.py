"""Tests for juris-catalog/app/catalog.py: the catalog context lifecycle.

Covers dataset loading and fallback, uploads with text extraction, and
cascading cleanup when an uploaded document is removed.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent / "juris-catalog"))
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from shared.storage import JsonStorage

from app.catalog import CatalogContext
from app.config import Settings
from app.errors import MissingItemError
from app.models import BulletinItem, SourceGroup, ThesisItem
from app.search import SearchFilters, View


@pytest.fixture()
def settings(tmp_data_dir, dataset_file):
    return Settings(data_dir=tmp_data_dir, dataset_source=str(dataset_file))


@pytest.fixture()
def catalog(settings):
    return CatalogContext.init(settings)


# ── Loading ──────────────────────────────────────────────────────────────


class TestInit:
    def test_loads_dataset(self, catalog):
        assert len(catalog) == 9
        assert "sumula_331" in catalog
        assert catalog.dataset_error is None

    def test_stats(self, catalog):
        stats = catalog.stats()
        assert (stats.total, stats.active, stats.revoked) == (9, 7, 2)

    def test_missing_dataset_starts_empty_with_error(self, tmp_data_dir, tmp_path):
        ctx = CatalogContext.init(Settings(data_dir=tmp_data_dir, dataset_source=str(tmp_path / "missing.json")))
        assert len(ctx) == 0
        assert ctx.dataset_error

    def test_uploads_survive_restart(self, catalog, settings):
        item = catalog.add_document("inf.txt", b"texto do informativo", SourceGroup.BULLETIN)
        again = CatalogContext.init(settings)
        assert item.id in again
        assert len(again) == 10


class TestLoadDataset:
    def test_failed_reload_keeps_last_good(self, catalog, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("[1, 2]", encoding="utf-8")
        error = catalog.load_dataset(str(bad))
        assert error
        assert len(catalog) == 9
        assert catalog.dataset_error == error

    def test_successful_reload_clears_error(self, catalog, tmp_path, dataset_file):
        catalog.load_dataset(str(tmp_path / "missing.json"))
        assert catalog.load_dataset(str(dataset_file)) is None
        assert catalog.dataset_error is None

    def test_personal_data_survives_reload(self, catalog, dataset_file):
        catalog.store.toggle_favorite("oj_191")
        catalog.load_dataset(str(dataset_file))
        assert [i.id for i in catalog.favorite_items()] == ["oj_191"]


# ── Lookup ───────────────────────────────────────────────────────────────


class TestLookup:
    def test_get(self, catalog):
        assert catalog.get("oj_158").organ == "SBDI-2"

    def test_get_missing_raises(self, catalog):
        with pytest.raises(MissingItemError) as exc_info:
            catalog.get("sumula_9999")
        assert exc_info.value.item_id == "sumula_9999"

    def test_find_missing_is_none(self, catalog):
        assert catalog.find("sumula_9999") is None

    def test_favorites_skip_missing_ids(self, catalog):
        catalog.store.toggle_favorite("sumula_9999")
        catalog.store.toggle_favorite("sumula_85")
        assert [i.id for i in catalog.favorite_items()] == ["sumula_85"]

    def test_search_uses_annotations(self, catalog):
        catalog.store.set_annotation("precedente_119", "cláusula de contribuição assistencial")
        results = catalog.search(SearchFilters(free_text="assistencial"))
        assert [i.id for i in results] == ["precedente_119"]


# ── Correlations ─────────────────────────────────────────────────────────


class TestLinks:
    def test_link_and_related(self, catalog):
        assert catalog.link("sumula_331", "oj_191") is True
        assert [i.id for i in catalog.related_items("oj_191")] == ["sumula_331"]

    def test_link_missing_item(self, catalog):
        with pytest.raises(MissingItemError):
            catalog.link("sumula_331", "ghost")
        assert catalog.store.correlations == {}

    def test_link_self(self, catalog):
        with pytest.raises(ValueError):
            catalog.link("sumula_331", "sumula_331")

    def test_unlink(self, catalog):
        catalog.link("sumula_331", "oj_191")
        assert catalog.unlink("oj_191", "sumula_331") is True
        assert catalog.related_items("sumula_331") == []


# ── Uploaded documents ───────────────────────────────────────────────────


class TestDocuments:
    def test_add_bulletin(self, catalog):
        item = catalog.add_document("inf250.txt", "Terceirização lícita".encode("utf-8"), "informativo", title="Inf. 250")
        assert isinstance(item, BulletinItem)
        assert item.id.startswith("informativo_")
        assert item.extracted_text == "Terceirização lícita"
        assert item.size == "23 Bytes"
        results = catalog.search(SearchFilters(free_text="terceirizacao", view=View.BULLETINS))
        assert [i.id for i in results] == [item.id]

    def test_add_thesis_keyed_by_theme(self, catalog):
        item = catalog.add_document("t.txt", b"texto", SourceGroup.THESIS, kind="IRDR", theme="Tema 21")
        assert isinstance(item, ThesisItem)
        assert item.id == "tese-Tema21"
        assert item.kind == "irdr"

    def test_repeated_theme_gets_new_id(self, catalog):
        first = catalog.add_document("a.txt", b"a", SourceGroup.THESIS, theme="7")
        second = catalog.add_document("b.txt", b"b", SourceGroup.THESIS, theme="7")
        assert first.id != second.id
        assert len(catalog) == 11

    def test_extraction_failure_still_adds(self, catalog):
        item = catalog.add_document("broken.pdf", b"not a pdf", SourceGroup.BULLETIN)
        assert item.extracted_text is None
        assert item.id in catalog

    def test_unsupported_file(self, catalog):
        with pytest.raises(ValueError):
            catalog.add_document("a.docx", b"x", SourceGroup.BULLETIN)

    def test_unknown_thesis_kind(self, catalog):
        with pytest.raises(ValueError):
            catalog.add_document("a.txt", b"x", SourceGroup.THESIS, kind="sumula")

    def test_case_law_group_rejected(self, catalog):
        with pytest.raises(ValueError):
            catalog.add_document("a.txt", b"x", SourceGroup.CASE_LAW)

    def test_remove_cascades(self, catalog, settings):
        item = catalog.add_document("inf.txt", b"texto", SourceGroup.BULLETIN)
        catalog.store.toggle_favorite(item.id)
        catalog.store.set_annotation(item.id, "nota")
        catalog.store.add_tag(item.id, "t")
        catalog.link(item.id, "sumula_331")

        catalog.remove_document(item.id)

        assert item.id not in catalog
        assert not catalog.store.is_favorite(item.id)
        assert catalog.store.get_annotation(item.id) is None
        assert catalog.store.get_tags(item.id) == []
        assert catalog.store.get_correlations("sumula_331") == []
        assert item.id not in CatalogContext.init(settings)

    def test_case_law_cannot_be_removed(self, catalog):
        with pytest.raises(ValueError):
            catalog.remove_document("sumula_331")
        assert "sumula_331" in catalog

    def test_remove_missing(self, catalog):
        with pytest.raises(MissingItemError):
            catalog.remove_document("informativo_ghost")


# ── Bulk personal data ───────────────────────────────────────────────────


class TestBulk:
    def test_import_backup_adds_uploads(self, catalog):
        catalog.import_backup({"informativos": [{"id": "informativo_9", "nome": "nove.pdf", "texto": "conteúdo"}]})
        assert "informativo_9" in catalog

    def test_export_is_json(self, catalog):
        catalog.store.toggle_favorite("sumula_331")
        assert json.loads(json.dumps(catalog.export_backup()))["favorites"] == ["sumula_331"]

    def test_reset_removes_uploads_keeps_dataset(self, catalog):
        catalog.add_document("inf.txt", b"texto", SourceGroup.BULLETIN)
        catalog.store.toggle_favorite("sumula_331")
        catalog.reset()
        assert len(catalog) == 9
        assert catalog.store.favorites == []

    def test_summary(self, catalog):
        catalog.add_document("inf.txt", b"texto", SourceGroup.BULLETIN)
        summary = catalog.summary()
        assert summary["items"] == 10
        assert summary["bulletins"] == 1


# ── Uploads from older backups ───────────────────────────────────────────


class TestLegacyUploads:
    def test_idless_import_can_be_removed(self, catalog, settings):
        catalog.import_backup({"informativos": [{"nome": "a.txt", "numero": "250", "texto": "abc"}]})
        assert "informativo_250" in catalog

        catalog.remove_document("informativo_250")
        catalog.rebuild()

        assert [i.id for i in catalog.items if not i.is_case_law] == []
        assert "informativo_250" not in CatalogContext.init(settings)

    def test_conteudo_text_is_searchable(self, catalog):
        catalog.import_backup({"informativos": [{"id": "informativo_1_x", "nome": "a.txt", "conteudo": "terceirizacao ilicita"}]})
        results = catalog.search(SearchFilters(free_text="terceirizacao", view=View.BULLETINS))
        assert [i.id for i in results] == ["informativo_1_x"]

    def test_titled_upload_found_by_file_name(self, catalog):
        item = catalog.add_document("relatorio_xpto.txt", b"conteudo qualquer", "informativo", title="Boletim")
        results = catalog.search(SearchFilters(free_text="relatorio", view=View.BULLETINS))
        assert item.id in [i.id for i in results]
