"""Tests for juris-catalog/app/extraction.py: text from uploaded PDF/TXT files."""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pymupdf

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent / "juris-catalog"))

import app.extraction as extraction_mod
from app.extraction import extract_text, is_supported


def _pdf_bytes(*pages: str) -> bytes:
    doc = pymupdf.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


class TestIsSupported:
    def test_pdf_and_txt(self):
        assert is_supported("informativo.PDF")
        assert is_supported("tese.txt")

    def test_other_types(self):
        assert not is_supported("planilha.xlsx")
        assert not is_supported("sem_extensao")


class TestExtractText:
    def test_txt(self):
        assert extract_text("a.txt", "  Horas in itinere\n".encode("utf-8")) == "Horas in itinere"

    def test_txt_invalid_bytes_replaced(self):
        assert extract_text("a.txt", b"abc\xff") == "abc\ufffd"

    def test_empty_txt_is_none(self):
        assert extract_text("a.txt", b"   ") is None

    def test_pdf_pages_joined(self):
        text = extract_text("a.pdf", _pdf_bytes("First page", "Second page"))
        assert "First page" in text
        assert "Second page" in text

    def test_broken_pdf_is_none(self):
        assert extract_text("a.pdf", b"not a pdf") is None

    def test_extractor_failure_is_none(self):
        with patch.object(extraction_mod, "extract_pages_from_pdf", side_effect=RuntimeError("boom")):
            assert extract_text("a.pdf", b"%PDF") is None

    def test_document_closed_when_page_fails(self):
        doc = MagicMock()
        doc.__enter__.return_value = doc
        doc.__exit__.return_value = False
        doc.__iter__.side_effect = RuntimeError("bad page")
        with patch.object(pymupdf, "open", return_value=doc):
            assert extract_text("a.pdf", b"%PDF") is None
        doc.__exit__.assert_called_once()

    def test_unsupported_is_none(self):
        assert extract_text("a.docx", b"data") is None
