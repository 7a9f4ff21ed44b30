"""Plain-text extraction for uploaded bulletins and theses.

Uses pymupdf for PDFs; text files are decoded directly. Extraction never
raises: a failure is logged and reported as None so the upload still goes
through without searchable text.
"""

from __future__ import annotations

import logging
from pathlib import PurePath

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".pdf", ".txt")


def is_supported(file_name: str) -> bool:
    return PurePath(file_name).suffix.lower() in SUPPORTED_EXTENSIONS


def extract_pages_from_pdf(pdf_bytes: bytes) -> list[str]:
    """Extract text from each page of a PDF (index 0 = page 1)."""
    import pymupdf

    with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:
        return [page.get_text() for page in doc]


def extract_text(file_name: str, data: bytes) -> str | None:
    """Return the document's text, or None when nothing could be extracted."""
    suffix = PurePath(file_name).suffix.lower()
    try:
        if suffix == ".txt":
            text = data.decode("utf-8", errors="replace")
        elif suffix == ".pdf":
            text = "\n".join(extract_pages_from_pdf(data))
        else:
            logger.warning("No text extractor for %s", file_name)
            return None
    except Exception as exc:  # pymupdf raises its own error types for bad files
        logger.warning("Text extraction failed for %s: %s", file_name, exc)
        return None
    text = text.strip()
    return text or None
