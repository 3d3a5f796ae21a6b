"""PDF extractor: pypdf first, pdfplumber when pypdf yields no usable text."""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass

import pdfplumber
from pypdf import PdfReader

from ..errors import ParseError
from ..types import ExtractedContent, collapse_whitespace


LOGGER = logging.getLogger(__name__)

TOKEN_RE = re.compile(r"\w+")


@dataclass(slots=True)
class PDFExtractorConfig:
    """Config for PDF extraction."""

    prefer_pypdf: bool = True
    use_pdfplumber_fallback: bool = True
    max_pages: int | None = None
    # Below this many word tokens, pypdf output is treated as a failed layout pass.
    min_document_words: int = 5


class PDFExtractor:
    """Concatenate the text of every PDF page into one normalized string."""

    def __init__(self, config: PDFExtractorConfig | None = None) -> None:
        self.config = config or PDFExtractorConfig()

    def extract(self, body: bytes, *, url: str) -> ExtractedContent:
        if not isinstance(body, (bytes, bytearray)):
            raise ParseError(url, "PDF payload must be bytes")

        pages: list[str] = []
        errors: list[str] = []
        extractor = "pypdf"
        fallback_used = False

        if self.config.prefer_pypdf:
            pages, pypdf_error = self._extract_pages_with_pypdf(bytes(body))
            if pypdf_error:
                errors.append(pypdf_error)

        if self.config.use_pdfplumber_fallback and self._is_low_signal_pages(pages):
            plumber_pages, plumber_error = self._extract_pages_with_pdfplumber(bytes(body))
            if plumber_error:
                errors.append(plumber_error)
            if self._page_word_count(plumber_pages) > self._page_word_count(pages):
                pages = plumber_pages
                extractor = "pdfplumber"
                fallback_used = True

        if not pages and errors:
            raise ParseError(url, "; ".join(errors))

        if errors:
            LOGGER.debug("PDF extraction warnings for %s: %s", url, "; ".join(errors))

        text = collapse_whitespace(" ".join(pages))
        return ExtractedContent(
            text=text,
            title=None,
            metadata={
                "extractor": extractor,
                "fallback_used": fallback_used,
                "pages_total": len(pages),
                "clean_chars": len(text),
            },
        )

    def _extract_pages_with_pypdf(self, pdf_bytes: bytes) -> tuple[list[str], str | None]:
        try:
            reader = PdfReader(io.BytesIO(pdf_bytes))
            if reader.is_encrypted:
                try:
                    reader.decrypt("")
                except Exception:
                    return [], "PDF is encrypted and could not be decrypted"

            pages = []
            limit = self.config.max_pages or len(reader.pages)
            for idx, page in enumerate(reader.pages):
                if idx >= limit:
                    break
                pages.append(page.extract_text() or "")

            return pages, None
        except Exception as exc:
            return [], f"pypdf extraction failed: {exc.__class__.__name__}: {exc}"

    def _extract_pages_with_pdfplumber(self, pdf_bytes: bytes) -> tuple[list[str], str | None]:
        try:
            pages = []
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                limit = self.config.max_pages or len(pdf.pages)
                for idx, page in enumerate(pdf.pages):
                    if idx >= limit:
                        break
                    pages.append(page.extract_text() or "")
            return pages, None
        except Exception as exc:
            return [], f"pdfplumber extraction failed: {exc.__class__.__name__}: {exc}"

    @staticmethod
    def _page_word_count(pages: list[str]) -> int:
        return sum(len(TOKEN_RE.findall(page)) for page in pages)

    def _is_low_signal_pages(self, pages: list[str]) -> bool:
        if not pages:
            return True
        return self._page_word_count(pages) < self.config.min_document_words


__all__ = [
    "PDFExtractor",
    "PDFExtractorConfig",
]
