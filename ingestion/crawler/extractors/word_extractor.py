"""Word extractor: paragraph and table-cell text from OOXML (.docx) packages."""

from __future__ import annotations

import io

from docx import Document as DocxDocument

from ..errors import ParseError
from ..types import ExtractedContent, collapse_whitespace


# Compound File Binary header used by legacy Word 97-2003 `.doc` files.
OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


class WordExtractor:
    """Extract all paragraphs, then all table cells, of a Word document."""

    extractor_name = "word_extractor_v1_python_docx"

    def extract(self, body: bytes, *, url: str) -> ExtractedContent:
        if bytes(body[: len(OLE2_MAGIC)]) == OLE2_MAGIC:
            raise ParseError(url, "Legacy binary .doc format is not supported")

        try:
            document = DocxDocument(io.BytesIO(body))
        except Exception as exc:
            raise ParseError(
                url,
                f"Word extraction failed: {exc.__class__.__name__}: {exc}",
                cause=exc,
            ) from exc

        parts: list[str] = []
        paragraph_count = 0
        for paragraph in document.paragraphs:
            if paragraph.text and paragraph.text.strip():
                parts.append(paragraph.text)
                paragraph_count += 1

        cell_count = 0
        for table in document.tables:
            for row in table.rows:
                for cell in row.cells:
                    if cell.text and cell.text.strip():
                        parts.append(cell.text)
                        cell_count += 1

        text = collapse_whitespace(" ".join(parts))
        return ExtractedContent(
            text=text,
            title=None,
            metadata={
                "extractor": self.extractor_name,
                "paragraphs": paragraph_count,
                "table_cells": cell_count,
                "clean_chars": len(text),
            },
        )


__all__ = ["WordExtractor"]
