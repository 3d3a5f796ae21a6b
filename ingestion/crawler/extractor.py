"""Fetch one resource and convert it to plain text with the matching extractor."""

from __future__ import annotations

import logging
import threading

from .config import CrawlConfig
from .errors import ParseError
from .extractors import (
    HTMLExtractor,
    HTMLExtractorConfig,
    PDFExtractor,
    TextExtractor,
    WordExtractor,
)
from .fetcher import Fetcher
from .types import (
    ExtractedContent,
    Extraction,
    FetchResult,
    FileType,
    classify_file_type,
    filename_from_url,
)


LOGGER = logging.getLogger(__name__)

SUPPORTED_FILE_TYPES = frozenset(
    {FileType.HTML, FileType.PDF, FileType.DOCX, FileType.DOC, FileType.TEXT}
)


class ContentExtractor:
    """Polymorphic extractor keyed by URL file type.

    The file type is chosen from the URL suffix (`classify_file_type`), not from
    the response Content-Type. `.doc` URLs go through the Word extractor, which
    rejects legacy binary documents with `ParseError`.
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        fetcher: Fetcher | None = None,
        html_extractor: HTMLExtractor | None = None,
        pdf_extractor: PDFExtractor | None = None,
        word_extractor: WordExtractor | None = None,
        text_extractor: TextExtractor | None = None,
    ) -> None:
        self.config = config

        self.fetcher = fetcher or Fetcher(config)
        self.html_extractor = html_extractor or HTMLExtractor(
            HTMLExtractorConfig(strip_selectors=list(config.strip_selectors))
        )
        self.pdf_extractor = pdf_extractor or PDFExtractor()
        self.word_extractor = word_extractor or WordExtractor()
        self.text_extractor = text_extractor or TextExtractor()

        self._owns_fetcher = fetcher is None

    @staticmethod
    def supports(file_type: FileType) -> bool:
        return file_type in SUPPORTED_FILE_TYPES

    def extract(
        self,
        url: str,
        *,
        file_type: FileType | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Extraction:
        """Fetch `url` and return its text, title, and (for HTML) the raw page bytes.

        Raises `FetchError`/`ParseError` (both `ExtractionError`) for per-URL
        failures and `CrawlCancelledError` when `cancel_event` fires mid-fetch.
        """

        resolved_type = file_type or classify_file_type(url)
        if not self.supports(resolved_type):
            raise ParseError(url, f"No extractor for file type {resolved_type.value}")

        fetch_result = self.fetcher.fetch(url, cancel_event=cancel_event)
        content = self._extract_content(resolved_type, fetch_result, url)

        if resolved_type == FileType.HTML:
            title = content.title or ""
        else:
            title = filename_from_url(url)

        LOGGER.debug(
            "Extracted %s as %s (%d chars)",
            url,
            resolved_type.value,
            len(content.text),
        )
        return Extraction(
            url=url,
            final_url=fetch_result.final_url or url,
            file_type=resolved_type,
            title=title,
            text=content.text,
            content_type=fetch_result.content_type,
            html=fetch_result.body if resolved_type == FileType.HTML else None,
            charset=fetch_result.charset,
            metadata=dict(content.metadata),
        )

    def extract_text(self, url: str, *, cancel_event: threading.Event | None = None) -> str:
        return self.extract(url, cancel_event=cancel_event).text

    def extract_title(self, url: str, *, cancel_event: threading.Event | None = None) -> str:
        """HTML `<title>` text; for documents, the filename component of the URL."""

        file_type = classify_file_type(url)
        if file_type != FileType.HTML:
            return filename_from_url(url)
        return self.extract(url, file_type=file_type, cancel_event=cancel_event).title

    def release_thread_resources(self) -> None:
        """Release per-thread fetch state; called by workers before they exit."""

        self.fetcher.release_thread_session()

    def close(self) -> None:
        if self._owns_fetcher:
            self.fetcher.close()

    def _extract_content(
        self,
        file_type: FileType,
        fetch_result: FetchResult,
        url: str,
    ) -> ExtractedContent:
        body = fetch_result.body

        if file_type == FileType.HTML:
            return self.html_extractor.extract(body, url=url, charset=fetch_result.charset)
        if file_type == FileType.PDF:
            return self.pdf_extractor.extract(body, url=url)
        if file_type in {FileType.DOCX, FileType.DOC}:
            return self.word_extractor.extract(body, url=url)
        if file_type == FileType.TEXT:
            return self.text_extractor.extract(body, url=url, charset=fetch_result.charset)

        raise ParseError(url, f"No extractor for file type {file_type.value}")


__all__ = [
    "ContentExtractor",
    "SUPPORTED_FILE_TYPES",
]
