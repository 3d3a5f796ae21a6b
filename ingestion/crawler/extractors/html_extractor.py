"""HTML extractor: strip page chrome with BeautifulSoup and flatten body text."""

from __future__ import annotations

from dataclasses import dataclass, field

from bs4 import BeautifulSoup

from ..constants import DEFAULT_STRIP_SELECTORS
from ..errors import ParseError
from ..types import ExtractedContent, collapse_whitespace


@dataclass(slots=True)
class HTMLExtractorConfig:
    """Config for HTML extraction."""

    extractor_name: str = "html_extractor_v1_bs4"
    strip_selectors: list[str] = field(default_factory=lambda: list(DEFAULT_STRIP_SELECTORS))


class HTMLExtractor:
    """Convert an HTML document into normalized plain text plus its title."""

    def __init__(self, config: HTMLExtractorConfig | None = None) -> None:
        self.config = config or HTMLExtractorConfig()

    def extract(
        self,
        body: str | bytes,
        *,
        url: str,
        charset: str | None = None,
    ) -> ExtractedContent:
        try:
            soup = self._make_soup(body, charset)
            title = self.extract_title(soup)
            raw_chars = len(body)
            removed = self._strip_chrome(soup)
            root = soup.body or soup
            text = collapse_whitespace(root.get_text(" ", strip=True))
        except Exception as exc:
            raise ParseError(
                url,
                f"HTML extraction failed: {exc.__class__.__name__}: {exc}",
                cause=exc,
            ) from exc

        return ExtractedContent(
            text=text,
            title=title,
            metadata={
                "extractor": self.config.extractor_name,
                "raw_chars": raw_chars,
                "clean_chars": len(text),
                "removed_elements": removed,
            },
        )

    @staticmethod
    def extract_title(soup: BeautifulSoup) -> str:
        """Return the `<title>` element text, or an empty string when absent."""

        if soup.title is None:
            return ""
        return collapse_whitespace(soup.title.get_text(" ", strip=True))

    def _strip_chrome(self, soup: BeautifulSoup) -> int:
        removed = 0
        for selector in self.config.strip_selectors:
            for element in soup.select(selector):
                # Nested matches are already gone with their ancestor.
                if element.decomposed:
                    continue
                element.decompose()
                removed += 1
        return removed

    @staticmethod
    def _make_soup(body: str | bytes, charset: str | None) -> BeautifulSoup:
        if isinstance(body, bytes):
            return BeautifulSoup(body, "lxml", from_encoding=charset)
        return BeautifulSoup(body, "lxml")


__all__ = [
    "HTMLExtractor",
    "HTMLExtractorConfig",
]
