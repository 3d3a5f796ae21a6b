"""Extractor package exports."""

from .html_extractor import HTMLExtractor, HTMLExtractorConfig
from .pdf_extractor import PDFExtractor, PDFExtractorConfig
from .text_extractor import TextExtractor
from .word_extractor import WordExtractor

__all__ = [
    "HTMLExtractor",
    "HTMLExtractorConfig",
    "PDFExtractor",
    "PDFExtractorConfig",
    "TextExtractor",
    "WordExtractor",
]
