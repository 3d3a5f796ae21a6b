"""Plain-text extractor for `.txt` resources."""

from __future__ import annotations

import codecs

from ..types import ExtractedContent, collapse_whitespace


class TextExtractor:
    extractor_name = "text_extractor_v1"

    def extract(self, body: bytes, *, url: str, charset: str | None = None) -> ExtractedContent:
        encoding = "utf-8"
        if charset:
            try:
                encoding = codecs.lookup(charset).name
            except LookupError:
                encoding = "utf-8"

        text = collapse_whitespace(body.decode(encoding, errors="replace"))
        return ExtractedContent(
            text=text,
            title=None,
            metadata={"extractor": self.extractor_name, "encoding": encoding},
        )


__all__ = ["TextExtractor"]
