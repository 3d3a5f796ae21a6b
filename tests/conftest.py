from __future__ import annotations

import threading
from collections import Counter
from typing import Callable

import pytest

from ingestion.crawler import (
    ContentExtractor,
    CrawlConfig,
    CrawlEngine,
    DocumentStore,
    ExtractedContent,
    FetchError,
    FetchResult,
    InMemoryDocumentStore,
)


HTML_TYPE = "text/html; charset=utf-8"


def html_page(title: str, body: str) -> tuple[str, bytes]:
    markup = f"<html><head><title>{title}</title></head><body>{body}</body></html>"
    return HTML_TYPE, markup.encode("utf-8")


class FakeFetcher:
    """In-memory stand-in for `Fetcher`.

    `pages` maps normalized URL to `(content_type, body)`, an exception instance
    to raise, or a callable `(url, cancel_event) -> (content_type, body)`.
    Unknown URLs fail with a 404 `FetchError`.
    """

    def __init__(self, pages: dict[str, object]) -> None:
        self.pages = dict(pages)
        self.calls: list[str] = []
        self.closed = False
        self.released_threads = 0
        self._lock = threading.Lock()

    def fetch(self, url: str, *, cancel_event: threading.Event | None = None) -> FetchResult:
        with self._lock:
            self.calls.append(url)

        page = self.pages.get(url)
        if page is None:
            raise FetchError(url, "HTTP status 404", status_code=404)
        if isinstance(page, BaseException):
            raise page
        if callable(page):
            page = page(url, cancel_event)

        content_type, body = page
        return FetchResult(
            requested_url=url,
            final_url=url,
            status_code=200,
            content_type=content_type,
            body=body,
        )

    def call_counts(self) -> Counter:
        with self._lock:
            return Counter(self.calls)

    def release_thread_session(self) -> None:
        with self._lock:
            self.released_threads += 1

    def close(self) -> None:
        self.closed = True


class StubPDFExtractor:
    """Treats the fetched body as already-extracted UTF-8 text."""

    def extract(self, body: bytes, *, url: str) -> ExtractedContent:
        return ExtractedContent(text=body.decode("utf-8").strip())


@pytest.fixture
def make_engine() -> Callable[..., tuple[CrawlEngine, FakeFetcher]]:
    engines: list[CrawlEngine] = []

    def factory(
        pages: dict[str, object],
        *,
        config: CrawlConfig | None = None,
        store: DocumentStore | None = None,
    ) -> tuple[CrawlEngine, FakeFetcher]:
        config = config or CrawlConfig(concurrency=4)
        fetcher = FakeFetcher(pages)
        extractor = ContentExtractor(
            config,
            fetcher=fetcher,
            pdf_extractor=StubPDFExtractor(),
        )
        engine = CrawlEngine(
            config,
            store=store if store is not None else InMemoryDocumentStore(),
            extractor=extractor,
        )
        engines.append(engine)
        return engine, fetcher

    yield factory

    for engine in engines:
        engine.shutdown(timeout=5.0)
