from __future__ import annotations

import threading
import time
from types import SimpleNamespace

import pytest
import requests

from ingestion.crawler import CrawlCancelledError, CrawlConfig, FetchError, Fetcher
from ingestion.crawler import fetcher as fetcher_module


class FakeResponse:
    def __init__(self, status_code=200, chunks=(b"",), headers=None, url=None):
        self.status_code = status_code
        self._chunks = list(chunks)
        self.headers = headers or {}
        self.url = url

    def iter_content(self, chunk_size=1):
        yield from self._chunks

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def _fetcher_with(monkeypatch, session, **config_kwargs):
    fetcher = Fetcher(CrawlConfig(**config_kwargs))
    monkeypatch.setattr(fetcher, "_thread_local_session", lambda: session)
    return fetcher


def test_fetch_returns_body_and_metadata(monkeypatch):
    session = FakeSession(
        FakeResponse(
            chunks=[b"<html>", b"</html>"],
            headers={"Content-Type": "text/html; charset=utf-8"},
            url="https://example.edu/home",
        )
    )
    fetcher = _fetcher_with(monkeypatch, session, timeout_seconds=3.0, user_agent="TestBot/1.0")

    result = fetcher.fetch("https://example.edu/?page=1")

    assert result.body == b"<html></html>"
    assert result.final_url == "https://example.edu/home"
    assert result.charset == "utf-8"
    url, kwargs = session.calls[0]
    assert url == "https://example.edu/?page=1"
    assert kwargs["timeout"] == 3.0
    assert kwargs["headers"]["User-Agent"] == "TestBot/1.0"
    assert kwargs["stream"] is True


def test_non_2xx_status_raises_fetch_error(monkeypatch):
    fetcher = _fetcher_with(monkeypatch, FakeSession(FakeResponse(status_code=404)))

    with pytest.raises(FetchError) as excinfo:
        fetcher.fetch("https://example.edu/missing")

    assert excinfo.value.status_code == 404
    assert excinfo.value.url == "https://example.edu/missing"


def test_timeout_is_wrapped_with_cause(monkeypatch):
    timeout = requests.Timeout("read timed out")
    fetcher = _fetcher_with(monkeypatch, FakeSession(error=timeout))

    with pytest.raises(FetchError) as excinfo:
        fetcher.fetch("https://example.edu/slow.pdf")

    assert excinfo.value.cause is timeout
    assert excinfo.value.error_type == "Timeout"


def test_oversized_bodies_are_rejected(monkeypatch):
    declared = FakeResponse(headers={"Content-Length": "2048"}, chunks=[b"x"])
    fetcher = _fetcher_with(monkeypatch, FakeSession(declared), max_content_bytes=1024)
    with pytest.raises(FetchError):
        fetcher.fetch("https://example.edu/big.pdf")

    streamed = FakeResponse(chunks=[b"x" * 600, b"x" * 600])
    fetcher = _fetcher_with(monkeypatch, FakeSession(streamed), max_content_bytes=1024)
    with pytest.raises(FetchError):
        fetcher.fetch("https://example.edu/big.pdf")


def test_cancelled_fetch_never_hits_network(monkeypatch):
    session = FakeSession(FakeResponse())
    fetcher = _fetcher_with(monkeypatch, session)
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(CrawlCancelledError):
        fetcher.fetch("https://example.edu/", cancel_event=cancel)

    assert session.calls == []


def test_invalid_url_and_closed_fetcher(monkeypatch):
    fetcher = _fetcher_with(monkeypatch, FakeSession(FakeResponse()))

    with pytest.raises(FetchError):
        fetcher.fetch("mailto:someone@example.edu")

    fetcher.close()
    with pytest.raises(FetchError):
        fetcher.fetch("https://example.edu/")


def test_slow_trickling_download_hits_total_deadline(monkeypatch):
    clock = {"now": 1000.0}

    def trickle(chunk_size=1):
        for _ in range(20):
            clock["now"] += 1.5
            yield b"x"

    monkeypatch.setattr(
        fetcher_module,
        "time",
        SimpleNamespace(
            monotonic=lambda: clock["now"],
            perf_counter=time.perf_counter,
            sleep=time.sleep,
        ),
    )
    response = FakeResponse(chunks=())
    response.iter_content = trickle
    fetcher = _fetcher_with(monkeypatch, FakeSession(response), timeout_seconds=5.0)

    with pytest.raises(FetchError) as excinfo:
        fetcher.fetch("https://example.edu/slow")

    assert "timeout_seconds=5.0" in str(excinfo.value)
    assert clock["now"] < 1000.0 + 20 * 1.5


def test_release_thread_session_closes_only_the_callers_session():
    fetcher = Fetcher(CrawlConfig())
    mine = fetcher._thread_local_session()
    other = {}
    worker = threading.Thread(target=lambda: other.update(session=fetcher._thread_local_session()))
    worker.start()
    worker.join()

    fetcher.release_thread_session()

    assert fetcher._sessions == [other["session"]]
    assert fetcher._thread_local_session() is not mine
    fetcher.close()
    assert fetcher._sessions == []
