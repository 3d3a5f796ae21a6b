"""HTTP fetching with bounded timeouts, per-host rate limiting, and cancellation."""

from __future__ import annotations

import logging
import threading
import time

import requests

from .config import CrawlConfig
from .constants import DOWNLOAD_CHUNK_BYTES
from .errors import CrawlCancelledError, FetchError
from .types import FetchResult
from .url import host_from_url, normalize_url


LOGGER = logging.getLogger(__name__)


class Fetcher:
    """Fetch URLs with `requests`.

    Concurrency model:
    - One `requests.Session` per worker thread (sessions are not shared across threads).
    - Per-host pacing is coordinated through a lock-protected schedule.

    Failed fetches are never retried; callers get a `FetchError` and move on.
    """

    def __init__(self, config: CrawlConfig) -> None:
        self.config = config

        self._thread_local = threading.local()

        self._rate_lock = threading.Lock()
        self._next_allowed_time_by_host: dict[str, float] = {}

        self._sessions_lock = threading.Lock()
        self._sessions: list[requests.Session] = []

        self._closed = False
        self._closed_lock = threading.Lock()

    def fetch(self, url: str, *, cancel_event: threading.Event | None = None) -> FetchResult:
        """GET one URL and return its body.

        Raises `FetchError` on network errors, timeouts (per read and for the
        whole download), non-2xx statuses, and oversized bodies;
        `CrawlCancelledError` if `cancel_event` is set before or during the
        download.
        """

        normalized = normalize_url(url, strip_query=False)
        if normalized is None:
            raise FetchError(url, "Invalid or unsupported URL")

        if self._is_closed():
            raise FetchError(normalized, "Fetcher is closed")

        self._raise_if_cancelled(normalized, cancel_event)
        self._wait_for_rate_limit(normalized, cancel_event)
        self._raise_if_cancelled(normalized, cancel_event)

        started = time.perf_counter()
        deadline = time.monotonic() + self.config.timeout_seconds
        session = self._thread_local_session()

        try:
            with session.get(
                normalized,
                headers=self.config.headers(),
                timeout=self.config.timeout_seconds,
                allow_redirects=True,
                stream=True,
            ) as response:
                if not 200 <= response.status_code < 300:
                    raise FetchError(
                        normalized,
                        f"HTTP status {response.status_code}",
                        status_code=response.status_code,
                    )
                body = self._read_body(normalized, response, cancel_event, deadline)
                elapsed_ms = int((time.perf_counter() - started) * 1000)
                LOGGER.debug("Fetched %s (%d bytes, %d ms)", normalized, len(body), elapsed_ms)
                return FetchResult(
                    requested_url=normalized,
                    final_url=response.url or normalized,
                    status_code=response.status_code,
                    content_type=response.headers.get("Content-Type"),
                    body=body,
                    elapsed_ms=elapsed_ms,
                )
        except requests.RequestException as exc:
            raise FetchError(
                normalized,
                f"{exc.__class__.__name__}: {exc}",
                cause=exc,
            ) from exc

    def close(self) -> None:
        """Close fetcher resources (notably per-thread sessions)."""

        with self._closed_lock:
            self._closed = True

        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()

    def release_thread_session(self) -> None:
        """Close the calling thread's session, if it has one."""

        session = getattr(self._thread_local, "session", None)
        if session is None:
            return
        self._thread_local.session = None
        with self._sessions_lock:
            if session in self._sessions:
                self._sessions.remove(session)
        session.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _is_closed(self) -> bool:
        with self._closed_lock:
            return self._closed

    @staticmethod
    def _raise_if_cancelled(url: str, cancel_event: threading.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise CrawlCancelledError(url)

    def _read_body(
        self,
        url: str,
        response: requests.Response,
        cancel_event: threading.Event | None,
        deadline: float,
    ) -> bytes:
        limit = self.config.max_content_bytes

        declared = response.headers.get("Content-Length")
        if declared and declared.isdigit() and int(declared) > limit:
            raise FetchError(
                url,
                f"Content-Length {declared} exceeds max_content_bytes={limit}",
                status_code=response.status_code,
            )

        chunks: list[bytes] = []
        received = 0
        for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_BYTES):
            self._raise_if_cancelled(url, cancel_event)
            if time.monotonic() > deadline:
                raise FetchError(
                    url,
                    f"Download exceeded timeout_seconds={self.config.timeout_seconds}",
                    status_code=response.status_code,
                )
            if not chunk:
                continue
            received += len(chunk)
            if received > limit:
                raise FetchError(
                    url,
                    f"Body exceeds max_content_bytes={limit}",
                    status_code=response.status_code,
                )
            chunks.append(chunk)
        return b"".join(chunks)

    def _thread_local_session(self) -> requests.Session:
        session = getattr(self._thread_local, "session", None)
        if session is None:
            session = requests.Session()
            self._thread_local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def _wait_for_rate_limit(self, url: str, cancel_event: threading.Event | None) -> None:
        wait_seconds = max(0.0, self.config.rate_limit_seconds)
        if wait_seconds <= 0:
            return

        host = host_from_url(url)

        while True:
            with self._rate_lock:
                now = time.monotonic()
                next_allowed = self._next_allowed_time_by_host.get(host, 0.0)
                if now >= next_allowed:
                    self._next_allowed_time_by_host[host] = now + wait_seconds
                    return
                sleep_for = next_allowed - now

            if sleep_for > 0:
                # Event.wait doubles as an interruptible sleep.
                if cancel_event is not None:
                    if cancel_event.wait(sleep_for):
                        raise CrawlCancelledError(url)
                else:
                    time.sleep(sleep_for)


__all__ = ["Fetcher"]
