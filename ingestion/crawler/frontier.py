"""Thread-safe per-job frontier with depth, scope, budget, and dedup enforcement."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from enum import Enum

from .config import CrawlConfig
from .store import DocumentStore
from .types import FrontierEntry
from .url import is_same_domain, normalize_url


class EnqueueStatus(str, Enum):
    """Result status for frontier enqueue attempts."""

    ENQUEUED = "enqueued"
    SKIPPED_INVALID_URL = "skipped_invalid_url"
    SKIPPED_OUT_OF_SCOPE = "skipped_out_of_scope"
    SKIPPED_FILTERED = "skipped_filtered"
    SKIPPED_DEPTH = "skipped_depth"
    SKIPPED_SEEN = "skipped_seen"
    SKIPPED_PERSISTED = "skipped_persisted"
    SKIPPED_BUDGET = "skipped_budget"
    SKIPPED_CLOSED = "skipped_closed"


@dataclass(frozen=True, slots=True)
class EnqueueResult:
    """Outcome of one enqueue attempt."""

    status: EnqueueStatus
    normalized_url: str | None = None
    entry: FrontierEntry | None = None

    @property
    def accepted(self) -> bool:
        return self.status == EnqueueStatus.ENQUEUED


class Frontier:
    """Work queue and visited set for one crawl job.

    - Thread-safe `push` and `pop` for concurrent producer/consumer workers.
    - A URL is marked visited at enqueue time, under the lock, so no two
      workers can ever be handed the same URL.
    - URLs already present in the document store are skipped unless the
      config asks for a fresh crawl. They stay in the visited set.
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        base_domain: str,
        max_depth: int,
        store: DocumentStore | None = None,
    ) -> None:
        if max_depth < 0:
            raise ValueError("max_depth must be >= 0")

        self.config = config
        self.base_domain = base_domain
        self.max_depth = max_depth
        self.store = store

        self._check_store = store is not None and not config.force_fresh

        self._queue: queue.Queue[FrontierEntry] = queue.Queue()
        self._lock = threading.Lock()

        self._visited: set[str] = set()
        self._accepted = 0
        self._closed = False

        self._enqueued_count = 0
        self._dequeued_count = 0
        self._drained_count = 0
        self._skipped_counts: dict[EnqueueStatus, int] = {}

    def should_visit(self, url: str, depth: int, parent_url: str | None = None) -> bool:
        """Test-and-set: return True if `url` was newly scheduled at `depth`."""

        return self.push(url, depth=depth, parent_url=parent_url).accepted

    def push(
        self,
        url: str,
        *,
        depth: int,
        parent_url: str | None = None,
    ) -> EnqueueResult:
        """Attempt to enqueue one URL with constraints enforced.

        May raise `StoreUnavailableError` from the document store existence check.
        """

        normalized = normalize_url(url)
        if not normalized:
            return self._skip(EnqueueStatus.SKIPPED_INVALID_URL, None)

        if depth > self.max_depth:
            return self._skip(EnqueueStatus.SKIPPED_DEPTH, normalized)

        if not is_same_domain(normalized, self.base_domain):
            return self._skip(EnqueueStatus.SKIPPED_OUT_OF_SCOPE, normalized)

        if not self.config.is_url_selected(normalized):
            return self._skip(EnqueueStatus.SKIPPED_FILTERED, normalized)

        with self._lock:
            if self._closed:
                return self._skip_locked(EnqueueStatus.SKIPPED_CLOSED, normalized)
            if normalized in self._visited:
                return self._skip_locked(EnqueueStatus.SKIPPED_SEEN, normalized)
            if self._accepted >= self.config.max_pages:
                return self._skip_locked(EnqueueStatus.SKIPPED_BUDGET, normalized)

            # Claim the URL and reserve budget before releasing the lock.
            self._visited.add(normalized)
            self._accepted += 1

        if self._check_store and self.store.exists(normalized):
            with self._lock:
                self._accepted -= 1
                return self._skip_locked(EnqueueStatus.SKIPPED_PERSISTED, normalized)

        entry = FrontierEntry(url=normalized, depth=depth, parent_url=parent_url)
        with self._lock:
            if self._closed:
                return self._skip_locked(EnqueueStatus.SKIPPED_CLOSED, normalized)
            self._queue.put(entry)
            self._enqueued_count += 1

        return EnqueueResult(EnqueueStatus.ENQUEUED, normalized_url=normalized, entry=entry)

    def pop(self, *, block: bool = True, timeout: float | None = None) -> FrontierEntry | None:
        """Pop one entry; `None` when nothing arrives under the blocking mode."""

        try:
            if block:
                entry = self._queue.get(block=True, timeout=timeout)
            else:
                entry = self._queue.get(block=False)
        except queue.Empty:
            return None

        with self._lock:
            self._dequeued_count += 1
        return entry

    def task_done(self) -> None:
        """Mark one popped entry as finished (delegates to Queue.task_done)."""

        self._queue.task_done()

    def join(self) -> None:
        """Block until every queued entry is marked done."""

        self._queue.join()

    def close(self) -> None:
        """Close frontier to future enqueue attempts."""

        with self._lock:
            self._closed = True

    def drain(self) -> int:
        """Discard queued entries without processing them; returns how many."""

        drained = 0
        while True:
            try:
                self._queue.get(block=False)
            except queue.Empty:
                break
            self._queue.task_done()
            drained += 1

        with self._lock:
            self._drained_count += drained
        return drained

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def qsize(self) -> int:
        """Approximate queue size."""

        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()

    def visited_urls(self) -> set[str]:
        with self._lock:
            return set(self._visited)

    def snapshot(self) -> dict[str, int | bool]:
        """Return frontier counters for logs/stats reporting."""

        with self._lock:
            payload: dict[str, int | bool] = {
                "closed": self._closed,
                "queue_size": self._queue.qsize(),
                "visited_urls": len(self._visited),
                "accepted": self._accepted,
                "enqueued": self._enqueued_count,
                "dequeued": self._dequeued_count,
                "drained": self._drained_count,
            }
            for status, count in self._skipped_counts.items():
                payload[status.value] = count
            return payload

    def _skip(self, status: EnqueueStatus, normalized: str | None) -> EnqueueResult:
        with self._lock:
            return self._skip_locked(status, normalized)

    def _skip_locked(self, status: EnqueueStatus, normalized: str | None) -> EnqueueResult:
        self._skipped_counts[status] = self._skipped_counts.get(status, 0) + 1
        return EnqueueResult(status, normalized_url=normalized)


__all__ = [
    "EnqueueResult",
    "EnqueueStatus",
    "Frontier",
]
