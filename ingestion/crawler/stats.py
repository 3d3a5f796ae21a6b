"""Thread-safe per-job crawl statistics."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
import threading
from typing import Any, Mapping

from .errors import ExtractionError
from .frontier import EnqueueResult, EnqueueStatus
from .types import FileType, utc_now_iso


class JobStatsCollector:
    """Collect and summarize statistics for one crawl job.

    Shared by every worker of the job; all mutation happens under one lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

        self._started_at = utc_now_iso()
        self._finished_at: str | None = None

        self._enqueue_counts: dict[str, int] = defaultdict(int)
        self._extraction_counts: dict[str, dict[str, int]] = defaultdict(
            lambda: {"ok": 0, "error": 0}
        )
        self._error_type_counts: dict[str, int] = defaultdict(int)
        self._skip_counts: dict[str, int] = defaultdict(int)
        self._store_counts: dict[str, int] = defaultdict(int)

        self._text_chars_total = 0
        self._links_discovered_total = 0
        self._frontier_snapshot: dict[str, int | bool] = {}

    def record_enqueue(self, result_or_status: EnqueueResult | EnqueueStatus) -> None:
        """Record one frontier enqueue outcome."""

        if isinstance(result_or_status, EnqueueResult):
            status = result_or_status.status
        else:
            status = result_or_status

        with self._lock:
            self._enqueue_counts[status.value] += 1

    def record_enqueue_many(
        self, results: list[EnqueueResult] | tuple[EnqueueResult, ...]
    ) -> None:
        for result in results:
            self.record_enqueue(result)

    def record_links(self, count: int) -> None:
        if count <= 0:
            return
        with self._lock:
            self._links_discovered_total += count

    def record_extraction(
        self,
        file_type: FileType,
        *,
        text_chars: int = 0,
        error: ExtractionError | None = None,
    ) -> None:
        """Record one extraction attempt, successful or not."""

        state = "ok" if error is None else "error"
        with self._lock:
            self._extraction_counts[file_type.value][state] += 1
            if error is None:
                self._text_chars_total += text_chars
            else:
                self._error_type_counts[error.error_type] += 1

    def record_skip(self, reason: str) -> None:
        """Record a dequeued URL that produced no document (empty, unsupported, ...)."""

        with self._lock:
            self._skip_counts[reason] += 1

    def record_store(self, outcome: str) -> None:
        """Record a document store outcome: saved, replaced, duplicate, unchanged, error."""

        with self._lock:
            self._store_counts[outcome] += 1

    def record_frontier_snapshot(self, snapshot: Mapping[str, int | bool]) -> None:
        with self._lock:
            self._frontier_snapshot = dict(snapshot)

    def finish(self) -> None:
        with self._lock:
            if self._finished_at is None:
                self._finished_at = utc_now_iso()

    def to_json(self) -> dict[str, Any]:
        """Return a JSON-serializable summary payload."""

        with self._lock:
            start = _parse_iso_utc(self._started_at)
            end = (
                _parse_iso_utc(self._finished_at)
                if self._finished_at
                else datetime.now(timezone.utc)
            )
            duration_seconds = max(0.0, (end - start).total_seconds())

            return {
                "started_at": self._started_at,
                "finished_at": self._finished_at,
                "duration_seconds": duration_seconds,
                "enqueue": dict(self._enqueue_counts),
                "extraction": {
                    "by_file_type": {
                        key: dict(bucket) for key, bucket in self._extraction_counts.items()
                    },
                    "error_type_counts": dict(self._error_type_counts),
                    "text_chars_total": self._text_chars_total,
                },
                "links_discovered_total": self._links_discovered_total,
                "skipped": dict(self._skip_counts),
                "store": dict(self._store_counts),
                "frontier": dict(self._frontier_snapshot),
            }


def _parse_iso_utc(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


__all__ = ["JobStatsCollector"]
