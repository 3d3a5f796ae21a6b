"""Process-wide registry of crawl jobs and their progress counters."""

from __future__ import annotations

import logging
import threading
from typing import Mapping

from .errors import JobNotFoundError
from .types import CrawlJob, JobStatus, JSONValue, utc_now_iso


LOGGER = logging.getLogger(__name__)


class JobTracker:
    """Thread-safe job registry.

    Every job has its own lock, so counter updates for one job never contend
    with another. Once a job leaves RUNNING it is frozen: terminal transitions
    return False and counter increments are ignored.
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._jobs: dict[str, CrawlJob] = {}
        self._job_locks: dict[str, threading.Lock] = {}

    def create_job(self, job_id: str, root_url: str, max_depth: int) -> CrawlJob:
        if max_depth < 0:
            raise ValueError("max_depth must be >= 0")

        job = CrawlJob(job_id=job_id, root_url=root_url, max_depth=max_depth)
        with self._registry_lock:
            if job_id in self._jobs:
                raise ValueError(f"Crawl job already registered: {job_id}")
            self._jobs[job_id] = job
            self._job_locks[job_id] = threading.Lock()
        return job.snapshot()

    def increment_total(self, job_id: str, amount: int = 1) -> None:
        self._increment(job_id, "total_pages", amount)

    def increment_success(self, job_id: str, amount: int = 1) -> None:
        self._increment(job_id, "success_pages", amount)

    def increment_failed(self, job_id: str, amount: int = 1) -> None:
        self._increment(job_id, "failed_pages", amount)

    def complete(self, job_id: str, *, summary: Mapping[str, JSONValue] | None = None) -> bool:
        return self._finish(job_id, JobStatus.COMPLETED, None, summary)

    def fail(
        self,
        job_id: str,
        message: str,
        *,
        summary: Mapping[str, JSONValue] | None = None,
    ) -> bool:
        return self._finish(job_id, JobStatus.FAILED, message, summary)

    def cancel(self, job_id: str, *, summary: Mapping[str, JSONValue] | None = None) -> bool:
        return self._finish(job_id, JobStatus.CANCELLED, None, summary)

    def get_status(self, job_id: str) -> CrawlJob:
        """Return a point-in-time copy of the job; raises `JobNotFoundError`."""

        job, lock = self._lookup(job_id)
        with lock:
            return job.snapshot()

    def list_jobs(self) -> list[CrawlJob]:
        with self._registry_lock:
            entries = [(self._jobs[job_id], self._job_locks[job_id]) for job_id in self._jobs]

        snapshots = []
        for job, lock in entries:
            with lock:
                snapshots.append(job.snapshot())
        return snapshots

    def evict(self, job_id: str) -> bool:
        """Drop a terminal job from the registry; running jobs are kept."""

        job, lock = self._lookup(job_id)
        with lock:
            if not job.status.terminal:
                return False
        with self._registry_lock:
            self._jobs.pop(job_id, None)
            self._job_locks.pop(job_id, None)
        return True

    def _lookup(self, job_id: str) -> tuple[CrawlJob, threading.Lock]:
        with self._registry_lock:
            job = self._jobs.get(job_id)
            lock = self._job_locks.get(job_id)
        if job is None or lock is None:
            raise JobNotFoundError(job_id)
        return job, lock

    def _increment(self, job_id: str, field_name: str, amount: int) -> None:
        job, lock = self._lookup(job_id)
        with lock:
            if job.status.terminal:
                LOGGER.debug("Ignoring %s update on finished job %s", field_name, job_id)
                return
            setattr(job, field_name, getattr(job, field_name) + amount)

    def _finish(
        self,
        job_id: str,
        status: JobStatus,
        message: str | None,
        summary: Mapping[str, JSONValue] | None,
    ) -> bool:
        job, lock = self._lookup(job_id)
        with lock:
            if job.status.terminal:
                return False
            job.status = status
            job.end_time = utc_now_iso()
            job.error_message = message
            if summary is not None:
                job.summary = dict(summary)
        return True


__all__ = ["JobTracker"]
