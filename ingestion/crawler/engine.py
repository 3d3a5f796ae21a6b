"""Crawl orchestration: one background task per job fanning out to a worker pool."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field

from .config import CrawlConfig
from .constants import WORKER_JOIN_TIMEOUT_SECONDS, WORKER_POLL_SECONDS
from .errors import (
    CrawlCancelledError,
    CrawlerError,
    DuplicateURLError,
    ExtractionError,
    StoreError,
    StoreUnavailableError,
)
from .extractor import ContentExtractor
from .frontier import Frontier
from .stats import JobStatsCollector
from .store import DocumentStore, InMemoryDocumentStore
from .tracker import JobTracker
from .types import (
    CrawlJob,
    CrawledDocument,
    Extraction,
    FileType,
    FrontierEntry,
    classify_file_type,
)
from .url import base_domain, discover_links, normalize_url


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class JobContext:
    """State owned by one running job and shared by its workers only."""

    job_id: str
    root_url: str
    base_domain: str
    max_depth: int
    frontier: Frontier
    stats: JobStatsCollector = field(default_factory=JobStatsCollector)
    # Set on cancel and on fatal error; passed to fetches so downloads stop early.
    stop_event: threading.Event = field(default_factory=threading.Event)
    done_event: threading.Event = field(default_factory=threading.Event)
    cancel_requested: bool = False
    fatal_error: BaseException | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def stopped(self) -> bool:
        return self.stop_event.is_set()

    def request_cancel(self) -> None:
        with self._lock:
            self.cancel_requested = True
        self.stop_event.set()

    def record_fatal(self, exc: BaseException) -> bool:
        """Keep the first fatal error; returns True if this one was recorded."""

        with self._lock:
            if self.fatal_error is not None:
                return False
            self.fatal_error = exc
        self.stop_event.set()
        return True


class CrawlEngine:
    """Run crawl jobs against a document store and report progress to a tracker.

    `start_crawl` returns immediately with a job id; traversal runs on a
    background thread that starts `config.concurrency` workers over the job's
    frontier. Callers poll `get_status` or block on `wait`.
    """

    def __init__(
        self,
        config: CrawlConfig | None = None,
        *,
        store: DocumentStore | None = None,
        extractor: ContentExtractor | None = None,
        tracker: JobTracker | None = None,
    ) -> None:
        self.config = config or CrawlConfig()

        self.store = store or InMemoryDocumentStore()
        self.extractor = extractor or ContentExtractor(self.config)
        self.tracker = tracker or JobTracker()

        self._owns_extractor = extractor is None

        self._contexts_lock = threading.Lock()
        self._contexts: dict[str, JobContext] = {}
        self._closed = False

    def start_crawl(self, root_url: str, max_depth: int | None = None) -> str:
        """Register a job and crawl it in the background; returns the job id."""

        context = self._create_context(root_url, max_depth)
        thread = threading.Thread(
            target=self._run_job,
            args=(context,),
            name=f"crawl-job-{context.job_id[:8]}",
            daemon=True,
        )
        thread.start()
        return context.job_id

    def run_crawl(self, root_url: str, max_depth: int | None = None) -> CrawlJob:
        """Crawl in the calling thread and return the terminal job snapshot."""

        context = self._create_context(root_url, max_depth)
        self._run_job(context)
        return self.tracker.get_status(context.job_id)

    def get_status(self, job_id: str) -> CrawlJob:
        return self.tracker.get_status(job_id)

    def wait(self, job_id: str, timeout: float | None = None) -> CrawlJob:
        """Block until the job is terminal or `timeout` elapses; returns a snapshot."""

        with self._contexts_lock:
            context = self._contexts.get(job_id)
        if context is not None:
            context.done_event.wait(timeout)
        return self.tracker.get_status(job_id)

    def cancel(self, job_id: str) -> bool:
        """Stop a running job: no new entries, queued entries dropped.

        In-flight downloads observe the stop event between chunks. Returns False
        if the job already finished; raises `JobNotFoundError` for unknown ids.
        """

        with self._contexts_lock:
            context = self._contexts.get(job_id)
        if context is None:
            self.tracker.get_status(job_id)
            return False

        context.request_cancel()
        context.frontier.close()
        drained = context.frontier.drain()
        LOGGER.info("Cancelling crawl job %s (%d queued entries dropped)", job_id, drained)
        return True

    def shutdown(self, *, wait: bool = True, timeout: float | None = None) -> None:
        """Cancel running jobs, optionally wait for them, and release fetch resources."""

        with self._contexts_lock:
            self._closed = True
            contexts = list(self._contexts.values())

        for context in contexts:
            self.cancel(context.job_id)

        if wait:
            for context in contexts:
                context.done_event.wait(timeout)

        if self._owns_extractor:
            self.extractor.close()

    def __enter__(self) -> "CrawlEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def _create_context(self, root_url: str, max_depth: int | None) -> JobContext:
        depth = self.config.max_depth if max_depth is None else int(max_depth)
        if depth < 0:
            raise ValueError("max_depth must be >= 0")

        normalized = normalize_url(root_url)
        if not normalized:
            raise ValueError(f"Invalid root URL: {root_url!r}")
        domain = base_domain(normalized)

        job_id = uuid.uuid4().hex
        frontier = Frontier(
            self.config,
            base_domain=domain,
            max_depth=depth,
            store=self.store,
        )
        context = JobContext(
            job_id=job_id,
            root_url=normalized,
            base_domain=domain,
            max_depth=depth,
            frontier=frontier,
        )

        with self._contexts_lock:
            if self._closed:
                raise CrawlerError("Crawl engine has been shut down")
            self.tracker.create_job(job_id, normalized, depth)
            self._contexts[job_id] = context
        return context

    def _run_job(self, context: JobContext) -> None:
        LOGGER.info(
            "Starting crawl job %s: %s (domain=%s, max_depth=%d)",
            context.job_id,
            context.root_url,
            context.base_domain,
            context.max_depth,
        )

        frontier = context.frontier
        workers: list[threading.Thread] = []
        try:
            result = frontier.push(context.root_url, depth=0)
            context.stats.record_enqueue(result)
            if not result.accepted:
                LOGGER.info("Root URL %s not scheduled: %s", context.root_url, result.status.value)
            else:
                workers = [
                    threading.Thread(
                        target=self._frontier_worker,
                        args=(context,),
                        name=f"crawler-worker-{idx}",
                        daemon=True,
                    )
                    for idx in range(self.config.concurrency)
                ]
                for worker in workers:
                    worker.start()

                frontier.join()
        except Exception as exc:
            LOGGER.exception("Crawl job %s aborted", context.job_id)
            context.record_fatal(exc)
        finally:
            frontier.close()
            frontier.drain()
            for worker in workers:
                worker.join(timeout=WORKER_JOIN_TIMEOUT_SECONDS)
            self._finish_job(context)

    def _frontier_worker(self, context: JobContext) -> None:
        try:
            self._drain_frontier(context)
        finally:
            self.extractor.release_thread_resources()

    def _drain_frontier(self, context: JobContext) -> None:
        frontier = context.frontier
        while True:
            entry = frontier.pop(block=True, timeout=WORKER_POLL_SECONDS)
            if entry is None:
                if frontier.closed and frontier.empty():
                    return
                continue

            try:
                if not context.stopped:
                    self._process_entry(context, entry)
            except StoreUnavailableError as exc:
                LOGGER.error("Document store unavailable in job %s: %s", context.job_id, exc)
                self._abort(context, exc)
            except Exception as exc:
                LOGGER.exception("Unexpected error while crawling %s", entry.url)
                self._abort(context, exc)
            finally:
                frontier.task_done()

    def _process_entry(self, context: JobContext, entry: FrontierEntry) -> None:
        job_id = context.job_id
        self.tracker.increment_total(job_id)
        LOGGER.info("Crawling %s (depth=%d)", entry.url, entry.depth)

        file_type = classify_file_type(entry.url)
        if not self.extractor.supports(file_type):
            context.stats.record_skip("unsupported_file_type")
            LOGGER.info("Skipping %s: no extractor for %s", entry.url, file_type.value)
            return

        try:
            extraction = self.extractor.extract(
                entry.url,
                file_type=file_type,
                cancel_event=context.stop_event,
            )
        except CrawlCancelledError:
            context.stats.record_skip("cancelled")
            return
        except ExtractionError as exc:
            self.tracker.increment_failed(job_id)
            context.stats.record_extraction(file_type, error=exc)
            LOGGER.warning("Failed to extract %s: %s", entry.url, exc)
            return

        context.stats.record_extraction(file_type, text_chars=len(extraction.text))

        if file_type == FileType.HTML and entry.depth < context.max_depth:
            self._enqueue_links(context, entry, extraction)

        if extraction.empty:
            context.stats.record_skip("empty_content")
            LOGGER.debug("Discarding %s: no text extracted", entry.url)
            return

        document = CrawledDocument.from_extraction(
            extraction,
            depth=entry.depth,
            parent_url=entry.parent_url,
        )
        self._persist(context, document)

    def _enqueue_links(
        self,
        context: JobContext,
        entry: FrontierEntry,
        extraction: Extraction,
    ) -> None:
        if not extraction.html:
            return

        links = discover_links(
            extraction.html,
            base_url=extraction.final_url,
            base_domain=context.base_domain,
            from_encoding=extraction.charset,
        )
        context.stats.record_links(len(links))

        results = [
            context.frontier.push(link, depth=entry.depth + 1, parent_url=entry.url)
            for link in links.all_links()
        ]
        context.stats.record_enqueue_many(results)

    def _persist(self, context: JobContext, document: CrawledDocument) -> None:
        job_id = context.job_id
        try:
            outcome = self._write_document(document)
        except DuplicateURLError:
            # Another job stored this URL first; the page is already known.
            LOGGER.debug("Document for %s already stored", document.url)
            outcome = "duplicate"
        except StoreUnavailableError:
            raise
        except StoreError as exc:
            self.tracker.increment_failed(job_id)
            context.stats.record_store("error")
            LOGGER.warning("Failed to store %s: %s", document.url, exc)
            return

        self.tracker.increment_success(job_id)
        context.stats.record_store(outcome)
        if outcome in {"saved", "replaced"}:
            LOGGER.info(
                "Saved %s (%s, %d chars, %s)",
                document.url,
                document.file_type.value,
                len(document.content),
                outcome,
            )

    def _write_document(self, document: CrawledDocument) -> str:
        if self.config.force_fresh:
            existing = self.store.get(document.url)
            if existing is not None:
                if existing.content_hash == document.content_hash:
                    return "unchanged"
                self.store.replace(document)
                return "replaced"

        self.store.save(document)
        return "saved"

    @staticmethod
    def _abort(context: JobContext, exc: BaseException) -> None:
        if context.record_fatal(exc):
            context.frontier.close()
            context.frontier.drain()

    def _finish_job(self, context: JobContext) -> None:
        context.stats.record_frontier_snapshot(context.frontier.snapshot())
        context.stats.finish()
        summary = context.stats.to_json()

        job_id = context.job_id
        if context.fatal_error is not None:
            message = f"{context.fatal_error.__class__.__name__}: {context.fatal_error}"
            self.tracker.fail(job_id, message, summary=summary)
        elif context.cancel_requested:
            self.tracker.cancel(job_id, summary=summary)
        else:
            self.tracker.complete(job_id, summary=summary)

        job = self.tracker.get_status(job_id)
        LOGGER.info(
            "Crawl job %s finished: %s (total=%d success=%d failed=%d)",
            job_id,
            job.status.value,
            job.total_pages,
            job.success_pages,
            job.failed_pages,
        )

        context.done_event.set()
        with self._contexts_lock:
            self._contexts.pop(job_id, None)


__all__ = [
    "CrawlEngine",
    "JobContext",
]
