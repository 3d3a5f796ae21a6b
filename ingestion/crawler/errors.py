"""Exception types raised by fetcher, extractors, document stores, and job tracking."""

from __future__ import annotations


class CrawlerError(RuntimeError):
    """Base class for crawler failures."""


class ExtractionError(CrawlerError):
    """Raised when one URL cannot be fetched or converted to text.

    The engine treats this as a per-node failure: the job keeps running.
    """

    def __init__(self, url: str, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(f"{message} ({url})")
        self.url = url
        self.reason = message
        self.cause = cause

    @property
    def error_type(self) -> str:
        if self.cause is not None:
            return self.cause.__class__.__name__
        return self.__class__.__name__


class FetchError(ExtractionError):
    """Network failure, timeout, or non-2xx HTTP response."""

    def __init__(
        self,
        url: str,
        message: str,
        *,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(url, message, cause=cause)
        self.status_code = status_code


class ParseError(ExtractionError):
    """Malformed or unreadable HTML/PDF/Word payload."""


class CrawlCancelledError(CrawlerError):
    """Raised inside a fetch when the owning job has been cancelled."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Crawl cancelled before {url} finished downloading")
        self.url = url


class StoreError(CrawlerError):
    """Document store rejected a write for this document only."""


class DuplicateURLError(StoreError):
    """Document store already holds a document for this URL."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Document already stored for {url}")
        self.url = url


class StoreUnavailableError(StoreError):
    """Document store cannot be reached at all; fatal for the running job."""


class JobNotFoundError(KeyError):
    """No crawl job is registered under the requested id."""

    def __init__(self, job_id: str) -> None:
        super().__init__(job_id)
        self.job_id = job_id

    def __str__(self) -> str:
        return f"Unknown crawl job: {self.job_id}"


__all__ = [
    "CrawlCancelledError",
    "CrawlerError",
    "DuplicateURLError",
    "ExtractionError",
    "FetchError",
    "JobNotFoundError",
    "ParseError",
    "StoreError",
    "StoreUnavailableError",
]
