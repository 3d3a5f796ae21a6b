"""Core type definitions for the crawl engine.

This module is intentionally dependency-light so other crawler modules can import
shared records without introducing cycles.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from hashlib import sha256
from typing import Any, Mapping
from urllib.parse import unquote, urlsplit


class FileType(str, Enum):
    """Resource categories selected from the URL path suffix."""

    HTML = "HTML"
    PDF = "PDF"
    DOCX = "DOCX"
    DOC = "DOC"
    EXCEL = "EXCEL"
    TEXT = "TEXT"
    IMAGE = "IMAGE"


class JobStatus(str, Enum):
    """Lifecycle states of one crawl job."""

    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def terminal(self) -> bool:
        return self != JobStatus.RUNNING


class DocumentStatus(str, Enum):
    SUCCESS = "SUCCESS"


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


FILE_TYPE_SUFFIXES: tuple[tuple[str, FileType], ...] = (
    (".pdf", FileType.PDF),
    (".docx", FileType.DOCX),
    (".doc", FileType.DOC),
    (".xlsx", FileType.EXCEL),
    (".xls", FileType.EXCEL),
    (".txt", FileType.TEXT),
    (".jpg", FileType.IMAGE),
    (".jpeg", FileType.IMAGE),
    (".png", FileType.IMAGE),
    (".gif", FileType.IMAGE),
)

_WHITESPACE_RE = re.compile(r"\s+")


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string for job and document records."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def classify_file_type(url: str) -> FileType:
    """Map the trailing extension of a URL path to a `FileType`.

    Matching is case-insensitive; anything without a known suffix is HTML.
    """

    path = urlsplit(url.strip()).path.lower()
    for suffix, file_type in FILE_TYPE_SUFFIXES:
        if path.endswith(suffix):
            return file_type
    return FileType.HTML


def collapse_whitespace(text: str) -> str:
    """Collapse whitespace runs to single spaces and trim."""

    return _WHITESPACE_RE.sub(" ", text or "").strip()


def content_fingerprint(text: str) -> str:
    """Deterministic fingerprint of extracted text (SHA-256 hex digest)."""

    return sha256(text.encode("utf-8")).hexdigest()


def filename_from_url(url: str) -> str:
    """Return the last path component of a URL, or the URL itself if there is none."""

    path = urlsplit(url).path
    name = unquote(path.rsplit("/", maxsplit=1)[-1]) if path else ""
    return name or url


@dataclass(frozen=True, slots=True)
class FrontierEntry:
    """A crawl candidate owned by one job's frontier."""

    url: str
    depth: int
    parent_url: str | None = None
    discovered_at: str = field(default_factory=utc_now_iso)


@dataclass(slots=True)
class FetchResult:
    """Bytes downloaded for one URL."""

    requested_url: str
    final_url: str
    status_code: int
    content_type: str | None
    body: bytes
    fetched_at: str = field(default_factory=utc_now_iso)
    elapsed_ms: int | None = None

    @property
    def content_length(self) -> int:
        return len(self.body)

    @property
    def charset(self) -> str | None:
        for part in (self.content_type or "").split(";")[1:]:
            key, _, value = part.partition("=")
            if key.strip().lower() == "charset" and value.strip():
                return value.strip().strip('"')
        return None


@dataclass(slots=True)
class ExtractedContent:
    """Plain text (and optional title) produced by one type-specific extractor."""

    text: str
    title: str | None = None
    metadata: dict[str, JSONValue] = field(default_factory=dict)


@dataclass(slots=True)
class Extraction:
    """Result of fetching and extracting one URL through `ContentExtractor`."""

    url: str
    final_url: str
    file_type: FileType
    title: str
    text: str
    content_type: str | None = None
    html: bytes | None = None
    charset: str | None = None
    metadata: dict[str, JSONValue] = field(default_factory=dict)

    @property
    def empty(self) -> bool:
        return not self.text.strip()


@dataclass(frozen=True, slots=True)
class CrawledDocument:
    """One extracted resource written to the document store, keyed by URL."""

    url: str
    title: str
    content: str
    file_type: FileType
    content_hash: str
    depth: int
    parent_url: str | None = None
    crawled_at: str = field(default_factory=utc_now_iso)
    status: DocumentStatus = DocumentStatus.SUCCESS

    @classmethod
    def from_extraction(
        cls,
        extraction: Extraction,
        *,
        depth: int,
        parent_url: str | None,
    ) -> "CrawledDocument":
        content = extraction.text.strip()
        return cls(
            url=extraction.url,
            title=extraction.title,
            content=content,
            file_type=extraction.file_type,
            content_hash=content_fingerprint(content),
            depth=depth,
            parent_url=parent_url,
        )

    def to_json(self) -> JSONDict:
        return {
            "url": self.url,
            "title": self.title,
            "content": self.content,
            "file_type": self.file_type.value,
            "content_hash": self.content_hash,
            "depth": self.depth,
            "parent_url": self.parent_url,
            "crawled_at": self.crawled_at,
            "status": self.status.value,
        }

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> "CrawledDocument":
        return cls(
            url=str(payload["url"]),
            title=str(payload.get("title") or ""),
            content=str(payload.get("content") or ""),
            file_type=FileType(str(payload.get("file_type", FileType.HTML.value))),
            content_hash=str(payload.get("content_hash") or ""),
            depth=int(payload.get("depth", 0)),
            parent_url=payload.get("parent_url"),
            crawled_at=str(payload.get("crawled_at") or utc_now_iso()),
            status=DocumentStatus(str(payload.get("status", DocumentStatus.SUCCESS.value))),
        )


@dataclass(slots=True)
class CrawlJob:
    """Progress and terminal state of one crawl job, as exposed for status polling.

    `total_pages` counts every dequeued entry. Entries whose file type has no
    extractor (Excel sheets, images) and fetches interrupted by cancellation
    count toward the total without landing in `success_pages` or
    `failed_pages`, so the total can exceed their sum.
    """

    job_id: str
    root_url: str
    max_depth: int
    status: JobStatus = JobStatus.RUNNING
    start_time: str = field(default_factory=utc_now_iso)
    end_time: str | None = None
    total_pages: int = 0
    success_pages: int = 0
    failed_pages: int = 0
    error_message: str | None = None
    summary: dict[str, JSONValue] = field(default_factory=dict)

    def snapshot(self) -> "CrawlJob":
        return replace(self, summary=dict(self.summary))

    def to_json(self) -> JSONDict:
        return {
            "job_id": self.job_id,
            "root_url": self.root_url,
            "max_depth": self.max_depth,
            "status": self.status.value,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "total_pages": self.total_pages,
            "success_pages": self.success_pages,
            "failed_pages": self.failed_pages,
            "error_message": self.error_message,
            "summary": self.summary,
        }


__all__ = [
    "CrawlJob",
    "CrawledDocument",
    "DocumentStatus",
    "ExtractedContent",
    "Extraction",
    "FILE_TYPE_SUFFIXES",
    "FetchResult",
    "FileType",
    "FrontierEntry",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "JobStatus",
    "classify_file_type",
    "collapse_whitespace",
    "content_fingerprint",
    "filename_from_url",
    "utc_now_iso",
]
