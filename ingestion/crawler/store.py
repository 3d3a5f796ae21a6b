"""Document stores keyed by URL.

The crawl engine only needs `exists`, `get`, `save`, and `replace`; the query
helpers (`find_by_file_type`, `count_by_file_type`, `search`) serve callers that
browse what has been ingested.
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Mapping

from .errors import DuplicateURLError, StoreUnavailableError
from .types import CrawledDocument, FileType


LOGGER = logging.getLogger(__name__)

DOCUMENTS_FILENAME = "documents.jsonl"


class DocumentStore(ABC):
    """URL-keyed store with a unique constraint on `CrawledDocument.url`.

    `save` raises `DuplicateURLError` when the URL is already present and
    `StoreUnavailableError` when the backing medium cannot be used at all.
    """

    @abstractmethod
    def exists(self, url: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def get(self, url: str) -> CrawledDocument | None:
        raise NotImplementedError

    @abstractmethod
    def save(self, document: CrawledDocument) -> CrawledDocument:
        raise NotImplementedError

    @abstractmethod
    def replace(self, document: CrawledDocument) -> CrawledDocument:
        """Insert or overwrite the document stored under `document.url`."""

        raise NotImplementedError

    @abstractmethod
    def documents(self) -> list[CrawledDocument]:
        raise NotImplementedError

    def count(self) -> int:
        return len(self.documents())

    def find_by_file_type(self, file_type: FileType | str) -> list[CrawledDocument]:
        wanted = FileType(file_type)
        return [doc for doc in self.documents() if doc.file_type == wanted]

    def count_by_file_type(self, file_type: FileType | str) -> int:
        return len(self.find_by_file_type(file_type))

    def search(self, keyword: str) -> list[CrawledDocument]:
        """Case-insensitive substring match over title and content."""

        needle = keyword.strip().lower()
        if not needle:
            return []
        return [
            doc
            for doc in self.documents()
            if needle in doc.title.lower() or needle in doc.content.lower()
        ]


class InMemoryDocumentStore(DocumentStore):
    """Thread-safe dict-backed store, useful for tests and one-off crawls."""

    def __init__(self, documents: list[CrawledDocument] | None = None) -> None:
        self._lock = threading.Lock()
        self._by_url: dict[str, CrawledDocument] = {}
        for document in documents or []:
            self._by_url[document.url] = document

    def exists(self, url: str) -> bool:
        with self._lock:
            return url in self._by_url

    def get(self, url: str) -> CrawledDocument | None:
        with self._lock:
            return self._by_url.get(url)

    def save(self, document: CrawledDocument) -> CrawledDocument:
        with self._lock:
            if document.url in self._by_url:
                raise DuplicateURLError(document.url)
            self._by_url[document.url] = document
        return document

    def replace(self, document: CrawledDocument) -> CrawledDocument:
        with self._lock:
            self._by_url[document.url] = document
        return document

    def documents(self) -> list[CrawledDocument]:
        with self._lock:
            return list(self._by_url.values())

    def count(self) -> int:
        with self._lock:
            return len(self._by_url)


class JsonlDocumentStore(DocumentStore):
    """Append-only JSONL file under `output_dir`, indexed in memory by URL.

    Replacements append a newer row; on load the last row for a URL wins.
    """

    def __init__(self, output_dir: str | Path, *, load_existing: bool = True) -> None:
        self.output_dir = Path(output_dir)
        self.documents_path = self.output_dir / DOCUMENTS_FILENAME

        self._lock = threading.Lock()
        self._by_url: dict[str, CrawledDocument] = {}

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreUnavailableError(
                f"Cannot create document store directory {self.output_dir}: {exc}"
            ) from exc

        if load_existing:
            self._load_documents()

    @property
    def paths(self) -> dict[str, str]:
        return {
            "output_dir": str(self.output_dir),
            "documents": str(self.documents_path),
        }

    def exists(self, url: str) -> bool:
        with self._lock:
            return url in self._by_url

    def get(self, url: str) -> CrawledDocument | None:
        with self._lock:
            return self._by_url.get(url)

    def save(self, document: CrawledDocument) -> CrawledDocument:
        with self._lock:
            if document.url in self._by_url:
                raise DuplicateURLError(document.url)
            self._append_jsonl(document.to_json())
            self._by_url[document.url] = document
        return document

    def replace(self, document: CrawledDocument) -> CrawledDocument:
        with self._lock:
            self._append_jsonl(document.to_json())
            self._by_url[document.url] = document
        return document

    def documents(self) -> list[CrawledDocument]:
        with self._lock:
            return list(self._by_url.values())

    def count(self) -> int:
        with self._lock:
            return len(self._by_url)

    def _load_documents(self) -> None:
        if not self.documents_path.exists():
            return

        skipped = 0
        try:
            with self.documents_path.open("r", encoding="utf-8") as handle:
                for line in handle:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        document = CrawledDocument.from_json(json.loads(line))
                    except (json.JSONDecodeError, KeyError, ValueError):
                        skipped += 1
                        continue
                    self._by_url[document.url] = document
        except OSError as exc:
            raise StoreUnavailableError(
                f"Cannot read document store {self.documents_path}: {exc}"
            ) from exc

        if skipped:
            LOGGER.warning("Skipped %d malformed rows in %s", skipped, self.documents_path)
        LOGGER.info("Loaded %d documents from %s", len(self._by_url), self.documents_path)

    def _append_jsonl(self, payload: Mapping[str, Any]) -> None:
        line = json.dumps(payload, ensure_ascii=False, sort_keys=True)
        try:
            with self.documents_path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        except OSError as exc:
            raise StoreUnavailableError(
                f"Cannot write document store {self.documents_path}: {exc}"
            ) from exc


__all__ = [
    "DOCUMENTS_FILENAME",
    "DocumentStore",
    "InMemoryDocumentStore",
    "JsonlDocumentStore",
]
