"""Crawler package: config, shared types, extractors, and the crawl engine."""

from .config import CrawlConfig, load_config, save_config
from .engine import CrawlEngine, JobContext
from .errors import (
    CrawlCancelledError,
    CrawlerError,
    DuplicateURLError,
    ExtractionError,
    FetchError,
    JobNotFoundError,
    ParseError,
    StoreError,
    StoreUnavailableError,
)
from .extractor import ContentExtractor
from .extractors import (
    HTMLExtractor,
    HTMLExtractorConfig,
    PDFExtractor,
    PDFExtractorConfig,
    TextExtractor,
    WordExtractor,
)
from .fetcher import Fetcher
from .frontier import EnqueueResult, EnqueueStatus, Frontier
from .stats import JobStatsCollector
from .store import DocumentStore, InMemoryDocumentStore, JsonlDocumentStore
from .tracker import JobTracker
from .types import (
    CrawlJob,
    CrawledDocument,
    DocumentStatus,
    ExtractedContent,
    Extraction,
    FetchResult,
    FileType,
    FrontierEntry,
    JobStatus,
    classify_file_type,
    collapse_whitespace,
    content_fingerprint,
    filename_from_url,
    utc_now_iso,
)
from .url import (
    DiscoveredLinks,
    base_domain,
    discover_links,
    host_from_url,
    is_downloadable_file,
    is_same_domain,
    normalize_url,
    resolve_url,
)

__all__ = [
    "ContentExtractor",
    "CrawlCancelledError",
    "CrawlConfig",
    "CrawlEngine",
    "CrawlJob",
    "CrawledDocument",
    "CrawlerError",
    "DiscoveredLinks",
    "DocumentStatus",
    "DocumentStore",
    "DuplicateURLError",
    "EnqueueResult",
    "EnqueueStatus",
    "ExtractedContent",
    "Extraction",
    "ExtractionError",
    "FetchError",
    "FetchResult",
    "Fetcher",
    "FileType",
    "Frontier",
    "FrontierEntry",
    "HTMLExtractor",
    "HTMLExtractorConfig",
    "InMemoryDocumentStore",
    "JobContext",
    "JobNotFoundError",
    "JobStatsCollector",
    "JobStatus",
    "JobTracker",
    "JsonlDocumentStore",
    "PDFExtractor",
    "PDFExtractorConfig",
    "ParseError",
    "StoreError",
    "StoreUnavailableError",
    "TextExtractor",
    "WordExtractor",
    "base_domain",
    "classify_file_type",
    "collapse_whitespace",
    "content_fingerprint",
    "discover_links",
    "filename_from_url",
    "host_from_url",
    "is_downloadable_file",
    "is_same_domain",
    "load_config",
    "normalize_url",
    "resolve_url",
    "save_config",
    "utc_now_iso",
]
