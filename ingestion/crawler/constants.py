"""Default values shared by crawler config, fetcher, and extractors."""

from __future__ import annotations


DEFAULT_MAX_DEPTH = 3
DEFAULT_MAX_PAGES = 1000
MAX_PAGES_LIMIT = 10_000

DEFAULT_CONCURRENCY = 8
MAX_CONCURRENCY = 64

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_RATE_LIMIT_SECONDS = 0.0
DEFAULT_MAX_CONTENT_BYTES = 25 * 1024 * 1024
DOWNLOAD_CHUNK_BYTES = 64 * 1024

DEFAULT_USER_AGENT = "SiteIngest-Crawler/1.0"
DEFAULT_HTTP_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/pdf,*/*;q=0.8",
    "Accept-Language": "en,ar;q=0.8",
}

DEFAULT_STRIP_SELECTORS: tuple[str, ...] = (
    "script",
    "style",
    "nav",
    "footer",
    "header",
    "aside",
    ".menu",
    ".sidebar",
)

DEFAULT_FORCE_FRESH = False

# Seconds a worker blocks on an empty frontier before re-checking shutdown.
WORKER_POLL_SECONDS = 0.5
WORKER_JOIN_TIMEOUT_SECONDS = 5.0

JSON_INDENT = 2
SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")


__all__ = [
    "DEFAULT_CONCURRENCY",
    "DEFAULT_FORCE_FRESH",
    "DEFAULT_HTTP_HEADERS",
    "DEFAULT_MAX_CONTENT_BYTES",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_MAX_PAGES",
    "DEFAULT_RATE_LIMIT_SECONDS",
    "DEFAULT_STRIP_SELECTORS",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_USER_AGENT",
    "DOWNLOAD_CHUNK_BYTES",
    "JSON_INDENT",
    "MAX_CONCURRENCY",
    "MAX_PAGES_LIMIT",
    "SUPPORTED_CONFIG_SUFFIXES",
    "WORKER_JOIN_TIMEOUT_SECONDS",
    "WORKER_POLL_SECONDS",
]
