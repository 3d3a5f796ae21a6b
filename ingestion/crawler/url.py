"""URL normalization, domain scoping, and link discovery helpers."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field
from typing import Sequence
from urllib.parse import quote, urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup


DEFAULT_ALLOWED_SCHEMES = ("http", "https")
SKIP_HREF_PREFIXES = ("javascript:", "mailto:", "tel:", "data:")
DOWNLOADABLE_EXTENSIONS = (".pdf", ".doc", ".docx", ".xls", ".xlsx", ".txt")


def host_from_url(url: str) -> str:
    """Extract normalized host from URL (lowercased, `www.` stripped)."""

    parsed = urlsplit(url)
    host = (parsed.hostname or "").strip().lower()
    if host.startswith("www."):
        host = host[4:]
    return host.strip(".")


def base_domain(url: str) -> str:
    """Return the crawl's base domain for a root URL.

    Raises ValueError when the URL has no host.
    """

    host = host_from_url(url)
    if not host:
        raise ValueError(f"URL has no host: {url!r}")
    return host


def is_same_domain(url: str, domain: str) -> bool:
    """Return True if URL's host is `domain` or one of its subdomains."""

    host = host_from_url(url)
    if not host or not domain:
        return False
    return host == domain or host.endswith("." + domain)


def is_downloadable_file(url: str) -> bool:
    """Return True if URL path ends with a downloadable document extension."""

    path = urlsplit(url).path.lower()
    return path.endswith(DOWNLOADABLE_EXTENSIONS)


def _has_default_port(scheme: str, port: int | None) -> bool:
    if port is None:
        return False
    return (scheme == "http" and port == 80) or (scheme == "https" and port == 443)


def _normalize_netloc(
    parsed_url,  # urllib.parse.SplitResult
    *,
    strip_default_port: bool,
) -> str:
    host = (parsed_url.hostname or "").lower()
    if not host:
        return parsed_url.netloc.lower()

    userinfo = ""
    if parsed_url.username:
        userinfo = quote(parsed_url.username, safe="")
        if parsed_url.password:
            userinfo += ":" + quote(parsed_url.password, safe="")
        userinfo += "@"

    port: int | None
    try:
        port = parsed_url.port
    except ValueError:
        port = None

    include_port = port is not None and (
        not strip_default_port or not _has_default_port(parsed_url.scheme.lower(), port)
    )

    if include_port:
        return f"{userinfo}{host}:{port}"
    return f"{userinfo}{host}"


def _normalize_path(path: str, *, remove_trailing_slash: bool) -> str:
    if not path:
        return "/"

    collapsed = re.sub(r"/{2,}", "/", path)
    normalized = posixpath.normpath(collapsed)

    if collapsed.startswith("/") and not normalized.startswith("/"):
        normalized = "/" + normalized

    if normalized in {"", "."}:
        normalized = "/"

    if remove_trailing_slash and normalized != "/":
        normalized = normalized.rstrip("/")

    return normalized or "/"


def normalize_url(
    url: str,
    *,
    strip_query: bool = True,
    strip_fragment: bool = True,
    strip_default_port: bool = True,
    remove_trailing_slash: bool = True,
    allowed_schemes: Sequence[str] = DEFAULT_ALLOWED_SCHEMES,
) -> str | None:
    """Canonicalize an absolute URL for dedup and frontier consistency.

    Query string and fragment are dropped by default, so two links that differ
    only after `?` or `#` map to one frontier entry. Returns `None` for URLs that
    are invalid or outside allowed schemes.
    """

    if not url:
        return None

    raw = url.strip()
    if not raw:
        return None

    parsed = urlsplit(raw)
    if not parsed.scheme or not parsed.netloc:
        return None

    scheme = parsed.scheme.lower()
    if scheme not in {item.lower() for item in allowed_schemes}:
        return None

    netloc = _normalize_netloc(parsed, strip_default_port=strip_default_port)
    if not netloc:
        return None

    path = _normalize_path(parsed.path, remove_trailing_slash=remove_trailing_slash)
    query = "" if strip_query else parsed.query
    fragment = "" if strip_fragment else parsed.fragment

    return urlunsplit((scheme, netloc, path, query, fragment))


def resolve_url(base_url: str, href: str | None) -> str | None:
    """Resolve a possibly relative href against base URL and normalize it."""

    if href is None:
        return None

    candidate = href.strip()
    if not candidate or candidate.startswith("#"):
        return None

    lowered = candidate.lower()
    if any(lowered.startswith(prefix) for prefix in SKIP_HREF_PREFIXES):
        return None

    return normalize_url(urljoin(base_url, candidate))


@dataclass(frozen=True, slots=True)
class DiscoveredLinks:
    """Same-domain links found on one HTML page.

    The two sets are disjoint: downloadable documents only appear in `file_links`.
    """

    page_links: frozenset[str] = field(default_factory=frozenset)
    file_links: frozenset[str] = field(default_factory=frozenset)

    def all_links(self) -> list[str]:
        """Page links then file links, each sorted for stable enqueue order."""

        return sorted(self.page_links) + sorted(self.file_links)

    def __len__(self) -> int:
        return len(self.page_links) + len(self.file_links)


def discover_links(
    html: str | bytes,
    *,
    base_url: str,
    base_domain: str,
    from_encoding: str | None = None,
) -> DiscoveredLinks:
    """Extract same-domain page links and downloadable-file links from `<a href>` tags."""

    soup = BeautifulSoup(html, "lxml", from_encoding=from_encoding if isinstance(html, bytes) else None)

    page_links: set[str] = set()
    file_links: set[str] = set()

    for element in soup.find_all("a", href=True):
        resolved = resolve_url(base_url, element.get("href"))
        if not resolved:
            continue

        if not is_same_domain(resolved, base_domain):
            continue

        if is_downloadable_file(resolved):
            file_links.add(resolved)
        else:
            page_links.add(resolved)

    return DiscoveredLinks(
        page_links=frozenset(page_links),
        file_links=frozenset(file_links),
    )


__all__ = [
    "DEFAULT_ALLOWED_SCHEMES",
    "DOWNLOADABLE_EXTENSIONS",
    "DiscoveredLinks",
    "SKIP_HREF_PREFIXES",
    "base_domain",
    "discover_links",
    "host_from_url",
    "is_downloadable_file",
    "is_same_domain",
    "normalize_url",
    "resolve_url",
]
