"""Typed crawl-engine configuration with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml  # type: ignore

from .constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_FORCE_FRESH,
    DEFAULT_HTTP_HEADERS,
    DEFAULT_MAX_CONTENT_BYTES,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_PAGES,
    DEFAULT_RATE_LIMIT_SECONDS,
    DEFAULT_STRIP_SELECTORS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    JSON_INDENT,
    MAX_CONCURRENCY,
    MAX_PAGES_LIMIT,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .types import JSONDict


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid float for '{key}': {value!r}") from exc


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid int for '{key}': {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid int for '{key}': {value!r}") from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"Invalid bool for '{key}': {value!r}")


def _as_str_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    raise ValueError(f"Invalid list for '{key}': {value!r}")


def _compile_patterns(patterns: list[str], key: str) -> tuple[re.Pattern[str], ...]:
    compiled: list[re.Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise ValueError(f"Invalid regex in '{key}': {pattern!r} ({exc})") from exc
    return tuple(compiled)


@dataclass(slots=True)
class CrawlConfig:
    """Engine-wide settings shared by every crawl job.

    Root URL and max depth are per-request; `max_depth` here is only the default
    used when a request omits it.
    """

    max_depth: int = DEFAULT_MAX_DEPTH
    max_pages: int = DEFAULT_MAX_PAGES
    concurrency: int = DEFAULT_CONCURRENCY

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    rate_limit_seconds: float = DEFAULT_RATE_LIMIT_SECONDS
    max_content_bytes: int = DEFAULT_MAX_CONTENT_BYTES

    user_agent: str = DEFAULT_USER_AGENT
    default_headers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HTTP_HEADERS))

    strip_selectors: list[str] = field(default_factory=lambda: list(DEFAULT_STRIP_SELECTORS))
    include_patterns: list[str] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)

    force_fresh: bool = DEFAULT_FORCE_FRESH

    _include_res: tuple[re.Pattern[str], ...] = field(init=False, repr=False)
    _exclude_res: tuple[re.Pattern[str], ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        if not 1 <= self.max_pages <= MAX_PAGES_LIMIT:
            raise ValueError(f"max_pages must be between 1 and {MAX_PAGES_LIMIT}")
        if not 1 <= self.concurrency <= MAX_CONCURRENCY:
            raise ValueError(f"concurrency must be between 1 and {MAX_CONCURRENCY}")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        if self.rate_limit_seconds < 0:
            raise ValueError("rate_limit_seconds must be >= 0")
        if self.max_content_bytes <= 0:
            raise ValueError("max_content_bytes must be > 0")
        if not self.user_agent.strip():
            raise ValueError("user_agent cannot be empty")

        self._include_res = _compile_patterns(self.include_patterns, "include_patterns")
        self._exclude_res = _compile_patterns(self.exclude_patterns, "exclude_patterns")

    def is_url_selected(self, url: str) -> bool:
        """Apply include/exclude patterns; an empty include list selects everything."""

        if self._include_res and not any(regex.search(url) for regex in self._include_res):
            return False
        return not any(regex.search(url) for regex in self._exclude_res)

    def headers(self) -> dict[str, str]:
        """Return request headers with the crawler user agent applied."""

        merged = dict(self.default_headers)
        merged.setdefault("User-Agent", self.user_agent)
        return merged

    def to_dict(self) -> JSONDict:
        """Serialize config for manifests and reproducibility."""

        return {
            "max_depth": self.max_depth,
            "max_pages": self.max_pages,
            "concurrency": self.concurrency,
            "timeout_seconds": self.timeout_seconds,
            "rate_limit_seconds": self.rate_limit_seconds,
            "max_content_bytes": self.max_content_bytes,
            "user_agent": self.user_agent,
            "default_headers": dict(self.default_headers),
            "strip_selectors": list(self.strip_selectors),
            "include_patterns": list(self.include_patterns),
            "exclude_patterns": list(self.exclude_patterns),
            "force_fresh": self.force_fresh,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CrawlConfig":
        """Build config from a parsed dictionary; missing keys take defaults."""

        return cls(
            max_depth=_as_int(payload.get("max_depth", DEFAULT_MAX_DEPTH), "max_depth"),
            max_pages=_as_int(payload.get("max_pages", DEFAULT_MAX_PAGES), "max_pages"),
            concurrency=_as_int(payload.get("concurrency", DEFAULT_CONCURRENCY), "concurrency"),
            timeout_seconds=_as_float(
                payload.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
                "timeout_seconds",
            ),
            rate_limit_seconds=_as_float(
                payload.get("rate_limit_seconds", DEFAULT_RATE_LIMIT_SECONDS),
                "rate_limit_seconds",
            ),
            max_content_bytes=_as_int(
                payload.get("max_content_bytes", DEFAULT_MAX_CONTENT_BYTES),
                "max_content_bytes",
            ),
            user_agent=str(payload.get("user_agent", DEFAULT_USER_AGENT)),
            default_headers={
                str(k): str(v)
                for k, v in dict(payload.get("default_headers", DEFAULT_HTTP_HEADERS)).items()
            },
            strip_selectors=_as_str_list(
                payload.get("strip_selectors", list(DEFAULT_STRIP_SELECTORS)),
                "strip_selectors",
            ),
            include_patterns=_as_str_list(payload.get("include_patterns"), "include_patterns"),
            exclude_patterns=_as_str_list(payload.get("exclude_patterns"), "exclude_patterns"),
            force_fresh=_as_bool(payload.get("force_fresh", DEFAULT_FORCE_FRESH), "force_fresh"),
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML config at {path} must be a mapping at top level")
    return data


def load_config(path: str | Path) -> CrawlConfig:
    """Load CrawlConfig from JSON/YAML path."""

    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    if suffix == ".json":
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    else:
        payload = _load_yaml(config_path)

    if not isinstance(payload, dict):
        raise ValueError(f"Config at {config_path} must be a mapping")

    return CrawlConfig.from_dict(payload)


def save_config(config: CrawlConfig, path: str | Path) -> None:
    """Save CrawlConfig as JSON or YAML based on file extension."""

    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = out_path.suffix.lower()
    payload = config.to_dict()

    if suffix == ".json":
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return

    if suffix in {".yaml", ".yml"}:
        out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
        return

    raise ValueError(
        f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
    )


__all__ = [
    "CrawlConfig",
    "load_config",
    "save_config",
]
