"""CLI entrypoint: crawl one site into a JSONL document store."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys

if __package__ in {None, ""}:
    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

from ingestion.crawler import (
    CrawlConfig,
    CrawlEngine,
    CrawlJob,
    JobStatus,
    JsonlDocumentStore,
    StoreUnavailableError,
    load_config,
)


STATUS_POLL_SECONDS = 1.0

EXIT_COMPLETED = 0
EXIT_FAILED = 1
EXIT_BAD_CONFIG = 2
EXIT_INTERRUPTED = 130


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crawl a website and extract text from its pages and documents.",
    )

    parser.add_argument(
        "--url",
        type=str,
        required=True,
        help="Root URL. Its host (without www.) bounds the crawl.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML crawl config.",
    )
    parser.add_argument(
        "--output_dir",
        type=Path,
        default=Path("crawled_output"),
        help="Directory for documents.jsonl and logs.",
    )

    parser.add_argument("--max_depth", type=int, default=None)
    parser.add_argument("--max_pages", type=int, default=None)
    parser.add_argument("--concurrency", type=int, default=None)

    parser.add_argument("--timeout_seconds", type=float, default=None)
    parser.add_argument("--rate_limit_seconds", type=float, default=None)
    parser.add_argument("--user_agent", type=str, default=None)

    parser.add_argument(
        "--include",
        action="append",
        default=[],
        help="Regex a URL must match to be crawled (repeatable).",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Regex that removes matching URLs from the crawl (repeatable).",
    )
    parser.add_argument(
        "--force_fresh",
        action="store_true",
        help="Re-fetch URLs already in the store and replace documents whose text changed.",
    )

    parser.add_argument(
        "--print_stats_json",
        action="store_true",
        help="Print full job stats JSON in stdout after run.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CrawlConfig:
    if args.config is not None:
        payload = load_config(args.config).to_dict()
    else:
        payload = CrawlConfig().to_dict()

    if args.max_depth is not None:
        payload["max_depth"] = args.max_depth
    if args.max_pages is not None:
        payload["max_pages"] = args.max_pages
    if args.concurrency is not None:
        payload["concurrency"] = args.concurrency

    if args.timeout_seconds is not None:
        payload["timeout_seconds"] = args.timeout_seconds
    if args.rate_limit_seconds is not None:
        payload["rate_limit_seconds"] = args.rate_limit_seconds
    if args.user_agent is not None:
        payload["user_agent"] = args.user_agent

    if args.include:
        payload["include_patterns"] = list(args.include)
    if args.exclude:
        payload["exclude_patterns"] = list(args.exclude)
    if args.force_fresh:
        payload["force_fresh"] = True

    return CrawlConfig.from_dict(payload)


def setup_logging(output_dir: Path, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    log_dir = output_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "crawl.log"

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    # pdfminer (under pdfplumber) logs every font and layout decision at DEBUG.
    logging.getLogger("pdfminer").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def print_summary(job: CrawlJob, store: JsonlDocumentStore, *, print_stats_json: bool) -> None:
    print("\n=== Crawl Finished ===")
    print(f"job_id: {job.job_id}")
    print(f"root_url: {job.root_url}")
    print(f"status: {job.status.value}")
    print(f"documents: {store.paths['documents']}")

    print("\n--- Job Counters ---")
    print(f"total_pages: {job.total_pages}")
    print(f"success_pages: {job.success_pages}")
    print(f"failed_pages: {job.failed_pages}")
    print(f"stored_documents: {store.count()}")
    if job.error_message:
        print(f"error: {job.error_message}")

    if print_stats_json:
        print("\n--- Full Stats JSON ---")
        print(json.dumps(job.summary, indent=2, sort_keys=True))


def _exit_code(job: CrawlJob) -> int:
    if job.status == JobStatus.COMPLETED:
        return EXIT_COMPLETED
    if job.status == JobStatus.CANCELLED:
        return EXIT_INTERRUPTED
    return EXIT_FAILED


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.output_dir, verbose=args.verbose)

    try:
        config = build_config(args)
    except Exception as exc:
        logging.error("Failed to build config: %s", exc)
        return EXIT_BAD_CONFIG

    try:
        store = JsonlDocumentStore(args.output_dir)
    except StoreUnavailableError as exc:
        logging.error("Cannot open document store: %s", exc)
        return EXIT_FAILED

    engine = CrawlEngine(config, store=store)
    try:
        job_id = engine.start_crawl(args.url, args.max_depth)
    except ValueError as exc:
        logging.error("Cannot start crawl: %s", exc)
        engine.shutdown()
        return EXIT_BAD_CONFIG

    logging.info(
        "Started crawl job %s: url=%s, output_dir=%s, concurrency=%d",
        job_id,
        args.url,
        args.output_dir,
        config.concurrency,
    )

    try:
        job = engine.wait(job_id, timeout=STATUS_POLL_SECONDS)
        while not job.status.terminal:
            job = engine.wait(job_id, timeout=STATUS_POLL_SECONDS)
    except KeyboardInterrupt:
        logging.error("Interrupted by user, cancelling job %s", job_id)
        engine.cancel(job_id)
        job = engine.wait(job_id)
    finally:
        engine.shutdown()

    print_summary(job, store, print_stats_json=args.print_stats_json)
    return _exit_code(job)


if __name__ == "__main__":
    raise SystemExit(main())
