from __future__ import annotations

import json
import logging

from conftest import FakeFetcher, html_page
from ingestion import crawl as crawl_cli
from ingestion.crawler import ContentExtractor, CrawlEngine


PAGES = {
    "https://example.edu/": html_page("Home", '<p>Welcome</p><a href="/a">A</a>'),
    "https://example.edu/a": html_page("A", "<p>Page A</p>"),
}


def test_build_config_applies_cli_overrides(tmp_path):
    config_path = tmp_path / "crawl.yaml"
    config_path.write_text("max_depth: 5\nconcurrency: 3\n", encoding="utf-8")
    args = crawl_cli.parse_args(
        [
            "--url",
            "https://example.edu/",
            "--config",
            str(config_path),
            "--max_depth",
            "1",
            "--exclude",
            "/private/",
            "--force_fresh",
        ]
    )

    config = crawl_cli.build_config(args)

    assert config.max_depth == 1
    assert config.concurrency == 3
    assert config.exclude_patterns == ["/private/"]
    assert config.force_fresh is True


def test_setup_logging_writes_log_file(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        crawl_cli.setup_logging(tmp_path, verbose=False)
        logging.getLogger("ingestion.test").info("hello log")
        for handler in root.handlers:
            handler.flush()
        assert "hello log" in (tmp_path / "logs" / "crawl.log").read_text(encoding="utf-8")
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_main_crawls_into_jsonl_store(tmp_path, monkeypatch, capsys):
    def engine_with_fake_fetcher(config, *, store):
        extractor = ContentExtractor(config, fetcher=FakeFetcher(PAGES))
        return CrawlEngine(config, store=store, extractor=extractor)

    monkeypatch.setattr(crawl_cli, "setup_logging", lambda output_dir, verbose: None)
    monkeypatch.setattr(crawl_cli, "CrawlEngine", engine_with_fake_fetcher)

    code = crawl_cli.main(
        [
            "--url",
            "https://example.edu/",
            "--output_dir",
            str(tmp_path),
            "--max_depth",
            "1",
            "--print_stats_json",
        ]
    )

    assert code == 0
    rows = [
        json.loads(line)
        for line in (tmp_path / "documents.jsonl").read_text(encoding="utf-8").splitlines()
    ]
    assert {row["url"] for row in rows} == set(PAGES)
    out = capsys.readouterr().out
    assert "status: COMPLETED" in out
    assert "success_pages: 2" in out


def test_main_rejects_bad_configuration(tmp_path, monkeypatch):
    monkeypatch.setattr(crawl_cli, "setup_logging", lambda output_dir, verbose: None)

    assert crawl_cli.main(["--url", "https://example.edu/", "--output_dir", str(tmp_path), "--max_pages", "0"]) == 2
    assert crawl_cli.main(["--url", "not a url", "--output_dir", str(tmp_path)]) == 2
