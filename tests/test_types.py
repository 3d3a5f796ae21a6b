from __future__ import annotations

import pytest

from ingestion.crawler import (
    CrawlJob,
    CrawledDocument,
    Extraction,
    FetchResult,
    FileType,
    JobStatus,
    classify_file_type,
    collapse_whitespace,
    content_fingerprint,
    filename_from_url,
)


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://example.edu/files/report.pdf", FileType.PDF),
        ("https://example.edu/files/REPORT.PDF", FileType.PDF),
        ("https://example.edu/form.docx", FileType.DOCX),
        ("https://example.edu/form.doc", FileType.DOC),
        ("https://example.edu/grades.xlsx", FileType.EXCEL),
        ("https://example.edu/grades.xls", FileType.EXCEL),
        ("https://example.edu/readme.txt", FileType.TEXT),
        ("https://example.edu/logo.JPG", FileType.IMAGE),
        ("https://example.edu/photo.jpeg", FileType.IMAGE),
        ("https://example.edu/icon.png", FileType.IMAGE),
        ("https://example.edu/anim.gif", FileType.IMAGE),
        ("https://example.edu/admissions", FileType.HTML),
        ("https://example.edu/", FileType.HTML),
        ("https://example.edu/page.php?file=x.pdf", FileType.HTML),
    ],
)
def test_classify_file_type(url, expected):
    assert classify_file_type(url) == expected


def test_collapse_whitespace_trims_and_joins_runs():
    assert collapse_whitespace("  one\n\n two\t three  ") == "one two three"
    assert collapse_whitespace("") == ""


def test_content_fingerprint_is_deterministic_and_content_sensitive():
    assert content_fingerprint("hello") == content_fingerprint("hello")
    assert content_fingerprint("hello") != content_fingerprint("hello!")
    assert len(content_fingerprint("hello")) == 64


def test_filename_from_url():
    assert filename_from_url("https://example.edu/docs/My%20Guide.pdf") == "My Guide.pdf"
    assert filename_from_url("https://example.edu/") == "https://example.edu/"


def test_fetch_result_charset_from_content_type():
    result = FetchResult(
        requested_url="https://example.edu/",
        final_url="https://example.edu/",
        status_code=200,
        content_type='text/html; charset="ISO-8859-1"',
        body=b"abc",
    )

    assert result.charset == "ISO-8859-1"
    assert result.content_length == 3


def test_crawled_document_from_extraction_and_json_round_trip():
    extraction = Extraction(
        url="https://example.edu/a",
        final_url="https://example.edu/a",
        file_type=FileType.HTML,
        title="A",
        text="  Body text  ",
    )

    doc = CrawledDocument.from_extraction(extraction, depth=1, parent_url="https://example.edu/")

    assert doc.content == "Body text"
    assert doc.content_hash == content_fingerprint("Body text")
    assert CrawledDocument.from_json(doc.to_json()) == doc


def test_crawl_job_snapshot_is_independent_copy():
    job = CrawlJob(job_id="j1", root_url="https://example.edu/", max_depth=2)
    snapshot = job.snapshot()
    job.total_pages = 5
    job.summary["x"] = 1

    assert snapshot.total_pages == 0
    assert snapshot.summary == {}
    assert job.to_json()["status"] == "RUNNING"


def test_job_status_terminal_flag():
    assert not JobStatus.RUNNING.terminal
    assert JobStatus.COMPLETED.terminal
    assert JobStatus.FAILED.terminal
    assert JobStatus.CANCELLED.terminal
