from __future__ import annotations

import threading

import pytest

from ingestion.crawler import JobNotFoundError, JobStatus, JobTracker


def test_create_job_starts_running_with_zero_counters():
    tracker = JobTracker()

    job = tracker.create_job("j1", "https://example.edu/", 2)

    assert job.status == JobStatus.RUNNING
    assert (job.total_pages, job.success_pages, job.failed_pages) == (0, 0, 0)
    assert job.end_time is None
    with pytest.raises(ValueError):
        tracker.create_job("j1", "https://example.edu/", 2)


def test_concurrent_increments_are_not_lost():
    tracker = JobTracker()
    tracker.create_job("j1", "https://example.edu/", 1)

    def worker():
        for _ in range(250):
            tracker.increment_total("j1")
            tracker.increment_success("j1")

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    job = tracker.get_status("j1")
    assert job.total_pages == 2000
    assert job.success_pages == 2000


def test_terminal_transitions_are_idempotent_and_freeze_counters():
    tracker = JobTracker()
    tracker.create_job("j1", "https://example.edu/", 1)
    tracker.increment_failed("j1")

    assert tracker.fail("j1", "store down", summary={"store": {"error": 1}}) is True
    assert tracker.complete("j1") is False
    assert tracker.cancel("j1") is False
    tracker.increment_total("j1")

    job = tracker.get_status("j1")
    assert job.status == JobStatus.FAILED
    assert job.error_message == "store down"
    assert job.end_time is not None
    assert job.total_pages == 0
    assert job.failed_pages == 1
    assert job.summary == {"store": {"error": 1}}


def test_status_snapshots_do_not_alias_registry_state():
    tracker = JobTracker()
    tracker.create_job("j1", "https://example.edu/", 1)

    snapshot = tracker.get_status("j1")
    tracker.increment_total("j1")

    assert snapshot.total_pages == 0
    assert tracker.get_status("j1").total_pages == 1


def test_unknown_job_raises_not_found():
    tracker = JobTracker()

    with pytest.raises(JobNotFoundError) as excinfo:
        tracker.get_status("nope")
    assert "nope" in str(excinfo.value)

    with pytest.raises(JobNotFoundError):
        tracker.increment_total("nope")


def test_evict_only_terminal_jobs():
    tracker = JobTracker()
    tracker.create_job("running", "https://example.edu/", 1)
    tracker.create_job("done", "https://example.edu/", 1)
    tracker.complete("done")

    assert tracker.evict("running") is False
    assert tracker.evict("done") is True
    assert [job.job_id for job in tracker.list_jobs()] == ["running"]
    with pytest.raises(JobNotFoundError):
        tracker.get_status("done")
