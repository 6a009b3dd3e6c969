import threading
from datetime import datetime, timedelta, timezone

import pytest

from scanhub.core.domain.models import ScanStatus
from scanhub.infra.scan_history import HISTORY_LIMIT, ScanHistoryStore


URL = "https://example.com/o/r"


class Clock:
    def __init__(self):
        self.now = datetime(2024, 6, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def store(clock):
    return ScanHistoryStore(clock=clock)


def test_unknown_repository_has_no_record(store):
    assert store.get_last(URL) is None
    assert store.history(URL) == []


def test_update_counts_scans_and_cache_hits(store):
    store.update(URL, "c1", duration=3.0, status=ScanStatus.SUCCESS, findings=2)
    store.update(URL, "c1", duration=0.1, status=ScanStatus.CACHED, findings=2, cache_hit=True)
    record = store.update(URL, "c2", duration=4.0, status=ScanStatus.SUCCESS, findings=5)

    assert record.scan_count == 3
    assert record.cache_hit_count == 1
    assert record.last_commit_hash == "c2"
    assert record.last_scan_findings == 5
    assert store.get_last(URL) == record


def test_history_is_bounded_and_most_recent_first(store):
    for i in range(HISTORY_LIMIT + 10):
        store.update(URL, f"c{i}", duration=1.0, status=ScanStatus.SUCCESS)

    entries = store.history(URL)

    assert len(entries) == HISTORY_LIMIT
    assert entries[0].commit_hash == f"c{HISTORY_LIMIT + 9}"
    assert store.get_last(URL).scan_count == HISTORY_LIMIT + 10
    assert [e.commit_hash for e in store.history(URL, limit=2)] == [f"c{HISTORY_LIMIT + 9}", f"c{HISTORY_LIMIT + 8}"]


def test_concurrent_updates_lose_no_scans(store):
    urls = [f"https://example.com/o/r{i}" for i in range(4)]

    def writer(url: str) -> None:
        for i in range(100):
            store.update(url, f"c{i}", duration=0.1, status=ScanStatus.SUCCESS, findings=1, cache_hit=i % 2 == 0)

    threads = [threading.Thread(target=writer, args=(url,)) for url in urls for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stats = store.statistics()
    assert stats.total_repositories == 4
    assert stats.total_scans == 800
    assert stats.total_cache_hits == 400
    assert all(len(store.history(url)) <= HISTORY_LIMIT for url in urls)


def test_statistics(store):
    assert store.statistics().total_scans == 0
    assert store.statistics().cache_hit_rate == 0.0

    store.update(URL, "c1", duration=2.0, status=ScanStatus.SUCCESS, findings=1)
    store.update(URL, "c1", duration=None, status=ScanStatus.FAILED)
    store.update("https://example.com/o/other", "c9", duration=4.0, status=ScanStatus.CACHED, cache_hit=True)

    stats = store.statistics()

    assert stats.total_repositories == 2
    assert stats.total_scans == 3
    assert stats.total_cache_hits == 1
    assert stats.average_scan_duration == pytest.approx(3.0)
    assert stats.status_counts == {"success": 1, "failed": 1, "cached": 1}


def test_stale_returns_oldest_first(store, clock):
    store.update("https://example.com/a", "c1", status=ScanStatus.SUCCESS)
    clock.now += timedelta(hours=1)
    store.update("https://example.com/b", "c1", status=ScanStatus.SUCCESS)
    clock.now += timedelta(hours=48)
    store.update("https://example.com/c", "c1", status=ScanStatus.SUCCESS)

    stale = store.stale(24)

    assert [r.repo_url for r in stale] == ["https://example.com/a", "https://example.com/b"]


def test_clear(store):
    store.update(URL, "c1", status=ScanStatus.SUCCESS)
    store.clear()

    assert store.all_records() == []
    assert store.history(URL) == []
