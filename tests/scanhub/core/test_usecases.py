from datetime import datetime, timedelta, timezone

import pytest

from fakes import REPO_URL, FakeLogger, FakeProvider, FakeRegistry
from scanhub.core.domain.exceptions import InvalidFilePathError, NoProviderError
from scanhub.core.domain.models import ScanStatus
from scanhub.core.usecases.cache import (
    CacheStatisticsUseCase,
    ClearCacheUseCase,
    InvalidateRepositoryCacheUseCase,
)
from scanhub.core.usecases.code_context import CodeContextUseCase, build_code_context, resolve_inside
from scanhub.core.usecases.providers import ProviderHealthUseCase, RegistryStatisticsUseCase
from scanhub.core.usecases.scan import ScanRepositoryUseCase
from scanhub.core.usecases.statistics import (
    ListScanRecordsUseCase,
    ScanHistoryUseCase,
    ScanStatisticsUseCase,
    StaleRepositoriesUseCase,
)
from scanhub.infra.scan_history import ScanHistoryStore


SOURCE = "\n".join(f"line {n}" for n in range(1, 11)) + "\n"


# ---- code context ----

def test_build_code_context_marks_target_line():
    ctx = build_code_context(SOURCE, "src/app.py", 5, context_lines=2)

    assert (ctx.start_line, ctx.end_line) == (3, 7)
    assert [l.line_number for l in ctx.lines] == [3, 4, 5, 6, 7]
    assert [l.line_number for l in ctx.lines if l.is_target_line] == [5]
    assert ctx.lines[2].content == "line 5"


def test_build_code_context_clamps_to_file_bounds():
    head = build_code_context(SOURCE, "f", 1, context_lines=3)
    tail = build_code_context(SOURCE, "f", 10, context_lines=3)

    assert (head.start_line, head.end_line) == (1, 4)
    assert (tail.start_line, tail.end_line) == (7, 10)


@pytest.mark.parametrize("bad", ["", "../outside.py", "a/../../outside.py", "/etc/passwd"])
def test_resolve_inside_rejects_escaping_paths(tmp_path, bad):
    with pytest.raises(InvalidFilePathError):
        resolve_inside(tmp_path, bad)


def test_resolve_inside_accepts_nested_path(tmp_path):
    assert resolve_inside(tmp_path, "src/app.py") == (tmp_path / "src" / "app.py").resolve()


@pytest.fixture
def context_uc(workspace):
    provider = FakeProvider(files={"src/app.py": SOURCE})
    uc = CodeContextUseCase(registry=FakeRegistry(provider), workspace=workspace, logger=FakeLogger())
    return uc, provider


def test_code_context_reads_fresh_shallow_clone(context_uc, workspace):
    uc, provider = context_uc

    ctx = uc.execute(REPO_URL, "src/app.py", 5, 1)

    assert [l.content for l in ctx.lines] == ["line 4", "line 5", "line 6"]
    [(url, _, options)] = provider.clone_calls
    assert url == REPO_URL
    assert options.depth == 1
    assert not workspace.acquired[0].exists()


def test_code_context_missing_file_returns_none(context_uc):
    uc, _ = context_uc

    assert uc.execute(REPO_URL, "nope.py", 1) is None


def test_code_context_rejects_traversal(context_uc, workspace):
    uc, _ = context_uc

    with pytest.raises(InvalidFilePathError):
        uc.execute(REPO_URL, "../../secret", 1)
    assert not workspace.acquired[0].exists()


def test_code_context_validates_line_and_provider(context_uc):
    uc, provider = context_uc

    with pytest.raises(ValueError):
        uc.execute(REPO_URL, "src/app.py", 0)
    with pytest.raises(NoProviderError):
        uc.execute("svn://elsewhere/x", "src/app.py", 1)
    assert provider.clone_calls == []


# ---- scan ----

def test_scan_use_case_strips_url_and_passes_force():
    calls = []

    class Orchestrator:
        def scan(self, repo_url, *, force=False):
            calls.append((repo_url, force))
            return "report"

    uc = ScanRepositoryUseCase(orchestrator=Orchestrator())

    assert uc.execute("  https://example.com/o/r \n", force=True) == "report"
    assert calls == [("https://example.com/o/r", True)]


# ---- history ----

class StepClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


@pytest.fixture
def step_clock():
    return StepClock()


@pytest.fixture
def populated_history(step_clock):
    store = ScanHistoryStore(clock=step_clock)
    store.update("https://example.com/a/old", "a1", duration=2.0, status=ScanStatus.SUCCESS, findings=3)
    step_clock.now += timedelta(hours=30)
    store.update("https://example.com/b/new", "b1", duration=4.0, status=ScanStatus.SUCCESS, findings=0)
    store.update("https://example.com/b/new", "b1", duration=0.0, status=ScanStatus.CACHED, findings=0, cache_hit=True)
    return store


def test_list_records_newest_first(populated_history):
    records = ListScanRecordsUseCase(history=populated_history).execute()

    assert [r.repo_url for r in records] == ["https://example.com/b/new", "https://example.com/a/old"]


def test_statistics_use_case(populated_history):
    stats = ScanStatisticsUseCase(history=populated_history).execute()

    assert stats.total_repositories == 2
    assert stats.total_scans == 3
    assert stats.total_cache_hits == 1
    assert stats.cache_hit_rate == pytest.approx(1 / 3)
    assert stats.average_scan_duration == pytest.approx(2.0)
    assert stats.status_counts == {"success": 2, "cached": 1}


def test_history_use_case_limits_most_recent_first(populated_history):
    entries = ScanHistoryUseCase(history=populated_history).execute("https://example.com/b/new", limit=1)

    assert len(entries) == 1
    assert entries[0].cache_hit is True


def test_stale_use_case(populated_history):
    uc = StaleRepositoriesUseCase(history=populated_history)

    assert [r.repo_url for r in uc.execute(24)] == ["https://example.com/a/old"]
    with pytest.raises(ValueError):
        uc.execute(-1)


# ---- cache ----

def test_cache_use_cases(cache):
    logger = FakeLogger()
    cache.put("https://example.com/o/r", "c1", "report-1")
    cache.put("https://example.com/o/r", "c2", "report-2")
    cache.put("https://example.com/o/other", "c1", "report-3")

    assert CacheStatisticsUseCase(cache=cache).execute().total_entries == 3
    assert InvalidateRepositoryCacheUseCase(cache=cache, logger=logger).execute("https://example.com/o/r") == 2
    assert ClearCacheUseCase(cache=cache, logger=logger).execute() == 1
    assert logger.messages("info") == ["cache_invalidated", "cache_cleared"]


# ---- providers ----

def test_provider_use_cases():
    registry = FakeRegistry(FakeProvider("one"), FakeProvider("two"))

    health = ProviderHealthUseCase(registry=registry).execute()
    stats = RegistryStatisticsUseCase(registry=registry).execute()

    assert set(health) == {"one", "two"}
    assert all(h.is_healthy for h in health.values())
    assert stats["total_providers"] == 2
    assert [p["name"] for p in stats["providers"]] == ["one", "two"]
    assert stats["providers"][0]["platform"] == "generic-git"
