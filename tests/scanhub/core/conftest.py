"""Core test fixtures built from the in-memory fakes."""

from __future__ import annotations

import pytest

from fakes import (
    REPO_URL,
    FakeLogger,
    FakeProvider,
    FakeRegistry,
    FakeScanner,
    ManualClock,
    RecordingWorkspace,
)
from scanhub.core.domain.exceptions import CloneError
from scanhub.core.services import ChangeDetector, FindingAggregator, ScannerRunner, ScanOrchestrator
from scanhub.infra.scan_cache import ScanCache
from scanhub.infra.scan_history import ScanHistoryStore


@pytest.fixture
def fake_logger() -> FakeLogger:
    return FakeLogger()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def scanner() -> FakeScanner:
    return FakeScanner()


@pytest.fixture
def workspace(tmp_path) -> RecordingWorkspace:
    return RecordingWorkspace(tmp_path / "ws")


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def cache(clock) -> ScanCache:
    return ScanCache(ttl_seconds=3600, max_entries=10, clock=clock)


@pytest.fixture
def history() -> ScanHistoryStore:
    return ScanHistoryStore()


@pytest.fixture
def make_orchestrator(provider, scanner, workspace, cache, history, fake_logger, clock):
    """Build an orchestrator; scanners default to the single fake scanner."""

    def _make(*, scanners=None, registry=None, parallel=False, notifier=None) -> ScanOrchestrator:
        aggregator = FindingAggregator()
        runner = ScannerRunner(
            scanners=scanners if scanners is not None else [scanner],
            aggregator=aggregator,
            logger=fake_logger,
            parallel=parallel,
        )
        return ScanOrchestrator(
            registry=registry or FakeRegistry(provider),
            cache=cache,
            history=history,
            workspace=workspace,
            runner=runner,
            aggregator=aggregator,
            detector=ChangeDetector(),
            logger=fake_logger,
            notifier=notifier,
            clock=clock,
        )

    return _make


@pytest.fixture
def clone_failure() -> CloneError:
    return CloneError(REPO_URL, "Repository not found")
