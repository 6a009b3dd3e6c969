from datetime import datetime, timezone

import pytest

from scanhub.core.domain.models import UNKNOWN_COMMIT, ChangeDetectionResult, ScanRecord, ScanStatus
from scanhub.core.services import ChangeDetector, ChangeOutcome, ChangeState


def _record(commit="a" * 40, status=ScanStatus.SUCCESS):
    return ScanRecord(
        repo_url="https://example.com/o/r",
        last_commit_hash=commit,
        last_scan_timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        scan_count=1,
        last_scan_status=status,
    )


def _never(prior):
    raise AssertionError("compare must not be called")


@pytest.fixture
def detector():
    return ChangeDetector()


def test_no_record_means_full_scan(detector):
    decision = detector.decide(None, "a" * 40, _never)

    assert decision.outcome is ChangeOutcome.FULL_SCAN
    assert decision.state is ChangeState.NO_PRIOR_RECORD
    assert decision.should_scan


def test_previous_failure_means_full_scan(detector):
    decision = detector.decide(_record(status=ScanStatus.FAILED), "a" * 40, _never)

    assert decision.state is ChangeState.PREVIOUS_FAILED
    assert decision.should_scan


def test_same_commit_is_skipped(detector):
    decision = detector.decide(_record(), "a" * 40, _never)

    assert decision.outcome is ChangeOutcome.SKIP
    assert decision.state is ChangeState.SAME_COMMIT
    assert decision.result.has_changes is False


@pytest.mark.parametrize("current,recorded", [(UNKNOWN_COMMIT, "a" * 40), ("b" * 40, UNKNOWN_COMMIT)])
def test_unknown_commit_on_either_side_scans(detector, current, recorded):
    decision = detector.decide(_record(commit=recorded), current, _never)

    assert decision.state is ChangeState.COMPARISON_FAILED
    assert decision.reason == "Unable to determine commit hashes"
    assert decision.should_scan


def test_reported_changes_trigger_scan(detector):
    result = ChangeDetectionResult(has_changes=True, last_commit_hash="b" * 40)

    decision = detector.decide(_record(), "b" * 40, lambda prior: result)

    assert decision.state is ChangeState.CHANGES
    assert decision.result is result


def test_no_reported_changes_skip(detector):
    calls = []

    def compare(prior):
        calls.append(prior)
        return ChangeDetectionResult(has_changes=False, last_commit_hash="b" * 40)

    decision = detector.decide(_record(), "b" * 40, compare)

    assert calls == ["a" * 40]
    assert decision.state is ChangeState.NO_SIGNIFICANT_CHANGES
    assert not decision.should_scan


def test_comparison_exception_falls_back_to_scan(detector):
    def compare(prior):
        raise RuntimeError("boom")

    decision = detector.decide(_record(), "b" * 40, compare)

    assert decision.state is ChangeState.COMPARISON_FAILED
    assert decision.reason == "Change detection failed: boom"
    assert decision.should_scan


def test_comparison_error_field_falls_back_to_scan(detector):
    result = ChangeDetectionResult(has_changes=False, last_commit_hash="b" * 40, error="fetch failed")

    decision = detector.decide(_record(), "b" * 40, lambda prior: result)

    assert decision.state is ChangeState.COMPARISON_FAILED
    assert decision.reason == "fetch failed"


def test_prior_result_is_reused(detector):
    prior = ChangeDetectionResult(has_changes=True, last_commit_hash="b" * 40)

    decision = detector.decide(_record(), "b" * 40, _never, prior_result=prior)

    assert decision.result is prior
