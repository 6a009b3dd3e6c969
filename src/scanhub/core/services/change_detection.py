from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..domain.models import UNKNOWN_COMMIT, ChangeDetectionResult, ScanRecord, ScanStatus


class ChangeState(str, Enum):
    NO_PRIOR_RECORD = "no_prior_record"
    PREVIOUS_FAILED = "previous_failed"
    SAME_COMMIT = "same_commit"
    NO_SIGNIFICANT_CHANGES = "no_significant_changes"
    CHANGES = "changes"
    COMPARISON_FAILED = "comparison_failed"


class ChangeOutcome(str, Enum):
    FULL_SCAN = "full_scan"
    SKIP = "skip"


@dataclass(frozen=True)
class ChangeDecision:
    outcome: ChangeOutcome
    state: ChangeState
    result: Optional[ChangeDetectionResult] = None
    reason: Optional[str] = None

    @property
    def should_scan(self) -> bool:
        return self.outcome is ChangeOutcome.FULL_SCAN


class ChangeDetector:
    """Decides whether a repository needs a full scan.

    Any reported difference counts as significant; a failed comparison
    always falls back to scanning.
    """

    def is_significant(self, result: ChangeDetectionResult) -> bool:
        return result.has_changes

    def decide(
        self,
        record: Optional[ScanRecord],
        current_commit: str,
        compare: Callable[[str], ChangeDetectionResult],
        *,
        prior_result: Optional[ChangeDetectionResult] = None,
    ) -> ChangeDecision:
        """Walk the change-detection states.

        Args:
            record: Last scan record of the repository, if any
            current_commit: Commit hash the provider reports now
            compare: Called with the recorded commit to ask the provider for changes
            prior_result: A comparison already made in this run, reused instead of calling compare

        Returns:
            The decision, carrying the comparison result when one was made
        """
        if record is None:
            return ChangeDecision(ChangeOutcome.FULL_SCAN, ChangeState.NO_PRIOR_RECORD)

        if record.last_scan_status is ScanStatus.FAILED:
            return ChangeDecision(
                ChangeOutcome.FULL_SCAN,
                ChangeState.PREVIOUS_FAILED,
                reason="Previous scan failed",
            )

        if current_commit != UNKNOWN_COMMIT and record.last_commit_hash == current_commit:
            return ChangeDecision(
                ChangeOutcome.SKIP,
                ChangeState.SAME_COMMIT,
                result=ChangeDetectionResult(has_changes=False, last_commit_hash=current_commit),
                reason="No changes detected since last scan",
            )

        if current_commit == UNKNOWN_COMMIT or record.last_commit_hash == UNKNOWN_COMMIT:
            return ChangeDecision(
                ChangeOutcome.FULL_SCAN,
                ChangeState.COMPARISON_FAILED,
                reason="Unable to determine commit hashes",
            )

        result = prior_result
        if result is None:
            try:
                result = compare(record.last_commit_hash)
            except Exception as e:
                return ChangeDecision(
                    ChangeOutcome.FULL_SCAN,
                    ChangeState.COMPARISON_FAILED,
                    reason=f"Change detection failed: {e}",
                )

        if result.error:
            return ChangeDecision(ChangeOutcome.FULL_SCAN, ChangeState.COMPARISON_FAILED, result=result, reason=result.error)
        if self.is_significant(result):
            return ChangeDecision(ChangeOutcome.FULL_SCAN, ChangeState.CHANGES, result=result)
        return ChangeDecision(
            ChangeOutcome.SKIP,
            ChangeState.NO_SIGNIFICANT_CHANGES,
            result=result,
            reason="No changes detected since last scan",
        )
