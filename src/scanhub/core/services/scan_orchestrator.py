from __future__ import annotations

import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional

from ..domain.models import (
    UNKNOWN_COMMIT,
    ChangeDetectionInfo,
    ChangeDetectionResult,
    ChangeSummary,
    CloneOptions,
    CommitInfo,
    Finding,
    RepositoryMetadata,
    ScanReport,
    ScanStatus,
    Severity,
)
from ..ports import (
    LoggerPort,
    ProviderPort,
    ProviderRegistryPort,
    ScanCachePort,
    ScanHistoryPort,
    ScanNotifierPort,
    WorkspacePort,
)
from .aggregation import FindingAggregator
from .change_detection import ChangeDecision, ChangeDetector
from .scanner_runner import ScannerRunner

CHANGE_DETECTION_SCANNER = "change-detection"
CHANGE_DETECTION_VERSION = "1.0"
NO_CHANGES_RULE = "change-detection.no-changes"
NO_CHANGES_REASON = "No changes detected since last scan"


class ScanOrchestrator:
    """Runs one repository scan end to end.

    Resolves the provider, short-circuits through the cache and the
    change-detection states when it can, and otherwise clones into a
    throwaway workspace, runs every scanner and stores the aggregated
    report. Each call records exactly one history update, except when no
    provider accepts the URL.
    """

    def __init__(
        self,
        *,
        registry: ProviderRegistryPort,
        cache: ScanCachePort,
        history: ScanHistoryPort,
        workspace: WorkspacePort,
        runner: ScannerRunner,
        aggregator: FindingAggregator,
        detector: ChangeDetector,
        logger: LoggerPort,
        clone_depth: Optional[int] = None,
        notifier: Optional[ScanNotifierPort] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry
        self._cache = cache
        self._history = history
        self._workspace = workspace
        self._runner = runner
        self._aggregator = aggregator
        self._detector = detector
        self._logger = logger
        self._clone_depth = clone_depth
        self._notifier = notifier
        self._clock = clock

    def scan(self, repo_url: str, *, force: bool = False) -> ScanReport:
        """Scan repo_url, reusing earlier work unless force is set.

        Raises:
            NoProviderError: If no provider handles the URL (nothing is recorded)
            CloneError: If the repository could not be cloned
            OperationTimeoutError: If the clone exceeded its deadline
            MetadataFetchError: If repository metadata could not be produced
        """
        started = self._clock()

        # 1) Resolve provider
        provider = self._registry.require_provider_for_url(repo_url)
        self._logger.info("provider_resolved", repo_url=repo_url, provider=provider.name, force=force)

        # 2) Current commit
        commit = provider.get_last_commit_hash(repo_url)
        self._logger.info("commit_resolved", repo_url=repo_url, commit_hash=commit)

        change_result: Optional[ChangeDetectionResult] = None
        if not force and commit != UNKNOWN_COMMIT:
            # 3) Exact cache hit
            cached = self._cache.get(repo_url, commit)
            if cached is not None:
                return self._serve_cached(repo_url, commit, cached, started)

            record = self._history.get_last(repo_url)

            # 4) Older cached result still valid when nothing changed
            if record is not None and record.last_scan_status is not ScanStatus.FAILED and self._cache.has_entries(repo_url):
                change_result = self._compare(provider, repo_url, record.last_commit_hash, commit)
                if not change_result.error and not self._detector.is_significant(change_result):
                    recent = self._cache.most_recent(repo_url)
                    if recent is not None:
                        return self._serve_cached(
                            repo_url, commit, recent, started, change_summary=change_result.change_summary
                        )

            # 5) + 6) Change-detection states
            decision = self._detector.decide(
                record,
                commit,
                lambda prior: provider.has_changes_since(repo_url, prior),
                prior_result=change_result,
            )
            self._logger.info(
                "change_decision",
                repo_url=repo_url,
                state=decision.state.value,
                outcome=decision.outcome.value,
            )
            if not decision.should_scan:
                return self._skip(provider, repo_url, commit, decision, started)
            change_result = decision.result
            reason = _scan_reason(decision)
        else:
            reason = "Forced scan" if force else "Commit hash unavailable"

        # 7) - 12) Full scan
        return self._full_scan(provider, repo_url, commit, change_result, reason, started)

    # ---- short circuits ----

    def _compare(
        self,
        provider: ProviderPort,
        repo_url: str,
        prior: str,
        commit: str,
    ) -> ChangeDetectionResult:
        try:
            return provider.has_changes_since(repo_url, prior)
        except Exception as e:
            self._logger.warning("change_detection_failed", repo_url=repo_url, error=str(e))
            return ChangeDetectionResult(has_changes=True, last_commit_hash=commit, error=str(e))

    def _serve_cached(
        self,
        repo_url: str,
        commit: str,
        cached: ScanReport,
        started: float,
        change_summary: Optional[ChangeSummary] = None,
    ) -> ScanReport:
        """Return a cached report re-labelled for this request.

        Findings stay as cached; the change block always describes the
        current commit as unchanged and not rescanned.
        """
        report = replace(
            cached,
            served_from_cache=True,
            change_detection=ChangeDetectionInfo(
                has_changes=False,
                last_commit_hash=commit,
                change_summary=change_summary,
                scan_skipped=True,
                reason=NO_CHANGES_REASON,
            ),
        )
        duration = self._clock() - started
        self._history.update(
            repo_url,
            commit,
            duration=duration,
            status=ScanStatus.CACHED,
            findings=report.total_findings,
            cache_hit=True,
        )
        self._logger.info(
            "cache_hit",
            repo_url=repo_url,
            commit_hash=commit,
            cached_commit=cached.commit_hash,
        )
        return report

    def _skip(
        self,
        provider: ProviderPort,
        repo_url: str,
        commit: str,
        decision: ChangeDecision,
        started: float,
    ) -> ScanReport:
        reason = decision.reason or NO_CHANGES_REASON
        finding = Finding(
            rule_id=NO_CHANGES_RULE,
            message=f"{reason} (commit {commit[:7]})",
            file_path="",
            line=0,
            severity=Severity.INFO,
            scanner_name=CHANGE_DETECTION_SCANNER,
        )
        scanner = self._aggregator.scanner_report(
            name=CHANGE_DETECTION_SCANNER,
            version=CHANGE_DETECTION_VERSION,
            findings=[finding],
        )
        duration = self._clock() - started
        report = ScanReport(
            repo_url=repo_url,
            commit_hash=commit,
            repository=self._known_metadata(provider, repo_url, commit),
            scanners=(scanner,),
            severity_breakdown=self._aggregator.overall([scanner]),
            change_detection=ChangeDetectionInfo(
                has_changes=False,
                last_commit_hash=commit,
                change_summary=decision.result.change_summary if decision.result else None,
                scan_skipped=True,
                reason=reason,
            ),
            scanned_at=_utcnow(),
            duration=duration,
            provider_name=provider.name,
        )
        self._cache.put(repo_url, commit, report)
        self._history.update(
            repo_url,
            commit,
            duration=duration,
            status=ScanStatus.SUCCESS,
            findings=report.total_findings,
            cache_hit=False,
        )
        self._logger.info("scan_skipped", repo_url=repo_url, commit_hash=commit, state=decision.state.value)
        return report

    def _known_metadata(self, provider: ProviderPort, repo_url: str, commit: str) -> RepositoryMetadata:
        """Metadata for a skipped scan, taken from the newest cached report when there is one."""
        recent = self._cache.most_recent(repo_url)
        if isinstance(recent, ScanReport):
            return recent.repository
        ref = provider.parse_url(repo_url)
        return RepositoryMetadata(
            name=ref.repository if ref else repo_url,
            description="",
            default_branch="",
            last_commit=CommitInfo(hash=commit, timestamp=_utcnow()),
            source="record",
        )

    # ---- full scan ----

    def _full_scan(
        self,
        provider: ProviderPort,
        repo_url: str,
        commit: str,
        change_result: Optional[ChangeDetectionResult],
        reason: str,
        started: float,
    ) -> ScanReport:
        try:
            with self._workspace.acquire(provider.name) as workdir:
                checkout = workdir / "repo"

                # 7) Clone
                provider.clone_repository(repo_url, checkout, CloneOptions(depth=self._clone_depth))
                self._logger.info("repository_cloned", repo_url=repo_url, provider=provider.name)

                # 8) Metadata
                metadata = provider.fetch_metadata(repo_url, workdir=checkout)

                # 9) Scanners
                scanners = self._runner.run(checkout)
        except Exception as e:
            duration = self._clock() - started
            self._history.update(repo_url, commit, duration=duration, status=ScanStatus.FAILED)
            self._logger.exception("scan_failed", repo_url=repo_url, provider=provider.name, duration=duration)
            if self._notifier is not None:
                self._notifier.scan_failed(repo_url, str(e), duration)
            raise

        # 10) Aggregate
        if commit == UNKNOWN_COMMIT and metadata.last_commit.hash != UNKNOWN_COMMIT:
            commit = metadata.last_commit.hash
        duration = self._clock() - started
        report = ScanReport(
            repo_url=repo_url,
            commit_hash=commit,
            repository=metadata,
            scanners=tuple(scanners),
            severity_breakdown=self._aggregator.overall(scanners),
            change_detection=ChangeDetectionInfo(
                has_changes=True,
                last_commit_hash=commit,
                change_summary=change_result.change_summary if change_result else None,
                scan_skipped=False,
                reason=reason,
            ),
            scanned_at=_utcnow(),
            duration=duration,
            provider_name=provider.name,
        )

        # 11) Cache and record
        if commit != UNKNOWN_COMMIT:
            self._cache.put(repo_url, commit, report)
        self._history.update(
            repo_url,
            commit,
            duration=duration,
            status=ScanStatus.SUCCESS,
            findings=report.total_findings,
            cache_hit=False,
        )
        self._logger.info(
            "scan_completed",
            repo_url=repo_url,
            commit_hash=commit,
            provider=provider.name,
            duration=duration,
            total_findings=report.total_findings,
            high=report.severity_breakdown.high,
            medium=report.severity_breakdown.medium,
            low=report.severity_breakdown.low,
        )
        if self._notifier is not None:
            self._notifier.scan_completed(report)

        # 12)
        return report


def _scan_reason(decision: ChangeDecision) -> str:
    if decision.reason:
        return decision.reason
    if decision.result is not None and decision.result.has_changes:
        return "Changes detected since last scan"
    return "Initial scan"


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()
