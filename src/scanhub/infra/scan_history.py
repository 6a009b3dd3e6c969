from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from ..core.domain.models import ScanHistoryEntry, ScanRecord, ScanStatistics, ScanStatus

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScanHistoryStore:
    """Per-repository scan records plus a bounded history of recent runs.

    Concurrent updates to the same repository are last-write-wins.
    """

    def __init__(
        self,
        *,
        history_limit: int = HISTORY_LIMIT,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._history_limit = history_limit
        self._clock = clock
        self._records: dict[str, ScanRecord] = {}
        self._history: dict[str, deque[ScanHistoryEntry]] = {}
        self._lock = threading.Lock()

    def get_last(self, repo_url: str) -> Optional[ScanRecord]:
        with self._lock:
            return self._records.get(repo_url)

    def update(
        self,
        repo_url: str,
        commit_hash: str,
        *,
        duration: Optional[float] = None,
        status: Optional[ScanStatus] = None,
        findings: Optional[int] = None,
        cache_hit: bool = False,
    ) -> ScanRecord:
        now = self._clock()
        with self._lock:
            existing = self._records.get(repo_url)
            record = ScanRecord(
                repo_url=repo_url,
                last_commit_hash=commit_hash,
                last_scan_timestamp=now,
                scan_count=(existing.scan_count if existing else 0) + 1,
                last_scan_duration=duration,
                last_scan_status=status,
                last_scan_findings=findings,
                cache_hit_count=(existing.cache_hit_count if existing else 0) + (1 if cache_hit else 0),
            )
            self._records[repo_url] = record
            history = self._history.setdefault(repo_url, deque(maxlen=self._history_limit))
            history.append(
                ScanHistoryEntry(
                    commit_hash=commit_hash,
                    timestamp=now,
                    duration=duration,
                    status=status,
                    findings=findings,
                    cache_hit=cache_hit,
                )
            )
        logger.debug(
            "scan_recorded",
            extra={"repo_url": repo_url, "commit_hash": commit_hash, "status": status.value if status else None},
        )
        return record

    def history(self, repo_url: str, limit: Optional[int] = None) -> list[ScanHistoryEntry]:
        """Most recent first."""
        with self._lock:
            entries = list(reversed(self._history.get(repo_url, ())))
        if limit is not None:
            entries = entries[: max(limit, 0)]
        return entries

    def all_records(self) -> list[ScanRecord]:
        with self._lock:
            return list(self._records.values())

    def statistics(self) -> ScanStatistics:
        with self._lock:
            records = list(self._records.values())
            entries = [e for h in self._history.values() for e in h]

        total_scans = sum(r.scan_count for r in records)
        total_hits = sum(r.cache_hit_count for r in records)
        durations = [e.duration for e in entries if e.duration is not None]
        status_counts: dict[str, int] = {}
        for entry in entries:
            if entry.status is not None:
                status_counts[entry.status.value] = status_counts.get(entry.status.value, 0) + 1

        return ScanStatistics(
            total_repositories=len(records),
            total_scans=total_scans,
            total_cache_hits=total_hits,
            average_scan_duration=sum(durations) / len(durations) if durations else None,
            cache_hit_rate=total_hits / total_scans if total_scans else 0.0,
            last_scan_timestamp=max((r.last_scan_timestamp for r in records), default=None),
            status_counts=status_counts,
        )

    def stale(self, max_age_hours: float) -> list[ScanRecord]:
        """Records whose last scan is older than max_age_hours, oldest first."""
        cutoff = self._clock() - timedelta(hours=max_age_hours)
        with self._lock:
            records = [r for r in self._records.values() if r.last_scan_timestamp < cutoff]
        return sorted(records, key=lambda r: r.last_scan_timestamp)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._history.clear()
