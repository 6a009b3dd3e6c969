from __future__ import annotations

from typing import Optional

from ..domain.models import ScanHistoryEntry, ScanRecord, ScanStatistics
from ..ports import ScanHistoryPort


class ScanStatisticsUseCase:
    def __init__(self, *, history: ScanHistoryPort) -> None:
        self._history = history

    def execute(self) -> ScanStatistics:
        return self._history.statistics()


class ListScanRecordsUseCase:
    def __init__(self, *, history: ScanHistoryPort) -> None:
        self._history = history

    def execute(self) -> list[ScanRecord]:
        """All scan records, most recently scanned first."""
        return sorted(self._history.all_records(), key=lambda r: r.last_scan_timestamp, reverse=True)


class ScanHistoryUseCase:
    def __init__(self, *, history: ScanHistoryPort) -> None:
        self._history = history

    def execute(self, repo_url: str, limit: Optional[int] = None) -> list[ScanHistoryEntry]:
        return self._history.history(repo_url, limit=limit)


class StaleRepositoriesUseCase:
    def __init__(self, *, history: ScanHistoryPort) -> None:
        self._history = history

    def execute(self, max_age_hours: float = 24.0) -> list[ScanRecord]:
        if max_age_hours < 0:
            raise ValueError("max_age_hours must not be negative")
        return self._history.stale(max_age_hours)
