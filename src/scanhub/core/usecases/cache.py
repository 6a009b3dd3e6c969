from __future__ import annotations

from ..domain.models import CacheStatistics
from ..ports import LoggerPort, ScanCachePort


class CacheStatisticsUseCase:
    def __init__(self, *, cache: ScanCachePort) -> None:
        self._cache = cache

    def execute(self) -> CacheStatistics:
        return self._cache.stats()


class ClearCacheUseCase:
    def __init__(self, *, cache: ScanCachePort, logger: LoggerPort) -> None:
        self._cache = cache
        self._logger = logger

    def execute(self) -> int:
        """Drop every cached report. Returns how many entries were removed."""
        removed = self._cache.clear()
        self._logger.info("cache_cleared", removed=removed)
        return removed


class InvalidateRepositoryCacheUseCase:
    def __init__(self, *, cache: ScanCachePort, logger: LoggerPort) -> None:
        self._cache = cache
        self._logger = logger

    def execute(self, repo_url: str) -> int:
        removed = self._cache.invalidate_repository(repo_url)
        self._logger.info("cache_invalidated", repo_url=repo_url, removed=removed)
        return removed
