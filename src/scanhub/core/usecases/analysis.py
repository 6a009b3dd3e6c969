from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from ..domain.exceptions import NoProviderError, ScanHubError
from ..domain.models import MetadataLookup, RepositoryInsight, RepositoryMetadata
from ..ports import LoggerPort, ProviderRegistryPort
from ..services.repository_analysis import RepositoryAnalyzer


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalyzeRepositoryUseCase:
    """Collect metadata, refs and contributors of a repository and rate it.

    Each lookup fails on its own: missing metadata leaves the analysis
    empty and sets ``error``, while branches, tags and contributors
    degrade to empty lists inside the providers.
    """

    def __init__(
        self,
        *,
        registry: ProviderRegistryPort,
        analyzer: RepositoryAnalyzer,
        logger: LoggerPort,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._registry = registry
        self._analyzer = analyzer
        self._logger = logger
        self._clock = clock

    def execute(self, repo_url: str) -> RepositoryInsight:
        provider = self._registry.require_provider_for_url(repo_url)
        self._logger.info("analysis_started", repo_url=repo_url, provider=provider.name)

        metadata: Optional[RepositoryMetadata] = None
        error = None
        try:
            metadata = provider.fetch_metadata(repo_url)
        except ScanHubError as e:
            error = str(e)
            self._logger.warning("analysis_metadata_failed", repo_url=repo_url, error=error)

        branches = provider.get_branches(repo_url)
        tags = provider.get_tags(repo_url)
        contributors = provider.get_contributors(repo_url)

        analysis = None
        if metadata is not None:
            analysis = self._analyzer.analyze(metadata, branches, tags, now=self._clock())

        self._logger.info(
            "analysis_completed",
            repo_url=repo_url,
            branches=len(branches),
            tags=len(tags),
            contributors=len(contributors),
            security_status=analysis.security_status if analysis else None,
        )
        return RepositoryInsight(
            repo_url=repo_url,
            provider=provider.name,
            metadata=metadata,
            branches=tuple(branches),
            tags=tuple(tags),
            contributors=tuple(contributors),
            analysis=analysis,
            error=error,
        )


class FetchMetadataBatchUseCase:
    """Metadata for many repositories at once; one result per URL, in input order."""

    def __init__(
        self,
        *,
        registry: ProviderRegistryPort,
        logger: LoggerPort,
        max_workers: int = 4,
    ) -> None:
        self._registry = registry
        self._logger = logger
        self._max_workers = max(1, max_workers)

    def execute(self, repo_urls: Sequence[str]) -> list[MetadataLookup]:
        if not repo_urls:
            return []
        workers = min(self._max_workers, len(repo_urls))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="scanhub-metadata") as pool:
            results = list(pool.map(self._lookup, repo_urls))
        failed = sum(1 for r in results if r.error)
        self._logger.info("metadata_batch_completed", total=len(results), failed=failed)
        return results

    def _lookup(self, repo_url: str) -> MetadataLookup:
        try:
            provider = self._registry.require_provider_for_url(repo_url)
        except NoProviderError as e:
            return MetadataLookup(repo_url=repo_url, error=str(e))
        try:
            metadata = provider.fetch_metadata(repo_url)
        except ScanHubError as e:
            self._logger.warning("metadata_fetch_failed", repo_url=repo_url, provider=provider.name, error=str(e))
            return MetadataLookup(repo_url=repo_url, provider=provider.name, error=str(e))
        return MetadataLookup(repo_url=repo_url, metadata=metadata, provider=provider.name)
