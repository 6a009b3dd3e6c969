from __future__ import annotations

from typing import Any, Optional

from .config import AppConfig
from .container import Container
from ..core.domain.models import (
    ApiStatus,
    CacheStatistics,
    CodeContext,
    Contributor,
    MetadataLookup,
    ProviderHealth,
    RepositoryInsight,
    ScanHistoryEntry,
    ScanRecord,
    ScanReport,
    ScanStatistics,
)


def _create_container(config: AppConfig | None = None) -> Container:
    """Create and initialize a container.

    Args:
        config: Optional config. If None, loads from environment variables.

    Returns:
        Initialized container instance
    """
    container = Container()

    if config is None:
        # Load from environment variables (BaseSettings default behavior)
        config = AppConfig()

    container.config.from_pydantic(config)
    container.init_resources()

    return container


class ScanHub:
    """Inbound operations of the scan service.

    One instance owns one container: its cache and history live as long
    as the instance. Close it (or use it as a context manager) to stop
    the cache sweeper and release log files and HTTP connections.

    Example:
        with ScanHub() as hub:
            report = hub.scan_repository("https://github.com/owner/repo")
    """

    def __init__(self, config: AppConfig | None = None, *, container: Container | None = None) -> None:
        self._container = container or _create_container(config)
        self._closed = False

    @property
    def container(self) -> Container:
        return self._container

    def __enter__(self) -> "ScanHub":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._container.shutdown_resources()

    # ---- scanning ----

    def scan_repository(self, repo_url: str, force: bool = False) -> ScanReport:
        """Scan a repository, reusing cached results when nothing changed.

        Raises:
            NoProviderError: If no provider handles the URL
            CloneError: If cloning failed
            OperationTimeoutError: If cloning exceeded its deadline
            MetadataFetchError: If no metadata could be produced
        """
        return self._container.scan_uc().execute(repo_url, force=force)

    def force_scan_repository(self, repo_url: str) -> ScanReport:
        return self.scan_repository(repo_url, force=True)

    def get_code_context(
        self,
        repo_url: str,
        file_path: str,
        line: int,
        context_lines: int = 3,
    ) -> Optional[CodeContext]:
        """Lines around file_path:line in the repository's current HEAD.

        Returns None when the file does not exist.

        Raises:
            InvalidFilePathError: If file_path points outside the repository
        """
        return self._container.code_context_uc().execute(repo_url, file_path, line, context_lines)

    # ---- history ----

    def get_scan_statistics(self) -> ScanStatistics:
        return self._container.scan_statistics_uc().execute()

    def get_all_scan_records(self) -> list[ScanRecord]:
        return self._container.scan_records_uc().execute()

    def get_scan_history(self, repo_url: str, limit: Optional[int] = None) -> list[ScanHistoryEntry]:
        return self._container.scan_history_uc().execute(repo_url, limit)

    def get_stale_repositories(self, max_age_hours: float = 24.0) -> list[ScanRecord]:
        return self._container.stale_repositories_uc().execute(max_age_hours)

    # ---- cache ----

    def get_cache_statistics(self) -> CacheStatistics:
        return self._container.cache_statistics_uc().execute()

    def clear_cache(self) -> int:
        return self._container.clear_cache_uc().execute()

    def invalidate_repository_cache(self, repo_url: str) -> int:
        return self._container.invalidate_cache_uc().execute(repo_url)

    # ---- providers ----

    def provider_health(self) -> dict[str, ProviderHealth]:
        return self._container.provider_health_uc().execute()

    def registry_statistics(self) -> dict[str, Any]:
        return self._container.registry_statistics_uc().execute()

    def provider_api_status(self) -> dict[str, ApiStatus]:
        return self._container.provider_api_status_uc().execute()

    # ---- repository information ----

    def analyze_repository(self, repo_url: str) -> RepositoryInsight:
        """Metadata, refs, contributors and an activity/hygiene rating.

        Raises:
            NoProviderError: If no provider handles the URL
        """
        return self._container.analyze_repository_uc().execute(repo_url)

    def fetch_multiple_repository_metadata(self, repo_urls: list[str]) -> list[MetadataLookup]:
        """Metadata for every URL, in input order; failures are reported per entry."""
        return self._container.metadata_batch_uc().execute(repo_urls)

    def get_branches(self, repo_url: str) -> list[str]:
        return self._container.registry().require_provider_for_url(repo_url).get_branches(repo_url)

    def get_tags(self, repo_url: str) -> list[str]:
        return self._container.registry().require_provider_for_url(repo_url).get_tags(repo_url)

    def get_contributors(self, repo_url: str) -> list[Contributor]:
        return self._container.registry().require_provider_for_url(repo_url).get_contributors(repo_url)


def scan(repo_url: str, *, force: bool = False, config: AppConfig | None = None) -> ScanReport:
    """Scan one repository with a short-lived ScanHub.

    Args:
        repo_url: Repository URL or local path
        force: Bypass cache and change detection
        config: Optional config for testing. If None, loads from env vars.

    Returns:
        Aggregated scan report
    """
    with ScanHub(config) as hub:
        return hub.scan_repository(repo_url, force=force)
