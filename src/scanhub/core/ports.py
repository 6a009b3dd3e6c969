from __future__ import annotations

from contextlib import AbstractContextManager
from pathlib import Path
from typing import Any, Optional, Protocol

from .domain.models import (
    ApiStatus,
    AuthConfig,
    CacheStatistics,
    ChangeDetectionResult,
    CloneOptions,
    Contributor,
    Finding,
    ProviderCapabilities,
    ProviderHealth,
    RepositoryMetadata,
    RepositoryReference,
    ScanHistoryEntry,
    ScanRecord,
    ScanReport,
    ScanStatistics,
    ScanStatus,
)


class ProviderPort(Protocol):
    """Port for one version-control hosting integration.

    New hosting platforms are added by implementing this port and
    registering the adapter; the orchestrator never changes.
    """

    @property
    def name(self) -> str:
        ...

    @property
    def capabilities(self) -> ProviderCapabilities:
        ...

    def can_handle(self, repo_url: str) -> bool:
        ...

    def parse_url(self, repo_url: str) -> Optional[RepositoryReference]:
        ...

    def get_last_commit_hash(self, repo_url: str) -> str:
        """Return the remote HEAD commit, or "unknown" when it cannot be resolved."""
        ...

    def has_changes_since(self, repo_url: str, prior_hash: str) -> ChangeDetectionResult:
        ...

    def clone_repository(
        self,
        repo_url: str,
        dest: Path,
        options: Optional[CloneOptions] = None,
    ) -> None:
        """Clone into dest.

        Raises:
            CloneError: If the clone fails
            OperationTimeoutError: If the clone exceeds its deadline
        """
        ...

    def fetch_metadata(self, repo_url: str, workdir: Optional[Path] = None) -> RepositoryMetadata:
        """Fetch metadata, preferring the host API and falling back to git."""
        ...

    def configure_auth(self, auth: AuthConfig) -> None:
        ...

    def health_check(self) -> ProviderHealth:
        ...

    def get_branches(self, repo_url: str) -> list[str]:
        ...

    def get_tags(self, repo_url: str) -> list[str]:
        ...

    def get_contributors(self, repo_url: str) -> list[Contributor]:
        ...

    def get_api_status(self) -> ApiStatus:
        """Availability of the host API; hosts without one report unavailable."""
        ...


class ProviderRegistryPort(Protocol):
    def available_providers(self) -> list[ProviderPort]:
        ...

    def get_provider_for_url(self, repo_url: str) -> Optional[ProviderPort]:
        ...

    def require_provider_for_url(self, repo_url: str) -> ProviderPort:
        ...

    def health_checks(self) -> dict[str, ProviderHealth]:
        ...

    def statistics(self) -> dict[str, Any]:
        ...


class ScannerPort(Protocol):
    """Port for one external security-analysis tool."""

    @property
    def name(self) -> str:
        ...

    @property
    def version(self) -> str:
        ...

    def scan(self, path: Path) -> list[Finding]:
        """Scan a checkout. May raise any tool-specific error."""
        ...


class ScanCachePort(Protocol):
    """Port for the (repository, commit) -> report cache."""

    def get(self, repo_url: str, commit_hash: str) -> Optional[Any]:
        ...

    def put(self, repo_url: str, commit_hash: str, payload: Any, ttl: Optional[float] = None) -> None:
        ...

    def invalidate_repository(self, repo_url: str) -> int:
        ...

    def invalidate_entry(self, repo_url: str, commit_hash: str) -> bool:
        ...

    def clear(self) -> int:
        ...

    def stats(self) -> CacheStatistics:
        ...

    def has_entries(self, repo_url: str) -> bool:
        ...

    def most_recent(self, repo_url: str) -> Optional[Any]:
        ...


class ScanHistoryPort(Protocol):
    """Port for per-repository scan records."""

    def get_last(self, repo_url: str) -> Optional[ScanRecord]:
        ...

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
        ...

    def history(self, repo_url: str, limit: Optional[int] = None) -> list[ScanHistoryEntry]:
        ...

    def all_records(self) -> list[ScanRecord]:
        ...

    def statistics(self) -> ScanStatistics:
        ...

    def stale(self, max_age_hours: float) -> list[ScanRecord]:
        ...


class WorkspacePort(Protocol):
    """Port for ephemeral, isolated working directories."""

    def acquire(self, label: str) -> AbstractContextManager[Path]:
        """Yield a fresh directory that is deleted on exit, success or failure."""
        ...


class LoggerPort(Protocol):
    """Port for structured logging.

    Keyword arguments become structured fields on the emitted record.
    """

    def debug(self, message: str, **kwargs: Any) -> None:
        ...

    def info(self, message: str, **kwargs: Any) -> None:
        ...

    def warning(self, message: str, **kwargs: Any) -> None:
        ...

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        ...

    def exception(self, message: str, **kwargs: Any) -> None:
        ...


class ScanNotifierPort(Protocol):
    """Port for announcing finished scans to external systems.

    Implementations must not raise; delivery problems are theirs to log.
    """

    def scan_completed(self, report: ScanReport) -> Any:
        ...

    def scan_failed(self, repo_url: str, error: str, duration: float) -> Any:
        ...
