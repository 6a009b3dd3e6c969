from __future__ import annotations

from ..domain.models import ScanReport
from ..services import ScanOrchestrator


class ScanRepositoryUseCase:
    """Use case for scanning one repository.

    Thin layer over ScanOrchestrator; caching, change detection and
    history bookkeeping all happen inside the orchestrator.
    """

    def __init__(self, *, orchestrator: ScanOrchestrator) -> None:
        self._orchestrator = orchestrator

    def execute(self, repo_url: str, *, force: bool = False) -> ScanReport:
        """Scan a repository.

        Args:
            repo_url: Repository URL or local path
            force: Skip the cache and change detection

        Returns:
            Aggregated scan report
        """
        return self._orchestrator.scan(repo_url.strip(), force=force)
