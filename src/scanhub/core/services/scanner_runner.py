from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Sequence

from ..domain.models import Finding, ScannerReport
from ..ports import LoggerPort, ScannerPort
from .aggregation import FindingAggregator


class ScannerRunner:
    """Runs every scanner against one checkout.

    A scanner that raises contributes no findings; the failure is logged
    and its message kept on that scanner's report.
    """

    def __init__(
        self,
        *,
        scanners: Sequence[ScannerPort],
        aggregator: FindingAggregator,
        logger: LoggerPort,
        parallel: bool = True,
        max_workers: int = 4,
    ) -> None:
        self._scanners = list(scanners)
        self._aggregator = aggregator
        self._logger = logger
        self._parallel = parallel
        self._max_workers = max(1, max_workers)

    @property
    def scanners(self) -> list[ScannerPort]:
        return list(self._scanners)

    def run(self, path: Path) -> list[ScannerReport]:
        if not self._scanners:
            return []
        if not self._parallel or len(self._scanners) == 1:
            return [self._run_one(scanner, path) for scanner in self._scanners]
        workers = min(self._max_workers, len(self._scanners))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="scanhub-scanner") as pool:
            # map keeps registration order in the output
            return list(pool.map(lambda s: self._run_one(s, path), self._scanners))

    def _run_one(self, scanner: ScannerPort, path: Path) -> ScannerReport:
        self._logger.info("scanner_started", scanner=scanner.name)
        findings: list[Finding] = []
        error = None
        try:
            findings = list(scanner.scan(path))
        except Exception as e:
            error = str(e)
            self._logger.warning("scanner_failed", scanner=scanner.name, error=error)
        else:
            self._logger.info("scanner_finished", scanner=scanner.name, findings=len(findings))
        return self._aggregator.scanner_report(
            name=scanner.name,
            version=scanner.version,
            findings=findings,
            error=error,
        )
