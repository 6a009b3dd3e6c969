from __future__ import annotations

from .aggregation import FindingAggregator
from .change_detection import ChangeDecision, ChangeDetector, ChangeOutcome, ChangeState
from .repository_analysis import RepositoryAnalyzer
from .scan_orchestrator import ScanOrchestrator
from .scanner_runner import ScannerRunner

__all__ = [
    "FindingAggregator",
    "ChangeDecision",
    "ChangeDetector",
    "ChangeOutcome",
    "ChangeState",
    "RepositoryAnalyzer",
    "ScanOrchestrator",
    "ScannerRunner",
]
