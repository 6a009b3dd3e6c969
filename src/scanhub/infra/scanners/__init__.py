from __future__ import annotations

from typing import Iterable

from ...core.ports import ScannerPort
from .gitleaks import GitleaksScanner
from .semgrep import SemgrepScanner

SCANNERS = {
    "semgrep": SemgrepScanner,
    "gitleaks": GitleaksScanner,
}


def build_scanners(names: Iterable[str], *, timeout: float) -> list[ScannerPort]:
    """Instantiate scanners by name, in the given order.

    Raises:
        ValueError: For a name no scanner is registered under
    """
    scanners: list[ScannerPort] = []
    for name in names:
        key = name.strip().lower()
        if key not in SCANNERS:
            raise ValueError(f"Unknown scanner: {name} (available: {', '.join(sorted(SCANNERS))})")
        scanners.append(SCANNERS[key](timeout=timeout))
    return scanners


__all__ = ["GitleaksScanner", "SemgrepScanner", "SCANNERS", "build_scanners"]
