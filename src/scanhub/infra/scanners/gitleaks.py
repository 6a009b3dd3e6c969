from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from ...core.domain.exceptions import ScannerError
from ...core.domain.models import Finding, Severity
from ..process import ensure_executable, run_bounded
from ._paths import relative_to_checkout

logger = logging.getLogger(__name__)

_HIGH_MARKERS = ("aws", "private-key", "ssh", "api-key", "password", "token", "secret")
_MEDIUM_MARKERS = ("email", "url", "ip-address", "credit-card")


def severity_for_rule(rule_id: str) -> Severity:
    """Secrets that grant access are high; identifying data is medium."""
    rule = rule_id.lower()
    if any(marker in rule for marker in _HIGH_MARKERS):
        return Severity.HIGH
    if any(marker in rule for marker in _MEDIUM_MARKERS):
        return Severity.MEDIUM
    return Severity.LOW


class GitleaksScanner:
    """Secret detection through ``gitleaks detect``.

    The report is written to a temporary file outside the checkout and
    secrets are redacted before they reach us.
    """

    def __init__(self, *, timeout: float = 300.0, executable: str = "gitleaks") -> None:
        self._timeout = timeout
        self._executable = executable

    @property
    def name(self) -> str:
        return "gitleaks"

    @property
    def version(self) -> str:
        return "latest"

    def scan(self, path: Path) -> list[Finding]:
        if not path.is_dir():
            raise ScannerError(self.name, f"Target path is not a directory: {path}")
        try:
            exe = ensure_executable(self._executable)
        except FileNotFoundError as e:
            raise ScannerError(self.name, str(e)) from e

        fd, report_name = tempfile.mkstemp(prefix="scanhub-gitleaks-", suffix=".json")
        os.close(fd)
        report = Path(report_name)
        try:
            result = run_bounded(
                [
                    exe,
                    "detect",
                    "--source",
                    str(path),
                    "--report-format",
                    "json",
                    "--report-path",
                    str(report),
                    "--no-banner",
                    "--redact",
                ],
                timeout=self._timeout,
                cwd=path,
            )
            # 1 means leaks were found
            if result.returncode not in (0, 1):
                raise ScannerError(self.name, f"exited with code {result.returncode}: {result.stderr.strip()}")
            raw = report.read_text(encoding="utf-8").strip()
        finally:
            report.unlink(missing_ok=True)

        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ScannerError(self.name, f"unreadable report: {e}") from e
        if not isinstance(items, list):
            return []
        return [self._to_finding(item, path) for item in items]

    def _to_finding(self, item: dict[str, Any], root: Path) -> Finding:
        rule_id = item.get("RuleID") or "unknown"
        return Finding(
            rule_id=rule_id,
            message=item.get("Description") or f"Potential secret detected: {rule_id}",
            file_path=relative_to_checkout(item.get("File", ""), root),
            line=int(item.get("StartLine") or 0),
            severity=severity_for_rule(rule_id),
            scanner_name=self.name,
            extra={
                "commit": item.get("Commit"),
                "author": item.get("Author"),
                "entropy": item.get("Entropy"),
                "match": item.get("Match"),
            },
        )
