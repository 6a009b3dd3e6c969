from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from ...core.domain.exceptions import ScannerError
from ...core.domain.models import Finding, Severity
from ..process import ensure_executable, run_bounded
from ._paths import relative_to_checkout

logger = logging.getLogger(__name__)


class SemgrepScanner:
    """Static analysis through ``semgrep --config=auto``."""

    def __init__(self, *, timeout: float = 300.0, executable: str = "semgrep", config: str = "auto") -> None:
        self._timeout = timeout
        self._executable = executable
        self._config = config

    @property
    def name(self) -> str:
        return "semgrep"

    @property
    def version(self) -> str:
        return "latest"

    def scan(self, path: Path) -> list[Finding]:
        if not path.is_dir():
            raise ScannerError(self.name, f"Target path must be a directory: {path}")
        try:
            exe = ensure_executable(self._executable)
        except FileNotFoundError as e:
            raise ScannerError(self.name, str(e)) from e

        result = run_bounded(
            [exe, f"--config={self._config}", "--json", "--quiet", "."],
            timeout=self._timeout,
            cwd=path,
        )
        if result.returncode not in (0, 1):
            raise ScannerError(self.name, f"exited with code {result.returncode}: {result.stderr.strip()}")
        if not result.stdout.strip():
            return []
        try:
            payload = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ScannerError(self.name, f"unreadable output: {e}") from e
        return [self._to_finding(item, path) for item in _results(payload)]

    def _to_finding(self, item: dict[str, Any], root: Path) -> Finding:
        extra = item.get("extra") or {}
        start = item.get("start") or {}
        return Finding(
            rule_id=item.get("check_id", "unknown"),
            message=extra.get("message", ""),
            file_path=relative_to_checkout(item.get("path", ""), root),
            line=int(start.get("line") or 0),
            severity=Severity.normalize(extra.get("severity")),
            scanner_name=self.name,
            extra={
                "end_line": (item.get("end") or {}).get("line"),
                "metadata": extra.get("metadata") or {},
            },
        )


def _results(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, dict):
        if isinstance(payload.get("results"), list):
            return payload["results"]
        if isinstance(payload.get("findings"), list):
            return payload["findings"]
        return []
    if isinstance(payload, list):
        return payload
    return []
