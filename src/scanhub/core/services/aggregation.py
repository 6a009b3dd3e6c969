from __future__ import annotations

from typing import Iterable, Optional

from ..domain.models import Finding, ScannerReport, Severity, SeverityBreakdown


class FindingAggregator:
    """Groups scanner findings by severity, per scanner and overall."""

    def scanner_report(
        self,
        *,
        name: str,
        version: str,
        findings: Iterable[Finding],
        error: Optional[str] = None,
    ) -> ScannerReport:
        items = tuple(findings)
        by_severity = {
            severity: tuple(f for f in items if f.severity is severity)
            for severity in Severity
        }
        return ScannerReport(
            name=name,
            version=version,
            findings=items,
            by_severity=by_severity,
            breakdown=_breakdown(items),
            error=error,
        )

    def overall(self, reports: Iterable[ScannerReport]) -> SeverityBreakdown:
        return _breakdown(f for report in reports for f in report.findings)


def _breakdown(findings: Iterable[Finding]) -> SeverityBreakdown:
    counts = {severity: 0 for severity in Severity}
    for finding in findings:
        counts[finding.severity] += 1
    return SeverityBreakdown(
        high=counts[Severity.HIGH],
        medium=counts[Severity.MEDIUM],
        low=counts[Severity.LOW],
        info=counts[Severity.INFO],
    )
