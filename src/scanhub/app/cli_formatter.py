"""CLI output formatting utilities for human-readable display."""

from __future__ import annotations

from typing import Any

from ..core.domain.models import ApiStatus, CodeContext, ProviderHealth, RepositoryInsight, ScanReport, Severity


def format_scan_report(report: ScanReport, *, max_findings: int = 50) -> str:
    """Format a scan report for human-readable CLI output.

    Args:
        report: Scan report
        max_findings: Findings listed per scanner before the rest are summarized

    Returns:
        Formatted string for display
    """
    lines = []
    lines.append("=" * 80)
    lines.append("SCAN REPORT")
    lines.append("=" * 80)

    lines.append(f"\nRepository: {report.repo_url}")
    lines.append(f"Commit: {report.commit_hash}")
    lines.append(f"Provider: {report.provider_name} | Duration: {report.duration:.2f}s")
    if report.repository.description:
        lines.append(f"Description: {report.repository.description}")

    change = report.change_detection
    if report.served_from_cache:
        lines.append("Source: cache")
    if change.scan_skipped:
        lines.append(f"Scan skipped: {change.reason}")
    elif change.reason:
        lines.append(f"Reason: {change.reason}")
    if change.change_summary is not None:
        s = change.change_summary
        lines.append(
            f"Changes: {s.commits} commits, {s.files_changed} files, +{s.additions}/-{s.deletions}"
            + (f" ({s.commit_range})" if s.commit_range else "")
        )

    # Severity summary
    lines.append("\n" + "-" * 80)
    lines.append("SUMMARY")
    lines.append("-" * 80)
    b = report.severity_breakdown
    lines.append(f"\nTotal: {report.total_findings}  high={b.high} medium={b.medium} low={b.low} info={b.info}")

    for scanner in report.scanners:
        lines.append("\n" + "-" * 80)
        header = f"{scanner.name.upper()} ({scanner.version}): {scanner.total_findings} findings"
        lines.append(header)
        lines.append("-" * 80)
        if scanner.error:
            lines.append(f"  ! scanner failed: {scanner.error}")
        shown = 0
        for severity in Severity:
            for finding in scanner.by_severity.get(severity, ()):
                if shown >= max_findings:
                    break
                location = f"{finding.file_path}:{finding.line}" if finding.file_path else "-"
                lines.append(f"  [{severity.value.upper()}] {finding.rule_id} {location}")
                if finding.message:
                    lines.append(f"      {finding.message}")
                shown += 1
        if scanner.total_findings > shown:
            lines.append(f"  ... {scanner.total_findings - shown} more")

    lines.append("\n" + "=" * 80)
    return "\n".join(lines)


def format_code_context(context: CodeContext) -> str:
    width = len(str(context.end_line))
    lines = [f"{context.file_path}:{context.line}"]
    for code_line in context.lines:
        marker = ">" if code_line.is_target_line else " "
        lines.append(f"{marker} {code_line.line_number:>{width}} | {code_line.content}")
    return "\n".join(lines)


def format_provider_list(
    providers: list[dict[str, Any]],
    health: dict[str, ProviderHealth] | None = None,
) -> str:
    """Format registered providers, in lookup order."""
    if not providers:
        return "No providers registered."
    lines = [f"Providers ({len(providers)}), checked in this order:", ""]
    for idx, p in enumerate(providers, 1):
        hosts = ", ".join(p["hostnames"]) or "any git URL"
        api = "api" if p["supports_api"] else "git only"
        line = f"{idx:2d}. {p['name']:<12} {p['platform']:<12} {api:<9} {hosts}"
        if health is not None and p["name"] in health:
            h = health[p["name"]]
            status = "healthy" if h.is_healthy else f"unhealthy ({h.error})"
            line += f"  [{status}]"
        lines.append(line)
    return "\n".join(lines)


def format_api_status(statuses: dict[str, ApiStatus]) -> str:
    lines = ["API status:", ""]
    for name, status in statuses.items():
        if not status.available:
            lines.append(f"  {name:<12} unavailable ({status.error})")
            continue
        line = f"  {name:<12} available"
        if status.version:
            line += f" v{status.version}"
        if status.rate_limit is not None:
            rl = status.rate_limit
            line += f"  rate limit {rl.remaining}/{rl.total}"
            if rl.reset_time:
                line += f" (resets {rl.reset_time})"
        lines.append(line)
    return "\n".join(lines)


def format_repository_insight(insight: RepositoryInsight, *, max_items: int = 10) -> str:
    """Format a repository analysis for human-readable CLI output."""
    lines = [f"Repository: {insight.repo_url}", f"Provider: {insight.provider}"]
    if insight.error:
        lines.append(f"Metadata unavailable: {insight.error}")

    metadata = insight.metadata
    if metadata is not None:
        lines.append(f"Name: {metadata.name}")
        if metadata.description:
            lines.append(f"Description: {metadata.description}")
        lines.append(f"Default branch: {metadata.default_branch}")
        lines.append(f"Last commit: {metadata.last_commit.hash[:12]} ({metadata.last_commit.timestamp})")

    analysis = insight.analysis
    if analysis is not None:
        activity = "recent" if analysis.has_recent_activity else ("active" if analysis.is_active else "inactive")
        lines.append("")
        lines.append(f"Activity: {activity}")
        if analysis.primary_language:
            lines.append(f"Language: {analysis.primary_language}")
        if analysis.estimated_size:
            lines.append(f"Size: {analysis.estimated_size}")
        lines.append(f"Security posture: {analysis.security_status}")

    lines.append("")
    for label, values in (("Branches", insight.branches), ("Tags", insight.tags)):
        shown = ", ".join(values[:max_items])
        more = f" (+{len(values) - max_items} more)" if len(values) > max_items else ""
        lines.append(f"{label} ({len(values)}): {shown or '-'}{more}")
    if insight.contributors:
        top = ", ".join(f"{c.name} ({c.contributions})" for c in insight.contributors[:max_items])
        lines.append(f"Contributors ({len(insight.contributors)}): {top}")
    return "\n".join(lines)
