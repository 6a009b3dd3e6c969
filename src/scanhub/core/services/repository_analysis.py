from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from ..domain.models import RepositoryAnalysis, RepositoryMetadata

ACTIVE_DAYS = 365
RECENT_DAYS = 30

GOOD = "Good"
MODERATE = "Moderate"
NEEDS_ATTENTION = "Needs attention"


def format_size(size_kb: float) -> str:
    """Human-readable size for a value in kilobytes."""
    if size_kb < 1024:
        return f"{size_kb:g} KB"
    if size_kb < 1024 * 1024:
        return f"{size_kb / 1024:.1f} MB"
    return f"{size_kb / (1024 * 1024):.1f} GB"


def days_since(timestamp: str, now: datetime) -> Optional[int]:
    """Whole days between an ISO-8601 timestamp and now; None if it does not parse."""
    try:
        then = datetime.fromisoformat(timestamp)
    except (TypeError, ValueError):
        return None
    if then.tzinfo is None:
        then = then.replace(tzinfo=timezone.utc)
    return (now - then).days


class RepositoryAnalyzer:
    """Derives activity flags and a coarse hygiene rating from repository metadata.

    The rating counts missing signals (license, development branches,
    tags, recent commits): none is "Good", one or two "Moderate", more
    "Needs attention". It says nothing about scan findings.
    """

    def analyze(
        self,
        metadata: RepositoryMetadata,
        branches: Sequence[str],
        tags: Sequence[str],
        now: Optional[datetime] = None,
    ) -> RepositoryAnalysis:
        now = now or datetime.now(timezone.utc)
        age = days_since(metadata.last_commit.timestamp, now)
        size = metadata.common.get("size")
        return RepositoryAnalysis(
            is_active=age is not None and age < ACTIVE_DAYS,
            has_recent_activity=age is not None and age < RECENT_DAYS,
            primary_language=metadata.common.get("language"),
            estimated_size=format_size(size) if size else None,
            security_status=self.security_status(metadata, branches, tags, now),
        )

    def security_status(
        self,
        metadata: RepositoryMetadata,
        branches: Sequence[str],
        tags: Sequence[str],
        now: datetime,
    ) -> str:
        issues = self.posture_issues(metadata, branches, tags, now)
        if not issues:
            return GOOD
        if len(issues) <= 2:
            return MODERATE
        return NEEDS_ATTENTION

    def posture_issues(
        self,
        metadata: RepositoryMetadata,
        branches: Sequence[str],
        tags: Sequence[str],
        now: datetime,
    ) -> list[str]:
        issues: list[str] = []
        if not metadata.common.get("license"):
            issues.append("No license specified")
        if list(branches) == [metadata.default_branch]:
            issues.append("No development branches")
        if not tags:
            issues.append("No releases/tags")
        age = days_since(metadata.last_commit.timestamp, now)
        if age is not None and age > ACTIVE_DAYS:
            issues.append("Inactive for over a year")
        return issues
