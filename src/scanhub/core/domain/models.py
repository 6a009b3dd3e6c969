from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


UNKNOWN_COMMIT = "unknown"


class Platform(str, Enum):
    GENERIC_GIT = "generic-git"
    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"
    AZURE_DEVOPS = "azure-devops"
    GITEA = "gitea"
    FORGEJO = "forgejo"
    CODEBERG = "codeberg"

    @classmethod
    def from_hostname(cls, hostname: str) -> "Platform":
        """Guess the hosting platform from a hostname."""
        host = hostname.lower()
        if "github.com" in host:
            return cls.GITHUB
        if "gitlab.com" in host or "gitlab." in host:
            return cls.GITLAB
        if "bitbucket.org" in host:
            return cls.BITBUCKET
        if "dev.azure.com" in host or "visualstudio.com" in host:
            return cls.AZURE_DEVOPS
        if "codeberg.org" in host:
            return cls.CODEBERG
        if "forgejo." in host:
            return cls.FORGEJO
        if "gitea." in host:
            return cls.GITEA
        return cls.GENERIC_GIT


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @classmethod
    def normalize(cls, raw: str | None) -> "Severity":
        """Map a scanner-specific severity label onto the common scale."""
        value = (raw or "").strip().lower()
        if value in ("error", "critical", "high", "blocker"):
            return cls.HIGH
        if value in ("warning", "warn", "medium", "moderate"):
            return cls.MEDIUM
        if value in ("low", "minor"):
            return cls.LOW
        return cls.INFO


class ScanStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    CACHED = "cached"


@dataclass(frozen=True)
class RepositoryReference:
    """A repository URL broken into its addressable parts."""
    original_url: str
    platform: Platform
    hostname: str
    owner: str
    repository: str

    @property
    def full_name(self) -> str:
        """Returns owner/repository format."""
        return f"{self.owner}/{self.repository}"


@dataclass(frozen=True)
class RateLimit:
    requests_per_hour: int
    burst_limit: int


@dataclass(frozen=True)
class ProviderCapabilities:
    name: str
    platform: Platform
    hostnames: tuple[str, ...]
    supports_private_repos: bool
    supports_api: bool
    auth_kind: str = "none"
    rate_limit: RateLimit | None = None
    additional_platforms: tuple[Platform, ...] = ()

    @property
    def platforms(self) -> tuple[Platform, ...]:
        return (self.platform, *self.additional_platforms)


@dataclass(frozen=True)
class AuthConfig:
    kind: str = "none"  # "none" or "token"
    token: str | None = field(default=None, repr=False)

    @classmethod
    def from_token(cls, token: str | None) -> "AuthConfig":
        if token:
            return cls(kind="token", token=token)
        return cls()

    @property
    def has_token(self) -> bool:
        return self.kind == "token" and bool(self.token)


@dataclass(frozen=True)
class CloneOptions:
    depth: int | None = None
    branch: str | None = None
    single_branch: bool = False
    recursive: bool = False
    bare: bool = False


@dataclass(frozen=True)
class CommitInfo:
    hash: str
    timestamp: str
    message: str | None = None
    author: str | None = None


@dataclass(frozen=True)
class RepositoryMetadata:
    name: str
    description: str
    default_branch: str
    last_commit: CommitInfo
    platform_specific: dict[str, Any] = field(default_factory=dict)
    common: dict[str, Any] = field(default_factory=dict)
    source: str = "git"  # "api" or "git"


@dataclass(frozen=True)
class ChangeSummary:
    files_changed: int
    additions: int
    deletions: int
    commits: int
    commit_range: str | None = None


@dataclass(frozen=True)
class ChangeDetectionResult:
    has_changes: bool
    last_commit_hash: str
    change_summary: ChangeSummary | None = None
    error: str | None = None


@dataclass(frozen=True)
class ProviderHealth:
    is_healthy: bool
    response_time_ms: float | None = None
    auth_valid: bool = False
    api_available: bool | None = None
    error: str | None = None
    checked_at: str = ""


@dataclass(frozen=True)
class Finding:
    """One normalized security issue reported by a scanner."""
    rule_id: str
    message: str
    file_path: str
    line: int
    severity: Severity
    scanner_name: str
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SeverityBreakdown:
    __json_properties__ = ("total",)

    high: int = 0
    medium: int = 0
    low: int = 0
    info: int = 0

    @property
    def total(self) -> int:
        return self.high + self.medium + self.low + self.info


@dataclass(frozen=True)
class ScannerReport:
    """Findings contributed by one scanner, grouped by severity."""
    __json_properties__ = ("total_findings",)

    name: str
    version: str
    findings: tuple[Finding, ...]
    by_severity: dict[Severity, tuple[Finding, ...]]
    breakdown: SeverityBreakdown
    error: str | None = None

    @property
    def total_findings(self) -> int:
        return len(self.findings)


@dataclass(frozen=True)
class ChangeDetectionInfo:
    has_changes: bool
    last_commit_hash: str
    change_summary: ChangeSummary | None = None
    scan_skipped: bool = False
    reason: str | None = None


@dataclass(frozen=True)
class ScanReport:
    """Aggregated, cacheable result of one orchestration run."""
    __json_properties__ = ("total_findings",)

    repo_url: str
    commit_hash: str
    repository: RepositoryMetadata
    scanners: tuple[ScannerReport, ...]
    severity_breakdown: SeverityBreakdown
    change_detection: ChangeDetectionInfo
    scanned_at: str
    duration: float
    provider_name: str
    served_from_cache: bool = False

    @property
    def total_findings(self) -> int:
        return self.severity_breakdown.total

    @property
    def findings(self) -> list[Finding]:
        return [f for scanner in self.scanners for f in scanner.findings]

    def findings_by_scanner(self) -> dict[str, list[Finding]]:
        return {scanner.name: list(scanner.findings) for scanner in self.scanners}


@dataclass(frozen=True)
class CacheEntry:
    repo_url: str
    commit_hash: str
    payload: Any
    created_at: float  # monotonic seconds
    ttl_seconds: float
    created_wall: datetime

    def is_expired(self, now: float) -> bool:
        return now > self.created_at + self.ttl_seconds


@dataclass(frozen=True)
class CacheStatistics:
    total_entries: int
    repositories: int
    oldest: datetime | None = None
    newest: datetime | None = None


@dataclass(frozen=True)
class ScanHistoryEntry:
    commit_hash: str
    timestamp: datetime
    duration: float | None
    status: ScanStatus | None
    findings: int | None
    cache_hit: bool


@dataclass(frozen=True)
class ScanRecord:
    repo_url: str
    last_commit_hash: str
    last_scan_timestamp: datetime
    scan_count: int
    last_scan_duration: float | None = None
    last_scan_status: ScanStatus | None = None
    last_scan_findings: int | None = None
    cache_hit_count: int = 0


@dataclass(frozen=True)
class ScanStatistics:
    total_repositories: int
    total_scans: int
    total_cache_hits: int
    average_scan_duration: float | None
    cache_hit_rate: float
    last_scan_timestamp: datetime | None
    status_counts: dict[str, int]


@dataclass(frozen=True)
class CodeLine:
    line_number: int
    content: str
    is_target_line: bool


@dataclass(frozen=True)
class CodeContext:
    file_path: str
    line: int
    start_line: int
    end_line: int
    lines: tuple[CodeLine, ...]


@dataclass(frozen=True)
class Contributor:
    name: str
    contributions: int = 0
    username: str | None = None
    email: str | None = None
    avatar_url: str | None = None
    type: str = "user"  # "user" or "bot"


@dataclass(frozen=True)
class RateLimitStatus:
    remaining: int
    total: int
    reset_time: str | None = None


@dataclass(frozen=True)
class ApiStatus:
    """Reachability of a host API and, where the host reports it, its quota."""
    available: bool
    rate_limit: RateLimitStatus | None = None
    version: str | None = None
    features: tuple[str, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class RepositoryAnalysis:
    is_active: bool
    has_recent_activity: bool
    primary_language: str | None = None
    estimated_size: str | None = None
    security_status: str | None = None


@dataclass(frozen=True)
class RepositoryInsight:
    """Metadata, refs and contributors of a repository plus a derived assessment."""
    repo_url: str
    provider: str
    metadata: RepositoryMetadata | None = None
    branches: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    contributors: tuple[Contributor, ...] = ()
    analysis: RepositoryAnalysis | None = None
    error: str | None = None


@dataclass(frozen=True)
class MetadataLookup:
    repo_url: str
    metadata: RepositoryMetadata | None = None
    provider: str | None = None
    error: str | None = None
