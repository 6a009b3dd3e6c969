from __future__ import annotations

from typing import Any, Optional

from ...core.domain.models import (
    CommitInfo,
    Platform,
    RateLimit,
    RepositoryMetadata,
    RepositoryReference,
)
from ..git_repo import NO_DESCRIPTION
from .hosted import HostedGitProvider

# server-side maximum page size of the Gitea API
PAGE_SIZE = 50


class GiteaProvider(HostedGitProvider):
    """Gitea and Forgejo instances, Codeberg included; they share one API."""

    provider_name = "gitea"
    platform = Platform.GITEA
    additional_platforms = (Platform.FORGEJO, Platform.CODEBERG)
    hostnames = ("codeberg.org",)
    host_patterns = ("gitea.", "forgejo.")
    rate_limit = RateLimit(requests_per_hour=2000, burst_limit=50)
    token_username = "git"
    health_path = "/version"
    auth_check_path = "/user"
    api_status_path = "/version"

    def auth_headers(self) -> dict[str, str]:
        if self._auth.has_token:
            return {"Authorization": f"token {self._auth.token}"}
        return {}

    def default_api_base(self) -> str:
        return "https://codeberg.org/api/v1"

    def api_base(self, ref: RepositoryReference) -> str:
        return f"https://{ref.hostname}/api/v1"

    def repo_api_url(self, ref: RepositoryReference) -> str:
        return f"{self.api_base(ref)}/repos/{ref.owner}/{ref.repository}"

    def commits_api_url(self, ref: RepositoryReference) -> tuple[str, dict[str, Any]]:
        return f"{self.repo_api_url(ref)}/commits", {"limit": 1}

    def branches_api_url(self, ref: RepositoryReference) -> tuple[str, dict[str, Any]]:
        return f"{self.repo_api_url(ref)}/branches", {"limit": PAGE_SIZE}

    def tags_api_url(self, ref: RepositoryReference) -> tuple[str, dict[str, Any]]:
        return f"{self.repo_api_url(ref)}/tags", {"limit": PAGE_SIZE}

    def map_commit(self, data: Any) -> Optional[CommitInfo]:
        if not isinstance(data, list) or not data:
            return None
        latest = data[0]
        inner = latest.get("commit") or {}
        author = inner.get("author") or {}
        return CommitInfo(
            hash=latest["sha"],
            timestamp=author.get("date") or latest.get("created", ""),
            message=inner.get("message"),
            author=author.get("name"),
        )

    def map_metadata(self, ref: RepositoryReference, data: dict[str, Any], commit: CommitInfo) -> RepositoryMetadata:
        return RepositoryMetadata(
            name=data.get("name", ref.repository),
            description=data.get("description") or NO_DESCRIPTION,
            default_branch=data.get("default_branch") or "main",
            last_commit=commit,
            platform_specific={
                "id": data.get("id"),
                "full_name": data.get("full_name"),
                "is_private": data.get("private"),
                "is_fork": data.get("fork"),
                "host_platform": Platform.from_hostname(ref.hostname).value,
            },
            common={
                "visibility": "private" if data.get("private") else "public",
                "stars_count": data.get("stars_count"),
                "forks_count": data.get("forks_count"),
                "issues_count": data.get("open_issues_count"),
                "language": data.get("language"),
                "size": data.get("size"),
                "created_at": data.get("created_at"),
                "updated_at": data.get("updated_at"),
                "web_url": data.get("html_url"),
                "clone_url": data.get("clone_url"),
                "ssh_url": data.get("ssh_url"),
            },
            source="api",
        )
