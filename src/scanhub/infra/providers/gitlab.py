from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

from ...core.domain.models import (
    CommitInfo,
    Contributor,
    Platform,
    RateLimit,
    RepositoryMetadata,
    RepositoryReference,
)
from ..git_repo import NO_DESCRIPTION
from .hosted import HostedGitProvider

PAGE_SIZE = 100


class GitLabProvider(HostedGitProvider):
    """gitlab.com and self-hosted instances on a ``gitlab.`` hostname."""

    provider_name = "gitlab"
    platform = Platform.GITLAB
    hostnames = ("gitlab.com", "www.gitlab.com")
    host_patterns = ("gitlab.",)
    rate_limit = RateLimit(requests_per_hour=2000, burst_limit=50)
    token_username = "oauth2"
    nested_namespaces = True
    health_path = "/version"
    auth_check_path = "/user"
    api_status_path = "/version"
    api_features = ("repositories", "commits", "branches", "tags", "contributors", "merge_requests", "pipelines")

    def default_api_base(self) -> str:
        return "https://gitlab.com/api/v4"

    def api_base(self, ref: RepositoryReference) -> str:
        if ref.hostname in ("gitlab.com", "www.gitlab.com"):
            return self.default_api_base()
        return f"https://{ref.hostname}/api/v4"

    def repo_api_url(self, ref: RepositoryReference) -> str:
        project = quote(ref.full_name, safe="")
        return f"{self.api_base(ref)}/projects/{project}"

    def commits_api_url(self, ref: RepositoryReference) -> tuple[str, dict[str, Any]]:
        return f"{self.repo_api_url(ref)}/repository/commits", {"per_page": 1}

    def branches_api_url(self, ref: RepositoryReference) -> tuple[str, dict[str, Any]]:
        return f"{self.repo_api_url(ref)}/repository/branches", {"per_page": PAGE_SIZE}

    def tags_api_url(self, ref: RepositoryReference) -> tuple[str, dict[str, Any]]:
        return f"{self.repo_api_url(ref)}/repository/tags", {"per_page": PAGE_SIZE}

    def contributors_api_url(self, ref: RepositoryReference) -> Optional[tuple[str, dict[str, Any]]]:
        return f"{self.repo_api_url(ref)}/repository/contributors", {"per_page": PAGE_SIZE}

    def map_contributor(self, item: dict[str, Any]) -> Contributor:
        # the contributors endpoint does not flag bots
        return Contributor(
            name=item.get("name") or "",
            email=item.get("email"),
            contributions=item.get("commits") or 0,
        )

    def map_commit(self, data: Any) -> Optional[CommitInfo]:
        if not isinstance(data, list) or not data:
            return None
        latest = data[0]
        return CommitInfo(
            hash=latest["id"],
            timestamp=latest.get("committed_date") or latest.get("created_at", ""),
            message=latest.get("message"),
            author=latest.get("author_name"),
        )

    def map_metadata(self, ref: RepositoryReference, data: dict[str, Any], commit: CommitInfo) -> RepositoryMetadata:
        namespace = data.get("namespace") or {}
        visibility = data.get("visibility")
        return RepositoryMetadata(
            name=data.get("name", ref.repository),
            description=data.get("description") or NO_DESCRIPTION,
            default_branch=data.get("default_branch") or "main",
            last_commit=commit,
            platform_specific={
                "id": data.get("id"),
                "path_with_namespace": data.get("path_with_namespace"),
                "namespace": namespace.get("full_path"),
                "topics": data.get("topics") or [],
                "readme_url": data.get("readme_url"),
            },
            common={
                "visibility": visibility if visibility in ("private", "internal") else "public",
                "stars_count": data.get("star_count"),
                "forks_count": data.get("forks_count"),
                "issues_count": data.get("open_issues_count"),
                "created_at": data.get("created_at"),
                "updated_at": data.get("last_activity_at"),
                "web_url": data.get("web_url"),
                "clone_url": data.get("http_url_to_repo"),
                "ssh_url": data.get("ssh_url_to_repo"),
                "archived": data.get("archived"),
            },
            source="api",
        )
