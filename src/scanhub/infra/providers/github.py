from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

import requests

from ...core.domain.models import (
    ApiStatus,
    CommitInfo,
    Contributor,
    Platform,
    RateLimit,
    RateLimitStatus,
    RepositoryMetadata,
    RepositoryReference,
)
from ..git_repo import NO_DESCRIPTION
from .hosted import HostedGitProvider, json_or_none

GITHUB_API = "https://api.github.com"
PAGE_SIZE = 100


class GitHubProvider(HostedGitProvider):
    provider_name = "github"
    platform = Platform.GITHUB
    hostnames = ("github.com", "www.github.com")
    rate_limit = RateLimit(requests_per_hour=5000, burst_limit=100)
    health_path = "/zen"
    auth_check_path = "/user"
    api_status_path = "/rate_limit"
    api_features = ("repositories", "commits", "branches", "tags", "contributors", "search")

    def default_api_base(self) -> str:
        return GITHUB_API

    def repo_api_url(self, ref: RepositoryReference) -> str:
        return f"{GITHUB_API}/repos/{ref.owner}/{ref.repository}"

    def commits_api_url(self, ref: RepositoryReference) -> tuple[str, dict[str, Any]]:
        return f"{self.repo_api_url(ref)}/commits", {"per_page": 1}

    def branches_api_url(self, ref: RepositoryReference) -> tuple[str, dict[str, Any]]:
        return f"{self.repo_api_url(ref)}/branches", {"per_page": PAGE_SIZE}

    def tags_api_url(self, ref: RepositoryReference) -> tuple[str, dict[str, Any]]:
        return f"{self.repo_api_url(ref)}/tags", {"per_page": PAGE_SIZE}

    def contributors_api_url(self, ref: RepositoryReference) -> Optional[tuple[str, dict[str, Any]]]:
        return f"{self.repo_api_url(ref)}/contributors", {"per_page": PAGE_SIZE}

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers["Accept"] = "application/vnd.github.v3+json"
        return headers

    def map_contributor(self, item: dict[str, Any]) -> Contributor:
        return Contributor(
            name=item.get("login") or "",
            username=item.get("login"),
            avatar_url=item.get("avatar_url"),
            contributions=item.get("contributions") or 0,
            type="bot" if item.get("type") == "Bot" else "user",
        )

    def map_api_status(self, response: requests.Response) -> ApiStatus:
        data = json_or_none(response)
        rate = (data.get("rate") if isinstance(data, dict) else None) or {}
        reset = rate.get("reset")
        return ApiStatus(
            available=True,
            rate_limit=RateLimitStatus(
                remaining=rate.get("remaining", 0),
                total=rate.get("limit", 0),
                reset_time=datetime.fromtimestamp(reset, timezone.utc).isoformat() if reset else None,
            ),
            features=self.api_features,
        )

    def map_commit(self, data: Any) -> Optional[CommitInfo]:
        if not isinstance(data, list) or not data:
            return None
        latest = data[0]
        author = latest.get("commit", {}).get("author") or {}
        return CommitInfo(
            hash=latest["sha"],
            timestamp=author.get("date", ""),
            message=latest.get("commit", {}).get("message"),
            author=author.get("name"),
        )

    def map_metadata(self, ref: RepositoryReference, data: dict[str, Any], commit: CommitInfo) -> RepositoryMetadata:
        license_info = data.get("license") or {}
        return RepositoryMetadata(
            name=data.get("name", ref.repository),
            description=data.get("description") or NO_DESCRIPTION,
            default_branch=data.get("default_branch") or "main",
            last_commit=commit,
            platform_specific={
                "id": data.get("id"),
                "full_name": data.get("full_name"),
                "is_private": data.get("private"),
                "archived": data.get("archived"),
                "topics": data.get("topics") or [],
                "visibility": data.get("visibility"),
            },
            common={
                "visibility": "private" if data.get("private") else "public",
                "stars_count": data.get("stargazers_count"),
                "forks_count": data.get("forks_count"),
                "issues_count": data.get("open_issues_count"),
                "language": data.get("language"),
                "license": license_info.get("name"),
                "size": data.get("size"),
                "created_at": data.get("created_at"),
                "updated_at": data.get("updated_at"),
                "pushed_at": data.get("pushed_at"),
                "web_url": data.get("html_url"),
                "clone_url": data.get("clone_url"),
                "ssh_url": data.get("ssh_url"),
            },
            source="api",
        )
