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

BITBUCKET_API = "https://api.bitbucket.org/2.0"
PAGE_SIZE = 100


class BitbucketProvider(HostedGitProvider):
    provider_name = "bitbucket"
    platform = Platform.BITBUCKET
    hostnames = ("bitbucket.org", "www.bitbucket.org")
    rate_limit = RateLimit(requests_per_hour=1000, burst_limit=60)
    token_username = "x-token-auth"
    health_path = "/repositories?pagelen=1"
    auth_check_path = "/user"
    api_status_path = "/repositories?pagelen=1"

    def default_api_base(self) -> str:
        return BITBUCKET_API

    def repo_api_url(self, ref: RepositoryReference) -> str:
        return f"{BITBUCKET_API}/repositories/{ref.owner}/{ref.repository}"

    def commits_api_url(self, ref: RepositoryReference) -> tuple[str, dict[str, Any]]:
        return f"{self.repo_api_url(ref)}/commits", {"pagelen": 1}

    def branches_api_url(self, ref: RepositoryReference) -> tuple[str, dict[str, Any]]:
        return f"{self.repo_api_url(ref)}/refs/branches", {"pagelen": PAGE_SIZE}

    def tags_api_url(self, ref: RepositoryReference) -> tuple[str, dict[str, Any]]:
        return f"{self.repo_api_url(ref)}/refs/tags", {"pagelen": PAGE_SIZE}

    def map_ref_names(self, data: Any) -> list[str]:
        values = data.get("values") if isinstance(data, dict) else None
        return super().map_ref_names(values or [])

    def map_commit(self, data: Any) -> Optional[CommitInfo]:
        values = data.get("values") if isinstance(data, dict) else None
        if not values:
            return None
        latest = values[0]
        author = latest.get("author") or {}
        user = author.get("user") or {}
        return CommitInfo(
            hash=latest["hash"],
            timestamp=latest.get("date", ""),
            message=latest.get("message"),
            author=user.get("display_name") or author.get("raw"),
        )

    def map_metadata(self, ref: RepositoryReference, data: dict[str, Any], commit: CommitInfo) -> RepositoryMetadata:
        links = data.get("links") or {}
        clone_links = {link.get("name"): link.get("href") for link in links.get("clone") or []}
        web = (links.get("html") or {}).get("href") or f"https://bitbucket.org/{ref.full_name}"
        return RepositoryMetadata(
            name=data.get("name", ref.repository),
            description=data.get("description") or NO_DESCRIPTION,
            default_branch=(data.get("mainbranch") or {}).get("name") or "main",
            last_commit=commit,
            platform_specific={
                "uuid": data.get("uuid"),
                "full_name": data.get("full_name"),
                "is_private": data.get("is_private"),
                "has_issues": data.get("has_issues"),
            },
            common={
                "visibility": "private" if data.get("is_private") else "public",
                "language": data.get("language"),
                "size": data.get("size"),
                "created_at": data.get("created_on"),
                "updated_at": data.get("updated_on"),
                "web_url": web,
                "clone_url": clone_links.get("https") or f"https://bitbucket.org/{ref.full_name}.git",
                "ssh_url": clone_links.get("ssh"),
            },
            source="api",
        )
