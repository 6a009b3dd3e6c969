from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

import requests

from ...core.domain.models import (
    UNKNOWN_COMMIT,
    ApiStatus,
    AuthConfig,
    CommitInfo,
    Contributor,
    ProviderHealth,
    RateLimitStatus,
    RepositoryMetadata,
    RepositoryReference,
)
from ...core.ports import WorkspacePort
from .. import git_repo
from .generic import GenericGitProvider, hostname_of

logger = logging.getLogger(__name__)

USER_AGENT = "scanhub/0.1"


class HostedGitProvider(GenericGitProvider, ABC):
    """Base for hosts with a REST API.

    Subclasses set the host list and implement the URL builders and the
    response mappers; git remains the fallback for everything.
    """

    supports_api = True
    nested_namespaces = False
    # matched as substrings of the hostname, for self-hosted instances
    host_patterns: tuple[str, ...] = ()
    # relative to default_api_base()
    health_path = ""
    auth_check_path: Optional[str] = None
    api_status_path = ""
    api_features: tuple[str, ...] = ("repositories", "commits", "branches", "tags")

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        api_timeout: float = 15.0,
        clone_timeout: float = 300.0,
        workspace: Optional[WorkspacePort] = None,
        auth: Optional[AuthConfig] = None,
    ) -> None:
        super().__init__(clone_timeout=clone_timeout, workspace=workspace, auth=auth)
        self._session = session or requests.Session()
        self._api_timeout = api_timeout

    def can_handle(self, repo_url: str) -> bool:
        host = hostname_of(repo_url)
        if host is None or not self.matches_host(host):
            return False
        return self.parse_url(repo_url) is not None

    def matches_host(self, hostname: str) -> bool:
        host = hostname.lower()
        return host in self.hostnames or any(pattern in host for pattern in self.host_patterns)

    # ---- subclass hooks ----

    @abstractmethod
    def default_api_base(self) -> str:
        """API root used where no repository is at hand (health, status)."""

    @abstractmethod
    def repo_api_url(self, ref: RepositoryReference) -> str:
        ...

    @abstractmethod
    def commits_api_url(self, ref: RepositoryReference) -> tuple[str, dict[str, Any]]:
        ...

    @abstractmethod
    def branches_api_url(self, ref: RepositoryReference) -> tuple[str, dict[str, Any]]:
        ...

    @abstractmethod
    def tags_api_url(self, ref: RepositoryReference) -> tuple[str, dict[str, Any]]:
        ...

    @abstractmethod
    def map_commit(self, data: Any) -> Optional[CommitInfo]:
        ...

    @abstractmethod
    def map_metadata(self, ref: RepositoryReference, data: dict[str, Any], commit: CommitInfo) -> RepositoryMetadata:
        ...

    def contributors_api_url(self, ref: RepositoryReference) -> Optional[tuple[str, dict[str, Any]]]:
        """None when the host has no contributors endpoint."""
        return None

    def map_contributor(self, item: dict[str, Any]) -> Contributor:
        return Contributor(name=item.get("name") or "", contributions=item.get("contributions") or 0)

    def map_ref_names(self, data: Any) -> list[str]:
        if not isinstance(data, list):
            return []
        return [item["name"] for item in data if isinstance(item, dict) and item.get("name")]

    def map_api_status(self, response: requests.Response) -> ApiStatus:
        data = json_or_none(response)
        version = data.get("version") if isinstance(data, dict) else None
        return ApiStatus(
            available=True,
            rate_limit=_rate_limit_from_headers(response.headers),
            version=version,
            features=self.api_features,
        )

    def auth_headers(self) -> dict[str, str]:
        if self._auth.has_token:
            return {"Authorization": f"Bearer {self._auth.token}"}
        return {}

    # ---- HTTP ----

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
        headers.update(self.auth_headers())
        return headers

    def _get_json(self, url: str, params: Optional[dict[str, Any]] = None) -> Optional[Any]:
        """GET url and decode JSON. HTTP errors are logged and yield None."""
        response = self._session.get(url, headers=self._headers(), params=params, timeout=self._api_timeout)
        if response.status_code >= 400:
            logger.warning(
                "api_request_failed",
                extra={"provider": self.name, "url": url, "status": response.status_code, "reason": _status_reason(response.status_code)},
            )
            return None
        return response.json()

    def _api_ref(self, repo_url: str) -> Optional[RepositoryReference]:
        ref = self.parse_url(repo_url)
        if ref is None or not self.matches_host(ref.hostname):
            return None
        return ref

    def fetch_from_api(self, repo_url: str, ref: Optional[RepositoryReference]) -> Optional[RepositoryMetadata]:
        if ref is None or not self.matches_host(ref.hostname):
            return None
        logger.debug("api_metadata_fetch", extra={"provider": self.name, "repo": ref.full_name})
        data = self._get_json(self.repo_api_url(ref))
        if not isinstance(data, dict):
            return None

        commit: Optional[CommitInfo] = None
        commits_url, params = self.commits_api_url(ref)
        commits = self._get_json(commits_url, params=params)
        if commits is not None:
            commit = self.map_commit(commits)
        if commit is None:
            commit = CommitInfo(hash=UNKNOWN_COMMIT, timestamp=datetime.now(timezone.utc).isoformat())
        metadata = self.map_metadata(ref, data, commit)
        metadata.common.setdefault("clone_url", repo_url)
        metadata.common.setdefault("web_url", git_repo.web_url(repo_url))
        return metadata

    # ---- refs and people ----

    def get_branches(self, repo_url: str) -> list[str]:
        ref = self._api_ref(repo_url)
        names = self._list_refs(ref, self.branches_api_url) if ref else None
        if names is None:
            return super().get_branches(repo_url)
        return names

    def get_tags(self, repo_url: str) -> list[str]:
        ref = self._api_ref(repo_url)
        names = self._list_refs(ref, self.tags_api_url) if ref else None
        if names is None:
            return super().get_tags(repo_url)
        return names

    def _list_refs(self, ref: RepositoryReference, endpoint) -> Optional[list[str]]:
        url, params = endpoint(ref)
        try:
            data = self._get_json(url, params=params)
        except (requests.RequestException, ValueError) as e:
            logger.warning("api_request_failed", extra={"provider": self.name, "url": url, "error": str(e)})
            return None
        if data is None:
            return None
        return self.map_ref_names(data)

    def get_contributors(self, repo_url: str) -> list[Contributor]:
        ref = self._api_ref(repo_url)
        endpoint = self.contributors_api_url(ref) if ref else None
        if endpoint is None:
            return []
        url, params = endpoint
        try:
            data = self._get_json(url, params=params)
        except (requests.RequestException, ValueError) as e:
            logger.warning("api_request_failed", extra={"provider": self.name, "url": url, "error": str(e)})
            return []
        if not isinstance(data, list):
            return []
        return [self.map_contributor(item) for item in data if isinstance(item, dict)]

    # ---- status / health ----

    def get_api_status(self) -> ApiStatus:
        url = f"{self.default_api_base()}{self.api_status_path}"
        try:
            response = self._session.get(url, headers=self._headers(), timeout=self._api_timeout)
        except requests.RequestException as e:
            logger.warning("api_status_failed", extra={"provider": self.name, "error": str(e)})
            return ApiStatus(available=False, error=f"Unable to connect to {self.name} API: {e}")
        if response.status_code >= 400:
            return ApiStatus(
                available=False,
                rate_limit=_rate_limit_from_headers(response.headers),
                error=f"{self.name} API returned status {response.status_code} ({_status_reason(response.status_code)})",
            )
        return self.map_api_status(response)

    def health_check(self) -> ProviderHealth:
        checked_at = datetime.now(timezone.utc).isoformat()
        base = self.default_api_base()
        started = time.monotonic()
        try:
            response = self._session.get(
                f"{base}{self.health_path}",
                headers={"User-Agent": USER_AGENT},
                timeout=self._api_timeout,
            )
        except requests.RequestException as e:
            return ProviderHealth(is_healthy=False, api_available=False, error=str(e), checked_at=checked_at)
        elapsed_ms = (time.monotonic() - started) * 1000
        if response.status_code >= 400:
            return ProviderHealth(
                is_healthy=False,
                response_time_ms=elapsed_ms,
                api_available=False,
                error=f"{self.name} API returned status {response.status_code}",
                checked_at=checked_at,
            )
        return ProviderHealth(
            is_healthy=True,
            response_time_ms=elapsed_ms,
            auth_valid=self._validate_auth(base),
            api_available=True,
            checked_at=checked_at,
        )

    def _validate_auth(self, base: str) -> bool:
        if not self._auth.has_token or self.auth_check_path is None:
            return False
        try:
            response = self._session.get(
                f"{base}{self.auth_check_path}",
                headers=self._headers(),
                timeout=self._api_timeout,
            )
        except requests.RequestException as e:
            logger.warning("auth_check_failed", extra={"provider": self.name, "error": str(e)})
            return False
        return response.status_code < 400


def json_or_none(response: requests.Response) -> Optional[Any]:
    try:
        return response.json()
    except ValueError:
        return None


def _rate_limit_from_headers(headers) -> Optional[RateLimitStatus]:
    remaining = headers.get("X-RateLimit-Remaining") or headers.get("RateLimit-Remaining")
    total = headers.get("X-RateLimit-Limit") or headers.get("RateLimit-Limit")
    if remaining is None or total is None:
        return None
    try:
        return RateLimitStatus(
            remaining=int(remaining),
            total=int(total),
            reset_time=_reset_time(headers.get("X-RateLimit-Reset") or headers.get("RateLimit-Reset")),
        )
    except ValueError:
        return None


def _reset_time(raw: Optional[str]) -> Optional[str]:
    """Epoch-seconds reset headers become ISO timestamps; anything else passes through."""
    if raw is None:
        return None
    if raw.isdigit():
        return datetime.fromtimestamp(int(raw), timezone.utc).isoformat()
    return raw


def _status_reason(status: int) -> str:
    if status == 401:
        return "authentication failed, token may be invalid"
    if status == 403:
        return "forbidden or rate limited"
    if status == 404:
        return "repository not found"
    if status == 429:
        return "rate limited"
    if status >= 500:
        return "server error"
    return "request failed"
