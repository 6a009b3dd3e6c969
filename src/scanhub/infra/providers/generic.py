from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

from git import Git
from git.exc import GitCommandError

from ...core.domain.exceptions import CloneError, MetadataFetchError, OperationTimeoutError
from ...core.domain.models import (
    UNKNOWN_COMMIT,
    ApiStatus,
    AuthConfig,
    ChangeDetectionResult,
    ChangeSummary,
    CloneOptions,
    Contributor,
    Platform,
    ProviderCapabilities,
    ProviderHealth,
    RateLimit,
    RepositoryMetadata,
    RepositoryReference,
)
from ...core.ports import WorkspacePort
from .. import git_repo
from ..workspace import Workspace

logger = logging.getLogger(__name__)

_SCP_LIKE = re.compile(r"^(?:[\w.-]+@)?(?P<host>[\w.-]+):(?P<path>(?!/).+)$")
_REMOTE_SCHEMES = ("http", "https", "ssh", "git", "git+ssh")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class GenericGitProvider:
    """Works with any repository git itself can reach.

    Commit lookups use ``git ls-remote``; metadata comes from a local
    inspection of a clone. Host-specific adapters subclass this and
    override :meth:`fetch_from_api` to prefer their REST API.
    """

    provider_name = "generic-git"
    platform = Platform.GENERIC_GIT
    # further platforms this adapter serves, for platform-wide auth
    additional_platforms: tuple[Platform, ...] = ()
    hostnames: tuple[str, ...] = ()
    supports_api = False
    rate_limit: Optional[RateLimit] = None
    # user part placed in front of the token in https clone URLs
    token_username: Optional[str] = None
    # gitlab-style nested groups keep every path segment but the last as owner
    nested_namespaces = True

    def __init__(
        self,
        *,
        clone_timeout: float = 300.0,
        workspace: Optional[WorkspacePort] = None,
        auth: Optional[AuthConfig] = None,
    ) -> None:
        self._clone_timeout = clone_timeout
        self._workspace = workspace or Workspace()
        self._auth = auth or AuthConfig()

    @property
    def name(self) -> str:
        return self.provider_name

    @property
    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            name=self.provider_name,
            platform=self.platform,
            hostnames=self.hostnames,
            additional_platforms=self.additional_platforms,
            supports_private_repos=True,
            supports_api=self.supports_api,
            auth_kind="token" if self.supports_api else "none",
            rate_limit=self.rate_limit,
        )

    # ---- URL handling ----

    def can_handle(self, repo_url: str) -> bool:
        if _local_path(repo_url) is not None:
            return True
        host = hostname_of(repo_url)
        return host is not None

    def parse_url(self, repo_url: str) -> Optional[RepositoryReference]:
        local = _local_path(repo_url)
        if local is not None:
            return RepositoryReference(
                original_url=repo_url,
                platform=Platform.GENERIC_GIT,
                hostname="localhost",
                owner="local",
                repository=local.name,
            )

        host = hostname_of(repo_url)
        segments = _path_segments(repo_url)
        if host is None or len(segments) < 2:
            logger.warning("url_parse_failed", extra={"repo_url": repo_url})
            return None

        if self.nested_namespaces:
            owner, repository = "/".join(segments[:-1]), segments[-1]
        else:
            owner, repository = segments[0], segments[1]
        if repository.endswith(".git"):
            repository = repository[:-4]
        return RepositoryReference(
            original_url=repo_url,
            platform=Platform.from_hostname(host),
            hostname=host,
            owner=owner,
            repository=repository,
        )

    def _authenticated_url(self, repo_url: str) -> str:
        if not self._auth.has_token:
            return repo_url
        return git_repo.embed_token(repo_url, self._auth.token, self.token_username)

    # ---- auth / health ----

    def configure_auth(self, auth: AuthConfig) -> None:
        self._auth = auth
        logger.info("provider_auth_configured", extra={"provider": self.name, "auth_kind": auth.kind})

    def health_check(self) -> ProviderHealth:
        started = time.monotonic()
        try:
            Git().version()
        except (GitCommandError, OSError) as e:
            return ProviderHealth(is_healthy=False, error=str(e), checked_at=_now())
        return ProviderHealth(
            is_healthy=True,
            response_time_ms=(time.monotonic() - started) * 1000,
            auth_valid=self._auth.has_token,
            api_available=None,
            checked_at=_now(),
        )

    def get_api_status(self) -> ApiStatus:
        return ApiStatus(available=False, error=f"{self.name} has no host API")

    # ---- refs and people ----

    def get_branches(self, repo_url: str) -> list[str]:
        return self._remote_refs(repo_url, "heads")

    def get_tags(self, repo_url: str) -> list[str]:
        return self._remote_refs(repo_url, "tags")

    def get_contributors(self, repo_url: str) -> list[Contributor]:
        """Git alone cannot list contributors without walking the whole history."""
        return []

    def _remote_refs(self, repo_url: str, kind: str) -> list[str]:
        try:
            return git_repo.ls_remote_refs(self._authenticated_url(repo_url), kind, timeout=self._clone_timeout)
        except GitCommandError as e:
            logger.warning(
                "ref_listing_failed",
                extra={"repo_url": repo_url, "kind": kind, "error": str(e).splitlines()[0] if str(e) else ""},
            )
            return []

    # ---- commits and changes ----

    def get_last_commit_hash(self, repo_url: str) -> str:
        try:
            return git_repo.ls_remote_head(self._authenticated_url(repo_url), timeout=self._clone_timeout)
        except (GitCommandError, ValueError) as e:
            logger.warning(
                "commit_hash_unavailable",
                extra={"repo_url": repo_url, "provider": self.name, "error": str(e).splitlines()[0] if str(e) else ""},
            )
            return UNKNOWN_COMMIT

    def has_changes_since(self, repo_url: str, prior_hash: str) -> ChangeDetectionResult:
        current = self.get_last_commit_hash(repo_url)
        if current == UNKNOWN_COMMIT or not prior_hash or prior_hash == UNKNOWN_COMMIT:
            return ChangeDetectionResult(
                has_changes=True,
                last_commit_hash=current,
                error="Unable to determine commit hashes",
            )
        if current == prior_hash:
            return ChangeDetectionResult(has_changes=False, last_commit_hash=current)

        try:
            with self._workspace.acquire("changes") as tmp:
                dest = tmp / "repo.git"
                self.clone_repository(repo_url, dest, CloneOptions(bare=True))
                summary = git_repo.summarize_range(dest, prior_hash, current)
        except (CloneError, OperationTimeoutError, GitCommandError, ValueError) as e:
            logger.warning("change_check_failed", extra={"repo_url": repo_url, "error": str(e)})
            return ChangeDetectionResult(has_changes=True, last_commit_hash=current, error=str(e))

        if summary is None:
            # prior commit vanished from history (force push, rewritten branch)
            summary = ChangeSummary(
                files_changed=0,
                additions=0,
                deletions=0,
                commits=0,
                commit_range=f"{prior_hash[:7]}..{current[:7]}",
            )
        return ChangeDetectionResult(has_changes=True, last_commit_hash=current, change_summary=summary)

    # ---- clone ----

    def clone_repository(
        self,
        repo_url: str,
        dest: Path,
        options: Optional[CloneOptions] = None,
    ) -> None:
        logger.info("clone_started", extra={"repo_url": repo_url, "dest": str(dest)})
        git_repo.clone(
            self._authenticated_url(repo_url),
            dest,
            timeout=self._clone_timeout,
            options=options,
            display_url=repo_url,
        )
        logger.info("clone_finished", extra={"repo_url": repo_url})

    # ---- metadata ----

    def fetch_from_api(self, repo_url: str, ref: Optional[RepositoryReference]) -> Optional[RepositoryMetadata]:
        """Host API lookup. Returns None when the host has no usable API."""
        return None

    def fetch_metadata(self, repo_url: str, workdir: Optional[Path] = None) -> RepositoryMetadata:
        ref = self.parse_url(repo_url)
        try:
            api_metadata = self.fetch_from_api(repo_url, ref)
        except Exception as e:
            logger.warning(
                "api_metadata_failed",
                extra={"repo_url": repo_url, "provider": self.name, "error": str(e)},
            )
            api_metadata = None
        if api_metadata is not None:
            return api_metadata

        try:
            if workdir is not None:
                return self._inspect_checkout(repo_url, ref, workdir)
            with self._workspace.acquire("metadata") as tmp:
                dest = tmp / "repo"
                self.clone_repository(repo_url, dest, CloneOptions(depth=1))
                return self._inspect_checkout(repo_url, ref, dest)
        except (CloneError, OperationTimeoutError, GitCommandError, OSError) as e:
            raise MetadataFetchError(repo_url, str(e)) from e

    def _inspect_checkout(
        self,
        repo_url: str,
        ref: Optional[RepositoryReference],
        workdir: Path,
    ) -> RepositoryMetadata:
        name = ref.repository if ref else _fallback_name(repo_url)
        return RepositoryMetadata(
            name=name,
            description=git_repo.extract_description(workdir) or git_repo.NO_DESCRIPTION,
            default_branch=git_repo.read_default_branch(workdir),
            last_commit=git_repo.read_head_commit(workdir),
            common={"web_url": git_repo.web_url(repo_url), "clone_url": repo_url},
            source="git",
        )


def _local_path(repo_url: str) -> Optional[Path]:
    if repo_url.startswith("file://"):
        return Path(urlsplit(repo_url).path)
    if "://" in repo_url or _SCP_LIKE.match(repo_url):
        return None
    path = Path(repo_url).expanduser()
    if path.is_dir():
        return path
    return None


def hostname_of(repo_url: str) -> Optional[str]:
    if "://" in repo_url:
        parts = urlsplit(repo_url)
        if parts.scheme not in _REMOTE_SCHEMES or not parts.hostname:
            return None
        return parts.hostname.lower()
    m = _SCP_LIKE.match(repo_url)
    if m:
        return m.group("host").lower()
    return None


def _path_segments(repo_url: str) -> list[str]:
    if "://" in repo_url:
        path = urlsplit(repo_url).path
    else:
        m = _SCP_LIKE.match(repo_url)
        path = m.group("path") if m else ""
    return [seg for seg in path.split("/") if seg]


def _fallback_name(repo_url: str) -> str:
    tail = repo_url.rstrip("/").split("/")[-1].split(":")[-1]
    return tail[:-4] if tail.endswith(".git") else (tail or "unknown")
