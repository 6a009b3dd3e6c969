from __future__ import annotations

import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from git import Git, Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from ..core.domain.exceptions import CloneError, OperationTimeoutError
from ..core.domain.models import UNKNOWN_COMMIT, ChangeSummary, CloneOptions, CommitInfo


README_FILES = ("README.md", "README.txt", "README.rst", "README", "readme.md", "Readme.md")
DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 200
NO_DESCRIPTION = "No description available"

_HEADING_RE = re.compile(r"^#+\s*")


def embed_token(repo_url: str, token: Optional[str], username: Optional[str] = None) -> str:
    """Return an https URL carrying the token as userinfo.

    Non-https URLs (ssh, local paths) are returned unchanged.
    """
    if not token:
        return repo_url
    parts = urlsplit(repo_url)
    if parts.scheme != "https" or not parts.hostname:
        return repo_url
    userinfo = f"{username}:{token}" if username else token
    netloc = f"{userinfo}@{parts.hostname}"
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def redact_url(repo_url: str) -> str:
    """Strip credentials from a URL so it can be logged."""
    parts = urlsplit(repo_url)
    if not parts.scheme or "@" not in parts.netloc:
        return repo_url
    netloc = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def _clone_kwargs(options: Optional[CloneOptions]) -> dict:
    if options is None:
        return {}
    kwargs: dict = {}
    if options.depth:
        kwargs["depth"] = options.depth
    if options.branch:
        kwargs["branch"] = options.branch
    if options.single_branch:
        kwargs["single_branch"] = True
    if options.recursive:
        kwargs["recursive"] = True
    if options.bare:
        kwargs["bare"] = True
    return kwargs


def categorize_clone_error(repo_url: str, message: str) -> str:
    """Turn raw git stderr into a readable reason."""
    lowered = message.lower()
    if "not found" in lowered or "does not exist" in lowered or "does not appear to be a git repository" in lowered:
        return f"Repository not found: {repo_url}. Please verify the repository exists and you have access to it."
    if "permission denied" in lowered or "authentication failed" in lowered or "could not read username" in lowered:
        return f"Authentication failed for {repo_url}. Please check your credentials or token permissions."
    if "network is unreachable" in lowered or "could not resolve host" in lowered or "timed out" in lowered:
        return f"Network error cloning {repo_url}. Please check your internet connection."
    return f"Clone failed: {message.strip()}"


def clone(
    clone_url: str,
    dest: Path,
    *,
    timeout: float,
    options: Optional[CloneOptions] = None,
    display_url: Optional[str] = None,
) -> None:
    """Clone clone_url into dest, killing git after timeout seconds.

    display_url is the credential-free URL used in error messages.

    Raises:
        OperationTimeoutError: If git did not finish in time
        CloneError: For every other git failure
    """
    shown = display_url or redact_url(clone_url)
    dest.parent.mkdir(parents=True, exist_ok=True)
    started = time.monotonic()
    try:
        Git().clone("--", clone_url, str(dest), kill_after_timeout=timeout, **_clone_kwargs(options))
    except GitCommandError as e:
        stderr = str(e.stderr or "")
        if time.monotonic() - started >= timeout or "Timeout:" in stderr:
            raise OperationTimeoutError(f"clone of {shown}", timeout) from e
        raise CloneError(shown, categorize_clone_error(shown, redact_url(stderr) or str(e.status))) from e


def ls_remote_head(clone_url: str, *, timeout: float) -> str:
    """Return the commit HEAD points at on the remote.

    Raises:
        GitCommandError: If git fails or is killed
        ValueError: If the remote advertises no HEAD
    """
    out = Git().ls_remote(clone_url, "HEAD", kill_after_timeout=timeout)
    for line in out.splitlines():
        sha, _, ref = line.partition("\t")
        if ref.strip() == "HEAD" and sha:
            return sha.strip()
    raise ValueError("remote advertises no HEAD")


def ls_remote_refs(clone_url: str, kind: str, *, timeout: float) -> list[str]:
    """Short names of the remote's branches (kind="heads") or tags (kind="tags")."""
    out = Git().ls_remote(f"--{kind}", clone_url, kill_after_timeout=timeout)
    prefix = f"refs/{kind}/"
    names: list[str] = []
    for line in out.splitlines():
        _, _, ref = line.partition("\t")
        ref = ref.strip()
        if not ref.startswith(prefix):
            continue
        # annotated tags are listed twice, once peeled
        name = ref[len(prefix):].removesuffix("^{}")
        if name not in names:
            names.append(name)
    return names


def summarize_range(repo_dir: Path, prior: str, current: str) -> Optional[ChangeSummary]:
    """Summarize prior..current in an existing clone.

    Returns None when prior is not part of the clone's history.
    """
    repo = Repo(repo_dir)
    try:
        repo.git.cat_file("-e", f"{prior}^{{commit}}")
    except GitCommandError:
        return None
    try:
        repo.git.cat_file("-e", f"{current}^{{commit}}")
        target = current
    except GitCommandError:
        target = "HEAD"

    commits = int(repo.git.rev_list("--count", f"{prior}..{target}").strip() or 0)
    numstat = repo.git.diff("--numstat", prior, target)
    files = additions = deletions = 0
    for line in numstat.splitlines():
        cols = line.split("\t")
        if len(cols) < 3:
            continue
        files += 1
        # binary files report "-" for both counts
        if cols[0].isdigit():
            additions += int(cols[0])
        if cols[1].isdigit():
            deletions += int(cols[1])

    return ChangeSummary(
        files_changed=files,
        additions=additions,
        deletions=deletions,
        commits=commits,
        commit_range=f"{prior[:7]}..{current[:7]}",
    )


def read_head_commit(workdir: Path) -> CommitInfo:
    try:
        commit = Repo(workdir).head.commit
    except (InvalidGitRepositoryError, NoSuchPathError, ValueError):
        return CommitInfo(hash=UNKNOWN_COMMIT, timestamp=datetime.now(timezone.utc).isoformat())
    return CommitInfo(
        hash=commit.hexsha,
        timestamp=commit.committed_datetime.isoformat(),
        message=str(commit.message).strip() or None,
        author=commit.author.name if commit.author else None,
    )


def read_default_branch(workdir: Path) -> str:
    repo = Repo(workdir)
    try:
        return repo.active_branch.name
    except TypeError:
        # detached HEAD
        remote_refs = {ref.name for ref in repo.refs}
        if "origin/master" in remote_refs and "origin/main" not in remote_refs:
            return "master"
        return "main"


def extract_description(workdir: Path) -> Optional[str]:
    """First non-empty README line with markdown markers removed.

    Lines of ten characters or fewer are not considered a description.
    """
    for candidate in README_FILES:
        path = workdir / candidate
        if not path.is_file():
            continue
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue
        lines = [line for line in content.splitlines() if line.strip()]
        if not lines:
            continue
        first = _HEADING_RE.sub("", lines[0].strip())
        first = first.replace("*", "").replace("`", "").strip()
        if len(first) > DESCRIPTION_MIN_LENGTH:
            if len(first) > DESCRIPTION_MAX_LENGTH:
                return first[:DESCRIPTION_MAX_LENGTH] + "..."
            return first
    return None


def web_url(repo_url: str) -> str:
    """Best-effort browser URL for a clone URL."""
    if repo_url.startswith("http"):
        return repo_url[:-4] if repo_url.endswith(".git") else repo_url
    m = re.match(r"^git@([^:]+):(.+?)(?:\.git)?$", repo_url)
    if m:
        return f"https://{m.group(1)}/{m.group(2)}"
    return repo_url
