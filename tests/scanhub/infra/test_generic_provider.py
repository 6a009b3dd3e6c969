import pytest

from helpers import commit_files
from scanhub.core.domain.exceptions import CloneError, MetadataFetchError
from scanhub.core.domain.models import UNKNOWN_COMMIT, AuthConfig, CloneOptions, Platform
from scanhub.infra import git_repo
from scanhub.infra.providers import GenericGitProvider


@pytest.fixture
def provider(workspace):
    return GenericGitProvider(clone_timeout=60, workspace=workspace)


def test_can_handle_local_and_remote_urls(provider, origin):
    repo, _ = origin

    assert provider.can_handle(repo.working_tree_dir)
    assert provider.can_handle("https://git.example.org/team/repo.git")
    assert provider.can_handle("git@git.example.org:team/repo.git")
    assert not provider.can_handle("not a repository")
    assert not provider.can_handle("ftp://example.org/team/repo")


def test_parse_url_variants(provider, origin):
    repo, _ = origin

    local = provider.parse_url(repo.working_tree_dir)
    assert (local.hostname, local.owner, local.repository) == ("localhost", "local", "origin")

    nested = provider.parse_url("git@git.example.org:team/sub/repo.git")
    assert nested.owner == "team/sub"
    assert nested.repository == "repo"
    assert nested.platform is Platform.GENERIC_GIT

    assert provider.parse_url("https://git.example.org/only-owner") is None


def test_last_commit_hash_via_ls_remote(provider, origin):
    repo, commit = origin

    assert provider.get_last_commit_hash(repo.working_tree_dir) == commit


def test_last_commit_hash_unknown_for_unreachable_remote(provider, tmp_path):
    assert provider.get_last_commit_hash(f"file://{tmp_path}/missing") == UNKNOWN_COMMIT


def test_has_changes_since_same_commit(provider, origin):
    repo, commit = origin

    result = provider.has_changes_since(repo.working_tree_dir, commit)

    assert result.has_changes is False
    assert result.last_commit_hash == commit
    assert result.error is None


def test_has_changes_since_reports_summary(provider, origin, tmp_path):
    repo, first = origin
    second = commit_files(repo, {"app.py": "print('v2')\n"}, "second")

    result = provider.has_changes_since(repo.working_tree_dir, first)

    assert result.has_changes is True
    assert result.last_commit_hash == second
    assert result.change_summary.commits == 1
    assert result.change_summary.files_changed == 1
    assert (result.change_summary.additions, result.change_summary.deletions) == (1, 1)
    # the bare clone was cleaned up
    assert list((tmp_path / "ws").iterdir()) == []


def test_has_changes_since_vanished_prior_commit(provider, origin):
    repo, commit = origin

    result = provider.has_changes_since(repo.working_tree_dir, "0" * 40)

    assert result.has_changes is True
    assert result.change_summary.commits == 0
    assert result.change_summary.files_changed == 0


def test_has_changes_since_unknown_prior(provider, origin):
    repo, _ = origin

    result = provider.has_changes_since(repo.working_tree_dir, UNKNOWN_COMMIT)

    assert result.has_changes is True
    assert result.error == "Unable to determine commit hashes"


def test_clone_repository(provider, origin, tmp_path):
    repo, _ = origin
    dest = tmp_path / "checkout"

    provider.clone_repository(repo.working_tree_dir, dest, CloneOptions(depth=1))

    assert (dest / "README.md").exists()


def test_clone_repository_failure(provider, tmp_path):
    with pytest.raises(CloneError):
        provider.clone_repository(str(tmp_path / "missing"), tmp_path / "dest")


def test_fetch_metadata_from_fresh_clone(provider, origin, tmp_path):
    repo, commit = origin

    metadata = provider.fetch_metadata(repo.working_tree_dir)

    assert metadata.name == "origin"
    assert metadata.description == "Demo project for scanning"
    assert metadata.default_branch == repo.active_branch.name
    assert metadata.last_commit.hash == commit
    assert metadata.source == "git"
    assert list((tmp_path / "ws").iterdir()) == []


def test_fetch_metadata_from_existing_checkout(provider, origin, tmp_path):
    repo, commit = origin
    dest = tmp_path / "checkout"
    provider.clone_repository(repo.working_tree_dir, dest)
    (dest / "README.md").unlink()

    metadata = provider.fetch_metadata(repo.working_tree_dir, workdir=dest)

    assert metadata.description == "No description available"
    assert metadata.last_commit.hash == commit


def test_fetch_metadata_failure(provider, tmp_path):
    with pytest.raises(MetadataFetchError):
        provider.fetch_metadata(f"file://{tmp_path}/missing")


def test_token_is_embedded_only_in_clone_url(workspace, monkeypatch, tmp_path):
    calls = []
    monkeypatch.setattr(git_repo, "clone", lambda url, dest, **kw: calls.append((url, kw["display_url"])))
    provider = GenericGitProvider(workspace=workspace, auth=AuthConfig.from_token("s3cret"))

    provider.clone_repository("https://git.example.org/team/repo.git", tmp_path / "d")

    assert calls == [("https://s3cret@git.example.org/team/repo.git", "https://git.example.org/team/repo.git")]


def test_health_check_runs_git(provider):
    health = provider.health_check()

    assert health.is_healthy
    assert health.response_time_ms is not None


def test_branches_and_tags_from_remote(provider, origin):
    repo, _ = origin
    repo.create_head("release")
    repo.create_tag("v0.1.0")
    url = repo.working_tree_dir

    assert sorted(provider.get_branches(url)) == sorted([repo.active_branch.name, "release"])
    assert provider.get_tags(url) == ["v0.1.0"]
    assert provider.get_contributors(url) == []


def test_refs_of_unreachable_remote_are_empty(provider, tmp_path):
    assert provider.get_branches(str(tmp_path / "missing")) == []
    assert provider.get_tags(str(tmp_path / "missing")) == []


def test_generic_provider_has_no_api_status(provider):
    status = provider.get_api_status()

    assert status.available is False
    assert status.error == "generic-git has no host API"
