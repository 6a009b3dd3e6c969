import os
import stat

import pytest

from scanhub.infra.workspace import Workspace


def test_directory_removed_after_use(tmp_path):
    workspace = Workspace(base_dir=tmp_path / "ws")

    with workspace.acquire("github") as path:
        (path / "file.txt").write_text("x")
        assert path.parent == tmp_path / "ws"
        assert path.name.startswith("scanhub-github-")

    assert not path.exists()


def test_directory_removed_on_error(tmp_path):
    workspace = Workspace(base_dir=tmp_path / "ws")

    with pytest.raises(RuntimeError):
        with workspace.acquire("x") as path:
            raise RuntimeError("scan blew up")

    assert not path.exists()


def test_read_only_files_are_removed(tmp_path):
    workspace = Workspace(base_dir=tmp_path)

    with workspace.acquire("ro") as path:
        target = path / "pack" / "objects.pack"
        target.parent.mkdir()
        target.write_text("data")
        os.chmod(target, stat.S_IREAD)

    assert not path.exists()


def test_label_is_sanitized(tmp_path):
    with Workspace(base_dir=tmp_path).acquire("a/b c") as path:
        assert path.name.startswith("scanhub-a-b-c-")


def test_concurrent_acquisitions_are_distinct(tmp_path):
    workspace = Workspace(base_dir=tmp_path)

    with workspace.acquire("x") as one, workspace.acquire("x") as two:
        assert one != two
