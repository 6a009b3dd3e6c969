from pathlib import Path

from git import Repo


def mark_by_dir(items, base_dir, marker):
    base = Path(base_dir).resolve()
    for item in items:
        # pytest 7/8: item.path on new versions, item.fspath on old ones
        p = getattr(item, "path", None)
        p = Path(p) if p is not None else Path(str(getattr(item, "fspath")))
        try:
            p.resolve().relative_to(base)
        except ValueError:
            continue
        item.add_marker(marker)


def create_test_repo(path: Path, files: dict[str, str] | None = None, message: str = "first commit") -> tuple[Repo, str]:
    """Create a git repo at path with one commit of files."""
    repo = Repo.init(path)
    files = files or {"app.py": "print('v1')\n"}
    commit = commit_files(repo, files, message)
    return repo, commit


def commit_files(repo: Repo, files: dict[str, str], message: str) -> str:
    root = Path(repo.working_tree_dir)
    for name, content in files.items():
        target = root / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    repo.index.add(list(files))
    return repo.index.commit(message).hexsha
