from __future__ import annotations

import os
import shutil
import stat
from pathlib import Path
from typing import Callable


def _clear_readonly(func: Callable[[str], None], path: str, exc: BaseException) -> None:
    """onexc hook: git packs objects read-only, so retry after making them writable."""
    try:
        os.chmod(path, stat.S_IWUSR | stat.S_IRUSR | stat.S_IXUSR)
    except OSError:
        pass
    func(path)


def rmtree_force(path: Path) -> None:
    """Remove a directory tree, including read-only files. Missing paths are ignored."""
    if not path.exists():
        return
    try:
        shutil.rmtree(path)
    except PermissionError:
        shutil.rmtree(path, onexc=_clear_readonly)
