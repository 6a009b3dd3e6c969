from __future__ import annotations

import re
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from ..shared.rmtree_force import rmtree_force


_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


class Workspace:
    """Hands out private temporary directories for clones.

    Every directory is removed when its context exits, whether the block
    returned or raised.
    """

    def __init__(self, *, base_dir: Optional[Path] = None) -> None:
        self._base_dir = base_dir

    @contextmanager
    def acquire(self, label: str) -> Iterator[Path]:
        if self._base_dir is not None:
            self._base_dir.mkdir(parents=True, exist_ok=True)
        prefix = f"scanhub-{_UNSAFE.sub('-', label)[:40]}-"
        path = Path(tempfile.mkdtemp(prefix=prefix, dir=self._base_dir))
        try:
            yield path
        finally:
            rmtree_force(path)
