from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from ..core.domain.exceptions import OperationTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    returncode: int
    stdout: str
    stderr: str


def ensure_executable(name: str) -> str:
    """Resolve an executable on PATH.

    Raises:
        FileNotFoundError: If it is not installed
    """
    path = shutil.which(name)
    if path is None:
        raise FileNotFoundError(f"`{name}` not found. Please install it and ensure it is in PATH.")
    return path


def run_bounded(
    cmd: Sequence[str],
    *,
    timeout: float,
    cwd: Optional[Path] = None,
) -> ProcessResult:
    """Run cmd to completion, killing it after timeout seconds.

    Raises:
        OperationTimeoutError: If the process exceeded the deadline (it is killed first)
    """
    logger.debug("process_exec", extra={"cmd": " ".join(cmd), "timeout": timeout})
    proc = subprocess.Popen(
        list(cmd),
        cwd=str(cwd) if cwd else None,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
    )
    try:
        stdout, stderr = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired as e:
        proc.kill()
        proc.communicate()
        raise OperationTimeoutError(Path(cmd[0]).name, timeout) from e
    return ProcessResult(returncode=proc.returncode, stdout=stdout or "", stderr=stderr or "")
