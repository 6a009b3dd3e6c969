from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..domain.exceptions import InvalidFilePathError
from ..domain.models import CloneOptions, CodeContext, CodeLine
from ..ports import LoggerPort, ProviderRegistryPort, WorkspacePort


def build_code_context(text: str, file_path: str, line: int, context_lines: int = 3) -> CodeContext:
    """Slice context_lines lines on each side of line (1-based), clamped to the file."""
    lines = text.splitlines()
    context_lines = max(context_lines, 0)
    start = max(1, line - context_lines)
    end = min(len(lines), line + context_lines)
    return CodeContext(
        file_path=file_path,
        line=line,
        start_line=start,
        end_line=end,
        lines=tuple(
            CodeLine(line_number=n, content=lines[n - 1], is_target_line=(n == line))
            for n in range(start, end + 1)
        ),
    )


def resolve_inside(root: Path, file_path: str) -> Path:
    """Join file_path onto root, refusing anything that escapes it."""
    if not file_path or Path(file_path).is_absolute():
        raise InvalidFilePathError(file_path)
    base = root.resolve()
    target = (base / file_path).resolve()
    if not target.is_relative_to(base):
        raise InvalidFilePathError(file_path)
    return target


class CodeContextUseCase:
    """Show the source lines around a finding.

    Takes a fresh shallow clone, so the lines reflect the repository's
    current HEAD rather than the commit of any earlier scan.
    """

    def __init__(
        self,
        *,
        registry: ProviderRegistryPort,
        workspace: WorkspacePort,
        logger: LoggerPort,
    ) -> None:
        self._registry = registry
        self._workspace = workspace
        self._logger = logger

    def execute(
        self,
        repo_url: str,
        file_path: str,
        line: int,
        context_lines: int = 3,
    ) -> Optional[CodeContext]:
        if line < 1:
            raise ValueError("line must be 1 or greater")
        provider = self._registry.require_provider_for_url(repo_url)
        with self._workspace.acquire("context") as workdir:
            checkout = workdir / "repo"
            provider.clone_repository(repo_url, checkout, CloneOptions(depth=1))
            target = resolve_inside(checkout, file_path)
            if not target.is_file():
                self._logger.info("context_file_missing", repo_url=repo_url, file_path=file_path)
                return None
            text = target.read_text(encoding="utf-8", errors="replace")
        return build_code_context(text, file_path, line, context_lines)
