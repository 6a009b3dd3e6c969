"""Domain exceptions for scanhub."""

from __future__ import annotations


class ScanHubError(Exception):
    """Base class for errors surfaced to callers of scanhub."""


class NoProviderError(ScanHubError):
    """Raised when no registered provider can handle a repository URL."""

    def __init__(self, repo_url: str) -> None:
        self.repo_url = repo_url
        super().__init__(f"No suitable provider found for repository: {repo_url}")


class CloneError(ScanHubError):
    """Raised when a repository cannot be cloned."""

    def __init__(self, repo_url: str, reason: str) -> None:
        self.repo_url = repo_url
        self.reason = reason
        super().__init__(reason)


class MetadataFetchError(ScanHubError):
    """Raised when neither the host API nor git inspection produced metadata."""

    def __init__(self, repo_url: str, reason: str | None = None) -> None:
        self.repo_url = repo_url
        message = f"Failed to fetch metadata for {repo_url}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class OperationTimeoutError(ScanHubError):
    """Raised when a clone or scanner invocation exceeds its deadline.

    The underlying process has already been killed when this is raised.
    """

    def __init__(self, operation: str, timeout: float) -> None:
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} timed out after {timeout:g}s")


class ScannerError(ScanHubError):
    """Raised by a scanner adapter when its tool fails."""

    def __init__(self, scanner: str, message: str) -> None:
        self.scanner = scanner
        super().__init__(f"{scanner} scan failed: {message}")


class InvalidFilePathError(ScanHubError):
    """Raised when a requested file path escapes the repository checkout."""

    def __init__(self, file_path: str) -> None:
        self.file_path = file_path
        super().__init__(f"Invalid file path: {file_path}")
