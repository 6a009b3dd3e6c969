from .app.main import ScanHub, scan
from .core.domain.exceptions import (
    CloneError,
    InvalidFilePathError,
    MetadataFetchError,
    NoProviderError,
    OperationTimeoutError,
    ScanHubError,
    ScannerError,
)

__all__ = [
    "ScanHub",
    "scan",
    "ScanHubError",
    "NoProviderError",
    "CloneError",
    "MetadataFetchError",
    "OperationTimeoutError",
    "ScannerError",
    "InvalidFilePathError",
]

# stdlib logging defaults: attach NullHandler to prevent 'No handler' warnings
import logging
_logger = logging.getLogger(__name__)
_logger.addHandler(logging.NullHandler())
