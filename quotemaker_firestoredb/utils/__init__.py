"""
Shared utilities.

- Environment configuration
- Package logger
- Error codes and exception types
- Record normalization
- Time helpers
"""

from .error_codes import ErrorCodes, ErrorKind
from .exceptions import (
    NotReadyError,
    PermissionDeniedError,
    SnapshotUnavailableError,
    SyncError,
    UnauthenticatedError,
    UnavailableError,
    UnknownCollectionError,
)
from .logger import logger
from .record_normalizer import FIELD_ALIASES, RecordNormalizer, normalize
from .time_now import TimeManager

__all__ = [
    "ErrorCodes",
    "ErrorKind",
    "NotReadyError",
    "PermissionDeniedError",
    "SnapshotUnavailableError",
    "SyncError",
    "UnauthenticatedError",
    "UnavailableError",
    "UnknownCollectionError",
    "logger",
    "FIELD_ALIASES",
    "RecordNormalizer",
    "normalize",
    "TimeManager",
]
