from typing import Optional


class SyncError(Exception):
    """Base error for the sync layer. ``code`` uses the datastore error vocabulary."""

    code = "unknown"

    def __init__(self, message: str = "", code: Optional[str] = None, collection: Optional[str] = None):
        super().__init__(message or self.__class__.__name__)
        if code:
            self.code = code
        self.collection = collection


class PermissionDeniedError(SyncError):
    code = "permission-denied"


class UnauthenticatedError(SyncError):
    code = "unauthenticated"


class UnavailableError(SyncError):
    code = "unavailable"


class SnapshotUnavailableError(UnavailableError):
    """The local snapshot store could not be read or written."""


class UnknownCollectionError(SyncError):
    code = "invalid-argument"


class NotReadyError(SyncError):
    """Raised when the orchestrator does not become ready within the bounded wait."""

    code = "not-ready"
