import asyncio
import json
from enum import Enum

import httpx
from google.api_core import exceptions as google_exceptions

from .exceptions import SyncError


class ErrorKind(str, Enum):
    RETRYABLE = "retryable"
    PERMISSION = "permission"
    TERMINAL = "terminal"


class ErrorCodes:
    # HTTP status codes
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    TOO_MANY_REQUESTS = 429
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504

    # Datastore error vocabulary
    PERMISSION_DENIED = "permission-denied"
    UNAUTHENTICATED = "unauthenticated"
    UNAVAILABLE = "unavailable"
    DEADLINE_EXCEEDED = "deadline-exceeded"
    RESOURCE_EXHAUSTED = "resource-exhausted"
    NETWORK_ERROR = "network-error"
    INTERNAL = "internal"
    INVALID_ARGUMENT = "invalid-argument"
    NOT_FOUND_CODE = "not-found"
    NOT_READY = "not-ready"
    UNKNOWN = "unknown"

    RETRYABLE_CODES = frozenset(
        {UNAVAILABLE, DEADLINE_EXCEEDED, RESOURCE_EXHAUSTED, NETWORK_ERROR, INTERNAL, UNKNOWN}
    )
    PERMISSION_CODES = frozenset({PERMISSION_DENIED, UNAUTHENTICATED})

    _HTTP_STATUS_BY_CODE = {
        PERMISSION_DENIED: FORBIDDEN,
        UNAUTHENTICATED: UNAUTHORIZED,
        UNAVAILABLE: SERVICE_UNAVAILABLE,
        DEADLINE_EXCEEDED: GATEWAY_TIMEOUT,
        RESOURCE_EXHAUSTED: TOO_MANY_REQUESTS,
        NETWORK_ERROR: SERVICE_UNAVAILABLE,
        INTERNAL: INTERNAL_SERVER_ERROR,
        INVALID_ARGUMENT: BAD_REQUEST,
        NOT_FOUND_CODE: NOT_FOUND,
        NOT_READY: SERVICE_UNAVAILABLE,
        UNKNOWN: INTERNAL_SERVER_ERROR,
    }

    @staticmethod
    def _code_from_http_status(status: int) -> str:
        if status == ErrorCodes.UNAUTHORIZED:
            return ErrorCodes.UNAUTHENTICATED
        if status == ErrorCodes.FORBIDDEN:
            return ErrorCodes.PERMISSION_DENIED
        if status == ErrorCodes.NOT_FOUND:
            return ErrorCodes.NOT_FOUND_CODE
        if status == ErrorCodes.TOO_MANY_REQUESTS:
            return ErrorCodes.RESOURCE_EXHAUSTED
        if status == ErrorCodes.SERVICE_UNAVAILABLE:
            return ErrorCodes.UNAVAILABLE
        if status == ErrorCodes.GATEWAY_TIMEOUT:
            return ErrorCodes.DEADLINE_EXCEEDED
        if status >= 500:
            return ErrorCodes.INTERNAL
        if 400 <= status < 500:
            return ErrorCodes.INVALID_ARGUMENT
        return ErrorCodes.UNKNOWN

    @staticmethod
    def get_error_code(error: BaseException) -> str:
        """Map any exception raised by Firestore, httpx or the sync layer to a datastore error code."""
        if isinstance(error, SyncError):
            return error.code

        if isinstance(error, (google_exceptions.PermissionDenied, google_exceptions.Forbidden)):
            return ErrorCodes.PERMISSION_DENIED
        if isinstance(error, (google_exceptions.Unauthenticated, google_exceptions.Unauthorized)):
            return ErrorCodes.UNAUTHENTICATED
        # contention aborts succeed when the transaction is retried
        if isinstance(error, (google_exceptions.ServiceUnavailable, google_exceptions.Aborted)):
            return ErrorCodes.UNAVAILABLE
        if isinstance(error, (google_exceptions.DeadlineExceeded, google_exceptions.GatewayTimeout)):
            return ErrorCodes.DEADLINE_EXCEEDED
        if isinstance(error, (google_exceptions.ResourceExhausted, google_exceptions.TooManyRequests)):
            return ErrorCodes.RESOURCE_EXHAUSTED
        if isinstance(error, google_exceptions.NotFound):
            return ErrorCodes.NOT_FOUND_CODE
        if isinstance(error, (google_exceptions.InvalidArgument, google_exceptions.BadRequest, google_exceptions.FailedPrecondition)):
            return ErrorCodes.INVALID_ARGUMENT
        if isinstance(error, google_exceptions.GoogleAPICallError):
            status = error.code if isinstance(error.code, int) else None
            if status:
                return ErrorCodes._code_from_http_status(status)
            return ErrorCodes.UNKNOWN

        if isinstance(error, httpx.HTTPStatusError):
            return ErrorCodes._code_from_http_status(error.response.status_code)
        if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
            return ErrorCodes.DEADLINE_EXCEEDED
        if isinstance(error, (httpx.TransportError, ConnectionError, OSError)):
            return ErrorCodes.NETWORK_ERROR
        if isinstance(error, (json.JSONDecodeError, ValueError, KeyError, TypeError)):
            return ErrorCodes.INVALID_ARGUMENT

        message = str(error).lower()
        if "permission" in message or "insufficient" in message:
            return ErrorCodes.PERMISSION_DENIED
        if "unavailable" in message:
            return ErrorCodes.UNAVAILABLE
        if "deadline" in message or "timed out" in message:
            return ErrorCodes.DEADLINE_EXCEEDED
        return ErrorCodes.UNKNOWN

    @staticmethod
    def classify(error: BaseException) -> ErrorKind:
        code = ErrorCodes.get_error_code(error)
        if code in ErrorCodes.PERMISSION_CODES:
            return ErrorKind.PERMISSION
        if code in ErrorCodes.RETRYABLE_CODES:
            return ErrorKind.RETRYABLE
        return ErrorKind.TERMINAL

    @staticmethod
    def is_retryable(error: BaseException) -> bool:
        return ErrorCodes.classify(error) is ErrorKind.RETRYABLE

    @staticmethod
    def is_permission_error(error: BaseException) -> bool:
        return ErrorCodes.classify(error) is ErrorKind.PERMISSION

    @staticmethod
    def get_http_status_code(error: BaseException) -> int:
        return ErrorCodes._HTTP_STATUS_BY_CODE.get(ErrorCodes.get_error_code(error), ErrorCodes.INTERNAL_SERVER_ERROR)
