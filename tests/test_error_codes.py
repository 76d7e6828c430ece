"""Tests for error classification."""

import asyncio
import json

import httpx
import pytest
from google.api_core import exceptions as google_exceptions

from quotemaker_firestoredb.utils.error_codes import ErrorCodes, ErrorKind
from quotemaker_firestoredb.utils.exceptions import (
    NotReadyError,
    PermissionDeniedError,
    SnapshotUnavailableError,
    SyncError,
    UnknownCollectionError,
)

REQUEST = httpx.Request("GET", "http://api.test/api/products")


def http_error(status: int) -> httpx.HTTPStatusError:
    return httpx.HTTPStatusError("failed", request=REQUEST, response=httpx.Response(status, request=REQUEST))


class TestGetErrorCode:
    @pytest.mark.parametrize(
        "error,code",
        [
            (google_exceptions.PermissionDenied("denied"), "permission-denied"),
            (google_exceptions.Unauthenticated("who"), "unauthenticated"),
            (google_exceptions.ServiceUnavailable("down"), "unavailable"),
            (google_exceptions.Aborted("contention"), "unavailable"),
            (google_exceptions.DeadlineExceeded("slow"), "deadline-exceeded"),
            (google_exceptions.ResourceExhausted("quota"), "resource-exhausted"),
            (google_exceptions.NotFound("gone"), "not-found"),
            (google_exceptions.InvalidArgument("bad"), "invalid-argument"),
            (google_exceptions.InternalServerError("oops"), "internal"),
        ],
    )
    def test_google_api_errors(self, error, code):
        assert ErrorCodes.get_error_code(error) == code

    @pytest.mark.parametrize("status,code", [(401, "unauthenticated"), (403, "permission-denied"), (503, "unavailable"), (502, "internal"), (422, "invalid-argument")])
    def test_http_status_errors(self, status, code):
        assert ErrorCodes.get_error_code(http_error(status)) == code

    def test_transport_errors(self):
        assert ErrorCodes.get_error_code(httpx.ConnectError("refused", request=REQUEST)) == "network-error"
        assert ErrorCodes.get_error_code(httpx.ReadTimeout("slow", request=REQUEST)) == "deadline-exceeded"
        assert ErrorCodes.get_error_code(asyncio.TimeoutError()) == "deadline-exceeded"
        assert ErrorCodes.get_error_code(ConnectionResetError()) == "network-error"

    def test_sync_errors_carry_their_code(self):
        assert ErrorCodes.get_error_code(PermissionDeniedError()) == "permission-denied"
        assert ErrorCodes.get_error_code(SnapshotUnavailableError("disk")) == "unavailable"
        assert ErrorCodes.get_error_code(UnknownCollectionError("x")) == "invalid-argument"
        assert ErrorCodes.get_error_code(NotReadyError()) == "not-ready"
        assert ErrorCodes.get_error_code(SyncError("custom", code="internal")) == "internal"

    def test_parse_errors_are_invalid_argument(self):
        with pytest.raises(json.JSONDecodeError) as exc_info:
            json.loads("{")
        assert ErrorCodes.get_error_code(exc_info.value) == "invalid-argument"

    def test_message_heuristics(self):
        assert ErrorCodes.get_error_code(RuntimeError("Missing or insufficient permissions.")) == "permission-denied"
        assert ErrorCodes.get_error_code(RuntimeError("boom")) == "unknown"


class TestClassify:
    def test_kinds(self):
        assert ErrorCodes.classify(google_exceptions.PermissionDenied("x")) is ErrorKind.PERMISSION
        assert ErrorCodes.classify(google_exceptions.Aborted("contention")) is ErrorKind.RETRYABLE
        assert ErrorCodes.classify(google_exceptions.ServiceUnavailable("x")) is ErrorKind.RETRYABLE
        assert ErrorCodes.classify(ValueError("x")) is ErrorKind.TERMINAL
        assert ErrorCodes.classify(NotReadyError()) is ErrorKind.TERMINAL

    def test_unknown_errors_are_retryable(self):
        assert ErrorCodes.is_retryable(RuntimeError("boom")) is True

    def test_permission_helpers(self):
        assert ErrorCodes.is_permission_error(http_error(403)) is True
        assert ErrorCodes.is_permission_error(http_error(500)) is False


class TestHttpStatus:
    def test_maps_back_to_http(self):
        assert ErrorCodes.get_http_status_code(PermissionDeniedError()) == 403
        assert ErrorCodes.get_http_status_code(NotReadyError()) == 503
        assert ErrorCodes.get_http_status_code(RuntimeError("boom")) == 500
