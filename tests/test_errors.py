import ssl

import httpx
import pytest
from fastapi.exceptions import RequestValidationError

from app.api.errors import (
    InvalidAuthenticityTokenError,
    MalformedInputError,
    NotFoundError,
    NotPermittedError,
    RaceConditionError,
    RateLimitExceededError,
    ServiceOverloadedError,
    UnacceptableFormatError,
    UpstreamNetworkError,
    UpstreamStorageError,
    error_response,
    status_for_exception,
)


@pytest.mark.parametrize(
    ("exc", "status_code"),
    [
        (MalformedInputError("missing param"), 400),
        (RequestValidationError([]), 400),
        (NotPermittedError("no"), 403),
        (NotFoundError("gone"), 404),
        (UnacceptableFormatError("xml"), 406),
        (InvalidAuthenticityTokenError("csrf"), 422),
        (RateLimitExceededError("slow down"), 429),
        (UpstreamNetworkError("remote"), 500),
        (httpx.ConnectError("connection refused"), 500),
        (httpx.HTTPError("generic"), 500),
        (ssl.SSLError("handshake failed"), 500),
        (RaceConditionError("lock"), 503),
        (ServiceOverloadedError("red light"), 503),
        (UpstreamStorageError("s3 down"), 503),
    ],
)
def test_status_for_every_mapped_exception(exc, status_code) -> None:
    assert status_for_exception(exc) == status_code


def test_unmapped_exceptions_have_no_status() -> None:
    assert status_for_exception(RuntimeError("boom")) is None
    assert status_for_exception(KeyError("k")) is None


def test_error_response_uses_reason_phrase() -> None:
    resp = error_response(429)
    assert resp.status_code == 429
    assert resp.body == b'{"error":"Too Many Requests"}'


def test_error_response_tolerates_non_standard_codes() -> None:
    resp = error_response(499, {"X-Reason": "client"})
    assert resp.status_code == 499
    assert resp.body == b'{"error":"Error"}'
    assert resp.headers["x-reason"] == "client"
