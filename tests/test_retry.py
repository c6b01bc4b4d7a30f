"""Failure classification, error mapping and the backoff schedule."""

import pytest

from skillbase.core.errors import AuthError, ClientError, NetworkError, ParseError, ServerError
from skillbase.core.retry import (
    backoff_delay,
    classify_exception,
    classify_response,
    error_for,
    extract_message,
    should_retry,
)
from skillbase.core.types import ErrorKind, TransportResponse

# =============================================================================
# Classification
# =============================================================================


@pytest.mark.parametrize(
    ("status", "kind"),
    [
        (0, ErrorKind.NETWORK),
        (500, ErrorKind.SERVER_ERROR),
        (502, ErrorKind.SERVER_ERROR),
        (599, ErrorKind.SERVER_ERROR),
        (401, ErrorKind.AUTH_ERROR),
        (400, ErrorKind.CLIENT_ERROR),
        (403, ErrorKind.CLIENT_ERROR),
        (404, ErrorKind.CLIENT_ERROR),
        (409, ErrorKind.CLIENT_ERROR),
        (302, ErrorKind.CLIENT_ERROR),
    ],
)
def test_status_mapping(status, kind):
    outcome = classify_response(TransportResponse(status, '{"message": "nope"}'))
    assert outcome.kind is kind
    assert outcome.status == status


def test_status_zero_is_network_failure():
    outcome = classify_response(TransportResponse(0, ""))
    assert outcome.kind is ErrorKind.NETWORK
    assert outcome.status == 0


def test_exception_is_network_failure():
    outcome = classify_exception(ConnectionRefusedError("connection refused"))
    assert outcome.kind is ErrorKind.NETWORK
    assert outcome.status == 0
    assert "connection refused" in outcome.message


def test_success_decodes_json():
    outcome = classify_response(TransportResponse(200, '{"eventId": "e1", "success": true}'))
    assert outcome.ok
    assert outcome.data == {"eventId": "e1", "success": True}


def test_success_with_empty_body():
    outcome = classify_response(TransportResponse(204, ""))
    assert outcome.ok
    assert outcome.data == {"success": True}


def test_malformed_success_body_is_parse_error():
    outcome = classify_response(TransportResponse(200, "<html>gateway</html>"))
    assert outcome.kind is ErrorKind.PARSE_ERROR
    assert outcome.status == 200
    assert outcome.body == "<html>gateway</html>"


def test_error_body_is_kept():
    outcome = classify_response(TransportResponse(400, '{"message": ["email must be an email"], "statusCode": 400}'))
    assert outcome.body == {"message": ["email must be an email"], "statusCode": 400}
    assert outcome.message == "email must be an email"


def test_non_json_error_body_is_kept_raw():
    outcome = classify_response(TransportResponse(503, "Service Unavailable"))
    assert outcome.kind is ErrorKind.SERVER_ERROR
    assert outcome.body == "Service Unavailable"
    assert outcome.message == "Service Unavailable"


# =============================================================================
# Messages and errors
# =============================================================================


@pytest.mark.parametrize(
    ("body", "expected"),
    [
        ({"message": "Invalid credentials"}, "Invalid credentials"),
        ({"message": ["a", "b"]}, "a; b"),
        ({"error": "bad request"}, "bad request"),
        ({"error": {"message": "nested"}}, "nested"),
        ({"statusCode": 500}, "HTTP 500"),
        (None, "HTTP 500"),
        ([1, 2], "HTTP 500"),
    ],
)
def test_extract_message(body, expected):
    assert extract_message(body, "HTTP 500") == expected


@pytest.mark.parametrize(
    ("status", "error_cls"),
    [(0, NetworkError), (500, ServerError), (401, AuthError), (422, ClientError)],
)
def test_error_for_maps_kind_to_class(status, error_cls):
    outcome = classify_response(TransportResponse(status, '{"message": "boom"}'))
    error = error_for(outcome)
    assert isinstance(error, error_cls)
    assert error.status == status
    assert error.kind is outcome.kind


def test_error_for_parse_error():
    error = error_for(classify_response(TransportResponse(200, "{oops")))
    assert isinstance(error, ParseError)
    assert error.body == "{oops"


def test_error_for_rejects_success():
    with pytest.raises(ValueError):
        error_for(classify_response(TransportResponse(200, "{}")))


def test_error_to_dict():
    error = error_for(classify_response(TransportResponse(404, '{"message": "Project not found"}')))
    assert error.to_dict() == {
        "error": "Project not found",
        "kind": "client_error",
        "status": 404,
        "body": {"message": "Project not found"},
    }


# =============================================================================
# Backoff
# =============================================================================


def test_backoff_doubles_from_base():
    assert [backoff_delay(i, 1000) for i in range(4)] == [1000, 2000, 4000, 8000]


def test_backoff_uses_base():
    assert backoff_delay(0, 250) == 250
    assert backoff_delay(3, 250) == 2000


def test_backoff_jitter_is_bounded():
    for attempt in range(3):
        delay = backoff_delay(attempt, 100, jitter_ms=50)
        assert 100 * 2**attempt <= delay <= 100 * 2**attempt + 50


def test_backoff_is_monotonic_with_jitter():
    delays = [backoff_delay(i, 1000, jitter_ms=500) for i in range(5)]
    assert delays == sorted(delays)


@pytest.mark.parametrize(
    ("kind", "attempt", "retryable", "expected"),
    [
        (ErrorKind.NETWORK, 0, True, True),
        (ErrorKind.SERVER_ERROR, 2, True, True),
        (ErrorKind.SERVER_ERROR, 3, True, False),
        (ErrorKind.NETWORK, 0, False, False),
        (ErrorKind.AUTH_ERROR, 0, True, False),
        (ErrorKind.CLIENT_ERROR, 0, True, False),
        (ErrorKind.PARSE_ERROR, 0, True, False),
    ],
)
def test_should_retry(kind, attempt, retryable, expected):
    assert should_retry(kind, attempt, 3, retryable) is expected
