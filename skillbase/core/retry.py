"""
Failure classification and exponential backoff.

Classification maps a raw transport outcome onto one ``ErrorKind``; the
executor's retry/refresh decisions are driven entirely by that kind.
"""

import json
import random
from typing import Any

from skillbase.core.errors import ERROR_CLASSES, SkillBaseError
from skillbase.core.types import Classification, ErrorKind, TransportResponse

# Transient kinds that warrant automatic retry
RETRYABLE_KINDS: frozenset[ErrorKind] = frozenset({ErrorKind.NETWORK, ErrorKind.SERVER_ERROR})


# =============================================================================
# Classification
# =============================================================================


def _decode_body(text: str) -> Any:
    """Decode a response body as JSON, falling back to the raw text."""
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def extract_message(body: Any, default: str) -> str:
    """
    Pull a human-readable message out of an error body.

    Handles ``{"message": "..."}``, ``{"message": [...]}`` (validation pipes),
    ``{"error": "..."}`` and ``{"error": {"message": "..."}}``.
    """
    if isinstance(body, str) and body.strip():
        return body.strip()
    if not isinstance(body, dict):
        return default

    message = body.get("message")
    if isinstance(message, list) and message:
        return "; ".join(str(m) for m in message)
    if isinstance(message, str) and message:
        return message

    error_field = body.get("error")
    if isinstance(error_field, str) and error_field:
        return error_field
    if isinstance(error_field, dict) and error_field.get("message"):
        return str(error_field["message"])
    return default


def classify_exception(error: BaseException) -> Classification:
    """Classify a transport-level failure; the server was never reached."""
    reason = str(error) or error.__class__.__name__
    return Classification(ErrorKind.NETWORK, f"Network error: {reason}", status=0)


def classify_response(response: TransportResponse) -> Classification:
    """
    Classify a completed exchange.

    Checked in order: status 0, 5xx, 401, other 4xx, then 2xx bodies that fail
    to decode. Statuses outside those ranges are treated as client errors.
    """
    status = response.status

    if status == 0:
        return Classification(ErrorKind.NETWORK, "Network error: no response from server", status=0)

    if 200 <= status < 300:
        if not response.text.strip():
            return Classification(None, status=status, data={"success": True})
        try:
            data = json.loads(response.text)
        except json.JSONDecodeError as e:
            return Classification(
                ErrorKind.PARSE_ERROR,
                f"Failed to parse response: {e}",
                status=status,
                body=response.text,
            )
        return Classification(None, status=status, data=data)

    body = _decode_body(response.text)
    message = extract_message(body, f"HTTP {status}")

    if 500 <= status < 600:
        return Classification(ErrorKind.SERVER_ERROR, message, status=status, body=body)
    if status == 401:
        return Classification(ErrorKind.AUTH_ERROR, message, status=status, body=body)
    return Classification(ErrorKind.CLIENT_ERROR, message, status=status, body=body)


def error_for(outcome: Classification) -> SkillBaseError:
    """Build the exception surfaced to callers for a failed attempt."""
    if outcome.kind is None:
        raise ValueError("error_for() called with a successful outcome")
    error_cls = ERROR_CLASSES[outcome.kind]
    return error_cls(outcome.message, status=outcome.status, body=outcome.body)


# =============================================================================
# Backoff
# =============================================================================


def backoff_delay(attempt: int, base_delay_ms: int, jitter_ms: int = 0) -> float:
    """
    Return the wait in milliseconds before retry ``attempt``.

    ``attempt`` is 0 for the wait before the second physical send, so with a
    1000 ms base the schedule is 1000, 2000, 4000, ...

    Args:
        attempt: 0-based retry index
        base_delay_ms: Base delay in milliseconds
        jitter_ms: Upper bound of uniform random jitter added on top

    Returns:
        Delay in milliseconds

    """
    delay = float(base_delay_ms * (2**attempt))
    if jitter_ms:
        delay += random.uniform(0, jitter_ms)
    return delay


def should_retry(kind: ErrorKind | None, attempt: int, max_retries: int, retryable: bool = True) -> bool:
    """
    Decide whether a failed attempt is retried with backoff.

    Args:
        kind: Classified failure kind
        attempt: Retries already performed
        max_retries: Retry ceiling
        retryable: Whether the call is eligible for retry at all

    Returns:
        True if the call should be sent again after a backoff wait

    """
    return retryable and kind in RETRYABLE_KINDS and attempt < max_retries
