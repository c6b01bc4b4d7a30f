"""
Error taxonomy surfaced to SkillBase SDK callers.

Every error carries the HTTP status (``0`` for network failures, ``None``
when no exchange happened) and the raw response body when there was one.
"""

from typing import Any

from skillbase.core.types import ErrorKind


class SkillBaseError(Exception):
    """Base error class for SDK errors."""

    kind: ErrorKind | None = None

    def __init__(
        self,
        message: str,
        status: int | None = None,
        body: Any = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result: dict[str, Any] = {"error": self.message}
        if self.kind is not None:
            result["kind"] = self.kind.value
        if self.status is not None:
            result["status"] = self.status
        if self.body is not None:
            result["body"] = self.body
        if self.details:
            result["details"] = self.details
        return result


class ValidationError(SkillBaseError):
    """Validation error for local input/config issues (not API errors)."""


class NoCredentialError(SkillBaseError):
    """An authenticated call was attempted with neither an API key nor a session token."""


class RequestCancelledError(SkillBaseError):
    """The caller's cancellation signal fired before the request finished."""


class NetworkError(SkillBaseError):
    """The transport never reached the server (connection failure, timeout, status 0)."""

    kind = ErrorKind.NETWORK


class ServerError(SkillBaseError):
    """The server answered with a 5xx status."""

    kind = ErrorKind.SERVER_ERROR


class AuthError(SkillBaseError):
    """The server rejected the credential (401)."""

    kind = ErrorKind.AUTH_ERROR


class ClientError(SkillBaseError):
    """The server rejected the request itself (4xx other than 401)."""

    kind = ErrorKind.CLIENT_ERROR


class ParseError(SkillBaseError):
    """A 2xx response carried a body that is not valid JSON."""

    kind = ErrorKind.PARSE_ERROR


ERROR_CLASSES: dict[ErrorKind, type[SkillBaseError]] = {
    ErrorKind.NETWORK: NetworkError,
    ErrorKind.SERVER_ERROR: ServerError,
    ErrorKind.AUTH_ERROR: AuthError,
    ErrorKind.CLIENT_ERROR: ClientError,
    ErrorKind.PARSE_ERROR: ParseError,
}
