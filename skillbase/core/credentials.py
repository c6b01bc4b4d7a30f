"""
Credential store: the API key and session token a client authenticates with.

The session token is the only shared mutable state in the pipeline. It is
written by register/login and by the refresh coordinator, never by a failed
attempt.
"""

from collections.abc import Callable

import structlog

from skillbase.core.errors import NoCredentialError

logger = structlog.get_logger(__name__)


class CredentialStore:
    """
    Holds the current API key and/or session token.

    When both are present the API key wins for the Authorization header: it is
    project-scoped and does not expire the way a session token does.
    """

    def __init__(
        self,
        api_key: str | None = None,
        session_token: str | None = None,
        on_token_refresh: Callable[[str], None] | None = None,
        on_token_clear: Callable[[], None] | None = None,
    ):
        self._api_key = api_key or None
        self._session_token = session_token or None
        self._on_token_refresh = on_token_refresh
        self._on_token_clear = on_token_clear

    @property
    def api_key(self) -> str | None:
        return self._api_key

    @property
    def session_token(self) -> str | None:
        return self._session_token

    @property
    def has_credential(self) -> bool:
        return bool(self._api_key or self._session_token)

    def bearer(self) -> str:
        """Return the raw credential used for the Authorization header."""
        if self._api_key:
            return self._api_key
        if self._session_token:
            return self._session_token
        raise NoCredentialError("No authentication method available: set an API key or log in first")

    def authorization_header(self) -> str:
        """Build the ``Authorization`` header value."""
        return f"Bearer {self.bearer()}"

    def set_session_token(self, token: str) -> None:
        """Store a new session token and hand it to the persistence hook."""
        self._session_token = token
        logger.debug("skillbase.credentials.session_token_set")
        if self._on_token_refresh is not None:
            self._on_token_refresh(token)

    def clear_session_token(self) -> None:
        """Drop the session token and tell the clear hook; the API key is untouched."""
        self._session_token = None
        logger.debug("skillbase.credentials.session_token_cleared")
        if self._on_token_clear is not None:
            self._on_token_clear()

    def set_api_key(self, key: str) -> None:
        """Store an API key. Persisting it is the caller's job."""
        self._api_key = key
        logger.debug("skillbase.credentials.api_key_set")

    def clear_api_key(self) -> None:
        self._api_key = None
