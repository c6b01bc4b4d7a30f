"""
Optional process-wide convenience wrapper.

``SkillBaseClient`` is the real entry point: construct one and pass it
around. For small scripts and game loops, ``initialize()`` creates a single
``SkillBaseApp`` that owns one client plus a token storage, and ``get_app()``
returns it from anywhere.
"""

import dataclasses
from typing import Any, Protocol

import structlog

from skillbase.core.client import Transport
from skillbase.core.config import ClientConfig, Environment
from skillbase.core.errors import SkillBaseError
from skillbase.core.types import User
from skillbase.sdk import AuthOperations, EventOperations, ProjectOperations, SkillBaseClient

logger = structlog.get_logger(__name__)


# =============================================================================
# Token Storage
# =============================================================================


class TokenStorage(Protocol):
    """Where the host application keeps the session token between runs."""

    def save(self, token: str) -> None: ...

    def load(self) -> str | None: ...

    def clear(self) -> None: ...


class MemoryTokenStorage:
    """Token storage that lives as long as the process."""

    def __init__(self, token: str | None = None):
        self._token = token

    def save(self, token: str) -> None:
        if not token:
            self.clear()
            return
        self._token = token

    def load(self) -> str | None:
        return self._token

    def clear(self) -> None:
        self._token = None


# =============================================================================
# App
# =============================================================================


class SkillBaseApp:
    """
    One client wired to a token storage.

    New session tokens are saved to the storage through the client's
    ``on_token_refresh`` hook, and dropped from it through ``on_token_clear``
    whenever the client clears the token. A saved token seeds the client on
    startup.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        storage: TokenStorage | None = None,
        transport: Transport | None = None,
        **client_options: Any,
    ):
        self.storage: TokenStorage = storage or MemoryTokenStorage()
        config = config or ClientConfig.for_environment(Environment.DEVELOPMENT)
        user_hook = config.on_token_refresh
        user_clear_hook = config.on_token_clear

        def on_token_refresh(token: str) -> None:
            self.storage.save(token)
            if user_hook is not None:
                user_hook(token)

        # Covers logout and refresh failures inside any request
        def on_token_clear() -> None:
            self.storage.clear()
            if user_clear_hook is not None:
                user_clear_hook()

        saved_token = self.storage.load()
        config = dataclasses.replace(
            config,
            on_token_refresh=on_token_refresh,
            on_token_clear=on_token_clear,
            session_token=config.session_token or saved_token,
        )
        self.client = SkillBaseClient(config=config, transport=transport, **client_options)

    @property
    def auth(self) -> AuthOperations:
        return self.client.auth

    @property
    def events(self) -> EventOperations:
        return self.client.events

    @property
    def projects(self) -> ProjectOperations:
        return self.client.projects

    @property
    def current_user(self) -> User | None:
        return self.client.auth.current_user

    @property
    def is_authenticated(self) -> bool:
        return self.client.auth.is_authenticated

    async def refresh(self) -> User | None:
        """Refresh the session token; on failure the saved token is dropped too."""
        try:
            response = await self.client.auth.refresh()
        except SkillBaseError:
            self.storage.clear()
            logger.warning("skillbase.app.refresh_failed")
            raise
        return response.user

    def logout(self) -> None:
        """Log out and forget the saved token."""
        self.client.auth.logout()

    async def aclose(self) -> None:
        await self.client.aclose()


_app: SkillBaseApp | None = None


def initialize(
    config: ClientConfig | None = None,
    *,
    environment: Environment | str = Environment.DEVELOPMENT,
    storage: TokenStorage | None = None,
    **client_options: Any,
) -> SkillBaseApp:
    """
    Create the process-wide app. Calling it again returns the existing app.

    Args:
        config: Full configuration (defaults to the environment's defaults)
        environment: Used when no config is given
        storage: Token storage (defaults to in-memory)
        **client_options: Passed to SkillBaseClient (transport, sleep, on_attempt)

    Returns:
        SkillBaseApp

    """
    global _app
    if _app is not None:
        logger.warning("skillbase.app.already_initialized")
        return _app

    config = config or ClientConfig.for_environment(environment)
    _app = SkillBaseApp(config, storage=storage, **client_options)
    logger.info("skillbase.app.initialized", base_url=config.base_url)
    return _app


def is_initialized() -> bool:
    return _app is not None


def get_app() -> SkillBaseApp:
    """Return the app created by initialize()."""
    if _app is None:
        raise RuntimeError("SkillBase is not initialized. Call skillbase.app.initialize() first.")
    return _app


async def reset() -> None:
    """Close and drop the process-wide app."""
    global _app
    if _app is not None:
        await _app.aclose()
    _app = None
