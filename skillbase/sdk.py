"""
SkillBase SDK - High-level async client with nice ergonomics.

This layer provides named, typed operations for auth, projects and events.
Each operation declares its retry/refresh policy statically; all of them run
through the core APIClient pipeline.
"""

import asyncio
import builtins
import urllib.parse
from collections.abc import Callable
from typing import Any

import structlog

from skillbase.core.client import APIClient, Transport
from skillbase.core.config import ClientConfig
from skillbase.core.errors import AuthError, ParseError, SkillBaseError
from skillbase.core.types import (
    ApiKeyResponse,
    AttemptRecord,
    AuthResponse,
    CreateEventResponse,
    CreateProjectResponse,
    Event,
    Project,
    RequestSpec,
    User,
)

logger = structlog.get_logger(__name__)

# Credential-acquisition calls: no header, never retried, never trigger a refresh.
# Retrying register automatically risks creating the account twice.
AUTH_POLICY: dict[str, bool] = {"require_auth": False, "retryable": False, "allow_refresh": False}
# Everything else: authenticated, retried on network/5xx, refreshed once on 401
RESOURCE_POLICY: dict[str, bool] = {"require_auth": True, "retryable": True, "allow_refresh": True}


def _expect_list(result: Any, path: str) -> list[Any]:
    """Collection endpoints must answer with a JSON array."""
    if not isinstance(result, list):
        raise ParseError(f"Expected a list from {path}, got {type(result).__name__}", body=result)
    return result


class SkillBaseClient:
    """
    High-level SkillBase API client.

    Example:
        async with SkillBaseClient(base_url="http://localhost:3000") as client:
            await client.auth.login("player@example.com", "secret")
            created = await client.projects.create("My Game")
            await client.events.create("user_123", "level_completed", 150, {"level": 5})
            events = await client.events.list("user_123")

    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        session_token: str | None = None,
        *,
        config: ClientConfig | None = None,
        transport: Transport | None = None,
        on_token_refresh: Callable[[str], None] | None = None,
        on_attempt: Callable[[AttemptRecord], None] | None = None,
        sleep: Callable[[float], Any] | None = None,
        **options: Any,
    ):
        """
        Initialize the SkillBase client.

        Args:
            api_key: Project API key (or SKILLBASE_API_KEY env var)
            base_url: API base URL (or SKILLBASE_BASE_URL env var)
            session_token: Saved session token (or SKILLBASE_SESSION_TOKEN env var)
            config: Full configuration; when given, the arguments above are ignored
            transport: Custom transport (defaults to httpx)
            on_token_refresh: Persistence hook called with every new session token
            on_attempt: Observability hook called after every physical send
            sleep: Coroutine function used for backoff waits
            **options: Remaining ClientConfig fields (max_retries, base_delay_ms, ...)

        """
        if config is None:
            config = ClientConfig.from_env(
                api_key=api_key,
                base_url=base_url,
                session_token=session_token,
                on_token_refresh=on_token_refresh,
                **options,
            )
        self._client = APIClient(config, transport=transport, sleep=sleep, on_attempt=on_attempt)

        # Sub-clients for different domains
        self.auth = AuthOperations(self._client)
        self.projects = ProjectOperations(self._client)
        self.events = EventOperations(self._client, self.auth)

    @property
    def config(self) -> ClientConfig:
        return self._client.config

    @property
    def api_key(self) -> str | None:
        return self._client.credentials.api_key

    @property
    def session_token(self) -> str | None:
        return self._client.credentials.session_token

    def set_api_key(self, key: str) -> None:
        """Set the API key used for authenticated calls."""
        self._client.credentials.set_api_key(key)

    def set_session_token(self, token: str) -> None:
        """Set the session token (fires the on_token_refresh hook)."""
        self._client.credentials.set_session_token(token)

    def clear_session_token(self) -> None:
        """Forget the session token; the API key is kept."""
        self._client.credentials.clear_session_token()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "SkillBaseClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


# =============================================================================
# Auth Operations
# =============================================================================


class AuthOperations:
    """Register, login, refresh and logout. Keeps track of the current user."""

    def __init__(self, client: APIClient):
        self._client = client
        self._current_user: User | None = None

    @property
    def current_user(self) -> User | None:
        """Current authenticated user (None if not logged in)."""
        return self._current_user

    @property
    def is_authenticated(self) -> bool:
        return self._current_user is not None and bool(self._client.credentials.session_token)

    def _accept(self, response: AuthResponse) -> AuthResponse:
        if response.access_token:
            self._client.credentials.set_session_token(response.access_token)
        if response.user is not None:
            self._current_user = response.user
        return response

    async def register(
        self,
        email: str,
        password: str,
        name: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> AuthResponse:
        """
        Register a new user and store its session token.

        Args:
            email: User email
            password: User password
            name: Display name (optional)
            cancel: Optional cancellation signal

        Returns:
            AuthResponse with the user and access token

        """
        body: dict[str, Any] = {"email": email, "password": password}
        if name is not None:
            body["name"] = name
        result = await self._client.request(RequestSpec("POST", "/auth/register", body=body, **AUTH_POLICY), cancel)
        return self._accept(AuthResponse.from_dict(result))

    async def login(
        self,
        email: str,
        password: str,
        cancel: asyncio.Event | None = None,
    ) -> AuthResponse:
        """
        Log in with email and password and store the session token.

        Args:
            email: User email
            password: User password
            cancel: Optional cancellation signal

        Returns:
            AuthResponse with the user and access token

        """
        spec = RequestSpec("POST", "/auth/login", body={"email": email, "password": password}, **AUTH_POLICY)
        result = await self._client.request(spec, cancel)
        return self._accept(AuthResponse.from_dict(result))

    async def refresh(self) -> AuthResponse:
        """
        Exchange the current session token for a new one.

        Joins a refresh that is already in flight instead of starting another.
        On failure the session token and current user are cleared.

        Returns:
            AuthResponse from the refresh call

        """
        try:
            response = await self._client.refresher.ensure_refreshed()
        except SkillBaseError:
            self._current_user = None
            raise
        if response.user is not None:
            self._current_user = response.user
        return response

    def logout(self) -> None:
        """Clear the session token and the current user."""
        self._client.credentials.clear_session_token()
        self._current_user = None
        logger.info("skillbase.auth.logout")


# =============================================================================
# Project Operations
# =============================================================================


class ProjectOperations:
    """Operations for managing projects and their API keys."""

    def __init__(self, client: APIClient):
        self._client = client

    async def create(
        self,
        name: str,
        description: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> CreateProjectResponse:
        """
        Create a project. The returned API key becomes the client's API key.

        The key is only returned once; persisting it is up to the caller.
        """
        body: dict[str, Any] = {"name": name}
        if description is not None:
            body["description"] = description
        result = await self._client.request(RequestSpec("POST", "/projects", body=body, **RESOURCE_POLICY), cancel)
        response = CreateProjectResponse.from_dict(result)
        if response.api_key:
            self._client.credentials.set_api_key(response.api_key)
        return response

    async def list(self, cancel: asyncio.Event | None = None) -> builtins.list[Project]:
        """List the current user's projects."""
        result = await self._client.request(RequestSpec("GET", "/projects", **RESOURCE_POLICY), cancel)
        return [Project.from_dict(item) for item in _expect_list(result, "/projects")]

    async def get(self, project_id: str, cancel: asyncio.Event | None = None) -> Project:
        """Get a project by ID."""
        path = f"/projects/{urllib.parse.quote(project_id, safe='')}"
        result = await self._client.request(RequestSpec("GET", path, **RESOURCE_POLICY), cancel)
        return Project.from_dict(result)

    async def regenerate_api_key(self, project_id: str, cancel: asyncio.Event | None = None) -> ApiKeyResponse:
        """
        Issue a new API key for a project; the old key stops working.

        The new key becomes the client's API key.
        """
        path = f"/projects/{urllib.parse.quote(project_id, safe='')}/regenerate-api-key"
        result = await self._client.request(RequestSpec("POST", path, **RESOURCE_POLICY), cancel)
        response = ApiKeyResponse.from_dict(result)
        if response.api_key:
            self._client.credentials.set_api_key(response.api_key)
        return response


# =============================================================================
# Event Operations
# =============================================================================


class EventOperations:
    """Operations for tracking and reading events."""

    def __init__(self, client: APIClient, auth: AuthOperations):
        self._client = client
        self._auth = auth

    async def create(
        self,
        user_id: str,
        name: str,
        value: float | None = None,
        metadata: dict[str, Any] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> CreateEventResponse:
        """
        Create an event.

        Args:
            user_id: User the event belongs to
            name: Event name (e.g. "level_completed")
            value: Numeric value (optional)
            metadata: Extra JSON metadata (optional)
            cancel: Optional cancellation signal

        Returns:
            CreateEventResponse with the new event ID

        """
        body: dict[str, Any] = {"userId": user_id, "event": name}
        if value is not None:
            body["value"] = value
        if metadata is not None:
            body["meta"] = metadata
        result = await self._client.request(RequestSpec("POST", "/v1/events", body=body, **RESOURCE_POLICY), cancel)
        return CreateEventResponse.from_dict(result)

    async def list(
        self,
        user_id: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> builtins.list[Event]:
        """List events, optionally filtered by user ID."""
        spec = RequestSpec("GET", "/v1/events", params={"userId": user_id}, **RESOURCE_POLICY)
        result = await self._client.request(spec, cancel)
        return [Event.from_dict(item) for item in _expect_list(result, "/v1/events")]

    async def track(
        self,
        name: str,
        value: float | None = None,
        metadata: dict[str, Any] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> CreateEventResponse:
        """
        Create an event for the logged-in user.

        Raises:
            AuthError: Nobody is logged in

        """
        user = self._auth.current_user
        if user is None:
            raise AuthError("User must be authenticated to track events", status=401)
        return await self.create(user.id, name, value, metadata, cancel)
