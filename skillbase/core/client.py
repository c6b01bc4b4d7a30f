"""
Core HTTP client for the SkillBase API.

Handles credential selection, transport, failure classification, retry with
exponential backoff, and transparent session token refresh.
"""

import asyncio
import json
import urllib.parse
from collections.abc import Callable
from typing import Any, Protocol

import httpx
import structlog

from skillbase.core.config import ClientConfig
from skillbase.core.credentials import CredentialStore
from skillbase.core.errors import RequestCancelledError, SkillBaseError
from skillbase.core.refresh import RefreshCoordinator
from skillbase.core.retry import (
    backoff_delay,
    classify_exception,
    classify_response,
    error_for,
    should_retry,
)
from skillbase.core.types import (
    AttemptRecord,
    AuthResponse,
    Classification,
    ErrorKind,
    RequestSpec,
    TransportResponse,
)

logger = structlog.get_logger(__name__)

REFRESH_PATH = "/auth/refresh"


# =============================================================================
# Transport
# =============================================================================


class TransportError(Exception):
    """The request never reached the server (DNS, connect, read failures)."""


class Transport(Protocol):
    """Sends one physical request. Raise ``TransportError`` or ``OSError`` if the server was not reached."""

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: str | None,
    ) -> TransportResponse: ...

    async def aclose(self) -> None: ...


class HttpxTransport:
    """Transport backed by ``httpx.AsyncClient``."""

    def __init__(
        self,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: str | None,
    ) -> TransportResponse:
        try:
            response = await self._client.request(
                method,
                url,
                headers=headers,
                content=body.encode("utf-8") if body is not None else None,
            )
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise TransportError(str(e) or e.__class__.__name__) from e
        return TransportResponse(status=response.status_code, text=response.text)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


# =============================================================================
# Request Executor
# =============================================================================


class APIClient:
    """
    Low-level async client for the SkillBase API.

    Handles:
    - Authorization header selection (API key over session token)
    - Retry with exponential backoff for network and 5xx failures
    - One refresh-and-resend cycle when a session-authenticated call gets a 401
    - Per-attempt timeout and optional per-request cancellation
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        transport: Transport | None = None,
        sleep: Callable[[float], Any] | None = None,
        on_attempt: Callable[[AttemptRecord], None] | None = None,
    ):
        """
        Initialize the API client.

        Args:
            config: Client configuration (defaults to ClientConfig.from_env())
            transport: Transport used for physical sends (defaults to HttpxTransport)
            sleep: Coroutine function used for backoff waits, in seconds
            on_attempt: Called with an AttemptRecord after every physical send

        """
        self.config = config or ClientConfig.from_env()
        self.credentials = CredentialStore(
            api_key=self.config.api_key,
            session_token=self.config.session_token,
            on_token_refresh=self.config.on_token_refresh,
            on_token_clear=self.config.on_token_clear,
        )
        self._owns_transport = transport is None
        self.transport: Transport = transport or HttpxTransport(timeout=self.config.timeout)
        self.refresher = RefreshCoordinator(self.credentials, self._exchange_token)
        self._sleep = sleep or asyncio.sleep
        self.on_attempt = on_attempt

    async def aclose(self) -> None:
        """Close the underlying transport if this client created it."""
        if self._owns_transport:
            await self.transport.aclose()

    async def __aenter__(self) -> "APIClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _build_url(self, path: str, params: dict[str, Any] | None = None) -> str:
        """Build full URL from path, dropping None-valued query params."""
        url = path if path.startswith("http") else f"{self.config.base_url}{path}"
        if params:
            filtered_params = {k: v for k, v in params.items() if v is not None}
            if filtered_params:
                separator = "&" if "?" in url else "?"
                url = f"{url}{separator}{urllib.parse.urlencode(filtered_params)}"
        return url

    def _build_headers(self, spec: RequestSpec) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if spec.require_auth:
            headers["Authorization"] = self.credentials.authorization_header()
        return headers

    async def _send(self, spec: RequestSpec, headers: dict[str, str]) -> Classification:
        """One physical send, classified. Never raises for transport failures."""
        url = self._build_url(spec.path, spec.params)
        body = json.dumps(spec.body) if spec.body is not None else None
        try:
            response = await asyncio.wait_for(
                self.transport.send(spec.method, url, headers, body),
                timeout=self.config.timeout,
            )
        except asyncio.TimeoutError:
            return classify_exception(TimeoutError(f"Request timed out after {self.config.timeout} seconds"))
        except (TransportError, OSError) as e:
            return classify_exception(e)
        return classify_response(response)

    async def _wait(self, delay_ms: float, cancel: asyncio.Event | None) -> None:
        """Backoff wait that the cancellation signal can interrupt."""
        seconds = delay_ms / 1000.0
        if cancel is None:
            await self._sleep(seconds)
            return
        sleeper = asyncio.ensure_future(self._sleep(seconds))
        waiter = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            sleeper.cancel()
            waiter.cancel()
        if cancel.is_set():
            raise RequestCancelledError("Request cancelled during backoff")
        sleeper.result()

    def _record(self, spec: RequestSpec, index: int, outcome: Classification, delay_ms: float) -> None:
        record = AttemptRecord(index=index, outcome=outcome, delay_ms=delay_ms, method=spec.method, path=spec.path)
        logger.debug(
            "skillbase.request.attempt",
            method=spec.method,
            path=spec.path,
            attempt=index,
            delay_ms=delay_ms,
            status=outcome.status,
            kind=outcome.kind.value if outcome.kind else None,
        )
        if self.on_attempt is not None:
            self.on_attempt(record)

    def _can_refresh(self, spec: RequestSpec) -> bool:
        return spec.allow_refresh and self.config.auto_refresh_token and bool(self.credentials.session_token)

    async def request(self, spec: RequestSpec, cancel: asyncio.Event | None = None) -> Any:
        """
        Execute one logical call through the retry/refresh pipeline.

        Args:
            spec: What to send and the per-call policy flags
            cancel: Optional signal; once set, no further attempts are made

        Returns:
            Decoded JSON body of the successful response

        Raises:
            NoCredentialError: Auth required but no credential is configured
            NetworkError / ServerError: Retries exhausted or call not retryable
            AuthError: 401 after the refresh cycle failed or was not eligible
            ClientError / ParseError: Surfaced on the first occurrence
            RequestCancelledError: The cancellation signal fired

        """
        log = logger.bind(method=spec.method, path=spec.path)
        sends = 0
        refreshed = False
        delay_ms = 0.0

        while True:
            if cancel is not None and cancel.is_set():
                raise RequestCancelledError("Request cancelled", details={"attempts": sends})

            headers = self._build_headers(spec)
            token_used = self.credentials.session_token

            outcome = await self._send(spec, headers)
            self._record(spec, sends, outcome, delay_ms)
            sends += 1

            if outcome.ok:
                return outcome.data

            error = error_for(outcome)
            # Every send, including a resend after refresh, counts against max_retries
            attempt = sends - 1

            if should_retry(outcome.kind, attempt, self.config.max_retries, spec.retryable):
                delay_ms = backoff_delay(attempt, self.config.base_delay_ms, self.config.jitter_ms)
                log.info(
                    "skillbase.request.retry",
                    kind=outcome.kind.value,
                    status=outcome.status,
                    retry=sends,
                    delay_ms=delay_ms,
                )
                await self._wait(delay_ms, cancel)
                continue

            if (
                outcome.kind is ErrorKind.AUTH_ERROR
                and not refreshed
                and attempt < self.config.max_retries
                and self._can_refresh(spec)
            ):
                refreshed = True
                delay_ms = 0.0
                if self.credentials.session_token != token_used:
                    # Another request already replaced the token this one was sent with
                    log.debug("skillbase.request.token_already_refreshed")
                    continue
                log.info("skillbase.request.refreshing")
                try:
                    await self.refresher.ensure_refreshed()
                except SkillBaseError as e:
                    raise error from e
                continue

            log.info(
                "skillbase.request.failed",
                kind=outcome.kind.value,
                status=outcome.status,
                attempts=sends,
            )
            raise error

    async def _exchange_token(self, token: str) -> AuthResponse:
        """Remote refresh call: never retried and never refreshes itself."""
        spec = RequestSpec(
            "POST",
            REFRESH_PATH,
            body={"token": token},
            require_auth=False,
            retryable=False,
            allow_refresh=False,
        )
        result = await self.request(spec)
        return AuthResponse.from_dict(result)

    # =========================================================================
    # HTTP Methods
    # =========================================================================

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> Any:
        """Make an authenticated, retryable GET request."""
        return await self.request(RequestSpec("GET", path, params=params), cancel=cancel)

    async def post(
        self,
        path: str,
        data: dict | None = None,
        cancel: asyncio.Event | None = None,
    ) -> Any:
        """Make an authenticated, retryable POST request."""
        return await self.request(RequestSpec("POST", path, body=data), cancel=cancel)
