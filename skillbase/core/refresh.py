"""
Single-flight session token refresh.

Any number of requests can observe a 401 at the same time; only the first one
starts the remote refresh and the rest attach to that same task. Once it
settles the marker is cleared, so a later 401 can start a fresh refresh.
"""

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from skillbase.core.credentials import CredentialStore
from skillbase.core.errors import AuthError
from skillbase.core.types import AuthResponse

logger = structlog.get_logger(__name__)

RefreshExchange = Callable[[str], Awaitable[AuthResponse]]


def _retrieve_exception(task: asyncio.Task) -> None:
    # Every waiter may have been cancelled; mark the result as observed anyway
    if not task.cancelled():
        task.exception()


class RefreshCoordinator:
    """
    Owns the remote "exchange session token" call for one credential store.

    Args:
        credentials: Store whose session token is refreshed
        exchange: Coroutine function sending the refresh request for a token

    """

    def __init__(self, credentials: CredentialStore, exchange: RefreshExchange):
        self._credentials = credentials
        self._exchange = exchange
        self._inflight: asyncio.Task[AuthResponse] | None = None
        self.refresh_count = 0

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def ensure_refreshed(self) -> AuthResponse:
        """
        Refresh the session token, joining an in-flight refresh if there is one.

        Returns:
            AuthResponse from the refresh call

        Raises:
            AuthError: No session token to refresh
            SkillBaseError: The refresh call failed (the token has been cleared)

        """
        task = self._inflight
        if task is None or task.done():
            token = self._credentials.session_token
            if not token:
                raise AuthError("No session token to refresh", status=401)
            task = asyncio.get_running_loop().create_task(self._run(token))
            task.add_done_callback(_retrieve_exception)
            self._inflight = task
        else:
            logger.debug("skillbase.refresh.joined")

        # A waiter being cancelled must not cancel the shared refresh
        return await asyncio.shield(task)

    async def _run(self, token: str) -> AuthResponse:
        self.refresh_count += 1
        logger.info("skillbase.refresh.started")
        try:
            response = await self._exchange(token)
            if not response.access_token:
                raise AuthError("Refresh response did not include an access token", status=401)
        except Exception as e:
            self._credentials.clear_session_token()
            logger.warning("skillbase.refresh.failed", error=str(e))
            raise
        else:
            self._credentials.set_session_token(response.access_token)
            logger.info("skillbase.refresh.succeeded")
            return response
        finally:
            self._inflight = None
