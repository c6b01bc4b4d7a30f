"""Pytest configuration - loads .env and provides a scripted transport."""

import inspect
import json
import urllib.parse
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
from dotenv import load_dotenv

from skillbase.core.types import TransportResponse

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)


# =============================================================================
# Fake Transport
# =============================================================================


@dataclass
class SentRequest:
    """One physical send captured by FakeTransport."""

    method: str
    url: str
    headers: dict[str, str]
    body: Any = None

    @property
    def path(self) -> str:
        return urllib.parse.urlsplit(self.url).path

    @property
    def authorization(self) -> str | None:
        return self.headers.get("Authorization")


def respond(status: int, body: Any = None) -> TransportResponse:
    """Build a TransportResponse with a JSON body (strings are sent raw)."""
    if body is None:
        return TransportResponse(status=status, text="")
    if isinstance(body, str):
        return TransportResponse(status=status, text=body)
    return TransportResponse(status=status, text=json.dumps(body))


@dataclass
class FakeTransport:
    """
    Transport driven by a handler function.

    The handler receives the SentRequest and returns a TransportResponse or an
    exception instance (which is raised). It may be a coroutine function.
    """

    handler: Callable[[SentRequest], Any]
    calls: list[SentRequest] = field(default_factory=list)
    closed: bool = False

    async def send(self, method: str, url: str, headers: dict[str, str], body: str | None) -> TransportResponse:
        request = SentRequest(method, url, dict(headers), json.loads(body) if body else None)
        self.calls.append(request)
        result = self.handler(request)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, BaseException):
            raise result
        return result

    async def aclose(self) -> None:
        self.closed = True

    def sent_to(self, path: str) -> list[SentRequest]:
        return [c for c in self.calls if c.path == path]


def scripted(*responses: Any) -> Callable[[SentRequest], Any]:
    """Handler that replays responses in order, repeating the last one."""
    queue = list(responses)

    def handler(_request: SentRequest) -> Any:
        if len(queue) > 1:
            return queue.pop(0)
        return queue[0]

    return handler


class RecordingSleep:
    """Stand-in for asyncio.sleep that records the requested waits."""

    def __init__(self):
        self.waits: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def token_log() -> list[str]:
    """Collects every token handed to on_token_refresh."""
    return []


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep SKILLBASE_* variables from a local .env out of unit tests."""
    for name in ("SKILLBASE_API_KEY", "SKILLBASE_SESSION_TOKEN", "SKILLBASE_BASE_URL"):
        monkeypatch.delenv(name, raising=False)
