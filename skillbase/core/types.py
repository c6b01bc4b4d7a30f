"""
Core types for the SkillBase API and the request pipeline.

Response records accept both the camelCase keys the API emits and
snake_case keys, so fixtures and cached payloads parse the same way.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def _pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first key present in data (camelCase / snake_case aliases)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


# =============================================================================
# Pipeline Types
# =============================================================================


class ErrorKind(str, Enum):
    """Closed set of failure kinds an attempt can be classified into."""

    NETWORK = "network"
    SERVER_ERROR = "server_error"
    AUTH_ERROR = "auth_error"
    CLIENT_ERROR = "client_error"
    PARSE_ERROR = "parse_error"


@dataclass(frozen=True)
class RequestSpec:
    """Immutable description of one logical call."""

    method: str
    path: str
    body: dict[str, Any] | None = None
    params: dict[str, Any] | None = None
    require_auth: bool = True
    retryable: bool = True
    allow_refresh: bool = True


@dataclass(frozen=True)
class TransportResponse:
    """A completed exchange as seen by the transport: status code plus raw text."""

    status: int
    text: str = ""


@dataclass
class Classification:
    """Outcome of one physical attempt; ``kind`` is None on success."""

    kind: ErrorKind | None
    message: str = ""
    status: int | None = None
    body: Any = None
    data: Any = None

    @property
    def ok(self) -> bool:
        """Check if the attempt succeeded."""
        return self.kind is None


@dataclass
class AttemptRecord:
    """One physical send: its index, classified outcome, and the wait that preceded it."""

    index: int
    outcome: Classification
    delay_ms: float = 0.0
    method: str = ""
    path: str = ""


# =============================================================================
# User / Auth Types
# =============================================================================


@dataclass
class User:
    """A SkillBase user account."""

    id: str
    email: str = ""
    name: str | None = None
    created_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        """Create from API response dict."""
        return cls(
            id=data["id"],
            email=data.get("email") or "",
            name=data.get("name"),
            created_at=_pick(data, "createdAt", "created_at"),
        )


@dataclass
class AuthResponse:
    """Response from register, login and refresh."""

    user: User | None
    access_token: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuthResponse":
        """Create from API response dict."""
        user = data.get("user")
        return cls(
            user=User.from_dict(user) if user else None,
            access_token=_pick(data, "accessToken", "access_token", default=""),
        )


# =============================================================================
# Project Types
# =============================================================================


@dataclass
class Project:
    """A SkillBase project; owns events and an API key."""

    id: str
    name: str
    description: str | None = None
    environment: str = "live"
    user_id: str | None = None
    created_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Project":
        """Create from API response dict."""
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            description=data.get("description"),
            environment=data.get("environment") or "live",
            user_id=_pick(data, "userId", "user_id"),
            created_at=_pick(data, "createdAt", "created_at"),
        )


@dataclass
class CreateProjectResponse:
    """Project creation response; the API key is only ever returned here."""

    project: Project
    api_key: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CreateProjectResponse":
        """Create from API response dict."""
        return cls(
            project=Project.from_dict(data["project"]),
            api_key=_pick(data, "apiKey", "api_key", default=""),
        )


@dataclass
class ApiKeyResponse:
    """Response from API key regeneration."""

    api_key: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ApiKeyResponse":
        """Create from API response dict."""
        return cls(api_key=_pick(data, "apiKey", "api_key", default=""))


# =============================================================================
# Event Types
# =============================================================================


@dataclass
class Event:
    """A tracked event."""

    id: str
    name: str
    project_id: str = ""
    user_id: str | None = None
    value: float | None = None
    metadata: dict[str, Any] | None = None
    created_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Event":
        """Create from API response dict."""
        return cls(
            id=data["id"],
            # The list endpoint uses 'name'; the create payload uses 'event'
            name=_pick(data, "name", "event", default=""),
            project_id=_pick(data, "projectId", "project_id", default=""),
            user_id=_pick(data, "userId", "user_id"),
            value=data.get("value"),
            metadata=_pick(data, "metadata", "meta"),
            created_at=_pick(data, "createdAt", "created_at"),
        )


@dataclass
class CreateEventResponse:
    """Response from event creation."""

    success: bool
    event_id: str
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CreateEventResponse":
        """Create from API response dict."""
        known = {"success", "eventId", "event_id"}
        return cls(
            success=bool(data.get("success", False)),
            event_id=_pick(data, "eventId", "event_id", default=""),
            extra={k: v for k, v in data.items() if k not in known},
        )
