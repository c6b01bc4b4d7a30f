"""
Core layer - Raw types and the resilient request pipeline.

This layer provides:
- Typed dataclasses for API responses and pipeline records
- Credential store, failure classifier, backoff policy and refresh coordinator
- Low-level async HTTP client that composes them
"""

from skillbase.core.client import APIClient, HttpxTransport, Transport, TransportError
from skillbase.core.config import ClientConfig, Environment
from skillbase.core.credentials import CredentialStore
from skillbase.core.errors import (
    AuthError,
    ClientError,
    NetworkError,
    NoCredentialError,
    ParseError,
    RequestCancelledError,
    ServerError,
    SkillBaseError,
    ValidationError,
)
from skillbase.core.refresh import RefreshCoordinator
from skillbase.core.retry import backoff_delay, classify_exception, classify_response
from skillbase.core.types import (
    ApiKeyResponse,
    AttemptRecord,
    AuthResponse,
    Classification,
    CreateEventResponse,
    CreateProjectResponse,
    ErrorKind,
    Event,
    Project,
    RequestSpec,
    TransportResponse,
    User,
)

__all__ = [
    "APIClient",
    "ApiKeyResponse",
    "AttemptRecord",
    "AuthError",
    "AuthResponse",
    "Classification",
    "ClientConfig",
    "ClientError",
    "CreateEventResponse",
    "CreateProjectResponse",
    "CredentialStore",
    "Environment",
    "ErrorKind",
    "Event",
    "HttpxTransport",
    "NetworkError",
    "NoCredentialError",
    "ParseError",
    "Project",
    "RefreshCoordinator",
    "RequestCancelledError",
    "RequestSpec",
    "ServerError",
    "SkillBaseError",
    "Transport",
    "TransportError",
    "TransportResponse",
    "User",
    "ValidationError",
    "backoff_delay",
    "classify_exception",
    "classify_response",
]
