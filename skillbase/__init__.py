"""
SkillBase SDK - Resilient async client for the SkillBase API.

Layers:
- core: Types, credential store, retry/refresh pipeline and HTTP client
- sdk: High-level SkillBaseClient with typed auth/project/event operations
- app: Optional process-wide wrapper owning one client
"""

from skillbase.core.config import ClientConfig, Environment
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
from skillbase.sdk import SkillBaseClient

__version__ = "0.1.0"
__all__ = [
    "AuthError",
    "ClientConfig",
    "ClientError",
    "Environment",
    "NetworkError",
    "NoCredentialError",
    "ParseError",
    "RequestCancelledError",
    "ServerError",
    "SkillBaseClient",
    "SkillBaseError",
    "ValidationError",
]
