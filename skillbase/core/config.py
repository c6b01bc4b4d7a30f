"""
Client configuration.

All knobs are enumerated on ``ClientConfig``; environment variables are only
used as fallbacks when a field is not given explicitly.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from skillbase.core.errors import ValidationError

# Configuration
DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000

API_KEY_ENV = "SKILLBASE_API_KEY"
SESSION_TOKEN_ENV = "SKILLBASE_SESSION_TOKEN"
BASE_URL_ENV = "SKILLBASE_BASE_URL"


class Environment(str, Enum):
    """Deployment the client talks to."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"

    @property
    def base_url(self) -> str:
        """Default API base URL for this environment."""
        if self is Environment.PRODUCTION:
            return "https://api.skillbase.com"
        return DEFAULT_BASE_URL


@dataclass
class ClientConfig:
    """
    Configuration for a SkillBase client.

    Attributes:
        base_url: API root, without the ``/v1`` suffix
        api_key: Project-scoped API key (preferred for the Authorization header)
        session_token: User session token from register/login/refresh
        max_retries: Retries after the first attempt for retryable calls
        base_delay_ms: Backoff base; the wait before retry ``i`` is ``base * 2**i``
        jitter_ms: Upper bound of random jitter added to each backoff wait
        auto_refresh_token: Refresh the session token once when a call gets a 401
        on_token_refresh: Called with the new token whenever the session token is set
        on_token_clear: Called whenever the session token is cleared (logout, failed refresh)
        timeout: Seconds allowed for each physical attempt

    """

    base_url: str = DEFAULT_BASE_URL
    api_key: str | None = None
    session_token: str | None = None
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS
    jitter_ms: int = 0
    auto_refresh_token: bool = True
    on_token_refresh: Callable[[str], None] | None = None
    on_token_clear: Callable[[], None] | None = None
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if not isinstance(self.max_retries, int) or self.max_retries < 0:
            raise ValidationError(f"max_retries must be an integer >= 0, got {self.max_retries!r}")
        if not isinstance(self.base_delay_ms, int) or self.base_delay_ms <= 0:
            raise ValidationError(f"base_delay_ms must be an integer > 0, got {self.base_delay_ms!r}")
        if self.jitter_ms < 0:
            raise ValidationError(f"jitter_ms must be >= 0, got {self.jitter_ms!r}")
        if self.timeout is not None and self.timeout <= 0:
            raise ValidationError(f"timeout must be positive, got {self.timeout!r}")
        self.base_url = self.base_url.rstrip("/")

    @property
    def api_base_url(self) -> str:
        """Versioned root used by the event endpoints."""
        return f"{self.base_url}/v1"

    @classmethod
    def from_env(cls, **overrides) -> "ClientConfig":
        """
        Build a config from SKILLBASE_* environment variables.

        Args:
            **overrides: Explicit field values; these win over the environment

        Returns:
            ClientConfig

        """
        values = {
            "base_url": os.environ.get(BASE_URL_ENV) or DEFAULT_BASE_URL,
            "api_key": os.environ.get(API_KEY_ENV),
            "session_token": os.environ.get(SESSION_TOKEN_ENV),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @classmethod
    def for_environment(cls, environment: Environment | str, **overrides) -> "ClientConfig":
        """Default configuration for a deployment environment."""
        env = Environment(environment)
        overrides.setdefault("base_url", env.base_url)
        return cls(**overrides)
