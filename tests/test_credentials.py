"""Credential store and client configuration."""

import pytest

from skillbase.core.config import ClientConfig, Environment
from skillbase.core.credentials import CredentialStore
from skillbase.core.errors import NoCredentialError, ValidationError

API_KEY = "skb_test_0123456789abcdef_" + "a" * 64

# =============================================================================
# Credential Store
# =============================================================================


def test_api_key_preferred_over_session_token():
    store = CredentialStore(api_key=API_KEY, session_token="session-1")
    assert store.authorization_header() == f"Bearer {API_KEY}"


def test_session_token_used_without_api_key():
    store = CredentialStore(session_token="session-1")
    assert store.authorization_header() == "Bearer session-1"


def test_no_credential_fails_fast():
    store = CredentialStore()
    with pytest.raises(NoCredentialError):
        store.authorization_header()
    assert not store.has_credential


def test_empty_strings_count_as_missing():
    store = CredentialStore(api_key="", session_token="")
    with pytest.raises(NoCredentialError):
        store.authorization_header()


def test_set_session_token_fires_hook_once(token_log):
    store = CredentialStore(on_token_refresh=token_log.append)
    store.set_session_token("t1")
    assert token_log == ["t1"]
    store.set_session_token("t2")
    assert token_log == ["t1", "t2"]
    assert store.session_token == "t2"


def test_clear_session_token_keeps_api_key():
    store = CredentialStore(api_key=API_KEY, session_token="session-1")
    store.clear_session_token()
    assert store.session_token is None
    assert store.api_key == API_KEY
    assert store.authorization_header() == f"Bearer {API_KEY}"


def test_clear_session_token_fires_clear_hook():
    cleared = []
    store = CredentialStore(api_key=API_KEY, session_token="session-1", on_token_clear=lambda: cleared.append(True))
    store.clear_session_token()
    assert cleared == [True]
    assert store.api_key == API_KEY


def test_set_api_key_has_no_callback(token_log):
    store = CredentialStore(on_token_refresh=token_log.append)
    store.set_api_key(API_KEY)
    assert token_log == []
    assert store.authorization_header() == f"Bearer {API_KEY}"


# =============================================================================
# Configuration
# =============================================================================


def test_config_defaults():
    config = ClientConfig()
    assert config.max_retries == 3
    assert config.base_delay_ms == 1000
    assert config.auto_refresh_token is True
    assert config.on_token_refresh is None
    assert config.base_url == "http://localhost:3000"
    assert config.api_base_url == "http://localhost:3000/v1"


def test_config_strips_trailing_slash():
    assert ClientConfig(base_url="https://api.example.com/").base_url == "https://api.example.com"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_retries": -1},
        {"base_delay_ms": 0},
        {"base_delay_ms": -5},
        {"jitter_ms": -1},
        {"timeout": 0},
    ],
)
def test_config_rejects_invalid_values(kwargs):
    with pytest.raises(ValidationError):
        ClientConfig(**kwargs)


def test_config_zero_retries_allowed():
    assert ClientConfig(max_retries=0).max_retries == 0


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("SKILLBASE_API_KEY", API_KEY)
    monkeypatch.setenv("SKILLBASE_BASE_URL", "https://staging.example.com")
    config = ClientConfig.from_env(max_retries=1)
    assert config.api_key == API_KEY
    assert config.session_token is None
    assert config.base_url == "https://staging.example.com"
    assert config.max_retries == 1


def test_config_explicit_values_win_over_env(monkeypatch):
    monkeypatch.setenv("SKILLBASE_API_KEY", API_KEY)
    config = ClientConfig.from_env(api_key="explicit")
    assert config.api_key == "explicit"


def test_config_for_environment():
    assert ClientConfig.for_environment("production").base_url == "https://api.skillbase.com"
    assert ClientConfig.for_environment(Environment.DEVELOPMENT).base_url == "http://localhost:3000"
