"""Tests for settings loading."""

from __future__ import annotations

import pytest

from twitter_auth_bff import config
from twitter_auth_bff.config import get_settings, load_settings
from twitter_auth_bff.exceptions import ConfigurationError
from twitter_auth_bff.main import create_app


REQUIRED = {
    "TWITTER_CLIENT_ID": "cid",
    "TWITTER_CLIENT_SECRET": "csecret",
    "TWITTER_REDIRECT_URI": "http://localhost:8000/auth/twitter/callback",
    "SESSION_SECRET_KEY": "secret",
}


@pytest.fixture()
def clean_env(monkeypatch, tmp_path):
    """No required variables in the environment and no .env file."""
    for name in [*REQUIRED, "TWITTER_SCOPES", "SESSION_COOKIE_SECURE"]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "ENV_FILE_PATH", tmp_path / ".env")
    monkeypatch.setitem(config.Settings.model_config, "env_file", None)
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


def test_loads_from_environment(clean_env) -> None:
    for name, value in REQUIRED.items():
        clean_env.setenv(name, value)

    settings = load_settings()

    assert settings.TWITTER_CLIENT_ID == "cid"
    assert str(settings.TWITTER_REDIRECT_URI) == "http://localhost:8000/auth/twitter/callback"
    assert settings.TWITTER_SCOPES == ["tweet.read", "users.read", "offline.access"]
    assert settings.SESSION_COOKIE_SECURE is False
    assert settings.CORS_ALLOWED_ORIGIN == "http://localhost:3000"
    assert settings.PORT == 8000


def test_scopes_are_comma_separated(clean_env) -> None:
    for name, value in REQUIRED.items():
        clean_env.setenv(name, value)
    clean_env.setenv("TWITTER_SCOPES", "tweet.read, users.read,,offline.access")

    assert load_settings().TWITTER_SCOPES == ["tweet.read", "users.read", "offline.access"]


def test_secure_cookie_flag_from_env(clean_env) -> None:
    for name, value in REQUIRED.items():
        clean_env.setenv(name, value)
    clean_env.setenv("SESSION_COOKIE_SECURE", "true")

    assert load_settings().SESSION_COOKIE_SECURE is True


def test_missing_credentials_are_fatal(clean_env) -> None:
    clean_env.setenv("SESSION_SECRET_KEY", "secret")

    with pytest.raises(ConfigurationError) as exc_info:
        load_settings()

    message = str(exc_info.value)
    assert "TWITTER_CLIENT_ID" in message
    assert "TWITTER_CLIENT_SECRET" in message
    assert "TWITTER_REDIRECT_URI" in message


def test_blank_session_secret_is_fatal(clean_env) -> None:
    for name, value in REQUIRED.items():
        clean_env.setenv(name, value)
    clean_env.setenv("SESSION_SECRET_KEY", "   ")

    with pytest.raises(ConfigurationError, match="SESSION_SECRET_KEY"):
        load_settings()


def test_invalid_redirect_uri_is_fatal(clean_env) -> None:
    for name, value in REQUIRED.items():
        clean_env.setenv(name, value)
    clean_env.setenv("TWITTER_REDIRECT_URI", "not a url")

    with pytest.raises(ConfigurationError, match="TWITTER_REDIRECT_URI"):
        load_settings()


def test_create_app_refuses_to_start_without_config(clean_env) -> None:
    with pytest.raises(ConfigurationError):
        create_app()
