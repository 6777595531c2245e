# src/twitter_auth_bff/config.py

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, List, Union

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

logger = logging.getLogger("twitter_auth_bff.config")

# .env is at the service root, two levels up from src/twitter_auth_bff/
CONFIG_FILE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT_DIR = CONFIG_FILE_DIR.parent.parent
ENV_FILE_PATH = PROJECT_ROOT_DIR / ".env"

DEFAULT_SCOPES = ["tweet.read", "users.read", "offline.access"]


class Settings(BaseSettings):
    # === Twitter OAuth2 client ===
    TWITTER_CLIENT_ID: str
    TWITTER_CLIENT_SECRET: str
    TWITTER_REDIRECT_URI: AnyHttpUrl
    # Comma-separated in the environment, List[str] after validation
    TWITTER_SCOPES: Union[str, List[str]] = DEFAULT_SCOPES
    TWITTER_AUTHORIZE_URL: AnyHttpUrl = "https://twitter.com/i/oauth2/authorize"
    TWITTER_TOKEN_URL: AnyHttpUrl = "https://api.twitter.com/2/oauth2/token"
    TOKEN_EXCHANGE_TIMEOUT: float = 10.0

    # === Browser / CORS ===
    CORS_ALLOWED_ORIGIN: str = "http://localhost:3000"

    # === Session Management ===
    SESSION_SECRET_KEY: str
    SESSION_COOKIE_NAME: str = "session_id"
    SESSION_COOKIE_SECURE: bool = False  # Set to True in production with HTTPS
    SESSION_COOKIE_MAX_AGE: int = 60 * 60 * 4  # 4 hours
    SESSION_CLEANUP_INTERVAL: float = 300.0  # seconds between expired-session sweeps

    # === Server ===
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    PUBLIC_DIR: Path = PROJECT_ROOT_DIR / "public"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False
    )

    @field_validator("TWITTER_SCOPES", mode='before')
    @classmethod
    def parse_comma_separated_scopes(cls, v: Any) -> List[str]:
        if isinstance(v, str):
            return [scope.strip() for scope in v.split(',') if scope.strip()]
        if isinstance(v, (list, tuple)):
            return list(v)
        raise TypeError('TWITTER_SCOPES: Expected a comma-separated string or a list.')

    @field_validator("SESSION_SECRET_KEY")
    @classmethod
    def require_session_secret(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("SESSION_SECRET_KEY must not be blank.")
        return v

    @model_validator(mode='after')
    def check_final_scopes(self) -> 'Settings':
        if not isinstance(self.TWITTER_SCOPES, list) or not self.TWITTER_SCOPES:
            raise ValueError("TWITTER_SCOPES must contain at least one scope.")
        return self


def load_settings(**overrides: Any) -> Settings:
    """
    Builds Settings from the environment (and the service .env file, if any).
    Any validation problem is fatal: the service must not accept traffic
    with missing or malformed credentials.
    """
    if ENV_FILE_PATH.exists():
        load_dotenv(dotenv_path=ENV_FILE_PATH, override=True)
        logger.info("Loaded .env file from: %s", ENV_FILE_PATH)
    else:
        logger.debug(".env file not found at %s. Relying on environment variables.", ENV_FILE_PATH)

    try:
        return Settings(**overrides)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "settings" for err in e.errors())
        raise ConfigurationError(f"Invalid or missing configuration: {fields}") from e


@lru_cache
def get_settings() -> Settings:
    return load_settings()
