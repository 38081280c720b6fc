"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

PLACEHOLDER_SECRET: Final[str] = "CHANGE_ME_JWT"

# Loads .env during development (no-op when the file does not exist)
load_dotenv()


class ConfigurationError(RuntimeError):
    """Raised at startup when the configuration cannot produce a working app."""


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable, falling back to ``default``."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {val!r}") from exc


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret. Defaults to a development-safe placeholder.
    JWT_SECRET_KEY: str
        Symmetric key signing access tokens (HS256).
    JWT_ISSUER: str
        ``iss`` claim written to and required from access tokens.
    JWT_AUDIENCE: str
        ``aud`` claim written to and required from access tokens.
    ACCESS_TOKEN_TTL_MINUTES: int
        Access token lifetime.
    REFRESH_TOKEN_TTL_DAYS: int
        Refresh token lifetime.
    REFRESH_TOKEN_BACKEND: str
        ``"sql"`` (durable table), ``"redis"`` or ``"memory"``.
    LOGOUT_REVOKES_REFRESH: bool
        Close the refresh path too when an access token is logged out.
    REFRESH_REUSE_REVOKES_SESSION: bool
        Treat a stale refresh token as theft and revoke the active one.
    REVOCATION_FAIL_OPEN: bool
        When the cache is unreachable, treat tokens as not revoked.
    REDIS_URL: str | None
        Cache backend. When unset an in-process cache is used.
    CACHE_DEFAULT_TTL_SECONDS: int
        TTL applied to cache writes without an explicit override.
    CACHE_INSTANCE_NAME: str
        Namespace prepended to every cache key.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", PLACEHOLDER_SECRET)
    JWT_ISSUER = os.getenv("JWT_ISSUER", "tasktracker")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "tasktracker-clients")

    # Token lifetimes
    ACCESS_TOKEN_TTL_MINUTES = env_int("ACCESS_TOKEN_TTL_MINUTES", 15)
    REFRESH_TOKEN_TTL_DAYS = env_int("REFRESH_TOKEN_TTL_DAYS", 7)

    # Session policy
    REFRESH_TOKEN_BACKEND = os.getenv("REFRESH_TOKEN_BACKEND", "sql")
    LOGOUT_REVOKES_REFRESH = env_bool("LOGOUT_REVOKES_REFRESH", True)
    REFRESH_REUSE_REVOKES_SESSION = env_bool("REFRESH_REUSE_REVOKES_SESSION", True)
    REVOCATION_FAIL_OPEN = env_bool("REVOCATION_FAIL_OPEN", True)

    # Cache
    REDIS_URL = os.getenv("REDIS_URL") or None
    CACHE_DEFAULT_TTL_SECONDS = env_int("CACHE_DEFAULT_TTL_SECONDS", 900)
    CACHE_INSTANCE_NAME = os.getenv("CACHE_INSTANCE_NAME", "TaskManagementAPI")

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & proxy
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    USE_PROXYFIX = env_bool("USE_PROXYFIX", True)

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development."""

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Never talks to Redis; the in-process cache backend is used.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = True
    JWT_SECRET_KEY = "testing-secret-key-with-at-least-32-bytes!!"
    REDIS_URL = None
    USE_PROXYFIX = False


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    :func:`validate_config` refuses the placeholder signing secret here.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


# --------------------------------------------------------------------------- #
# Typed views over the Flask config
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthSettings:
    """
    Immutable token/session settings derived from the Flask config.

    :param secret_key: HMAC signing key.
    :param issuer: ``iss`` claim.
    :param audience: ``aud`` claim.
    :param access_ttl: Access token lifetime.
    :param refresh_ttl: Refresh token lifetime.
    :param logout_revokes_refresh: Revoke the refresh token on logout.
    :param reuse_revokes_session: Revoke the active refresh token on reuse.
    :param revocation_fail_open: Blacklist policy when the cache is down.
    """

    secret_key: str
    issuer: str
    audience: str
    access_ttl: timedelta
    refresh_ttl: timedelta
    logout_revokes_refresh: bool = True
    reuse_revokes_session: bool = True
    revocation_fail_open: bool = True

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> AuthSettings:
        """Build settings from a Flask ``app.config``-like mapping."""
        access_minutes = int(config.get("ACCESS_TOKEN_TTL_MINUTES", 15))
        refresh_days = int(config.get("REFRESH_TOKEN_TTL_DAYS", 7))
        if access_minutes <= 0 or refresh_days <= 0:
            raise ConfigurationError("Token lifetimes must be positive.")
        return cls(
            secret_key=str(config.get("JWT_SECRET_KEY") or ""),
            issuer=str(config.get("JWT_ISSUER", "tasktracker")),
            audience=str(config.get("JWT_AUDIENCE", "tasktracker-clients")),
            access_ttl=timedelta(minutes=access_minutes),
            refresh_ttl=timedelta(days=refresh_days),
            logout_revokes_refresh=bool(config.get("LOGOUT_REVOKES_REFRESH", True)),
            reuse_revokes_session=bool(config.get("REFRESH_REUSE_REVOKES_SESSION", True)),
            revocation_fail_open=bool(config.get("REVOCATION_FAIL_OPEN", True)),
        )


@dataclass(frozen=True, slots=True)
class CacheSettings:
    """
    Cache coordinator settings.

    :param default_ttl: TTL applied when a write has no override.
    :param instance_name: Namespace prepended to every key.
    :param redis_url: Redis connection URL, ``None`` for the in-process backend.
    """

    default_ttl: timedelta
    instance_name: str
    redis_url: str | None = None

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> CacheSettings:
        seconds = int(config.get("CACHE_DEFAULT_TTL_SECONDS", 900))
        if seconds <= 0:
            raise ConfigurationError("CACHE_DEFAULT_TTL_SECONDS must be positive.")
        return cls(
            default_ttl=timedelta(seconds=seconds),
            instance_name=str(config.get("CACHE_INSTANCE_NAME") or "TaskManagementAPI"),
            redis_url=config.get("REDIS_URL") or None,
        )


def validate_config(config: Mapping[str, Any]) -> None:
    """
    Fail fast on settings that would break every request later.

    :param config: Flask config mapping.
    :raises ConfigurationError: On a missing signing secret, the placeholder
        secret outside development/testing, or an unknown refresh backend.
    """
    secret = config.get("JWT_SECRET_KEY")
    if not secret:
        raise ConfigurationError("JWT_SECRET_KEY is required.")
    if secret == PLACEHOLDER_SECRET and not (config.get("DEBUG") or config.get("TESTING")):
        raise ConfigurationError("JWT_SECRET_KEY still holds the placeholder value.")
    backend = str(config.get("REFRESH_TOKEN_BACKEND", "sql")).lower()
    if backend not in {"sql", "redis", "memory"}:
        raise ConfigurationError(f"Unknown REFRESH_TOKEN_BACKEND: {backend!r}")
    if backend == "redis" and not config.get("REDIS_URL"):
        raise ConfigurationError("REFRESH_TOKEN_BACKEND='redis' requires REDIS_URL.")
