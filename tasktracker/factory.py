"""Application factory wiring Flask extensions, services and blueprints."""

from __future__ import annotations

import logging

from flask import Flask

from tasktracker.core.clock import Clock, SystemClock
from tasktracker.core.config import (
    AuthSettings,
    BaseConfig,
    CacheSettings,
    ConfigurationError,
    get_config,
    validate_config,
)
from tasktracker.core.logger import configure_logging, init_app as init_logging

log = logging.getLogger(__name__)


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    Parameters
    ----------
    config:
        Configuration object or import path. Defaults to the class selected
        by ``APP_ENV``.
    instance_relative_config:
        Whether an optional ``instance/<instance_config_filename>`` overrides
        the selected configuration.

    Notes
    -----
    A ``CLOCK`` entry in the configuration replaces the wall clock for every
    time-dependent component (tests inject a :class:`FrozenClock`).
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    validate_config(app.config)
    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    # Proxy headers if running behind a reverse proxy
    from tasktracker.core import proxy

    proxy.init_app(app)

    from tasktracker.core import extensions

    extensions.init_app(app)

    init_logging(app)

    _init_services(app)

    from tasktracker.api import init_app as init_api

    init_api(app)

    from tasktracker.core import errors

    errors.init_app(app)

    from tasktracker import cli as app_cli

    app_cli.init_app(app)

    return app


# --------------------------------------------------------------------------- #
# Service wiring
# --------------------------------------------------------------------------- #


def _build_refresh_store(app: Flask, settings: AuthSettings):
    from tasktracker.core.extensions import get_redis

    backend = str(app.config.get("REFRESH_TOKEN_BACKEND", "sql")).lower()
    if backend == "sql":
        from tasktracker.infra.sql.sql_refresh_token_store import SQLRefreshTokenStore

        return SQLRefreshTokenStore(ttl=settings.refresh_ttl)
    if backend == "redis":
        from tasktracker.infra.redis.redis_refresh_token_store import RedisRefreshTokenStore

        client = get_redis(app)
        if client is None:
            raise ConfigurationError("REFRESH_TOKEN_BACKEND='redis' requires REDIS_URL.")
        return RedisRefreshTokenStore(r=client, ttl=settings.refresh_ttl)

    from tasktracker.services._shared.ports import InMemoryRefreshTokenStore

    return InMemoryRefreshTokenStore(ttl=settings.refresh_ttl)


def _init_services(app: Flask) -> None:
    """Construct the cache, token and session components and register them."""
    from tasktracker.api.deps import SESSION_SERVICE_KEY, TASK_SERVICE_KEY, USER_SERVICE_KEY
    from tasktracker.core.extensions import get_redis
    from tasktracker.infra.cache.backend import InMemoryCacheBackend
    from tasktracker.infra.cache.coordinator import CacheCoordinator
    from tasktracker.infra.jwt.token_codec import JWTTokenCodec
    from tasktracker.services.auth.directory import SQLAlchemyUserDirectory
    from tasktracker.services.auth.revocation import RevocationRegistry
    from tasktracker.services.auth.service import SessionService
    from tasktracker.services.tasks.service import TaskService
    from tasktracker.services.users.service import UserService

    clock: Clock = app.config.get("CLOCK") or SystemClock()
    auth_settings = AuthSettings.from_mapping(app.config)
    cache_settings = CacheSettings.from_mapping(app.config)

    backend = get_redis(app) or InMemoryCacheBackend(clock=clock)
    cache = CacheCoordinator(
        backend,
        default_ttl=cache_settings.default_ttl,
        instance_name=cache_settings.instance_name,
    )
    revocations = RevocationRegistry(
        cache, clock=clock, fail_open=auth_settings.revocation_fail_open
    )
    refresh_store = _build_refresh_store(app, auth_settings)

    app.extensions["clock"] = clock
    app.extensions["cache"] = cache
    app.extensions["refresh_store"] = refresh_store
    app.extensions[SESSION_SERVICE_KEY] = SessionService(
        codec=JWTTokenCodec(auth_settings),
        refresh_store=refresh_store,
        revocations=revocations,
        directory=SQLAlchemyUserDirectory(),
        settings=auth_settings,
        clock=clock,
    )
    app.extensions[TASK_SERVICE_KEY] = TaskService(cache=cache, clock=clock)
    app.extensions[USER_SERVICE_KEY] = UserService(
        cache=cache, refresh_store=refresh_store, revocations=revocations, clock=clock
    )

    log.info(
        "app.services_ready",
        extra={"backend": type(refresh_store).__name__, "cache_key": cache_settings.instance_name},
    )
