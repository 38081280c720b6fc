"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

import logging

import redis
from flask import Flask
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import MetaData

log = logging.getLogger(__name__)

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)


def init_app(app: Flask) -> None:
    """Initialize SQLAlchemy, migrations and the optional Redis client.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. This call imports the
        :mod:`tasktracker.models` package so the metadata is complete before
        migrations run.

    Notes
    -----
    Redis is optional for the cache: an unreachable server at startup is
    logged and the client is still registered, because cache operations
    degrade to misses instead of failing requests. It is mandatory only for
    ``REFRESH_TOKEN_BACKEND='redis'``, which is checked by the factory.
    """
    db.init_app(app)

    from tasktracker import models as _models  # noqa: F401

    migrate.init_app(app, db)

    redis_url = app.config.get("REDIS_URL")
    if not redis_url:
        app.extensions.pop("redis_client", None)
        return

    client = redis.Redis.from_url(
        redis_url,
        socket_timeout=float(app.config.get("REDIS_SOCKET_TIMEOUT", 2.0)),
        socket_connect_timeout=float(app.config.get("REDIS_SOCKET_TIMEOUT", 2.0)),
    )
    try:
        client.ping()
    except redis.RedisError:
        log.warning("redis.unreachable_at_startup", extra={"backend": redis_url}, exc_info=True)
    app.extensions["redis_client"] = client


def get_redis(app: Flask) -> redis.Redis | None:
    """Return the Redis client registered on ``app`` (``None`` when not configured)."""
    return app.extensions.get("redis_client")
