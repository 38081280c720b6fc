"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tasktracker.api.deps import json_response, timing
from tasktracker.core.extensions import db
from tasktracker.infra.cache.coordinator import CacheCoordinator
from tasktracker.services._shared.errors import CacheUnavailableError

bp = Blueprint("health", __name__)

_CHECK_KEY = "health:check"


@bp.get("/health")
@timing
def healthcheck():
    """Report database and cache reachability. The cache is optional: ``degraded``, never ``fail``."""
    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"

    cache: CacheCoordinator = current_app.extensions["cache"]
    cache_status = "ok"
    try:
        cache.contains(_CHECK_KEY)
    except CacheUnavailableError:
        current_app.logger.warning("healthcheck.cache_unavailable")
        cache_status = "degraded"

    payload = {
        "status": "ok" if db_status == "ok" else "fail",
        "db": db_status,
        "cache": cache_status,
        "version": current_app.config.get("APP_VERSION", "dev"),
    }
    return json_response(payload, status=200 if db_status == "ok" else 503)
