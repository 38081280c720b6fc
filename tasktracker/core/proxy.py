"""WSGI proxy middleware configuration helper."""

from __future__ import annotations

from flask import Flask, request
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Apply :class:`werkzeug.middleware.proxy_fix.ProxyFix` when enabled.

    Refresh tokens record the address of the client that obtained them, so
    behind a reverse proxy ``request.remote_addr`` must be rewritten from
    ``X-Forwarded-For``. Controlled by ``USE_PROXYFIX`` (one trusted hop).
    """
    if app.config.get("USE_PROXYFIX", True):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)


def client_address() -> str:
    """Return the calling client's address for the current request."""
    return request.remote_addr or "unknown"
