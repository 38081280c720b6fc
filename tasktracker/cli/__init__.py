"""Command-line interface registration for the Flask application."""

from __future__ import annotations

from flask import Flask

from .commands import roles_cli, sessions_cli, users_cli


def init_app(app: Flask) -> None:
    """Register application-specific CLI command groups.

    Parameters
    ----------
    app:
        Flask application instance whose CLI registry receives the ``roles``,
        ``users`` and ``sessions`` groups.
    """
    for group in (roles_cli, users_cli, sessions_cli):
        app.cli.add_command(group)
