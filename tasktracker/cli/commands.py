"""Flask CLI commands for operating the task tracker."""

from __future__ import annotations

import logging

import click
from flask import current_app
from flask.cli import with_appcontext

from tasktracker.models.role import ADMIN, DEFAULT_ROLES, USER
from tasktracker.models.user import User
from tasktracker.services.users.service import USERS_LIST
from tasktracker.uow import SQLAlchemyUnitOfWork

LOGGER = logging.getLogger(__name__)


def _echo_summary(title: str, counters: dict[str, int]) -> None:
    """Print ``key=value`` counters under a heading."""
    click.echo(f"{title}:")
    width = max((len(name) for name in counters), default=0)
    for name, value in counters.items():
        click.echo(f"  {name.ljust(width)}  {value:>3}")


# --------------------------------------------------------------------------- #
# roles
# --------------------------------------------------------------------------- #


@click.group("roles")
def roles_cli() -> None:
    """Role management commands."""


@roles_cli.command("seed")
@with_appcontext
def seed_roles_command() -> None:
    """Create the default roles (idempotent)."""
    with SQLAlchemyUnitOfWork() as uow:
        created = uow.roles.ensure(DEFAULT_ROLES)
    LOGGER.info("cli.roles_seeded", extra={"reason": ",".join(created) or "none"})
    _echo_summary(
        "Roles", {"created": len(created), "existing": len(DEFAULT_ROLES) - len(created)}
    )


# --------------------------------------------------------------------------- #
# users
# --------------------------------------------------------------------------- #


@click.group("users")
def users_cli() -> None:
    """User management commands."""


@users_cli.command("create-admin")
@click.option("--username", required=True)
@click.option("--email", required=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--country", default=None)
@with_appcontext
def create_admin_command(username: str, email: str, password: str, country: str | None) -> None:
    """Create an administrator, or grant the role to an existing account."""
    with SQLAlchemyUnitOfWork() as uow:
        uow.roles.ensure(DEFAULT_ROLES)
        admin_role = uow.roles.get_by_name(ADMIN)
        user_role = uow.roles.get_by_name(USER)
        user = uow.users.get_by_login(username) or uow.users.get_by_login(email)
        created = user is None
        if created:
            try:
                user = User(username=username, email=email, country=country)
                user.password = password
            except ValueError as exc:
                raise click.BadParameter(str(exc)) from exc
            uow.users.add(user)
        for role in (user_role, admin_role):
            if role is not None and role not in user.roles:
                user.roles.append(role)
        uow.users.flush()
        principal = user.public_id
    current_app.extensions["cache"].invalidate(USERS_LIST)
    LOGGER.info("cli.admin_ready", extra={"principal": principal})
    click.echo(f"{'Created' if created else 'Updated'} admin {username} ({principal})")


# --------------------------------------------------------------------------- #
# sessions
# --------------------------------------------------------------------------- #


@click.group("sessions")
def sessions_cli() -> None:
    """Session maintenance commands."""


@sessions_cli.command("purge")
@with_appcontext
def purge_sessions_command() -> None:
    """Delete refresh tokens past their expiry."""
    store = current_app.extensions["refresh_store"]
    now = current_app.extensions["clock"].now()
    removed = store.purge_expired(now)
    LOGGER.info("cli.sessions_purged", extra={"reason": str(removed)})
    _echo_summary("Sessions", {"purged": removed})
