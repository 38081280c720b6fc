"""Pytest fixtures building an isolated application per test.

Each test gets a fresh Flask app bound to its own in-memory SQLite database
and in-process cache, driven by a :class:`FrozenClock` so token lifetimes
can be crossed deterministically.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from typing import Any

import pytest
from flask import Flask

from tasktracker.core.clock import FrozenClock
from tasktracker.core.config import TestingConfig
from tasktracker.core.extensions import db as _db
from tasktracker.factory import create_app
from tasktracker.models.role import DEFAULT_ROLES
from tasktracker.models.user import User
from tasktracker.uow import SQLAlchemyUnitOfWork

DEFAULT_PASSWORD = "Passw0rd!"


@pytest.fixture()
def clock() -> FrozenClock:
    """Manually driven clock shared by every component of the app."""
    return FrozenClock()


@pytest.fixture()
def config_overrides() -> dict[str, Any]:
    """Extra configuration for the ``app`` fixture; override in a module to tweak."""
    return {}


@pytest.fixture()
def app(clock: FrozenClock, config_overrides: dict[str, Any]) -> Generator[Flask, None, None]:
    """Create a Flask application configured for testing.

    Yields
    ------
    flask.Flask
        Application with an active app context and a created schema.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    config = type("PerTestConfig", (TestingConfig,), {"CLOCK": clock, **config_overrides})
    application = create_app(config, instance_relative_config=False)
    application.logger.setLevel("WARNING")
    with application.app_context():
        _db.create_all()
        with SQLAlchemyUnitOfWork() as uow:
            uow.roles.ensure(DEFAULT_ROLES)
        yield application
        _db.session.remove()
        _db.drop_all()


@pytest.fixture()
def db(app: Flask):
    """Database extension bound to the testing application."""
    return _db


@pytest.fixture()
def session(db):
    """The scoped session used by repositories and factories."""
    return db.session


@pytest.fixture()
def client(app: Flask):
    """Return a Flask test client."""
    return app.test_client()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Hook up Factory Boy to the app session ------------------------------------
@pytest.fixture(autouse=True)
def _factories_session(request):
    """Wire Factory Boy's session helper when the test uses the database."""
    from tests.factories import SQLAlchemySession

    if "app" in request.fixturenames:
        SQLAlchemySession.set(request.getfixturevalue("session"))
    yield
    SQLAlchemySession.set(None)


# -- Domain helpers ---------------------------------------------------------------
@pytest.fixture()
def make_user(session) -> Callable[..., User]:
    """Factory fixture persisting a user with the given roles."""
    from tests.factories.user import UserFactory

    def _make(*, roles: tuple[str, ...] = ("User",), **kwargs: Any) -> User:
        user = UserFactory(roles=roles, **kwargs)
        session.commit()
        return user

    return _make


@pytest.fixture()
def user(make_user) -> User:
    return make_user(username="alice", email="alice@example.com")


@pytest.fixture()
def admin(make_user) -> User:
    return make_user(username="root", email="root@example.com", roles=("User", "Admin"))


@pytest.fixture()
def login(client) -> Callable[..., dict[str, Any]]:
    """Log in through the API and return the ``data`` envelope."""

    def _login(username: str, password: str = DEFAULT_PASSWORD) -> dict[str, Any]:
        resp = client.post("/api/v1/auth/login", json={"username": username, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()["data"]

    return _login
