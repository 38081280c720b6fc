"""
Unit tests for UserService: registration, profile updates, admin listing
and account deletion (tasks, session and cache entries go with the account).
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from sqlalchemy import select

from tasktracker.infra.cache import keys
from tasktracker.models.task import Task
from tasktracker.services._shared.dto import PaginationIn
from tasktracker.services._shared.errors import (
    AuthorizationError,
    ConflictError,
    InvalidTokenError,
)
from tasktracker.services.auth.dto import LoginIn
from tasktracker.services.users.dto import UserRegisterIn, UserUpdateIn
from tests.factories.task import TaskFactory


@pytest.fixture
def service(app):
    return app.extensions["user_service"]


@pytest.fixture
def sessions(app):
    return app.extensions["session_service"]


@pytest.fixture
def cache(app):
    return app.extensions["cache"]


def open_session(sessions, username, password="Passw0rd!"):
    tokens = sessions.login(LoginIn(username, password))
    return tokens, sessions.authenticate(tokens.access_token)


class TestRegister:
    def test_register_grants_the_user_role_and_can_log_in(self, service, sessions):
        out = service.register(UserRegisterIn("carol", "Carol@Example.com", "s3cret-pw", "PT"))

        assert out.roles == ["User"]
        assert out.email == "carol@example.com"
        _, identity = open_session(sessions, "carol", "s3cret-pw")
        assert identity.principal == out.id
        assert identity.roles == frozenset({"User"})

    @pytest.mark.parametrize(
        ("username", "email"), [("alice", "new@example.com"), ("new", "ALICE@example.com")]
    )
    def test_duplicate_username_or_email(self, service, user, username, email):
        with pytest.raises(ConflictError):
            service.register(UserRegisterIn(username, email, "s3cret-pw"))


class TestListUsers:
    def test_requires_admin(self, service, sessions, user):
        _, identity = open_session(sessions, "alice")
        with pytest.raises(AuthorizationError):
            service.list_users(identity, PaginationIn())

    def test_pages_are_cached_and_dropped_on_registration(self, service, sessions, cache, admin):
        _, identity = open_session(sessions, "root")

        assert service.list_users(identity, PaginationIn()).meta.total == 1
        assert cache.get(keys.users_page(1, 10)) is not None

        service.register(UserRegisterIn("carol", "carol@example.com", "s3cret-pw"))

        assert cache.get(keys.users_page(1, 10)) is None
        page = service.list_users(identity, PaginationIn())
        assert [u.username for u in page.items] == ["root", "carol"]


class TestUpdateSelf:
    def test_updates_whitelisted_fields(self, service, sessions, user):
        _, identity = open_session(sessions, "alice")

        out = service.update_self(identity, UserUpdateIn({"username": "alice2", "country": "FR"}))

        assert (out.username, out.country) == ("alice2", "FR")
        assert service.get_self(identity).username == "alice2"

    def test_keeping_own_email_is_not_a_conflict(self, service, sessions, user):
        _, identity = open_session(sessions, "alice")
        out = service.update_self(identity, UserUpdateIn({"email": "alice@example.com"}))
        assert out.email == "alice@example.com"

    def test_taking_someone_elses_email_is_a_conflict(self, service, sessions, user, make_user):
        make_user(username="bob", email="bob@example.com")
        _, identity = open_session(sessions, "alice")

        with pytest.raises(ConflictError):
            service.update_self(identity, UserUpdateIn({"email": "bob@example.com"}))


class TestDeleteSelf:
    def test_account_tasks_session_and_cache_entries_are_gone(
        self, app, service, sessions, cache, user, session
    ):
        tasks = TaskFactory.create_batch(2, owner=user, due_date=datetime(2026, 3, 1, tzinfo=UTC))
        session.commit()
        task_ids = [t.id for t in tasks]
        tokens, identity = open_session(sessions, "alice")
        task_service = app.extensions["task_service"]
        task_service.get(identity, task_ids[0])
        task_service.count_for_owner(identity)

        service.delete_self(identity)

        assert session.execute(select(Task.id).where(Task.id.in_(task_ids))).first() is None
        assert cache.get(keys.task(task_ids[0])) is None
        assert cache.get(keys.user_task_count(identity.principal)) is None
        assert app.extensions["refresh_store"].get(identity.principal) is None
        with pytest.raises(InvalidTokenError):
            sessions.authenticate(tokens.access_token)

    def test_other_accounts_are_untouched(self, service, sessions, user, make_user, session):
        bob = make_user(username="bob", email="bob@example.com")
        TaskFactory(owner=bob)
        session.commit()
        _, bob_identity = open_session(sessions, "bob")
        _, alice_identity = open_session(sessions, "alice")

        service.delete_self(alice_identity)

        assert service.get_self(bob_identity).username == "bob"
        assert session.execute(select(Task.id)).first() is not None
