"""Unit tests for UserRepository and RoleRepository."""

from __future__ import annotations

import pytest

from tasktracker.repositories.role import RoleRepository
from tasktracker.repositories.user import UserRepository


class TestUserRepository:
    @pytest.fixture()
    def repo(self, session):
        return UserRepository(session=session)

    def test_get_by_login_accepts_username_or_email(self, repo, user):
        assert repo.get_by_login("alice").id == user.id
        assert repo.get_by_login("  Alice@Example.com ").id == user.id
        assert repo.get_by_login("nobody") is None

    def test_get_by_public_id(self, repo, user):
        assert repo.get_by_public_id(user.public_id).username == "alice"
        assert repo.get_by_public_id("0" * 32) is None

    def test_exists_by_login(self, repo, user):
        assert repo.exists_by_login("alice", "other@example.com")
        assert repo.exists_by_login("other", "alice@example.com")
        assert not repo.exists_by_login("other", "other@example.com")

    def test_exists_by_login_can_ignore_the_account_being_edited(self, repo, user):
        assert not repo.exists_by_login("alice", "alice@example.com", exclude_id=user.id)
        assert repo.exists_by_login("alice", "x@example.com", exclude_id=user.id + 1)

    def test_update_rejects_non_whitelisted_fields(self, repo, user):
        with pytest.raises(ValueError):
            repo.update(user, public_id="forged")


class TestRoleRepository:
    def test_ensure_is_idempotent(self, session):
        repo = RoleRepository(session=session)
        assert repo.ensure(["User", "Admin"]) == []
        assert repo.ensure(["Auditor", "User"]) == ["Auditor"]
        assert repo.get_by_name("Auditor") is not None
