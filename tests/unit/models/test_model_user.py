"""Tests for the User and Role models."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from tasktracker.models.user import User


class TestUser:
    def test_password_hashing(self, session):
        u = User(email="Test@Example.com", username="tester")
        u.password = "secret123"
        session.add(u)
        session.commit()
        assert u.verify_password("secret123") is True
        assert u.verify_password("wrong") is False
        assert "secret123" not in u.password_hash

    def test_password_is_write_only(self):
        u = User(email="a@example.com", username="u1")
        u.password = "x"
        with pytest.raises(AttributeError):
            _ = u.password

    def test_empty_password_rejected(self):
        with pytest.raises(ValueError):
            User(email="a@example.com", username="u1").password = ""

    def test_public_id_is_generated_and_opaque(self, session):
        u = User(email="p@example.com", username="p")
        u.password = "pw"
        session.add(u)
        session.commit()
        assert len(u.public_id) == 32
        assert u.public_id != str(u.id)

    def test_email_normalized_and_unique(self, session):
        u1 = User(email="Alice@Example.com", username="alice")
        u1.password = "pw"
        session.add(u1)
        session.commit()
        assert u1.email == "alice@example.com"

        u2 = User(email="alice@example.com", username="alice2")
        u2.password = "pw"
        session.add(u2)
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    @pytest.mark.parametrize("email", ["", "no-at-sign", "a@nodot"])
    def test_bad_email(self, email):
        with pytest.raises(ValueError):
            User(email=email, username="u")

    def test_roles(self, make_user):
        admin = make_user(username="root", email="root@example.com", roles=("User", "Admin"))
        assert admin.role_names == {"User", "Admin"}
        assert admin.has_role("Admin")
        assert not make_user(username="u", email="u@example.com").has_role("Admin")
