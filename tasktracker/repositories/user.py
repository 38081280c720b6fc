"""User repository: lookups used by the User Directory and the CLI."""

from __future__ import annotations

from typing import cast

from sqlalchemy import or_, select

from tasktracker.models.user import User
from tasktracker.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It never issues tokens; it only finds users and their roles.
    """

    model = User

    def _sortable_fields(self):
        return {
            "id": User.id,
            "username": User.username,
            "created_at": User.created_at,
        }

    def _filterable_fields(self):
        return {
            "email": User.email,
            "username": User.username,
            "public_id": User.public_id,
        }

    def _updatable_fields(self):
        return {"email", "username", "country"}

    def get_by_public_id(self, public_id: str) -> User | None:
        stmt = select(User).where(User.public_id == public_id)
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def get_by_login(self, login: str) -> User | None:
        """Fetch a user by username or email.

        :param login: Username (exact, trimmed) or email (case-insensitive).
        :returns: Matching user or ``None``.
        """
        value = login.strip()
        stmt = select(User).where(or_(User.username == value, User.email == value.lower()))
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def exists_by_login(self, username: str, email: str, *, exclude_id: int | None = None) -> bool:
        """Whether another account already uses ``username`` or ``email``.

        :param exclude_id: Account to ignore (the one being updated).
        """
        stmt = select(User.id).where(
            or_(User.username == username.strip(), User.email == email.strip().lower())
        )
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        return self.session.execute(stmt).first() is not None
