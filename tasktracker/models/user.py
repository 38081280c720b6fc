"""User model: the system of record behind the User Directory."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import uuid4

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from werkzeug.security import check_password_hash, generate_password_hash

from tasktracker.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin
from .role import Role, user_roles

if TYPE_CHECKING:
    from .task import Task


def _new_public_id() -> str:
    return uuid4().hex


class User(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Account able to log in and own tasks.

    Fields
    ------
    public_id : str
        Stable opaque identifier used as the token principal (``sub``).
        The integer ``id`` never leaves the database layer.
    email : str
        Stored normalized (lowercase, trimmed).
    username : str
        Login handle. Unique.
    password_hash : str
        Hashed password (write-only setter via ``password``).
    country : str | None
        Free-form country of residence.
    roles : list[Role]
        Granted roles, loaded eagerly.
    """

    __tablename__ = "users"

    public_id: Mapped[str] = mapped_column(String(32), nullable=False, default=_new_public_id)
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(254), nullable=False)
    country: Mapped[str | None] = mapped_column(String(64), nullable=True)

    roles: Mapped[list[Role]] = relationship(secondary=user_roles, lazy="selectin")
    tasks: Mapped[list[Task]] = relationship(
        back_populates="owner", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        UniqueConstraint("public_id", name="uq_users_public_id"),
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("username", name="uq_users_username"),
        Index("ix_users_username", "username"),
    )

    # -------------------- Password API --------------------
    @property
    def password(self) -> Any:  # pragma: no cover - explicit write-only contract
        raise AttributeError("Password is write-only.")

    @password.setter
    def password(self, raw: str) -> None:
        """
        Hash and set the password.

        :param raw: Plain text password to hash.
        :raises ValueError: If empty.
        """
        if not isinstance(raw, str) or not raw:
            raise ValueError("Password must be a non-empty string.")
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        if not self.password_hash:
            return False
        return bool(check_password_hash(self.password_hash, raw))

    # -------------------- Roles --------------------
    @property
    def role_names(self) -> set[str]:
        return {role.name for role in self.roles}

    def has_role(self, name: str) -> bool:
        return name in self.role_names

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("username")
    def _normalize_username(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Username is required.")
        return value.strip()
