"""Role model and the user/role association table."""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, String, Table, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tasktracker.core.extensions import db

from .base import PKMixin, ReprMixin

ADMIN = "Admin"
USER = "User"
DEFAULT_ROLES: tuple[str, ...] = (ADMIN, USER)

user_roles = Table(
    "user_roles",
    db.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Role(PKMixin, ReprMixin, db.Model):
    """
    Named role granted to users (``Admin``, ``User``).

    Fields
    ------
    name : str
        Unique role name, case preserved.
    """

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(String(32), nullable=False)

    __table_args__ = (UniqueConstraint("name", name="uq_roles_name"),)
