"""Task model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from tasktracker.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin

if TYPE_CHECKING:
    from .user import User

TASK_STATUSES: tuple[str, ...] = ("Pending", "InProgress", "Completed")


class Task(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    A unit of work owned by one user.

    Fields
    ------
    title : str
        Short summary.
    description : str
        Free text.
    status : str
        One of :data:`TASK_STATUSES` (``"Pending"`` by default).
    due_date : datetime
        Deadline (timezone-aware).
    owner_id : int
        FK to ``users.id``.
    """

    __tablename__ = "tasks"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Pending")
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    owner: Mapped[User] = relationship(back_populates="tasks", lazy="joined")

    __table_args__ = (
        CheckConstraint(
            "status IN ('Pending', 'InProgress', 'Completed')", name="status_allowed"
        ),
        Index("ix_tasks_owner_id", "owner_id"),
    )

    @validates("title")
    def _normalize_title(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Title is required.")
        return value.strip()

    @validates("status")
    def _check_status(self, key: str, value: str) -> str:
        if value not in TASK_STATUSES:
            raise ValueError(f"Status must be one of {', '.join(TASK_STATUSES)}.")
        return value
