"""Persistence-only repositories (no commits; the unit of work owns the transaction)."""

from tasktracker.repositories.refresh_token import RefreshTokenRepository
from tasktracker.repositories.role import RoleRepository
from tasktracker.repositories.task import TaskRepository
from tasktracker.repositories.user import UserRepository

__all__ = [
    "RefreshTokenRepository",
    "RoleRepository",
    "TaskRepository",
    "UserRepository",
]
