"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import LoginSchema, RefreshSchema, SessionTokensSchema, WhoAmISchema
from .common import MetaSchema, PaginationQuerySchema
from .task import TaskCreateSchema, TaskSchema, TaskUpdateSchema
from .user import RegisterSchema, UserSchema, UserUpdateSchema

__all__ = [
    "LoginSchema",
    "RefreshSchema",
    "SessionTokensSchema",
    "WhoAmISchema",
    "PaginationQuerySchema",
    "MetaSchema",
    "TaskSchema",
    "TaskCreateSchema",
    "TaskUpdateSchema",
    "RegisterSchema",
    "UserSchema",
    "UserUpdateSchema",
]
