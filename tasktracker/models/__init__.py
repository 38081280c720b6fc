from tasktracker.models.refresh_token import RefreshTokenRecord
from tasktracker.models.role import Role, user_roles
from tasktracker.models.task import Task
from tasktracker.models.user import User

__all__ = [
    "RefreshTokenRecord",
    "Role",
    "Task",
    "User",
    "user_roles",
]
