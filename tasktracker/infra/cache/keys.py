"""
Cache key naming.

Every reader and every writer builds keys through these helpers, so a
mutation can enumerate exactly which derived entries it makes stale.
Keys are relative; the coordinator prefixes them with its instance name.
"""

from __future__ import annotations

ALL_TASKS_PREFIX = "all_tasks:"
USERS_PREFIX = "users:"


def task(task_id: int) -> str:
    return f"task:{task_id}"


def user_tasks_page(owner: str, page: int, size: int) -> str:
    return f"user_tasks:{owner}:page:{page}:size:{size}"


def user_tasks_prefix(owner: str) -> str:
    """Prefix shared by every cached page of ``owner``'s task list."""
    return f"user_tasks:{owner}:"


def user_task_count(owner: str) -> str:
    return f"user_task_count:{owner}"


def all_tasks_page(page: int, size: int) -> str:
    return f"{ALL_TASKS_PREFIX}page:{page}:size:{size}"


def users_page(page: int, size: int) -> str:
    return f"{USERS_PREFIX}page:{page}:size:{size}"


def revoked_token(token_id: str) -> str:
    return f"revoked:at:{token_id}"
