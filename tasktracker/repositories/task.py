"""Task repository."""

from __future__ import annotations

from typing import cast

from sqlalchemy import delete, select
from sqlalchemy.engine import CursorResult

from tasktracker.models.task import Task
from tasktracker.repositories.base import BaseRepository, Page, Pagination


class TaskRepository(BaseRepository[Task]):
    """Persistence-only repository for :class:`Task`."""

    model = Task

    def _sortable_fields(self):
        return {
            "id": Task.id,
            "title": Task.title,
            "status": Task.status,
            "due_date": Task.due_date,
            "created_at": Task.created_at,
        }

    def _filterable_fields(self):
        return {
            "owner_id": Task.owner_id,
            "status": Task.status,
        }

    def _updatable_fields(self):
        return {"title", "description", "status", "due_date"}

    def page_for_owner(self, owner_id: int, pagination: Pagination) -> Page[Task]:
        return self.paginate(pagination, filters={"owner_id": owner_id})

    def count_for_owner(self, owner_id: int) -> int:
        return self.count(owner_id=owner_id)

    def ids_for_owner(self, owner_id: int) -> list[int]:
        stmt = select(Task.id).where(Task.owner_id == owner_id)
        return list(self.session.execute(stmt).scalars())

    def delete_for_owner(self, owner_id: int) -> int:
        """Bulk-delete every task of ``owner_id``; independent of FK cascades."""
        stmt = (
            delete(Task)
            .where(Task.owner_id == owner_id)
            .execution_options(synchronize_session=False)
        )
        return int(cast(CursorResult, self.session.execute(stmt)).rowcount or 0)
