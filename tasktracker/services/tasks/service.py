from __future__ import annotations

import logging

from tasktracker.core.clock import Clock
from tasktracker.infra.cache import keys
from tasktracker.infra.cache.coordinator import CacheCoordinator, Invalidation
from tasktracker.models.role import ADMIN
from tasktracker.models.task import Task
from tasktracker.services._shared.base import BaseService
from tasktracker.services._shared.dto import PageMeta, PaginationIn
from tasktracker.services._shared.errors import AuthorizationError, NotFoundError
from tasktracker.services.auth.dto import AuthenticatedIdentity
from tasktracker.services.tasks.dto import TaskCreateIn, TaskOut, TaskPageOut, TaskUpdateIn

log = logging.getLogger(__name__)


def owner_invalidation(owner: str, task_id: int | None = None) -> Invalidation:
    """
    Everything derived from ``owner``'s tasks.

    :param owner: Principal owning the mutated task.
    :param task_id: Id of the mutated task, when it already exists.
    """
    task_keys = (keys.task(task_id),) if task_id is not None else ()
    return Invalidation(
        keys=task_keys + (keys.user_task_count(owner),),
        prefixes=(keys.user_tasks_prefix(owner), keys.ALL_TASKS_PREFIX),
    )


class TaskService(BaseService):
    """
    Task use cases with read-through caching.

    Reads go through the cache coordinator; every mutation commits first and
    then removes the exact set of entries it made stale (see
    :func:`owner_invalidation`). A cache outage only costs recomputation.

    :param cache: Cache coordinator.
    :param clock: Time source.
    """

    def __init__(self, *, cache: CacheCoordinator, clock: Clock | None = None) -> None:
        super().__init__(clock=clock)
        self.cache = cache

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get(self, identity: AuthenticatedIdentity, task_id: int) -> TaskOut:
        """
        :raises NotFoundError: Unknown task.
        :raises AuthorizationError: Not the owner and not an admin.
        """
        cached = self.cache.get(keys.task(task_id))
        if cached is not None:
            task = TaskOut.from_dict(cached)
        else:
            with self.ro_uow() as uow:
                row = uow.tasks.get(task_id)
                if row is None:
                    raise NotFoundError("Task", task_id)
                task = TaskOut.from_model(row)
            self.cache.set(keys.task(task_id), task.to_dict())
        self._ensure_can_access(identity, task.owner)
        return task

    def list_for_owner(self, identity: AuthenticatedIdentity, page_in: PaginationIn) -> TaskPageOut:
        pagination = self.ensure_pagination(page=page_in.page, limit=page_in.limit)
        key = keys.user_tasks_page(identity.principal, pagination.page, pagination.limit)

        def load() -> dict:
            with self.ro_uow() as uow:
                user = uow.users.get_by_public_id(identity.principal)
                if user is None:
                    raise NotFoundError("User", identity.principal)
                page = uow.tasks.page_for_owner(user.id, pagination)
                return self._page_out(page.items, page.page, page.limit, page.total).to_dict()

        return TaskPageOut.from_dict(self.cache.get_or_set(key, load))

    def count_for_owner(self, identity: AuthenticatedIdentity) -> int:
        def load() -> int:
            with self.ro_uow() as uow:
                user = uow.users.get_by_public_id(identity.principal)
                return uow.tasks.count_for_owner(user.id) if user is not None else 0

        return int(self.cache.get_or_set(keys.user_task_count(identity.principal), load))

    def list_all(self, identity: AuthenticatedIdentity, page_in: PaginationIn) -> TaskPageOut:
        """Every task in the system (admins only)."""
        self._ensure_admin(identity)
        pagination = self.ensure_pagination(page=page_in.page, limit=page_in.limit)

        def load() -> dict:
            with self.ro_uow() as uow:
                page = uow.tasks.paginate(pagination)
                return self._page_out(page.items, page.page, page.limit, page.total).to_dict()

        key = keys.all_tasks_page(pagination.page, pagination.limit)
        return TaskPageOut.from_dict(self.cache.get_or_set(key, load))

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #

    def create(self, identity: AuthenticatedIdentity, dto: TaskCreateIn) -> TaskOut:
        with self.rw_uow() as uow:
            user = uow.users.get_by_public_id(identity.principal)
            if user is None:
                raise NotFoundError("User", identity.principal)
            task = uow.tasks.add(
                Task(
                    title=dto.title,
                    description=dto.description,
                    status=dto.status,
                    due_date=dto.due_date,
                    owner=user,
                )
            )
            out = TaskOut.from_model(task)

        self.cache.invalidate(owner_invalidation(out.owner, out.id))
        log.info("tasks.created", extra={"principal": identity.principal})
        return out

    def update(self, identity: AuthenticatedIdentity, task_id: int, dto: TaskUpdateIn) -> TaskOut:
        with self.rw_uow() as uow:
            task = uow.tasks.get(task_id)
            if task is None:
                raise NotFoundError("Task", task_id)
            self._ensure_can_access(identity, task.owner.public_id)
            if dto.changes:
                uow.tasks.update(task, **dto.changes)
            out = TaskOut.from_model(task)

        # Keyed on the task's owner, which differs from the caller for admin edits.
        self.cache.invalidate(owner_invalidation(out.owner, out.id))
        return out

    def delete(self, identity: AuthenticatedIdentity, task_id: int) -> None:
        with self.rw_uow() as uow:
            task = uow.tasks.get(task_id)
            if task is None:
                raise NotFoundError("Task", task_id)
            owner = task.owner.public_id
            self._ensure_can_access(identity, owner)
            uow.tasks.delete(task)

        self.cache.invalidate(owner_invalidation(owner, task_id))

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _page_out(items, page: int, limit: int, total: int) -> TaskPageOut:
        return TaskPageOut(
            items=[TaskOut.from_model(t) for t in items],
            meta=PageMeta.build(page=page, limit=limit, total=total),
        )

    @staticmethod
    def _ensure_admin(identity: AuthenticatedIdentity) -> None:
        if not identity.has_role(ADMIN):
            raise AuthorizationError("Admin role required.")

    @staticmethod
    def _ensure_can_access(identity: AuthenticatedIdentity, owner: str) -> None:
        if owner != identity.principal and not identity.has_role(ADMIN):
            raise AuthorizationError("You can only access your own tasks.")
