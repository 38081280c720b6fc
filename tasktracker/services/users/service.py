"""
UserService
===========

Account use cases:

- self-registration with the default ``User`` role,
- admin listing of every account (cached pages),
- profile updates and self-deletion of the caller.

Deleting an account also closes its session (refresh token deleted, the
presented access token blacklisted) and drops every cache entry derived from
the account's tasks.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from tasktracker.core.clock import Clock
from tasktracker.infra.cache import keys
from tasktracker.infra.cache.coordinator import CacheCoordinator, Invalidation
from tasktracker.models.role import ADMIN, USER
from tasktracker.models.user import User
from tasktracker.services._shared.base import BaseService
from tasktracker.services._shared.dto import PageMeta, PaginationIn
from tasktracker.services._shared.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ServiceError,
)
from tasktracker.services._shared.ports import RefreshTokenStore
from tasktracker.services.auth.dto import AuthenticatedIdentity
from tasktracker.services.auth.revocation import RevocationRegistry
from tasktracker.services.tasks.service import owner_invalidation
from tasktracker.services.users.dto import UserOut, UserPageOut, UserRegisterIn, UserUpdateIn

log = logging.getLogger(__name__)

USERS_LIST = Invalidation(prefixes=(keys.USERS_PREFIX,))


class UserService(BaseService):
    """
    Account lifecycle on top of the unit of work.

    :param cache: Cache coordinator (user list pages, task invalidation).
    :param refresh_store: Refresh token store, closed on account deletion.
    :param revocations: Access token blacklist, used on account deletion.
    :param clock: Time source.
    """

    def __init__(
        self,
        *,
        cache: CacheCoordinator,
        refresh_store: RefreshTokenStore,
        revocations: RevocationRegistry,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(clock=clock)
        self.cache = cache
        self.refresh_store = refresh_store
        self.revocations = revocations

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def register(self, dto: UserRegisterIn) -> UserOut:
        """
        Create an account holding the ``User`` role.

        :raises ConflictError: Username or email already taken.
        :raises ServiceError: Field rejected by the model validators (400).
        """
        try:
            with self.rw_uow() as uow:
                if uow.users.exists_by_login(dto.username, dto.email):
                    raise ConflictError("User", "username or email already in use")
                uow.roles.ensure((USER,))
                user = User(username=dto.username, email=dto.email, country=dto.country)
                user.password = dto.password
                role = uow.roles.get_by_name(USER)
                if role is not None:
                    user.roles.append(role)
                uow.users.add(user)
                out = UserOut.from_model(user)
        except ValueError as exc:
            raise ServiceError(str(exc)) from exc
        except IntegrityError as exc:
            # Lost a race against a concurrent registration with the same keys.
            raise ConflictError("User", "username or email already in use") from exc

        self.cache.invalidate(USERS_LIST)
        log.info("users.registered", extra={"principal": out.id})
        return out

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def list_users(self, identity: AuthenticatedIdentity, page_in: PaginationIn) -> UserPageOut:
        """Every account, oldest first (admins only)."""
        if not identity.has_role(ADMIN):
            raise AuthorizationError("Admin role required.")
        pagination = self.ensure_pagination(page=page_in.page, limit=page_in.limit)

        def load() -> dict:
            with self.ro_uow() as uow:
                page = uow.users.paginate(pagination)
                return UserPageOut(
                    items=[UserOut.from_model(u) for u in page.items],
                    meta=PageMeta.build(page=page.page, limit=page.limit, total=page.total),
                ).to_dict()

        key = keys.users_page(pagination.page, pagination.limit)
        return UserPageOut.from_dict(self.cache.get_or_set(key, load))

    def get_self(self, identity: AuthenticatedIdentity) -> UserOut:
        with self.ro_uow() as uow:
            return UserOut.from_model(self._load(uow, identity.principal))

    # ------------------------------------------------------------------ #
    # Commands on the caller's own account
    # ------------------------------------------------------------------ #

    def update_self(self, identity: AuthenticatedIdentity, dto: UserUpdateIn) -> UserOut:
        """
        :raises ConflictError: New username or email belongs to another account.
        :raises NotFoundError: The account no longer exists.
        """
        try:
            with self.rw_uow() as uow:
                user = self._load(uow, identity.principal)
                username = dto.changes.get("username", user.username)
                email = dto.changes.get("email", user.email)
                if uow.users.exists_by_login(username, email, exclude_id=user.id):
                    raise ConflictError("User", "username or email already in use")
                if dto.changes:
                    uow.users.update(user, **dto.changes)
                out = UserOut.from_model(user)
        except ValueError as exc:
            raise ServiceError(str(exc)) from exc
        except IntegrityError as exc:
            raise ConflictError("User", "username or email already in use") from exc

        self.cache.invalidate(USERS_LIST)
        return out

    def delete_self(self, identity: AuthenticatedIdentity) -> None:
        """
        Delete the caller's account, its tasks and its session.

        The refresh token goes first: if the store is unreachable nothing is
        deleted and the caller gets ``StoreUnavailableError``.

        :raises NotFoundError: The account no longer exists.
        """
        principal = identity.principal
        self.refresh_store.revoke(principal)

        with self.rw_uow() as uow:
            user = self._load(uow, principal)
            task_ids = uow.tasks.ids_for_owner(user.id)
            uow.tasks.delete_for_owner(user.id)
            # Rows are gone; keep the ORM cascade off the stale collection.
            uow.session.expire(user, ["tasks"])
            uow.users.delete(user)

        self.revocations.revoke(identity.token_id, identity.expires_at)
        task_keys = Invalidation(keys=tuple(keys.task(task_id) for task_id in task_ids))
        self.cache.invalidate(owner_invalidation(principal) | task_keys | USERS_LIST)
        log.info("users.deleted", extra={"principal": principal})

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _load(uow, principal: str) -> User:
        user = uow.users.get_by_public_id(principal)
        if user is None:
            raise NotFoundError("User", principal)
        return user
