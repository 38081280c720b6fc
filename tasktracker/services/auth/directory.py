from __future__ import annotations

from tasktracker.services._shared.ports import UserDirectory
from tasktracker.uow.sqlalchemy_uow import SQLAlchemyReadOnlyUnitOfWork


class SQLAlchemyUserDirectory(UserDirectory):
    """
    User Directory over the ``users``/``roles`` tables.

    Each lookup runs in its own read-only unit of work; the principal is
    ``User.public_id``.
    """

    def resolve_principal(self, login: str) -> str | None:
        if not login or not login.strip():
            return None
        with SQLAlchemyReadOnlyUnitOfWork() as uow:
            user = uow.users.get_by_login(login)
            return user.public_id if user is not None else None

    def verify_credentials(self, principal: str, secret: str) -> bool:
        with SQLAlchemyReadOnlyUnitOfWork() as uow:
            user = uow.users.get_by_public_id(principal)
            return user is not None and user.verify_password(secret)

    def get_roles(self, principal: str) -> set[str]:
        with SQLAlchemyReadOnlyUnitOfWork() as uow:
            user = uow.users.get_by_public_id(principal)
            return user.role_names if user is not None else set()
