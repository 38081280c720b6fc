"""Role repository."""

from __future__ import annotations

from collections.abc import Iterable
from typing import cast

from sqlalchemy import select

from tasktracker.models.role import Role
from tasktracker.repositories.base import BaseRepository


class RoleRepository(BaseRepository[Role]):
    model = Role

    def _filterable_fields(self):
        return {"name": Role.name}

    def get_by_name(self, name: str) -> Role | None:
        stmt = select(Role).where(Role.name == name)
        return cast(Role | None, self.session.execute(stmt).scalars().first())

    def ensure(self, names: Iterable[str]) -> list[str]:
        """Create missing roles.

        :param names: Role names that must exist.
        :returns: Names that were created (empty when all existed).
        """
        wanted = list(dict.fromkeys(names))
        existing = set(
            self.session.execute(select(Role.name).where(Role.name.in_(wanted))).scalars()
        )
        created = [name for name in wanted if name not in existing]
        for name in created:
            self.session.add(Role(name=name))
        if created:
            self.flush()
        return created
