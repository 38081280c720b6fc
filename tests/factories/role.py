"""Factory Boy definition for :class:`tasktracker.models.role.Role`."""

from __future__ import annotations

import factory

from tasktracker.models.role import Role
from tests.factories import BaseFactory


class RoleFactory(BaseFactory):
    class Meta:
        model = Role
        sqlalchemy_get_or_create = ("name",)

    id = None
    name = factory.Sequence(lambda n: f"Role{n}")
