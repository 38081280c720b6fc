"""Factory Boy definition for :class:`tasktracker.models.user.User`."""

from __future__ import annotations

import factory
from sqlalchemy import select

from tasktracker.models.role import Role
from tasktracker.models.user import User
from tests.factories import BaseFactory, SQLAlchemySession


class UserFactory(BaseFactory):
    """
    Build persisted :class:`tasktracker.models.user.User` instances.

    Notes
    -----
    - ``password`` goes through the model setter, so it is hashed.
    - ``roles`` takes role *names*; the roles must already exist.
    """

    class Meta:
        model = User

    id = None  # let autoincrement handle it
    email = factory.Sequence(lambda n: f"user{n}@example.com")
    username = factory.Sequence(lambda n: f"user{n}")
    country = "ES"
    password_hash = factory.LazyFunction(lambda: "")  # set via postgen

    @factory.post_generation
    def password(obj, create, extracted, **kwargs):
        """Set password using model setter (ensures hashing)."""
        obj.password = extracted or "Passw0rd!"

    @factory.post_generation
    def roles(obj, create, extracted, **kwargs):
        """Attach roles by name."""
        if not extracted:
            return
        session = SQLAlchemySession.get()
        found = session.execute(select(Role).where(Role.name.in_(list(extracted)))).scalars()
        obj.roles.extend(found)
        if create:
            session.flush()
