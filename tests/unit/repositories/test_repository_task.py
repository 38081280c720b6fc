"""Unit tests for TaskRepository."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from tasktracker.repositories.base import Pagination
from tasktracker.repositories.task import TaskRepository
from tests.factories.task import TaskFactory


@pytest.fixture()
def repo(session):
    return TaskRepository(session=session)


def test_page_for_owner_is_scoped_and_counted(repo, user, make_user, session):
    other = make_user(username="bob", email="bob@example.com")
    TaskFactory.create_batch(5, owner=user)
    TaskFactory.create_batch(2, owner=other)
    session.commit()

    page = repo.page_for_owner(user.id, Pagination(page=2, limit=2, sort=[]))

    assert page.total == 5
    assert len(page.items) == 2
    assert all(t.owner_id == user.id for t in page.items)
    assert repo.count_for_owner(other.id) == 2


def test_sorting_by_due_date_descending(repo, user, session):
    for day in (3, 1, 2):
        TaskFactory(owner=user, due_date=datetime(2026, 4, day, tzinfo=UTC))
    session.commit()

    page = repo.page_for_owner(user.id, Pagination(page=1, limit=10, sort=["-due_date"]))

    assert [t.due_date.day for t in page.items] == [3, 2, 1]


def test_update_runs_model_validation(repo, user, session):
    task = TaskFactory(owner=user)
    session.commit()

    with pytest.raises(ValueError):
        repo.update(task, status="Someday")


def test_delete_for_owner_leaves_other_owners_alone(repo, user, make_user, session):
    other = make_user(username="bob", email="bob@example.com")
    mine = TaskFactory.create_batch(3, owner=user)
    TaskFactory(owner=other)
    session.commit()

    assert sorted(repo.ids_for_owner(user.id)) == sorted(t.id for t in mine)
    assert repo.delete_for_owner(user.id) == 3
    session.commit()

    assert repo.count_for_owner(user.id) == 0
    assert repo.count_for_owner(other.id) == 1
