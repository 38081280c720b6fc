from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from tasktracker.core.clock import as_utc
from tasktracker.services._shared.dto import PageMeta

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TaskCreateIn:
    """
    Input DTO for task creation.

    :param title: Short summary.
    :param due_date: Deadline.
    :param description: Free text.
    :param status: Initial status.
    """

    title: str
    due_date: datetime
    description: str = ""
    status: str = "Pending"


@dataclass(frozen=True, slots=True)
class TaskUpdateIn:
    """Partial update; only the fields present in ``changes`` are applied."""

    changes: dict[str, Any] = field(default_factory=dict)


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TaskOut:
    id: int
    title: str
    description: str
    status: str
    due_date: datetime
    owner: str

    @classmethod
    def from_model(cls, task: Any) -> TaskOut:
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            due_date=as_utc(task.due_date),
            owner=task.owner.public_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "due_date": self.due_date.isoformat(),
            "owner": self.owner,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskOut:
        return cls(
            id=int(data["id"]),
            title=data["title"],
            description=data["description"],
            status=data["status"],
            due_date=as_utc(datetime.fromisoformat(data["due_date"])),
            owner=data["owner"],
        )


@dataclass(frozen=True, slots=True)
class TaskPageOut:
    items: list[TaskOut]
    meta: PageMeta

    def to_dict(self) -> dict[str, Any]:
        return {"items": [t.to_dict() for t in self.items], "meta": self.meta.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskPageOut:
        return cls(
            items=[TaskOut.from_dict(item) for item in data["items"]],
            meta=PageMeta.from_dict(data["meta"]),
        )
