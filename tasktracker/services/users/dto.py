from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from tasktracker.core.clock import as_utc
from tasktracker.services._shared.dto import PageMeta

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class UserRegisterIn:
    """
    Self-registration payload.

    :param username: Login handle (unique).
    :param email: Email (unique, normalized by the model).
    :param password: Raw password; the model setter hashes it.
    :param country: Optional country of residence.
    """

    username: str
    email: str
    password: str
    country: str | None = None


@dataclass(frozen=True, slots=True)
class UserUpdateIn:
    """Profile changes of the caller; only keys present in ``changes`` are applied."""

    changes: dict[str, Any] = field(default_factory=dict)


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class UserOut:
    id: str
    username: str
    email: str
    country: str | None
    roles: list[str]
    created_at: datetime

    @classmethod
    def from_model(cls, user: Any) -> UserOut:
        return cls(
            id=user.public_id,
            username=user.username,
            email=user.email,
            country=user.country,
            roles=sorted(user.role_names),
            created_at=as_utc(user.created_at),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "country": self.country,
            "roles": list(self.roles),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserOut:
        return cls(
            id=data["id"],
            username=data["username"],
            email=data["email"],
            country=data.get("country"),
            roles=list(data["roles"]),
            created_at=as_utc(datetime.fromisoformat(data["created_at"])),
        )


@dataclass(frozen=True, slots=True)
class UserPageOut:
    items: list[UserOut]
    meta: PageMeta

    def to_dict(self) -> dict[str, Any]:
        return {"items": [u.to_dict() for u in self.items], "meta": self.meta.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserPageOut:
        return cls(
            items=[UserOut.from_dict(item) for item in data["items"]],
            meta=PageMeta.from_dict(data["meta"]),
        )
