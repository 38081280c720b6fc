from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class PaginationIn:
    """
    Input pagination contract.

    :param page: 1-based page number.
    :param limit: Page size (clamped by the service).
    """

    page: int = 1
    limit: int = 10


@dataclass(frozen=True, slots=True)
class PageMeta:
    """
    Output pagination metadata.

    :param page: Current page (1-based).
    :param limit: Page size.
    :param total: Total rows available.
    :param total_pages: ``ceil(total / limit)``.
    """

    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, *, page: int, limit: int, total: int) -> PageMeta:
        return cls(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit))

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    def to_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "total_pages": self.total_pages,
            "has_prev": self.has_prev,
            "has_next": self.has_next,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PageMeta:
        return cls(
            page=int(data["page"]),
            limit=int(data["limit"]),
            total=int(data["total"]),
            total_pages=int(data["total_pages"]),
        )
