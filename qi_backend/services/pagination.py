from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> dict[str, int]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "total_pages": self.total_pages,
        }


def paginate(items: list[T], page: int, limit: int) -> Page[T]:
    """Slice ``items`` to a 1-based page. Out-of-range pages are empty."""
    page = max(page, 1)
    limit = max(limit, 1)
    start = (page - 1) * limit
    return Page(items=items[start : start + limit], page=page, limit=limit, total=len(items))
