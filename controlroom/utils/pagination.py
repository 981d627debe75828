"""
Page/limit helpers shared by list endpoints.
"""

import math
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@dataclass
class Page(Generic[T]):
    items: list[T]
    page: int
    limit: int
    total_count: int

    @property
    def total_pages(self) -> int:
        if self.total_count == 0:
            return 0
        return math.ceil(self.total_count / self.limit)

    def pagination(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total_count": self.total_count,
            "total_pages": self.total_pages,
        }


def normalize_page(page: int | None, limit: int | None, default_limit: int = DEFAULT_LIMIT) -> tuple[int, int]:
    """Clamp page/limit query values to sane bounds."""
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else default_limit
    return page, min(limit, MAX_LIMIT)
