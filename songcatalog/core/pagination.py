"""
Page/limit pagination arithmetic.

`PageRequest.from_raw` accepts whatever the caller sent (strings, ints,
None, garbage) and always produces a usable request:

- page: max(page, 1); missing or non-numeric -> 1
- limit: min(limit, max_limit); missing, non-numeric or <= 0 -> default_limit
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Generic, Sequence, TypeVar

T = TypeVar("T")

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def _parse_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def total_pages(total: int, limit: int) -> int:
    """ceil(total / limit), with 0 for a non-positive limit."""
    if limit <= 0:
        return 0
    return math.ceil(total / limit)


@dataclass(frozen=True, slots=True)
class PageRequest:
    """A clamped (page, limit) pair."""

    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_raw(
        cls,
        page: Any = None,
        limit: Any = None,
        *,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ) -> PageRequest:
        requested_page = _parse_int(page)
        requested_limit = _parse_int(limit)

        if requested_limit is None or requested_limit <= 0:
            requested_limit = default_limit

        return cls(
            page=max(requested_page if requested_page is not None else 1, 1),
            limit=min(requested_limit, max_limit),
        )


@dataclass(frozen=True, slots=True)
class PaginatedResult(Generic[T]):
    """One page of results plus the totals needed to navigate."""

    items: Sequence[T]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return total_pages(self.total, self.limit)

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def pagination_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "pages": self.pages,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }
