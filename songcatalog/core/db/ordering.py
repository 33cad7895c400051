"""
Shared ORDER BY clause helpers for song list queries.

Important:
- The returned strings are *static SQL fragments* selected from a small
  whitelist. Do NOT concatenate user input into ORDER BY.
- Unknown sort keys fall back to `createdAt`, unknown directions to `desc`.
"""

from __future__ import annotations

from typing import Literal

SongsOrderBy = Literal[
    "title",
    "artist",
    "album",
    "genre",
    "duration",
    "createdAt",
    "updatedAt",
]

SortOrder = Literal["asc", "desc"]

DEFAULT_SORT_BY: SongsOrderBy = "createdAt"
DEFAULT_SORT_ORDER: SortOrder = "desc"

# API sort key -> column expression
_SORT_COLUMNS: dict[str, str] = {
    "title": "title COLLATE NOCASE",
    "artist": "artist COLLATE NOCASE",
    "album": "album COLLATE NOCASE",
    "genre": "genre",
    "duration": "duration",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

# snake_case spellings accepted as aliases
_ALIASES: dict[str, str] = {
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}

SORTABLE_FIELDS: tuple[str, ...] = tuple(_SORT_COLUMNS)


def normalize_sort_by(sort_by: str | None) -> str:
    """Map a caller-supplied sort key onto the whitelist."""
    if not sort_by:
        return DEFAULT_SORT_BY
    key = _ALIASES.get(sort_by, sort_by)
    return key if key in _SORT_COLUMNS else DEFAULT_SORT_BY


def normalize_sort_order(sort_order: str | None) -> str:
    if sort_order is None:
        return DEFAULT_SORT_ORDER
    value = sort_order.strip().lower()
    return value if value in ("asc", "desc") else DEFAULT_SORT_ORDER


def songs_order_clause(sort_by: str | None, sort_order: str | None = None) -> str:
    """
    Return an ORDER BY clause for song list queries.

    `id` is always appended as a tie-breaker so pages don't overlap when the
    sort key has duplicates.
    """
    column = _SORT_COLUMNS[normalize_sort_by(sort_by)]
    direction = "ASC" if normalize_sort_order(sort_order) == "asc" else "DESC"
    return f"ORDER BY {column} {direction}, id {direction}"
