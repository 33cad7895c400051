"""
Predicate representation consumed by the query modules.

A `Predicate` is an immutable conjunction of SQL boolean clauses with
positional parameters. Clauses are produced only by the constructors in this
module, so every piece of user text reaches SQLite as a bound parameter and
substring matches are escaped before they become a LIKE pattern.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

LIKE_ESCAPE = "\\"

# SQL function registered on every connection by CatalogDb.open
CASEFOLD_FUNCTION = "casefold"

# Columns a predicate may reference.
FILTERABLE_COLUMNS: frozenset[str] = frozenset(
    {"title", "artist", "album", "genre", "created_at", "deleted_at"}
)


def escape_like(text: str) -> str:
    """Escape LIKE metacharacters so `text` matches literally."""
    return (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def contains_pattern(text: str) -> str:
    """LIKE pattern matching any casefolded value that contains `text`."""
    return f"%{escape_like(text.casefold())}%"


def _casefold_like(column: str) -> str:
    return f"{CASEFOLD_FUNCTION}({column}) LIKE ? ESCAPE '{LIKE_ESCAPE}'"


def _check_column(column: str) -> str:
    if column not in FILTERABLE_COLUMNS:
        raise ValueError(f"Column not filterable: {column}")
    return column


@dataclass(frozen=True, slots=True)
class Predicate:
    """Conjunction of SQL clauses. An empty predicate matches everything."""

    clauses: tuple[str, ...] = ()
    params: tuple[Any, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.clauses

    def where_sql(self) -> str:
        """Render as a WHERE clause (empty string when there is nothing to filter)."""
        if not self.clauses:
            return ""
        return "WHERE " + " AND ".join(self.clauses)

    def and_(self, other: Predicate) -> Predicate:
        return Predicate(self.clauses + other.clauses, self.params + other.params)

    # ---- constructors ----

    @classmethod
    def equals(cls, column: str, value: Any) -> Predicate:
        return cls((f"{_check_column(column)} = ?",), (value,))

    @classmethod
    def contains(cls, column: str, text: str) -> Predicate:
        """
        Case-insensitive substring match.

        SQLite's LIKE and lower() only fold ASCII, so the column goes through
        the Python `casefold` function and the pattern is casefolded up front.
        """
        col = _check_column(column)
        return cls(
            (_casefold_like(col),),
            (contains_pattern(text),),
        )

    @classmethod
    def contains_any(cls, columns: tuple[str, ...], text: str) -> Predicate:
        """Substring match against any of `columns` (OR), as one clause."""
        cols = [_check_column(c) for c in columns]
        pattern = contains_pattern(text)
        parts = [_casefold_like(c) for c in cols]
        return cls(("(" + " OR ".join(parts) + ")",), tuple(pattern for _ in cols))

    @classmethod
    def at_least(cls, column: str, value: Any) -> Predicate:
        return cls((f"{_check_column(column)} >= ?",), (value,))

    @classmethod
    def at_most(cls, column: str, value: Any) -> Predicate:
        return cls((f"{_check_column(column)} <= ?",), (value,))

    @classmethod
    def is_null(cls, column: str) -> Predicate:
        return cls((f"{_check_column(column)} IS NULL",), ())


MATCH_ALL = Predicate()
NOT_DELETED = Predicate.is_null("deleted_at")
