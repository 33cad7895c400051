"""
Error taxonomy for the song catalog.

A single exception type carries a `kind` discriminant instead of one subclass
per failure. The web layer turns the kind's status hint into the HTTP status
code; everything below the web layer only raises and re-raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class ErrorKind(Enum):
    """Failure kinds surfaced by the catalog services."""

    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
}


@dataclass(frozen=True, slots=True)
class FieldError:
    """A validation problem attached to a single input field."""

    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class CatalogError(RuntimeError):
    """
    Raised by catalog services for every expected failure.

    Attributes:
        kind: Discriminant used to pick the transport-level status.
        message: Human readable description (safe to show to clients).
        field_errors: Optional per-field validation details.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        field_errors: Iterable[FieldError] = (),
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.field_errors: tuple[FieldError, ...] = tuple(field_errors)

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def __repr__(self) -> str:
        return f"CatalogError({self.kind.name}, {self.message!r})"
