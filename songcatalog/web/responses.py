"""
JSON envelopes shared by every endpoint.

Success:  {"success": true,  "data": ..., "message": ..., "timestamp": ...}
Listing:  data = {"items": [...], "pagination": {...}}
Failure:  {"success": false, "data": null, "message": ..., "timestamp": ...,
           "errors": [{"field": ..., "message": ...}]}   # errors only when present
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

from songcatalog.core.pagination import PaginatedResult
from songcatalog.errors import FieldError


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def envelope(data: Any = None, message: str = "Success", *, success: bool = True) -> dict[str, Any]:
    return {
        "success": success,
        "data": data,
        "message": message,
        "timestamp": _timestamp(),
    }


def paginated(result: PaginatedResult[Any], message: str = "Data retrieved successfully") -> dict[str, Any]:
    items = [item.to_dict() if hasattr(item, "to_dict") else item for item in result.items]
    return envelope({"items": items, "pagination": result.pagination_dict()}, message)


def error_envelope(message: str, field_errors: Iterable[FieldError] = ()) -> dict[str, Any]:
    body = envelope(None, message, success=False)
    errors = [e.to_dict() for e in field_errors]
    if errors:
        body["errors"] = errors
    return body
