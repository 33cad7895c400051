"""
Core domain package.

This package contains the catalog's business logic (filtering, pagination,
statistics, the song write path) and stays independent of the web layer.

We intentionally keep exports minimal; consumers should usually import from the
specific module they need (e.g. `songcatalog.core.songs`).
"""

from __future__ import annotations

__all__: list[str] = []
