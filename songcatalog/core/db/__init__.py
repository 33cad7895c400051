"""
Internal DB subpackage for the song catalog.

This package splits the storage layer into focused units (models,
schema/migrations, predicates, ordering and query groups) while keeping
`CatalogDb` as the single public interface the rest of the codebase imports.

External code should import `CatalogDb` from `songcatalog.core.catalog_db`.
"""

from __future__ import annotations

# Models / DTOs
from .models import AlbumStatRow, ArtistStatRow, Genre, NewSong, SongRow

# Predicates / ordering
from .ordering import SORTABLE_FIELDS, songs_order_clause
from .predicates import Predicate

# Schema / migrations
from .schema import ensure_schema, migrate

__all__ = [
    # models
    "AlbumStatRow",
    "ArtistStatRow",
    "Genre",
    "NewSong",
    "SongRow",
    # predicates / ordering
    "Predicate",
    "SORTABLE_FIELDS",
    "songs_order_clause",
    # schema
    "ensure_schema",
    "migrate",
]
