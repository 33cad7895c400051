"""
Song catalog database schema + access layer.

Goals:
- SQLite + aiosqlite, async/await friendly.
- Keep schema small, but leave room to evolve (via user_version migrations).

This module is intentionally independent of the web layer.

Note:
- Models/DTOs and normalization helpers live in `songcatalog.core.db.models`
- Schema/migrations live in `songcatalog.core.db.schema`
- Query functions live in `songcatalog.core.db.queries_*` modules
- `CatalogDb` remains the public facade used by the rest of the codebase
"""

from __future__ import annotations

import asyncio
import contextlib
from pathlib import Path
from typing import Any, AsyncIterator, Mapping

import aiosqlite

from songcatalog.core.db import queries_songs, queries_stats
from songcatalog.core.db.models import (
    AlbumStatRow,
    ArtistStatRow,
    NewSong,
    SongRow,
    utc_now,
)
from songcatalog.core.db.predicates import CASEFOLD_FUNCTION, Predicate
from songcatalog.core.db.schema import ensure_schema as ensure_schema_sql


def _casefold(value: Any) -> Any:
    if isinstance(value, str):
        return value.casefold()
    return value


class CatalogDb:
    """
    Async access layer for the song catalog DB.

    Usage:
        db = CatalogDb("songcatalog.sqlite3")
        await db.open()
        await db.ensure_schema()
        ... queries ...
        await db.close()

    Notes:
    - This class is designed to be injected into other components.
    - Connections are not pooled; we keep a single connection. aiosqlite runs
      statements one after another on its worker thread, so concurrently
      awaited reads are safe. Writes share the connection's transaction, so
      they are serialized with a lock.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = str(db_path)
        self._conn: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self) -> None:
        if self._conn is not None:
            return
        self._conn = await aiosqlite.connect(self._db_path)
        self._conn.row_factory = aiosqlite.Row

        # Pragmas: modern defaults without being clever.
        await self._conn.execute("PRAGMA journal_mode = WAL;")
        await self._conn.execute("PRAGMA synchronous = NORMAL;")
        await self._conn.execute("PRAGMA temp_store = MEMORY;")

        # Unicode-aware folding for substring filters
        await self._conn.create_function(CASEFOLD_FUNCTION, 1, _casefold, deterministic=True)

    async def close(self) -> None:
        if self._conn is None:
            return
        await self._conn.close()
        self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("CatalogDb is not open. Call await db.open() first.")
        return self._conn

    async def ensure_schema(self) -> None:
        """Create or migrate schema to current version."""
        conn = self._require_conn()
        await ensure_schema_sql(conn)

    # ===========================================================================
    # Songs: reads
    # ===========================================================================

    async def get_song_by_id(self, song_id: int, *, include_deleted: bool = False) -> SongRow | None:
        conn = self._require_conn()
        return await queries_songs.get_song_by_id(conn, song_id, include_deleted=include_deleted)

    async def find(
        self,
        predicate: Predicate,
        *,
        order_clause: str,
        skip: int,
        limit: int,
    ) -> list[SongRow]:
        conn = self._require_conn()
        return await queries_songs.find_songs(
            conn, predicate, order_clause=order_clause, offset=skip, limit=limit
        )

    async def count(self, predicate: Predicate) -> int:
        conn = self._require_conn()
        return await queries_songs.count_songs(conn, predicate)

    # ===========================================================================
    # Songs: writes (each runs in its own transaction)
    # ===========================================================================

    @contextlib.asynccontextmanager
    async def _transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        conn = self._require_conn()
        async with self._write_lock:
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            await conn.commit()

    async def insert_song(self, song: NewSong) -> SongRow:
        async with self._transaction() as conn:
            song_id = await queries_songs.insert_song(conn, song, now=utc_now())
        row = await queries_songs.get_song_by_id(conn, song_id, include_deleted=True)
        if row is None:
            raise RuntimeError("Insert failed: song row not found after insert.")
        return row

    async def update_song(self, song_id: int, changes: Mapping[str, Any]) -> SongRow | None:
        """Apply a partial update. Returns the updated row, or None if not found."""
        async with self._transaction() as conn:
            updated = await queries_songs.update_song(conn, song_id, changes, now=utc_now())
        if not updated:
            return None
        return await queries_songs.get_song_by_id(conn, song_id)

    async def delete_song(self, song_id: int) -> bool:
        async with self._transaction() as conn:
            return await queries_songs.delete_song(conn, song_id)

    async def soft_delete_song(self, song_id: int) -> SongRow | None:
        """Mark a song deleted. Returns the row, or None if it does not exist."""
        now = utc_now()
        async with self._transaction() as conn:
            found = await queries_songs.set_deleted_at(conn, song_id, now, now=now)
        if not found:
            return None
        return await queries_songs.get_song_by_id(conn, song_id, include_deleted=True)

    async def restore_song(self, song_id: int) -> SongRow | None:
        """Clear the soft-delete marker. Returns the row, or None if it does not exist."""
        async with self._transaction() as conn:
            found = await queries_songs.set_deleted_at(conn, song_id, None, now=utc_now())
        if not found:
            return None
        return await queries_songs.get_song_by_id(conn, song_id)

    # ===========================================================================
    # Stats aggregates
    # ===========================================================================

    async def count_distinct_artists(self, predicate: Predicate) -> int:
        conn = self._require_conn()
        return await queries_stats.count_distinct_artists(conn, predicate)

    async def count_distinct_albums(self, predicate: Predicate) -> int:
        conn = self._require_conn()
        return await queries_stats.count_distinct_albums(conn, predicate)

    async def count_by_genre(self, predicate: Predicate) -> dict[str, int]:
        conn = self._require_conn()
        return await queries_stats.count_by_genre(conn, predicate)

    async def artist_rollup(self, predicate: Predicate) -> list[ArtistStatRow]:
        conn = self._require_conn()
        return await queries_stats.artist_rollup(conn, predicate)

    async def album_rollup(self, predicate: Predicate) -> list[AlbumStatRow]:
        conn = self._require_conn()
        return await queries_stats.album_rollup(conn, predicate)
