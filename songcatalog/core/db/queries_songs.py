"""
Song-related DB queries used by `songcatalog.core.catalog_db.CatalogDb`.

Design:
- Functions are *pure DB helpers*: they take an open `aiosqlite.Connection`
  and return rows/materialized dataclasses.
- They do not commit; the `CatalogDb` facade owns transaction boundaries.
- These functions assume `conn.row_factory = aiosqlite.Row`.

Important:
- Do NOT interpolate user input into SQL. Dynamic SQL here is limited to
  WHERE clauses built by `Predicate` (values are bound parameters) and
  ORDER BY clauses selected from the whitelist in `songs_order_clause`.
"""

from __future__ import annotations

from typing import Any, Mapping

import aiosqlite

from songcatalog.core.db.models import UPDATABLE_COLUMNS, NewSong, SongRow
from songcatalog.core.db.predicates import NOT_DELETED, Predicate


def _row_to_song(row: aiosqlite.Row) -> SongRow:
    """Convert an aiosqlite Row to a SongRow dataclass."""
    return SongRow(
        id=int(row["id"]),
        title=row["title"],
        artist=row["artist"],
        album=row["album"],
        genre=row["genre"],
        duration=int(row["duration"] or 0),
        file_url=row["file_url"],
        file_name=row["file_name"],
        file_size=row["file_size"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        deleted_at=row["deleted_at"],
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_song_by_id(
    conn: aiosqlite.Connection,
    song_id: int,
    *,
    include_deleted: bool = False,
) -> SongRow | None:
    predicate = Predicate(("id = ?",), (int(song_id),))
    if not include_deleted:
        predicate = predicate.and_(NOT_DELETED)
    cursor = await conn.execute(f"SELECT * FROM songs {predicate.where_sql()};", predicate.params)
    row = await cursor.fetchone()
    return _row_to_song(row) if row else None


async def find_songs(
    conn: aiosqlite.Connection,
    predicate: Predicate,
    *,
    order_clause: str,
    offset: int,
    limit: int,
) -> list[SongRow]:
    cursor = await conn.execute(
        f"""
        SELECT * FROM songs
        {predicate.where_sql()}
        {order_clause}
        LIMIT ? OFFSET ?;
        """,
        (*predicate.params, int(limit), int(offset)),
    )
    rows = await cursor.fetchall()
    return [_row_to_song(r) for r in rows]


async def count_songs(conn: aiosqlite.Connection, predicate: Predicate) -> int:
    cursor = await conn.execute(
        f"SELECT COUNT(*) AS c FROM songs {predicate.where_sql()};",
        predicate.params,
    )
    row = await cursor.fetchone()
    return int(row["c"]) if row else 0


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def insert_song(conn: aiosqlite.Connection, song: NewSong, *, now: str) -> int:
    """Insert a song and return its id."""
    cursor = await conn.execute(
        """
        INSERT INTO songs(
            title, artist, album, genre, duration,
            file_url, file_name, file_size,
            created_at, updated_at
        ) VALUES (
            :title, :artist, :album, :genre, :duration,
            :file_url, :file_name, :file_size,
            :now, :now
        )
        """,
        {
            "title": song.title,
            "artist": song.artist,
            "album": song.album,
            "genre": song.genre,
            "duration": int(song.duration),
            "file_url": song.file_url,
            "file_name": song.file_name,
            "file_size": song.file_size,
            "now": now,
        },
    )
    song_id = cursor.lastrowid
    if song_id is None:
        raise RuntimeError("Insert failed: no row id returned.")
    return int(song_id)


async def update_song(
    conn: aiosqlite.Connection,
    song_id: int,
    changes: Mapping[str, Any],
    *,
    now: str,
) -> bool:
    """
    Apply a partial update to a live (not soft-deleted) song.

    Returns True if a row was updated, False if not found.
    """
    columns = [c for c in UPDATABLE_COLUMNS if c in changes]
    if not columns:
        raise ValueError("update_song called without any updatable column")

    assignments = ", ".join(f"{c} = :{c}" for c in columns)
    params: dict[str, Any] = {c: changes[c] for c in columns}
    params["now"] = now
    params["id"] = int(song_id)

    cursor = await conn.execute(
        f"""
        UPDATE songs SET {assignments}, updated_at = :now
        WHERE id = :id AND deleted_at IS NULL
        """,
        params,
    )
    return cursor.rowcount > 0


async def delete_song(conn: aiosqlite.Connection, song_id: int) -> bool:
    """Permanently delete a song. Returns True if deleted, False if not found."""
    cursor = await conn.execute("DELETE FROM songs WHERE id = ?;", (int(song_id),))
    return cursor.rowcount > 0


async def set_deleted_at(
    conn: aiosqlite.Connection,
    song_id: int,
    deleted_at: str | None,
    *,
    now: str,
) -> bool:
    """Set or clear the soft-delete marker. Returns True if the row exists."""
    cursor = await conn.execute(
        "UPDATE songs SET deleted_at = ?, updated_at = ? WHERE id = ?;",
        (deleted_at, now, int(song_id)),
    )
    return cursor.rowcount > 0
