"""
Database schema + migrations for the song catalog.

Design notes:
- We use SQLite `PRAGMA user_version` as the schema version.
- Migrations are forward-only (no downgrade support).
- Keep migrations small and explicit; for huge refactors prefer a new DB.
"""

from __future__ import annotations

from typing import Final

import aiosqlite

# Bump when you change the schema and add a migration in `migrate()`.
SCHEMA_VERSION: Final[int] = 2


async def ensure_schema(conn: aiosqlite.Connection) -> None:
    """
    Create or migrate schema to current version.

    This function assumes:
    - `conn` is an open aiosqlite connection
    - `conn.row_factory` is configured by the caller if desired
    """
    cursor = await conn.execute("PRAGMA user_version;")
    row = await cursor.fetchone()
    current = int(row[0]) if row is not None else 0

    if current > SCHEMA_VERSION:
        raise RuntimeError(
            f"Database schema version {current} is newer than supported {SCHEMA_VERSION}."
        )

    if current == SCHEMA_VERSION:
        return

    await migrate(conn, from_version=current, to_version=SCHEMA_VERSION)
    await conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION};")
    await conn.commit()


async def migrate(conn: aiosqlite.Connection, *, from_version: int, to_version: int) -> None:
    """
    Perform forward-only migrations.

    Keep migrations small. If you need a big refactor, create a new DB.
    """
    # v0 -> v1
    if from_version == 0 and to_version >= 1:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS songs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,

                title TEXT NOT NULL CHECK (length(title) <= 200),
                artist TEXT NOT NULL CHECK (length(artist) <= 100),
                album TEXT CHECK (album IS NULL OR length(album) <= 200),
                genre TEXT NOT NULL,
                duration INTEGER NOT NULL DEFAULT 0 CHECK (duration >= 0),

                file_url TEXT,
                file_name TEXT,
                file_size INTEGER CHECK (file_size IS NULL OR file_size >= 0),

                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )

        # Indexes: tuned for the listing filters and the stats rollups.
        await conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_songs_artist_album ON songs(artist, album);"
        )
        await conn.execute("CREATE INDEX IF NOT EXISTS idx_songs_genre ON songs(genre);")
        await conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_songs_created_at ON songs(created_at DESC);"
        )
        await conn.commit()
        from_version = 1

    # v1 -> v2
    if from_version == 1 and to_version >= 2:
        # Soft-delete marker
        await conn.execute("ALTER TABLE songs ADD COLUMN deleted_at TEXT;")
        await conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_songs_deleted_at ON songs(deleted_at);"
        )
        await conn.commit()
        from_version = 2
