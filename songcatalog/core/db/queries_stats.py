"""
Aggregate queries backing the catalog statistics report.

Each function is one independent read over the `songs` table restricted by a
caller-built `Predicate`, so the stats service can issue them concurrently.

Album semantics:
- The distinct-album count and the per-album rollup group every song by its
  (album, artist) pair; songs without an album form one group per artist.
- Per-artist album counts only count distinct non-blank album names.
"""

from __future__ import annotations

import aiosqlite

from songcatalog.core.db.models import AlbumStatRow, ArtistStatRow
from songcatalog.core.db.predicates import Predicate

async def count_distinct_artists(conn: aiosqlite.Connection, predicate: Predicate) -> int:
    cursor = await conn.execute(
        f"""
        SELECT COUNT(*) AS c FROM (
            SELECT artist FROM songs
            {predicate.where_sql()}
            GROUP BY artist
        );
        """,
        predicate.params,
    )
    row = await cursor.fetchone()
    return int(row["c"]) if row else 0


async def count_distinct_albums(conn: aiosqlite.Connection, predicate: Predicate) -> int:
    """Count distinct (album, artist) pairs, including the no-album pair of each artist."""
    cursor = await conn.execute(
        f"""
        SELECT COUNT(*) AS c FROM (
            SELECT album, artist FROM songs
            {predicate.where_sql()}
            GROUP BY album, artist
        );
        """,
        predicate.params,
    )
    row = await cursor.fetchone()
    return int(row["c"]) if row else 0


async def count_by_genre(conn: aiosqlite.Connection, predicate: Predicate) -> dict[str, int]:
    """Observed genre -> song count. Genres without songs are absent."""
    cursor = await conn.execute(
        f"""
        SELECT genre, COUNT(*) AS c FROM songs
        {predicate.where_sql()}
        GROUP BY genre;
        """,
        predicate.params,
    )
    rows = await cursor.fetchall()
    return {str(r["genre"]): int(r["c"]) for r in rows}


async def artist_rollup(conn: aiosqlite.Connection, predicate: Predicate) -> list[ArtistStatRow]:
    """
    Songs and distinct non-blank albums per artist.

    Ordered by song count descending, then artist name ascending.
    """
    cursor = await conn.execute(
        f"""
        SELECT
            artist,
            COUNT(*) AS total_songs,
            COUNT(DISTINCT NULLIF(trim(album), '')) AS total_albums
        FROM songs
        {predicate.where_sql()}
        GROUP BY artist
        ORDER BY total_songs DESC, artist ASC;
        """,
        predicate.params,
    )
    rows = await cursor.fetchall()
    return [
        ArtistStatRow(
            artist=r["artist"],
            total_songs=int(r["total_songs"]),
            total_albums=int(r["total_albums"]),
        )
        for r in rows
    ]


async def album_rollup(conn: aiosqlite.Connection, predicate: Predicate) -> list[AlbumStatRow]:
    """
    Songs per (album, artist) pair.

    Ordered by song count descending, then album name ascending (the no-album
    group sorts first); artist is the final tie-breaker so equal album names by
    different artists stay stable.
    """
    cursor = await conn.execute(
        f"""
        SELECT album, artist, COUNT(*) AS total_songs
        FROM songs
        {predicate.where_sql()}
        GROUP BY album, artist
        ORDER BY total_songs DESC, album ASC, artist ASC;
        """,
        predicate.params,
    )
    rows = await cursor.fetchall()
    return [
        AlbumStatRow(
            album=r["album"],
            artist=r["artist"],
            total_songs=int(r["total_songs"]),
        )
        for r in rows
    ]
