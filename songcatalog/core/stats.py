"""
Catalog statistics.

`StatsAggregator.get_stats()` computes six independent aggregates over one
base predicate and merges them into a `SongStats` report:

1. total songs
2. distinct artists
3. distinct (album, artist) pairs
4. songs per genre, with every known genre present (zero-filled)
5. per-artist rollup (songs, distinct non-blank albums)
6. per-(album, artist) rollup

The six reads are issued together and awaited jointly.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from songcatalog.config import CatalogConfig
from songcatalog.core.catalog_db import CatalogDb
from songcatalog.core.db.models import GENRE_VALUES, AlbumStatRow, ArtistStatRow
from songcatalog.core.filters import StatsFilter, build_stats_predicate
from songcatalog.core.guard import guarded

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Failed to fetch song statistics"


def empty_genre_counts() -> dict[str, int]:
    """One entry per known genre, all zero, in enum order."""
    return {genre: 0 for genre in GENRE_VALUES}


def merge_genre_counts(observed: dict[str, int]) -> dict[str, int]:
    """
    Overlay observed counts on the zero-filled genre mapping.

    Values outside the enum (legacy rows) are ignored so the mapping always
    has exactly one key per known genre.
    """
    counts = empty_genre_counts()
    for genre, count in observed.items():
        if genre in counts:
            counts[genre] = count
    return counts


@dataclass(frozen=True, slots=True)
class SongStats:
    total_songs: int = 0
    total_artists: int = 0
    total_albums: int = 0
    songs_by_genre: dict[str, int] = field(default_factory=empty_genre_counts)
    artist_stats: tuple[ArtistStatRow, ...] = ()
    album_stats: tuple[AlbumStatRow, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalSongs": self.total_songs,
            "totalArtists": self.total_artists,
            "totalAlbums": self.total_albums,
            "songsByGenre": dict(self.songs_by_genre),
            "artistStats": [a.to_dict() for a in self.artist_stats],
            "albumStats": [a.to_dict() for a in self.album_stats],
        }


class StatsAggregator:
    def __init__(self, *, db: CatalogDb, config: CatalogConfig) -> None:
        self._db = db
        self._timeout = config.query_timeout

    async def get_stats(self, stats_filter: StatsFilter | None = None) -> SongStats:
        predicate = build_stats_predicate(stats_filter or StatsFilter())
        started = time.perf_counter()

        def bounded(call):
            return guarded(call, timeout=self._timeout, failure=FAILURE_MESSAGE)

        (
            total_songs,
            total_artists,
            total_albums,
            by_genre,
            artist_stats,
            album_stats,
        ) = await asyncio.gather(
            bounded(self._db.count(predicate)),
            bounded(self._db.count_distinct_artists(predicate)),
            bounded(self._db.count_distinct_albums(predicate)),
            bounded(self._db.count_by_genre(predicate)),
            bounded(self._db.artist_rollup(predicate)),
            bounded(self._db.album_rollup(predicate)),
        )

        logger.debug(
            "Computed stats over %d songs in %.1fms",
            total_songs,
            (time.perf_counter() - started) * 1000,
        )

        return SongStats(
            total_songs=total_songs,
            total_artists=total_artists,
            total_albums=total_albums,
            songs_by_genre=merge_genre_counts(by_genre),
            artist_stats=tuple(artist_stats),
            album_stats=tuple(album_stats),
        )
