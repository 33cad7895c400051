"""
Tests for songcatalog.core.stats (StatsAggregator).

These tests verify:
- Totals over an empty and a populated catalog
- Zero-filled per-genre counts
- Album semantics (albums are per artist, songs without an album form their own group)
- Rollup ordering and tie-breaking
- Date-range and field filters
"""

from __future__ import annotations

from datetime import datetime

import pytest

from songcatalog.config import CatalogConfig
from songcatalog.core.catalog_db import CatalogDb
from songcatalog.core.db.models import GENRE_VALUES, NewSong
from songcatalog.core.filters import StatsFilter
from songcatalog.core.stats import SongStats, StatsAggregator, merge_genre_counts


@pytest.fixture
async def db() -> CatalogDb:
    """Create an in-memory database for testing."""
    db = CatalogDb(":memory:")
    await db.open()
    await db.ensure_schema()
    yield db
    await db.close()


@pytest.fixture
def aggregator(db: CatalogDb) -> StatsAggregator:
    return StatsAggregator(db=db, config=CatalogConfig())


async def _add(
    db: CatalogDb,
    title: str,
    artist: str,
    album: str | None = None,
    genre: str = "Rock",
    created_at: str | None = None,
) -> int:
    song = await db.insert_song(NewSong(title=title, artist=artist, album=album, genre=genre))
    if created_at is not None:
        conn = db._require_conn()
        await conn.execute("UPDATE songs SET created_at = ? WHERE id = ?;", (created_at, song.id))
        await conn.commit()
    return song.id


class TestGenreCounts:
    def test_merge_zero_fills(self) -> None:
        counts = merge_genre_counts({"Rock": 2})
        assert list(counts) == list(GENRE_VALUES)
        assert counts["Rock"] == 2
        assert counts["Jazz"] == 0

    def test_merge_ignores_unknown(self) -> None:
        counts = merge_genre_counts({"Polka": 9})
        assert "Polka" not in counts
        assert sum(counts.values()) == 0


class TestEmptyCatalog:
    async def test_all_zero(self, aggregator: StatsAggregator) -> None:
        stats = await aggregator.get_stats()

        assert stats.total_songs == 0
        assert stats.total_artists == 0
        assert stats.total_albums == 0
        assert stats.artist_stats == ()
        assert stats.album_stats == ()
        assert len(stats.songs_by_genre) == 13
        assert set(stats.songs_by_genre.values()) == {0}

    async def test_to_dict_shape(self, aggregator: StatsAggregator) -> None:
        data = (await aggregator.get_stats()).to_dict()
        assert set(data) == {
            "totalSongs",
            "totalArtists",
            "totalAlbums",
            "songsByGenre",
            "artistStats",
            "albumStats",
        }

    def test_default_report(self) -> None:
        assert SongStats().to_dict()["songsByGenre"] == dict.fromkeys(GENRE_VALUES, 0)


class TestAggregates:
    async def test_songs_without_album_form_a_group(
        self, db: CatalogDb, aggregator: StatsAggregator
    ) -> None:
        await _add(db, "one", "A", album="X")
        await _add(db, "two", "A", album="X")
        await _add(db, "three", "A", album=None)

        stats = await aggregator.get_stats()

        assert stats.total_songs == 3
        assert stats.total_artists == 1
        assert stats.total_albums == 2
        assert [a.to_dict() for a in stats.album_stats] == [
            {"album": "X", "artist": "A", "totalSongs": 2},
            {"album": None, "artist": "A", "totalSongs": 1},
        ]
        # Per-artist album counts still skip the missing album
        assert stats.artist_stats[0].to_dict() == {"artist": "A", "totalSongs": 3, "totalAlbums": 1}

    async def test_same_album_name_different_artists(
        self, db: CatalogDb, aggregator: StatsAggregator
    ) -> None:
        await _add(db, "one", "A", album="Greatest Hits")
        await _add(db, "two", "B", album="Greatest Hits")

        stats = await aggregator.get_stats()

        assert stats.total_albums == 2
        assert [(a.album, a.artist) for a in stats.album_stats] == [
            ("Greatest Hits", "A"),
            ("Greatest Hits", "B"),
        ]

    async def test_genre_counts(self, db: CatalogDb, aggregator: StatsAggregator) -> None:
        await _add(db, "one", "A", genre="Jazz")
        await _add(db, "two", "A", genre="Jazz")
        await _add(db, "three", "B", genre="Pop")

        stats = await aggregator.get_stats()

        assert stats.songs_by_genre["Jazz"] == 2
        assert stats.songs_by_genre["Pop"] == 1
        assert stats.songs_by_genre["Metal"] == 0
        assert sum(stats.songs_by_genre.values()) == stats.total_songs

    async def test_rollup_ordering(self, db: CatalogDb, aggregator: StatsAggregator) -> None:
        for i in range(5):
            await _add(db, f"z{i}", "Zed", album="Zeta")
            await _add(db, f"a{i}", "Abe", album="Alpha")
        await _add(db, "solo", "Mid", album="Middle")

        stats = await aggregator.get_stats()

        # Equal counts are ordered by name
        assert [a.artist for a in stats.artist_stats] == ["Abe", "Zed", "Mid"]
        assert [a.album for a in stats.album_stats] == ["Alpha", "Zeta", "Middle"]

    async def test_archived_songs_excluded(self, db: CatalogDb, aggregator: StatsAggregator) -> None:
        song_id = await _add(db, "gone", "A", album="X")
        await _add(db, "kept", "B")
        await db.soft_delete_song(song_id)

        stats = await aggregator.get_stats()

        assert stats.total_songs == 1
        assert stats.total_albums == 1
        assert [(a.album, a.artist) for a in stats.album_stats] == [(None, "B")]
        assert [a.artist for a in stats.artist_stats] == ["B"]


class TestFilters:
    async def _seed(self, db: CatalogDb) -> None:
        await _add(db, "jan", "A", album="X", genre="Rock", created_at="2024-01-15T12:00:00.000+00:00")
        await _add(db, "feb", "B", album="Y", genre="Jazz", created_at="2024-02-15T12:00:00.000+00:00")
        await _add(db, "mar", "A", album="Z", genre="Rock", created_at="2024-03-15T12:00:00.000+00:00")

    async def test_date_range_inclusive(self, db: CatalogDb, aggregator: StatsAggregator) -> None:
        await self._seed(db)

        stats = await aggregator.get_stats(
            StatsFilter(
                start_date=datetime(2024, 1, 15, 12),
                end_date=datetime(2024, 2, 15, 12),
            )
        )

        assert stats.total_songs == 2
        assert stats.total_artists == 2

    async def test_open_ended_range(self, db: CatalogDb, aggregator: StatsAggregator) -> None:
        await self._seed(db)

        stats = await aggregator.get_stats(StatsFilter(start_date=datetime(2024, 2, 1)))

        assert stats.total_songs == 2

    async def test_genre_and_artist(self, db: CatalogDb, aggregator: StatsAggregator) -> None:
        await self._seed(db)

        stats = await aggregator.get_stats(StatsFilter.from_params({"genre": "Rock", "artist": "a"}))

        assert stats.total_songs == 2
        assert stats.songs_by_genre["Rock"] == 2
        assert stats.songs_by_genre["Jazz"] == 0
        assert stats.total_albums == 2
