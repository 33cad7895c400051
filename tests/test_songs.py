"""
Tests for songcatalog.core.songs (SongService and validation).

These tests verify:
- Filtered, sorted, paginated listing
- Create validation and the upload/insert sequence
- Partial updates (blank fields dropped, empty updates rejected before any write)
- Delete ordering against the object store
- Storage failures and timeouts mapped to CatalogError
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from songcatalog.config import CatalogConfig
from songcatalog.core.catalog_db import CatalogDb
from songcatalog.core.db.models import NewSong
from songcatalog.core.filters import SongFilter
from songcatalog.core.object_store import StoredObject
from songcatalog.core.songs import AudioUpload, SongService, validate_new_song, validate_update
from songcatalog.errors import CatalogError, ErrorKind

# =============================================================================
# Fakes
# =============================================================================


class FakeObjectStore:
    """Records calls; optionally fails deletes and only accepts some content types."""

    base_url = "https://cdn.example.com"

    def __init__(
        self, *, fail_delete: bool = False, allowed_types: tuple[str, ...] = ("audio/mpeg",)
    ) -> None:
        self.fail_delete = fail_delete
        self.allowed_types = allowed_types
        self.validated: list[str] = []
        self.uploads: list[str] = []
        self.deletes: list[str] = []

    def validate(self, data: bytes, content_type: str) -> None:
        self.validated.append(content_type)
        if content_type not in self.allowed_types:
            raise CatalogError(ErrorKind.BAD_REQUEST, "Invalid file type")

    async def upload(self, data: bytes, original_name: str, content_type: str) -> StoredObject:
        key = f"songs/{len(self.uploads) + 1}-{original_name}"
        self.uploads.append(key)
        return StoredObject(
            key=key,
            url=f"{self.base_url}/{key}",
            size=len(data),
            original_name=original_name,
            content_type=content_type,
        )

    async def delete(self, key: str) -> None:
        self.deletes.append(key)
        if self.fail_delete:
            raise ConnectionError("object store unreachable")

    def key_from_url(self, url: str) -> str:
        return url.removeprefix(self.base_url + "/")


class SpyDb(CatalogDb):
    """CatalogDb that counts write calls."""

    def __init__(self, db_path: str) -> None:
        super().__init__(db_path)
        self.update_calls = 0
        self.delete_calls = 0

    async def update_song(self, song_id: int, changes: Any):
        self.update_calls += 1
        return await super().update_song(song_id, changes)

    async def delete_song(self, song_id: int) -> bool:
        self.delete_calls += 1
        return await super().delete_song(song_id)


class SlowDb(CatalogDb):
    """CatalogDb whose count never finishes in time."""

    async def count(self, predicate):
        await asyncio.sleep(5)
        return 0


class BrokenDb(CatalogDb):
    """CatalogDb whose inserts fail like a lost connection."""

    async def insert_song(self, song: NewSong):
        raise RuntimeError("connection lost")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def db() -> SpyDb:
    db = SpyDb(":memory:")
    await db.open()
    await db.ensure_schema()
    yield db
    await db.close()


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def service(db: SpyDb, store: FakeObjectStore) -> SongService:
    return SongService(db=db, object_store=store, config=CatalogConfig())


async def _seed(service: SongService) -> None:
    rows = [
        ("Hotel California", "Eagles", "Hotel California", "Rock", 391),
        ("Take It Easy", "Eagles", "Eagles", "Rock", 211),
        ("So What", "Miles Davis", "Kind of Blue", "Jazz", 562),
        ("Blue in Green", "Miles Davis", "Kind of Blue", "Jazz", 337),
        ("Lose Yourself", "Eminem", "", "Hip Hop", 326),
    ]
    for title, artist, album, genre, duration in rows:
        await service.create_song(
            title=title, artist=artist, album=album, genre=genre, duration=duration
        )


# =============================================================================
# Validation
# =============================================================================


class TestValidation:
    def test_new_song_normalized(self) -> None:
        song = validate_new_song(
            title="  Hotel California ", artist="Eagles", genre="Rock", album="  ", duration="391"
        )
        assert song.title == "Hotel California"
        assert song.album is None
        assert song.duration == 391

    def test_new_song_collects_all_field_errors(self) -> None:
        with pytest.raises(CatalogError) as exc_info:
            validate_new_song(title="", artist="a" * 101, genre="Polka", duration="-3")

        err = exc_info.value
        assert err.kind is ErrorKind.BAD_REQUEST
        assert err.message == "Validation failed"
        assert {e.field for e in err.field_errors} == {"title", "artist", "genre", "duration"}

    def test_missing_genre(self) -> None:
        with pytest.raises(CatalogError) as exc_info:
            validate_new_song(title="t", artist="a", genre=None)
        assert [e.field for e in exc_info.value.field_errors] == ["genre"]

    def test_blank_required_fields_raise_catalog_error(self) -> None:
        with pytest.raises(CatalogError) as exc_info:
            validate_new_song(title="   ", artist=None, genre="Rock")
        assert exc_info.value.kind is ErrorKind.BAD_REQUEST
        assert [e.field for e in exc_info.value.field_errors] == ["title", "artist"]

    def test_update_drops_blank_and_unknown(self) -> None:
        cleaned = validate_update({"title": " New ", "album": "", "artist": None, "plays": 3})
        assert cleaned == {"title": "New"}

    def test_update_all_blank_rejected(self) -> None:
        with pytest.raises(CatalogError) as exc_info:
            validate_update({"title": "", "artist": "   ", "album": None})
        assert exc_info.value.kind is ErrorKind.BAD_REQUEST
        assert exc_info.value.message == "No valid update data provided"

    def test_update_bad_genre(self) -> None:
        with pytest.raises(CatalogError) as exc_info:
            validate_update({"genre": "Polka"})
        assert exc_info.value.field_errors[0].field == "genre"


# =============================================================================
# Listing / lookup
# =============================================================================


class TestListing:
    async def test_defaults(self, service: SongService) -> None:
        await _seed(service)

        result = await service.list_songs()

        assert result.total == 5
        assert result.page == 1
        assert result.limit == 10
        assert len(result.items) == 5
        # Newest first
        assert result.items[0].title == "Lose Yourself"

    async def test_artist_substring_case_insensitive(self, service: SongService) -> None:
        await _seed(service)

        result = await service.list_songs(SongFilter(artist="eagle"))

        assert result.total == 2
        assert {s.artist for s in result.items} == {"Eagles"}

    async def test_substring_match_folds_non_ascii_case(self, service: SongService) -> None:
        await service.create_song(title="Jóga", artist="Björk", album="Homogenic", genre="Pop")
        await service.create_song(title="Straße", artist="Kraftwerk", genre="Electronic")

        by_artist = await service.list_songs(SongFilter(artist="BJÖRK"))
        by_search = await service.list_songs(SongFilter(search="JÓGA"))
        by_title = await service.list_songs(SongFilter(title="STRASSE"))

        assert [s.artist for s in by_artist.items] == ["Björk"]
        assert [s.title for s in by_search.items] == ["Jóga"]
        assert [s.title for s in by_title.items] == ["Straße"]

    async def test_search_matches_any_text_field(self, service: SongService) -> None:
        await _seed(service)

        result = await service.list_songs(SongFilter(search="blue"))

        # Both tracks on "Kind of Blue"
        assert result.total == 2

    async def test_paging_clamps(self, service: SongService) -> None:
        await _seed(service)

        result = await service.list_songs(page="0", limit="1000")
        assert result.page == 1
        assert result.limit == 100

        second = await service.list_songs(page=2, limit=2, sort_by="title", sort_order="asc")
        assert [s.title for s in second.items] == ["Lose Yourself", "So What"]
        assert second.has_next and second.has_prev

    async def test_unknown_sort_falls_back(self, service: SongService) -> None:
        await _seed(service)

        fallback = await service.list_songs(sort_by="password", sort_order="sideways")
        default = await service.list_songs()

        assert [s.id for s in fallback.items] == [s.id for s in default.items]

    async def test_get_missing(self, service: SongService) -> None:
        with pytest.raises(CatalogError) as exc_info:
            await service.get_song(404)
        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert exc_info.value.message == "Song not found"

    async def test_timeout_maps_to_internal(self, store: FakeObjectStore) -> None:
        db = SlowDb(":memory:")
        await db.open()
        await db.ensure_schema()
        service = SongService(db=db, object_store=store, config=CatalogConfig(query_timeout=0.05))

        with pytest.raises(CatalogError) as exc_info:
            await service.list_songs()

        assert exc_info.value.kind is ErrorKind.INTERNAL
        assert exc_info.value.message == "Failed to fetch songs"
        await db.close()


# =============================================================================
# Writes
# =============================================================================


class TestCreate:
    async def test_create_without_file(self, service: SongService, store: FakeObjectStore) -> None:
        song = await service.create_song(title="So What", artist="Miles Davis", genre="Jazz")

        assert song.id > 0
        assert song.file_url is None
        assert store.uploads == []

    async def test_create_with_file(self, service: SongService, store: FakeObjectStore) -> None:
        upload = AudioUpload(data=b"ID3" + b"\x00" * 10, filename="so-what.mp3", content_type="audio/mpeg")

        song = await service.create_song(
            title="So What", artist="Miles Davis", genre="Jazz", upload=upload
        )

        assert store.validated == ["audio/mpeg"]
        assert store.uploads == ["songs/1-so-what.mp3"]
        assert song.file_url == "https://cdn.example.com/songs/1-so-what.mp3"
        assert song.file_name == "so-what.mp3"
        assert song.file_size == 13

    async def test_invalid_input_uploads_nothing(
        self, service: SongService, store: FakeObjectStore
    ) -> None:
        upload = AudioUpload(data=b"x", filename="x.mp3", content_type="audio/mpeg")

        with pytest.raises(CatalogError):
            await service.create_song(title="", artist="", genre="Rock", upload=upload)

        assert store.uploads == []

    async def test_rejected_file_uploads_nothing(
        self, service: SongService, store: FakeObjectStore
    ) -> None:
        upload = AudioUpload(data=b"hello", filename="notes.txt", content_type="text/plain")

        with pytest.raises(CatalogError) as exc_info:
            await service.create_song(title="t", artist="a", genre="Rock", upload=upload)

        assert exc_info.value.kind is ErrorKind.BAD_REQUEST
        assert store.validated == ["text/plain"]
        assert store.uploads == []
        assert (await service.list_songs()).total == 0

    async def test_failed_insert_discards_upload(self, store: FakeObjectStore) -> None:
        db = BrokenDb(":memory:")
        await db.open()
        await db.ensure_schema()
        service = SongService(db=db, object_store=store, config=CatalogConfig())
        upload = AudioUpload(data=b"x", filename="x.mp3", content_type="audio/mpeg")

        with pytest.raises(CatalogError) as exc_info:
            await service.create_song(title="t", artist="a", genre="Rock", upload=upload)

        assert exc_info.value.kind is ErrorKind.INTERNAL
        assert store.deletes == store.uploads == ["songs/1-x.mp3"]
        await db.close()


class TestUpdate:
    async def test_partial_update(self, service: SongService) -> None:
        song = await service.create_song(title="So What", artist="Miles Davis", genre="Jazz")

        updated = await service.update_song(song.id, {"title": "Freddie Freeloader", "album": ""})

        assert updated.title == "Freddie Freeloader"
        assert updated.artist == "Miles Davis"
        assert updated.album is None

    async def test_blank_update_never_writes(self, service: SongService, db: SpyDb) -> None:
        song = await service.create_song(title="So What", artist="Miles Davis", genre="Jazz")

        with pytest.raises(CatalogError) as exc_info:
            await service.update_song(song.id, {"title": "", "artist": "  "})

        assert exc_info.value.kind is ErrorKind.BAD_REQUEST
        assert db.update_calls == 0

    async def test_update_missing(self, service: SongService) -> None:
        with pytest.raises(CatalogError) as exc_info:
            await service.update_song(77, {"title": "x"})
        assert exc_info.value.kind is ErrorKind.NOT_FOUND


class TestDelete:
    async def test_delete_with_file(self, service: SongService, store: FakeObjectStore, db: SpyDb) -> None:
        upload = AudioUpload(data=b"x", filename="x.mp3", content_type="audio/mpeg")
        song = await service.create_song(title="t", artist="a", genre="Rock", upload=upload)

        result = await service.delete_song(song.id)

        assert result == {"id": song.id}
        assert store.deletes == ["songs/1-x.mp3"]
        assert db.delete_calls == 1
        with pytest.raises(CatalogError):
            await service.get_song(song.id)

    async def test_delete_without_file_skips_store(
        self, service: SongService, store: FakeObjectStore
    ) -> None:
        song = await service.create_song(title="t", artist="a", genre="Rock")

        await service.delete_song(song.id)

        assert store.deletes == []

    async def test_store_failure_keeps_row(self, db: SpyDb) -> None:
        store = FakeObjectStore(fail_delete=True)
        service = SongService(db=db, object_store=store, config=CatalogConfig())
        upload = AudioUpload(data=b"x", filename="x.mp3", content_type="audio/mpeg")
        song = await service.create_song(title="t", artist="a", genre="Rock", upload=upload)

        with pytest.raises(CatalogError) as exc_info:
            await service.delete_song(song.id)

        assert exc_info.value.kind is ErrorKind.INTERNAL
        assert exc_info.value.message == "Failed to delete file from object store"
        assert len(store.deletes) == 1
        assert db.delete_calls == 0
        assert (await service.get_song(song.id)).id == song.id

    async def test_delete_missing(self, service: SongService, store: FakeObjectStore) -> None:
        with pytest.raises(CatalogError) as exc_info:
            await service.delete_song(5)
        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert store.deletes == []


class TestArchive:
    async def test_archive_and_restore(self, service: SongService, store: FakeObjectStore) -> None:
        song = await service.create_song(title="t", artist="a", genre="Rock")

        archived = await service.soft_delete_song(song.id)
        assert archived.deleted_at is not None
        assert (await service.list_songs()).total == 0
        assert store.deletes == []

        restored = await service.restore_song(song.id)
        assert restored.deleted_at is None
        assert (await service.list_songs()).total == 1

    async def test_archived_song_can_be_deleted(self, service: SongService) -> None:
        song = await service.create_song(title="t", artist="a", genre="Rock")
        await service.soft_delete_song(song.id)

        assert await service.delete_song(song.id) == {"id": song.id}
