"""
Song service: listing, lookup and the write path.

The service owns validation and error mapping. It talks to storage only
through `CatalogDb` and to file storage only through an `ObjectStore`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Mapping, TypeVar

from songcatalog.config import CatalogConfig
from songcatalog.core.catalog_db import CatalogDb
from songcatalog.core.db.models import (
    ALBUM_MAX_LENGTH,
    ARTIST_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    Genre,
    NewSong,
    SongRow,
    clean_update,
    normalize_text,
)
from songcatalog.core.db.ordering import songs_order_clause
from songcatalog.core.filters import SongFilter, build_song_predicate
from songcatalog.core.guard import guarded
from songcatalog.core.object_store import ObjectStore
from songcatalog.core.pagination import PageRequest, PaginatedResult
from songcatalog.errors import CatalogError, ErrorKind, FieldError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class AudioUpload:
    """An audio file received from a client, not yet stored."""

    data: bytes
    filename: str
    content_type: str


def _check_length(errors: list[FieldError], field: str, value: str | None, limit: int) -> None:
    if value is not None and len(value) > limit:
        errors.append(FieldError(field, f"{field} cannot exceed {limit} characters"))


def _parse_duration(errors: list[FieldError], value: Any) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        duration = int(str(value).strip()) if not isinstance(value, int) else value
    except ValueError:
        errors.append(FieldError("duration", "duration must be an integer"))
        return None
    if duration < 0:
        errors.append(FieldError("duration", "duration cannot be negative"))
        return None
    return duration


def validate_new_song(
    *,
    title: str | None,
    artist: str | None,
    genre: str | None,
    album: str | None = None,
    duration: Any = None,
) -> NewSong:
    """
    Validate create input and return a normalized NewSong.

    Raises:
        CatalogError(BAD_REQUEST) listing every invalid field.
    """
    errors: list[FieldError] = []

    title = normalize_text(title)
    artist = normalize_text(artist)
    album = normalize_text(album)
    genre_text = normalize_text(genre)

    if title is None:
        errors.append(FieldError("title", "Title is required"))
    if artist is None:
        errors.append(FieldError("artist", "Artist is required"))
    _check_length(errors, "title", title, TITLE_MAX_LENGTH)
    _check_length(errors, "artist", artist, ARTIST_MAX_LENGTH)
    _check_length(errors, "album", album, ALBUM_MAX_LENGTH)

    parsed_genre = Genre.parse(genre_text)
    if genre_text is None:
        errors.append(FieldError("genre", "Genre is required"))
    elif parsed_genre is None:
        errors.append(FieldError("genre", f"Invalid genre: {genre_text}"))

    parsed_duration = _parse_duration(errors, duration)

    if errors or title is None or artist is None or parsed_genre is None:
        raise CatalogError(ErrorKind.BAD_REQUEST, "Validation failed", errors)

    return NewSong(
        title=title,
        artist=artist,
        album=album,
        genre=parsed_genre.value,
        duration=parsed_duration or 0,
    )


def validate_update(changes: Mapping[str, Any]) -> dict[str, Any]:
    """
    Clean and validate a partial update.

    Undefined fields and blank strings are dropped first; an update left with
    nothing to write is rejected.

    Raises:
        CatalogError(BAD_REQUEST)
    """
    cleaned = clean_update(dict(changes))
    if not cleaned:
        raise CatalogError(ErrorKind.BAD_REQUEST, "No valid update data provided")

    errors: list[FieldError] = []
    _check_length(errors, "title", cleaned.get("title"), TITLE_MAX_LENGTH)
    _check_length(errors, "artist", cleaned.get("artist"), ARTIST_MAX_LENGTH)
    _check_length(errors, "album", cleaned.get("album"), ALBUM_MAX_LENGTH)

    if "genre" in cleaned:
        genre = Genre.parse(cleaned["genre"])
        if genre is None:
            errors.append(FieldError("genre", f"Invalid genre: {cleaned['genre']}"))
        else:
            cleaned["genre"] = genre.value

    if "duration" in cleaned:
        duration = _parse_duration(errors, cleaned["duration"])
        if duration is not None:
            cleaned["duration"] = duration

    file_size = cleaned.get("file_size")
    if file_size is not None and (not isinstance(file_size, int) or file_size < 0):
        errors.append(FieldError("file_size", "file_size cannot be negative"))

    if errors:
        raise CatalogError(ErrorKind.BAD_REQUEST, "Validation failed", errors)
    return cleaned


class SongService:
    """
    High-level song operations.

    Dependencies:
    - `CatalogDb` for persistence
    - `ObjectStore` for audio files
    - `CatalogConfig` for page sizes and storage timeouts
    """

    def __init__(self, *, db: CatalogDb, object_store: ObjectStore, config: CatalogConfig) -> None:
        self._db = db
        self._object_store = object_store
        self._config = config

    def _guard(self, call: Awaitable[T], failure: str) -> Awaitable[T]:
        return guarded(call, timeout=self._config.query_timeout, failure=failure)

    # ---- Reads ----

    def page_request(self, page: Any = None, limit: Any = None) -> PageRequest:
        return PageRequest.from_raw(
            page,
            limit,
            default_limit=self._config.default_page_size,
            max_limit=self._config.max_page_size,
        )

    async def list_songs(
        self,
        song_filter: SongFilter | None = None,
        *,
        page: Any = None,
        limit: Any = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
        include_deleted: bool = False,
    ) -> PaginatedResult[SongRow]:
        """
        Filtered, sorted, paginated listing.

        The page fetch and the total count are independent reads issued
        together; either failing fails the whole call.
        """
        predicate = build_song_predicate(song_filter or SongFilter(), include_deleted=include_deleted)
        request = self.page_request(page, limit)
        order_clause = songs_order_clause(sort_by, sort_order)

        items, total = await asyncio.gather(
            self._guard(
                self._db.find(predicate, order_clause=order_clause, skip=request.skip, limit=request.limit),
                "Failed to fetch songs",
            ),
            self._guard(self._db.count(predicate), "Failed to fetch songs"),
        )

        logger.debug(
            "Listed songs page=%d limit=%d total=%d returned=%d",
            request.page,
            request.limit,
            total,
            len(items),
        )
        return PaginatedResult(items=items, total=total, page=request.page, limit=request.limit)

    async def get_song(self, song_id: int, *, include_deleted: bool = False) -> SongRow:
        song = await self._guard(
            self._db.get_song_by_id(song_id, include_deleted=include_deleted),
            "Failed to fetch song",
        )
        if song is None:
            raise CatalogError(ErrorKind.NOT_FOUND, "Song not found")
        return song

    # ---- Writes ----

    async def create_song(
        self,
        *,
        title: str | None,
        artist: str | None,
        genre: str | None,
        album: str | None = None,
        duration: Any = None,
        upload: AudioUpload | None = None,
    ) -> SongRow:
        """
        Validate, store the optional audio file, then insert the song.

        The upload is checked against the object store's type and size rules
        before anything is written.

        If the insert fails after the file was stored, the stored object is
        removed again.
        """
        new_song = validate_new_song(
            title=title, artist=artist, genre=genre, album=album, duration=duration
        )

        stored = None
        if upload is not None:
            self._object_store.validate(upload.data, upload.content_type)
            stored = await self._object_store.upload(upload.data, upload.filename, upload.content_type)
            new_song = NewSong(
                title=new_song.title,
                artist=new_song.artist,
                album=new_song.album,
                genre=new_song.genre,
                duration=new_song.duration,
                file_url=stored.url,
                file_name=stored.original_name,
                file_size=stored.size,
            )

        try:
            song = await self._guard(self._db.insert_song(new_song), "Failed to create song")
        except CatalogError:
            if stored is not None:
                await self._discard_upload(stored.key)
            raise

        logger.info("Created song %d: %s - %s", song.id, song.artist, song.title)
        return song

    async def _discard_upload(self, key: str) -> None:
        try:
            await self._object_store.delete(key)
        except CatalogError as e:
            logger.warning("Could not remove orphaned object %s: %s", key, e.message)

    async def update_song(self, song_id: int, changes: Mapping[str, Any]) -> SongRow:
        cleaned = validate_update(changes)
        song = await self._guard(self._db.update_song(song_id, cleaned), "Failed to update song")
        if song is None:
            raise CatalogError(ErrorKind.NOT_FOUND, "Song not found")
        logger.info("Updated song %d (%s)", song_id, ", ".join(sorted(cleaned)))
        return song

    async def delete_song(self, song_id: int) -> dict[str, int]:
        """
        Permanently delete a song and its audio file.

        The object-store delete runs first; if it fails the song row is kept
        and INTERNAL is raised.
        """
        song = await self.get_song(song_id, include_deleted=True)

        if song.file_url:
            key = self._object_store.key_from_url(song.file_url)
            try:
                await self._object_store.delete(key)
            except Exception as e:
                logger.error("Object delete failed for song %d (%s): %s", song_id, key, e)
                raise CatalogError(ErrorKind.INTERNAL, "Failed to delete file from object store") from e

        deleted = await self._guard(self._db.delete_song(song_id), "Failed to delete song")
        if not deleted:
            raise CatalogError(ErrorKind.NOT_FOUND, "Song not found")

        logger.info("Deleted song %d", song_id)
        return {"id": song_id}

    async def soft_delete_song(self, song_id: int) -> SongRow:
        """Mark a song deleted without touching its audio file."""
        song = await self._guard(self._db.soft_delete_song(song_id), "Failed to archive song")
        if song is None:
            raise CatalogError(ErrorKind.NOT_FOUND, "Song not found")
        logger.info("Archived song %d", song_id)
        return song

    async def restore_song(self, song_id: int) -> SongRow:
        song = await self._guard(self._db.restore_song(song_id), "Failed to restore song")
        if song is None:
            raise CatalogError(ErrorKind.NOT_FOUND, "Song not found")
        logger.info("Restored song %d", song_id)
        return song
