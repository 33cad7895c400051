"""
DB models (DTOs) and small normalization helpers.

This module is intentionally lightweight:
- No DB connection knowledge
- No SQL
- Pure dataclasses + helper functions
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Genre(str, Enum):
    """Closed set of genres a song can be filed under."""

    POP = "Pop"
    ROCK = "Rock"
    HIP_HOP = "Hip Hop"
    RNB = "R&B"
    JAZZ = "Jazz"
    CLASSICAL = "Classical"
    ELECTRONIC = "Electronic"
    COUNTRY = "Country"
    REGGAE = "Reggae"
    BLUES = "Blues"
    FOLK = "Folk"
    METAL = "Metal"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: str | None) -> Genre | None:
        """Return the member whose value equals `value`, or None."""
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


GENRE_VALUES: tuple[str, ...] = tuple(g.value for g in Genre)

TITLE_MAX_LENGTH = 200
ARTIST_MAX_LENGTH = 100
ALBUM_MAX_LENGTH = 200


@dataclass(frozen=True, slots=True)
class SongRow:
    """
    Song record as stored in SQLite.

    Timestamps are ISO-8601 UTC strings, which sort lexicographically.
    `deleted_at` is set only for soft-deleted songs.
    """

    id: int
    title: str
    artist: str
    album: str | None
    genre: str
    duration: int
    file_url: str | None
    file_name: str | None
    file_size: int | None
    created_at: str
    updated_at: str
    deleted_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON shape used by the web layer."""
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "genre": self.genre,
            "duration": self.duration,
            "fileUrl": self.file_url,
            "fileName": self.file_name,
            "fileSize": self.file_size,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "deletedAt": self.deleted_at,
        }


@dataclass(frozen=True, slots=True)
class NewSong:
    """
    Input record for inserting a song.

    `file_url`, `file_name` and `file_size` are either all set (file attached)
    or all None.
    """

    title: str
    artist: str
    genre: str
    album: str | None = None
    duration: int = 0
    file_url: str | None = None
    file_name: str | None = None
    file_size: int | None = None


# Columns a partial update may touch.
UPDATABLE_COLUMNS: tuple[str, ...] = (
    "title",
    "artist",
    "album",
    "genre",
    "duration",
    "file_url",
    "file_name",
    "file_size",
)


def format_timestamp(value: datetime) -> str:
    """
    Render a datetime the way timestamps are stored.

    Naive datetimes are taken as UTC. Every stored timestamp shares this
    fixed-width format so range comparisons work on the raw strings.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds")


def utc_now() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def normalize_text(value: str | None) -> str | None:
    """
    Normalize optional text fields:
    - strip whitespace
    - coerce empty strings to None
    """
    if value is None:
        return None
    v = value.strip()
    return v if v else None


def clean_update(changes: dict[str, Any]) -> dict[str, Any]:
    """
    Drop entries that must not be written by a partial update.

    Removes unknown columns, None values and blank strings; strips the
    remaining strings.
    """
    cleaned: dict[str, Any] = {}
    for key, value in changes.items():
        if key not in UPDATABLE_COLUMNS or value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        cleaned[key] = value
    return cleaned


@dataclass(frozen=True, slots=True)
class ArtistStatRow:
    """Per-artist rollup produced by the stats queries."""

    artist: str
    total_songs: int
    total_albums: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "artist": self.artist,
            "totalSongs": self.total_songs,
            "totalAlbums": self.total_albums,
        }


@dataclass(frozen=True, slots=True)
class AlbumStatRow:
    """Per-(album, artist) rollup produced by the stats queries."""

    album: str | None
    artist: str
    total_songs: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "album": self.album,
            "artist": self.artist,
            "totalSongs": self.total_songs,
        }
