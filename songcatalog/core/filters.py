"""
Filter builder: sparse query parameters -> storage predicates.

Parsing is lenient. Unknown genres, blank strings and unparseable
dates are dropped instead of rejected, so these functions never raise on
caller input.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from songcatalog.core.db.models import Genre, format_timestamp, normalize_text
from songcatalog.core.db.predicates import NOT_DELETED, Predicate

SEARCH_COLUMNS: tuple[str, ...] = ("title", "artist", "album")


def _text_param(params: Mapping[str, Any], key: str) -> str | None:
    value = params.get(key)
    if value is None:
        return None
    return normalize_text(str(value))


def _genre_param(value: Any) -> Genre | None:
    if isinstance(value, Genre):
        return value
    if value is None:
        return None
    return Genre.parse(str(value).strip())


def _fits_utc(value: datetime) -> bool:
    # Offsets near datetime.min or datetime.max cannot be shifted to UTC
    if value.tzinfo is None:
        return True
    try:
        value.astimezone(timezone.utc)
    except OverflowError:
        return False
    return True


def parse_date(value: Any) -> datetime | None:
    """
    Parse an ISO-8601 date or datetime; anything else yields None.

    Values that cannot be expressed in UTC count as unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if _fits_utc(value) else None
    text = str(value).strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if _fits_utc(parsed) else None


@dataclass(frozen=True, slots=True)
class SongFilter:
    """Listing filter. Every field is optional; set fields are ANDed."""

    genre: Genre | None = None
    artist: str | None = None
    album: str | None = None
    title: str | None = None
    search: str | None = None

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> SongFilter:
        return cls(
            genre=_genre_param(params.get("genre")),
            artist=_text_param(params, "artist"),
            album=_text_param(params, "album"),
            title=_text_param(params, "title"),
            search=_text_param(params, "search"),
        )


@dataclass(frozen=True, slots=True)
class StatsFilter:
    """Statistics filter. Date bounds are inclusive and may be open-ended."""

    start_date: datetime | None = None
    end_date: datetime | None = None
    genre: Genre | None = None
    artist: str | None = None
    album: str | None = None

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> StatsFilter:
        return cls(
            start_date=parse_date(params.get("startDate", params.get("start_date"))),
            end_date=parse_date(params.get("endDate", params.get("end_date"))),
            genre=_genre_param(params.get("genre")),
            artist=_text_param(params, "artist"),
            album=_text_param(params, "album"),
        )


def build_song_predicate(song_filter: SongFilter, *, include_deleted: bool = False) -> Predicate:
    """
    Translate a SongFilter into a Predicate.

    - genre: exact match
    - artist/album/title: case-insensitive substring
    - search: substring on title OR artist OR album, ANDed with the rest
    """
    predicate = Predicate() if include_deleted else NOT_DELETED

    if song_filter.genre is not None:
        predicate = predicate.and_(Predicate.equals("genre", song_filter.genre.value))

    for column in ("artist", "album", "title"):
        text = normalize_text(getattr(song_filter, column))
        if text:
            predicate = predicate.and_(Predicate.contains(column, text))

    search = normalize_text(song_filter.search)
    if search:
        predicate = predicate.and_(Predicate.contains_any(SEARCH_COLUMNS, search))

    return predicate


def build_stats_predicate(stats_filter: StatsFilter) -> Predicate:
    """Translate a StatsFilter into the base Predicate shared by every aggregate."""
    predicate = NOT_DELETED

    start_date = parse_date(stats_filter.start_date)
    if start_date is not None:
        predicate = predicate.and_(Predicate.at_least("created_at", format_timestamp(start_date)))
    end_date = parse_date(stats_filter.end_date)
    if end_date is not None:
        predicate = predicate.and_(Predicate.at_most("created_at", format_timestamp(end_date)))

    if stats_filter.genre is not None:
        predicate = predicate.and_(Predicate.equals("genre", stats_filter.genre.value))

    artist = normalize_text(stats_filter.artist)
    if artist:
        predicate = predicate.and_(Predicate.contains("artist", artist))

    album = normalize_text(stats_filter.album)
    if album:
        predicate = predicate.and_(Predicate.contains("album", album))

    return predicate
