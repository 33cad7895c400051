"""
REST routes for songs and catalog statistics.

- GET    /api/songs                 listing (filters, pagination, sort)
- POST   /api/songs                 create (multipart form, optional `audio` file)
- GET    /api/songs/stats           catalog statistics
- GET    /api/songs/{id}            single song
- PATCH  /api/songs/{id}            partial update (JSON)
- DELETE /api/songs/{id}            permanent delete (also removes the audio file)
- POST   /api/songs/{id}/archive    soft delete
- POST   /api/songs/{id}/restore    undo a soft delete
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from fastapi import APIRouter, File, Form, Query, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from songcatalog.core.filters import SongFilter, StatsFilter
from songcatalog.core.songs import AudioUpload
from songcatalog.web.responses import envelope, paginated

if TYPE_CHECKING:
    from fastapi import FastAPI

    from songcatalog.core.songs import SongService
    from songcatalog.core.stats import StatsAggregator

logger = logging.getLogger(__name__)


class SongUpdateBody(BaseModel):
    """Partial update payload. Omitted, null and blank fields are ignored."""

    title: Optional[str] = Field(None, description="Song title")
    artist: Optional[str] = Field(None, description="Artist name")
    album: Optional[str] = Field(None, description="Album name")
    genre: Optional[str] = Field(None, description="One of the known genres")
    duration: Optional[int] = Field(None, description="Length in seconds")


def register_song_routes(
    app: FastAPI,
    *,
    songs: SongService,
    stats: StatsAggregator,
) -> None:
    """
    Register song and stats routes with the FastAPI app.

    Args:
        app: FastAPI application instance
        songs: SongService handling listing and the write path
        stats: StatsAggregator for /api/songs/stats
    """
    router = APIRouter(prefix="/api/songs", tags=["songs"])

    @router.get("")
    async def list_songs(
        request: Request,
        page: Optional[str] = None,
        limit: Optional[str] = None,
        sort_by: Optional[str] = Query(None, alias="sortBy"),
        sort_order: Optional[str] = Query(None, alias="sortOrder"),
    ) -> dict[str, Any]:
        """List songs. Unknown filters and bad paging values are ignored."""
        song_filter = SongFilter.from_params(request.query_params)
        result = await songs.list_songs(
            song_filter,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return paginated(result, "Songs retrieved successfully")

    @router.post("", status_code=201)
    async def create_song(
        title: Optional[str] = Form(None),
        artist: Optional[str] = Form(None),
        album: Optional[str] = Form(None),
        genre: Optional[str] = Form(None),
        duration: Optional[str] = Form(None),
        audio: Optional[UploadFile] = File(None),
    ) -> JSONResponse:
        upload = None
        if audio is not None and audio.filename:
            upload = AudioUpload(
                data=await audio.read(),
                filename=audio.filename,
                content_type=audio.content_type or "application/octet-stream",
            )
            logger.debug("Received upload %s (%s)", upload.filename, upload.content_type)

        song = await songs.create_song(
            title=title,
            artist=artist,
            album=album,
            genre=genre,
            duration=duration,
            upload=upload,
        )
        return JSONResponse(
            status_code=201,
            content=envelope(song.to_dict(), "Song created successfully"),
        )

    # Registered before /{song_id} so "stats" is not taken for an id.
    @router.get("/stats")
    async def song_stats(request: Request) -> dict[str, Any]:
        stats_filter = StatsFilter.from_params(request.query_params)
        report = await stats.get_stats(stats_filter)
        return envelope(report.to_dict(), "Song statistics retrieved successfully")

    @router.get("/{song_id}")
    async def get_song(song_id: int) -> dict[str, Any]:
        song = await songs.get_song(song_id)
        return envelope(song.to_dict(), "Song retrieved successfully")

    @router.patch("/{song_id}")
    async def update_song(song_id: int, body: SongUpdateBody) -> dict[str, Any]:
        song = await songs.update_song(song_id, body.model_dump(exclude_unset=True))
        return envelope(song.to_dict(), "Song updated successfully")

    @router.delete("/{song_id}")
    async def delete_song(song_id: int) -> dict[str, Any]:
        deleted = await songs.delete_song(song_id)
        return envelope(deleted, "Song deleted successfully")

    @router.post("/{song_id}/archive")
    async def archive_song(song_id: int) -> dict[str, Any]:
        song = await songs.soft_delete_song(song_id)
        return envelope(song.to_dict(), "Song archived successfully")

    @router.post("/{song_id}/restore")
    async def restore_song(song_id: int) -> dict[str, Any]:
        song = await songs.restore_song(song_id)
        return envelope(song.to_dict(), "Song restored successfully")

    app.include_router(router)
