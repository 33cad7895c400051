"""
Download route for audio files held by the local object store.

Only registered when the server runs with a `LocalObjectStore`; other object
stores serve their own public URLs.
"""

from __future__ import annotations

import mimetypes
from typing import TYPE_CHECKING

from fastapi import APIRouter
from fastapi.responses import FileResponse

from songcatalog.errors import CatalogError, ErrorKind

if TYPE_CHECKING:
    from fastapi import FastAPI

    from songcatalog.core.object_store import LocalObjectStore


def register_file_routes(app: FastAPI, *, object_store: LocalObjectStore, mount_path: str) -> None:
    """
    Serve `object_store` objects under `mount_path`.

    Args:
        app: FastAPI application instance
        object_store: Store whose objects are served
        mount_path: URL path prefix, e.g. "/files"
    """
    router = APIRouter(tags=["files"])
    prefix = "/" + mount_path.strip("/")

    @router.get(prefix + "/{key:path}")
    async def download_file(key: str) -> FileResponse:
        path = object_store.resolve(key)
        if path is None:
            raise CatalogError(ErrorKind.NOT_FOUND, "File not found")
        media_type, _ = mimetypes.guess_type(path.name)
        return FileResponse(path, media_type=media_type or "application/octet-stream")

    app.include_router(router)
