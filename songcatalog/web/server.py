"""
Web Server Module for the song catalog.

This module provides the WebServer class that creates and manages the
FastAPI application, registers all routes and error handlers, and runs
uvicorn in the background of the server's event loop.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from songcatalog import __version__
from songcatalog.core.object_store import LocalObjectStore
from songcatalog.errors import CatalogError, ErrorKind, FieldError
from songcatalog.web.responses import envelope, error_envelope
from songcatalog.web.routes.files import register_file_routes
from songcatalog.web.routes.songs import register_song_routes

if TYPE_CHECKING:
    from songcatalog.config import CatalogConfig
    from songcatalog.core.object_store import ObjectStore
    from songcatalog.core.songs import SongService
    from songcatalog.core.stats import StatsAggregator

logger = logging.getLogger(__name__)

# Location prefixes FastAPI puts in front of validation error locations
_LOCATION_PREFIXES = frozenset({"body", "query", "path", "form", "header", "cookie"})


def _field_errors(exc: RequestValidationError) -> list[FieldError]:
    errors = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if str(p) not in _LOCATION_PREFIXES]
        errors.append(FieldError(".".join(loc) or "request", str(err.get("msg", "Invalid value"))))
    return errors


class WebServer:
    """
    FastAPI-based web server for the song catalog.

    Provides:
    - REST API for songs and statistics
    - Audio downloads when files live in a local object store
    - Health check
    """

    def __init__(
        self,
        *,
        songs: SongService,
        stats: StatsAggregator,
        config: CatalogConfig,
        object_store: ObjectStore | None = None,
    ) -> None:
        """
        Initialize the WebServer.

        Args:
            songs: Song service for listing and the write path
            stats: Statistics aggregator
            config: Catalog configuration
            object_store: Optional object store; local stores get a download route
        """
        self.songs = songs
        self.stats = stats
        self.config = config
        self.object_store = object_store
        self._started_at = time.monotonic()

        # Create FastAPI app
        self.app = FastAPI(
            title="Song Catalog",
            description="Song catalog with audio attachments and statistics",
            version=__version__,
        )

        # Add CORS middleware
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=list(config.cors_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        # Server state
        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task[None] | None = None
        self._host = config.host
        self._port = config.port

        self._register_error_handlers()
        self._register_routes()

    def _register_error_handlers(self) -> None:
        """Map errors to the JSON envelope and an HTTP status."""

        @self.app.exception_handler(CatalogError)
        async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
            if exc.kind is ErrorKind.INTERNAL:
                logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
            return JSONResponse(
                status_code=exc.status_code,
                content=error_envelope(exc.message, exc.field_errors),
            )

        @self.app.exception_handler(StarletteHTTPException)
        async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
            if exc.status_code == 404 and exc.detail == "Not Found":
                message = "Route not found"
            else:
                message = str(exc.detail)
            return JSONResponse(
                status_code=exc.status_code,
                content=error_envelope(message),
                headers=getattr(exc, "headers", None),
            )

        @self.app.exception_handler(RequestValidationError)
        async def validation_error_handler(
            request: Request, exc: RequestValidationError
        ) -> JSONResponse:
            return JSONResponse(
                status_code=ErrorKind.BAD_REQUEST.status_code,
                content=error_envelope("Validation failed", _field_errors(exc)),
            )

        @self.app.exception_handler(Exception)
        async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
            logger.exception("Unexpected error on %s %s", request.method, request.url.path)
            body = error_envelope("Internal server error")
            if self.config.is_development:
                body["error"] = type(exc).__name__
            return JSONResponse(status_code=ErrorKind.INTERNAL.status_code, content=body)

    def _register_routes(self) -> None:
        """Register all routes with the FastAPI app."""

        @self.app.get("/api/health")
        async def health_check() -> dict[str, Any]:
            """Health check endpoint."""
            return envelope(
                {"status": "OK", "uptime": round(time.monotonic() - self._started_at, 3)},
                "Service is healthy",
            )

        register_song_routes(self.app, songs=self.songs, stats=self.stats)

        if isinstance(self.object_store, LocalObjectStore):
            mount_path = urlsplit(self.config.public_base_url).path or "/files"
            register_file_routes(self.app, object_store=self.object_store, mount_path=mount_path)

    async def start(self, host: str | None = None, port: int | None = None) -> None:
        """
        Start the web server.

        Args:
            host: Host address to bind to (defaults to the configured host)
            port: Port to listen on (defaults to the configured port)
        """
        self._host = host or self.config.host
        self._port = port or self.config.port

        config = uvicorn.Config(
            self.app,
            host=self._host,
            port=self._port,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(config)

        # Start server in background
        self._serve_task = asyncio.create_task(self._server.serve())

        logger.info("Web server started on http://%s:%d", self._host, self._port)

    async def stop(self) -> None:
        """Stop the web server."""
        if self._server is not None:
            self._server.should_exit = True
            self._server = None

        if self._serve_task is not None:
            await self._serve_task
            self._serve_task = None

        logger.info("Web server stopped")

    @property
    def port(self) -> int:
        """Get the server port."""
        return self._port

    @property
    def host(self) -> str:
        """Get the server host."""
        return self._host
