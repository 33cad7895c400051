"""
Main Song Catalog Server.

This module contains the CatalogServer class that wires the storage layer,
the object store, the services and the web server together, and manages
their lifecycle.
"""

from __future__ import annotations

import asyncio
import logging
import signal

from songcatalog.config import CatalogConfig
from songcatalog.core.catalog_db import CatalogDb
from songcatalog.core.object_store import LocalObjectStore
from songcatalog.core.songs import SongService
from songcatalog.core.stats import StatsAggregator
from songcatalog.web.server import WebServer

logger = logging.getLogger(__name__)


class CatalogServer:
    """
    Main server class that coordinates all components.

    Responsibilities:
    - Open the SQLite catalog and bring its schema up to date
    - Build the song service and the stats aggregator
    - Run the HTTP API until a shutdown signal arrives
    """

    def __init__(self, config: CatalogConfig | None = None) -> None:
        """
        Initialize the catalog server.

        Args:
            config: Runtime configuration (defaults to `CatalogConfig()`)
        """
        self.config = config or CatalogConfig()

        self.db = CatalogDb(self.config.db_path)
        self.object_store = LocalObjectStore(
            self.config.upload_dir,
            self.config.public_base_url,
            allowed_mime_types=self.config.allowed_mime_types,
            max_size=self.config.max_upload_bytes,
        )
        self.songs = SongService(db=self.db, object_store=self.object_store, config=self.config)
        self.stats = StatsAggregator(db=self.db, config=self.config)
        self.web_server = WebServer(
            songs=self.songs,
            stats=self.stats,
            config=self.config,
            object_store=self.object_store,
        )

        self._running = False
        self._shutdown_event: asyncio.Event | None = None

    async def start(self) -> None:
        """Start all server components."""
        logger.info("Starting song catalog (%s)", self.config.environment)

        self._running = True
        self._shutdown_event = asyncio.Event()

        await self.db.open()
        await self.db.ensure_schema()
        logger.info("Catalog database ready at %s", self.config.db_path)

        self.config.upload_dir.mkdir(parents=True, exist_ok=True)

        await self.web_server.start()

        logger.info("Song catalog started on http://%s:%d", self.config.host, self.config.port)

    async def stop(self) -> None:
        """Stop all server components gracefully."""
        if not self._running:
            return

        logger.info("Stopping song catalog...")
        self._running = False

        await self.web_server.stop()
        await self.db.close()

        if self._shutdown_event:
            self._shutdown_event.set()

        logger.info("Song catalog stopped")

    async def run(self) -> None:
        """
        Run the server until shutdown is requested.

        Starts all components and waits for SIGINT or SIGTERM.
        """
        await self.start()

        loop = asyncio.get_running_loop()

        def handle_signal() -> None:
            logger.info("Received shutdown signal")
            if self._shutdown_event:
                self._shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, handle_signal)
            except NotImplementedError:
                # Signal handlers not supported on Windows
                pass

        if self._shutdown_event:
            await self._shutdown_event.wait()

        await self.stop()

    @property
    def is_running(self) -> bool:
        """Check if the server is running."""
        return self._running
