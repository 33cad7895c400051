"""
Song Catalog - a REST service for songs with audio attachments.

Songs are stored in SQLite; audio files go to an object store. The HTTP API
offers filtered, paginated listing, the usual write operations and catalog
statistics.
"""

__version__ = "0.1.0"

from songcatalog.server import CatalogServer

__all__ = ["CatalogServer", "__version__"]
