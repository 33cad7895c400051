"""
Song Catalog Web Layer.

Components:
- WebServer: FastAPI application with all routes and error handlers
- responses: the JSON envelope every endpoint returns
"""

from songcatalog.web.server import WebServer

__all__ = [
    "WebServer",
]
