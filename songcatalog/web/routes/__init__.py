"""
Web Routes Package.

This package contains FastAPI route modules:
- songs: song CRUD and statistics (/api/songs*)
- files: audio downloads from the local object store (/files/*)
"""

from songcatalog.web.routes.files import register_file_routes
from songcatalog.web.routes.songs import register_song_routes

__all__ = [
    "register_file_routes",
    "register_song_routes",
]
