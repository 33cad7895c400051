"""
Object storage for uploaded audio files.

The catalog needs an object store to check an upload before storing it, put
bytes under a fresh key, delete a key, and recover the key from the public URL
stored on a song. `ObjectStore` captures that contract; `LocalObjectStore`
implements it on the local filesystem and is what the server wires up by
default.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Protocol
from urllib.parse import unquote, urlsplit

from songcatalog.errors import CatalogError, ErrorKind

logger = logging.getLogger(__name__)

KEY_PREFIX = "songs"


@dataclass(frozen=True, slots=True)
class StoredObject:
    """Result of a successful upload."""

    key: str
    url: str
    size: int
    original_name: str
    content_type: str


class ObjectStore(Protocol):
    def validate(self, data: bytes, content_type: str) -> None: ...

    async def upload(self, data: bytes, original_name: str, content_type: str) -> StoredObject: ...

    async def delete(self, key: str) -> None: ...

    def key_from_url(self, url: str) -> str: ...


def generate_key(original_name: str) -> str:
    """`songs/<unix-ms>-<12 hex chars><ext>`, keeping the original extension."""
    suffix = PurePosixPath(original_name).suffix.lower()
    return f"{KEY_PREFIX}/{int(time.time() * 1000)}-{secrets.token_hex(6)}{suffix}"


def key_from_url(url: str) -> str:
    """The object key is the URL path without its leading slash."""
    return unquote(urlsplit(url).path).lstrip("/")


class LocalObjectStore:
    """
    Filesystem-backed object store.

    Objects live under `root / key`. Public URLs are `public_base_url + "/" + key`;
    the path part of `public_base_url` is stripped again when a key is derived
    from a URL, so URL -> key -> URL round-trips.
    """

    def __init__(
        self,
        root: Path,
        public_base_url: str,
        *,
        allowed_mime_types: tuple[str, ...],
        max_size: int,
    ) -> None:
        self.root = root
        self.public_base_url = public_base_url.rstrip("/")
        self.allowed_mime_types = allowed_mime_types
        self.max_size = max_size
        self._base_path = urlsplit(self.public_base_url).path.strip("/")

    def validate(self, data: bytes, content_type: str) -> None:
        """Reject unsupported MIME types and oversized payloads."""
        if content_type not in self.allowed_mime_types:
            allowed = ", ".join(self.allowed_mime_types)
            raise CatalogError(
                ErrorKind.BAD_REQUEST,
                f"Invalid file type. Allowed types: {allowed}",
            )
        if len(data) > self.max_size:
            raise CatalogError(ErrorKind.BAD_REQUEST, "File size too large")

    def url_for(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    def key_from_url(self, url: str) -> str:
        path = key_from_url(url)
        if self._base_path and path.startswith(self._base_path + "/"):
            path = path[len(self._base_path) + 1 :]
        return path

    def _path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise CatalogError(ErrorKind.BAD_REQUEST, "Invalid object key")
        return path

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def upload(self, data: bytes, original_name: str, content_type: str) -> StoredObject:
        self.validate(data, content_type)

        key = generate_key(original_name)
        path = self._path_for(key)
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as e:
            logger.error("Object upload failed for %s: %s", key, e)
            raise CatalogError(ErrorKind.INTERNAL, "Failed to upload file") from e

        logger.info("Stored object %s (%d bytes)", key, len(data))
        return StoredObject(
            key=key,
            url=self.url_for(key),
            size=len(data),
            original_name=original_name,
            content_type=content_type,
        )

    async def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as e:
            logger.error("Object delete failed for %s: %s", key, e)
            raise CatalogError(ErrorKind.INTERNAL, "Failed to delete file") from e
        logger.info("Deleted object %s", key)

    def resolve(self, key: str) -> Path | None:
        """Filesystem path for `key`, or None if no such object exists."""
        path = self._path_for(key)
        return path if path.is_file() else None
