"""
Configuration management for the song catalog.

Configuration is built once at startup and handed to the components that need
it. Sources, lowest precedence first:

1. Dataclass defaults
2. An optional TOML file (`[server]`, `[storage]`, `[uploads]`, `[query]`)
3. `SONGCATALOG_*` environment variables
4. Command line flags (applied by `songcatalog.__main__`)
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_MIME_TYPES: tuple[str, ...] = (
    "audio/mpeg",  # .mp3
    "audio/wav",  # .wav
    "audio/mp4",  # .m4a
    "audio/aac",  # .aac
    "audio/ogg",  # .ogg
    "audio/flac",  # .flac
    "audio/x-ms-wma",  # .wma
)

ENV_PREFIX = "SONGCATALOG_"


@dataclass(frozen=True)
class CatalogConfig:
    """Runtime configuration shared by the storage, service and web layers."""

    host: str = "0.0.0.0"
    port: int = 8000
    environment: str = "development"
    cors_origins: tuple[str, ...] = ("*",)

    db_path: str = "songcatalog.sqlite3"

    upload_dir: Path = Path("uploads")
    public_base_url: str = "http://localhost:8000/files"
    max_upload_bytes: int = 50 * 1024 * 1024
    allowed_mime_types: tuple[str, ...] = field(default=DEFAULT_ALLOWED_MIME_TYPES)

    query_timeout: float = 10.0
    default_page_size: int = 10
    max_page_size: int = 100

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    def with_overrides(self, **changes: Any) -> CatalogConfig:
        """Return a copy with the given non-None fields replaced."""
        filtered = {k: v for k, v in changes.items() if v is not None}
        if not filtered:
            return self
        return replace(self, **filtered)


# TOML section -> key -> dataclass field
_TOML_FIELDS: dict[str, dict[str, str]] = {
    "server": {
        "host": "host",
        "port": "port",
        "environment": "environment",
        "cors_origins": "cors_origins",
    },
    "storage": {
        "db_path": "db_path",
    },
    "uploads": {
        "dir": "upload_dir",
        "public_base_url": "public_base_url",
        "max_bytes": "max_upload_bytes",
        "allowed_mime_types": "allowed_mime_types",
    },
    "query": {
        "timeout": "query_timeout",
        "default_page_size": "default_page_size",
        "max_page_size": "max_page_size",
    },
}

_ENV_FIELDS: dict[str, str] = {
    "HOST": "host",
    "PORT": "port",
    "ENVIRONMENT": "environment",
    "CORS_ORIGINS": "cors_origins",
    "DB_PATH": "db_path",
    "UPLOAD_DIR": "upload_dir",
    "PUBLIC_BASE_URL": "public_base_url",
    "MAX_UPLOAD_BYTES": "max_upload_bytes",
    "QUERY_TIMEOUT": "query_timeout",
}


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw TOML/env value to the type of the named field."""
    if name in ("port", "max_upload_bytes", "default_page_size", "max_page_size"):
        return int(value)
    if name == "query_timeout":
        return float(value)
    if name == "upload_dir":
        return Path(value)
    if name in ("cors_origins", "allowed_mime_types"):
        if isinstance(value, str):
            return tuple(v.strip() for v in value.split(",") if v.strip())
        return tuple(str(v) for v in value)
    return str(value)


def _from_toml(data: Mapping[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for section, keys in _TOML_FIELDS.items():
        table = data.get(section, {})
        for key, field_name in keys.items():
            if key in table:
                values[field_name] = _coerce(field_name, table[key])
    return values


def _from_env(environ: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for suffix, field_name in _ENV_FIELDS.items():
        raw = environ.get(ENV_PREFIX + suffix)
        if raw is not None and raw != "":
            values[field_name] = _coerce(field_name, raw)
    return values


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> CatalogConfig:
    """
    Build a CatalogConfig from defaults, an optional TOML file and the environment.

    Args:
        config_path: Optional path to a TOML file. Missing files are an error.
        environ: Environment mapping (defaults to `os.environ`).

    Returns:
        The assembled configuration.
    """
    values: dict[str, Any] = {}

    if config_path is not None:
        logger.debug("Loading catalog config from %s", config_path)
        with config_path.open("rb") as f:
            values.update(_from_toml(tomllib.load(f)))

    values.update(_from_env(os.environ if environ is None else environ))

    return CatalogConfig(**values)


__all__ = ["CatalogConfig", "DEFAULT_ALLOWED_MIME_TYPES", "load_config"]
