"""
Tests for songcatalog.config and the command line entry point.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from songcatalog.__main__ import build_config, parse_args
from songcatalog.config import CatalogConfig, load_config


class TestLoadConfig:
    def test_defaults(self) -> None:
        config = load_config(environ={})
        assert config == CatalogConfig()
        assert config.port == 8000
        assert config.default_page_size == 10
        assert config.max_page_size == 100
        assert config.is_development

    def test_toml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.toml"
        path.write_text(
            """
[server]
port = 9100
environment = "production"
cors_origins = ["https://app.example.com"]

[storage]
db_path = "/data/catalog.sqlite3"

[uploads]
dir = "/data/uploads"
max_bytes = 1024

[query]
timeout = 2.5
max_page_size = 50
"""
        )

        config = load_config(path, environ={})

        assert config.port == 9100
        assert not config.is_development
        assert config.cors_origins == ("https://app.example.com",)
        assert config.db_path == "/data/catalog.sqlite3"
        assert config.upload_dir == Path("/data/uploads")
        assert config.max_upload_bytes == 1024
        assert config.query_timeout == 2.5
        assert config.max_page_size == 50

    def test_env_overrides_file(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.toml"
        path.write_text("[server]\nport = 9100\n")

        config = load_config(
            path,
            environ={
                "SONGCATALOG_PORT": "9200",
                "SONGCATALOG_CORS_ORIGINS": "https://a.example.com, https://b.example.com",
                "SONGCATALOG_HOST": "",
            },
        )

        assert config.port == 9200
        assert config.cors_origins == ("https://a.example.com", "https://b.example.com")
        assert config.host == "0.0.0.0"

    def test_missing_file_is_error(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.toml", environ={})


class TestCommandLine:
    def test_flags_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SONGCATALOG_PORT", raising=False)
        args = parse_args(["--port", "8123", "--db-path", "x.sqlite3"])

        config = build_config(args)

        assert config.port == 8123
        assert config.db_path == "x.sqlite3"

    def test_with_overrides_skips_none(self) -> None:
        config = CatalogConfig()
        assert config.with_overrides(host=None, port=None) is config
