"""Tests for server configuration."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from library_catalog.config import ServerConfig, get_config, reset_config


class TestServerConfig:
    def test_default_configuration(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("LIBRARY_CATALOG_DATABASE_PATH", raising=False)
        config = ServerConfig(_env_file=None)

        assert config.server_name == "library-catalog"
        assert config.server_version == "0.1.0"
        assert config.transport == "stdio"
        assert config.lock_timeout == 5.0
        assert config.database_url is None
        assert config.database_path == Path("data/library.db").absolute()

    def test_environment_variable_loading(self, tmp_path):
        env_vars = {
            "LIBRARY_CATALOG_SERVER_NAME": "branch-library",
            "LIBRARY_CATALOG_DATABASE_PATH": str(tmp_path / "branch.db"),
            "LIBRARY_CATALOG_LOCK_TIMEOUT": "1.5",
            "LIBRARY_CATALOG_DEBUG": "true",
        }

        with patch.dict(os.environ, env_vars):
            config = ServerConfig()

        assert config.server_name == "branch-library"
        assert config.database_path == tmp_path / "branch.db"
        assert config.lock_timeout == 1.5
        assert config.debug is True
        assert config.is_development is True

    def test_database_url_wins_over_path(self, tmp_path):
        config = ServerConfig(
            database_path=tmp_path / "ignored.db",
            database_url="postgresql+psycopg://library@localhost/library",
        )
        assert config.get_database_url() == "postgresql+psycopg://library@localhost/library"

    def test_sqlite_url_from_path(self, tmp_path):
        config = ServerConfig(database_path=tmp_path / "library.db")
        assert config.get_database_url() == f"sqlite:///{tmp_path / 'library.db'}"

    def test_database_url_hidden_from_repr(self):
        config = ServerConfig(database_url="postgresql://user:secret@db/library")
        assert "secret" not in repr(config)

    @pytest.mark.parametrize("timeout", [0, -1, 301])
    def test_lock_timeout_bounds(self, timeout):
        with pytest.raises(ValidationError):
            ServerConfig(lock_timeout=timeout)

    @pytest.mark.parametrize("name", ["ab", "Has Spaces", "x" * 51])
    def test_invalid_server_name(self, name):
        with pytest.raises(ValidationError):
            ServerConfig(server_name=name)

    def test_invalid_transport(self):
        with pytest.raises(ValidationError):
            ServerConfig(transport="carrier-pigeon")

    def test_server_info(self):
        config = ServerConfig(transport="streamable_http")
        assert config.server_info == {
            "name": "library-catalog",
            "version": "0.1.0",
            "transport": "streamable_http",
        }


class TestConfigSingleton:
    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_reset_config(self, monkeypatch):
        first = get_config()
        monkeypatch.setenv("LIBRARY_CATALOG_LOCK_TIMEOUT", "2")
        reset_config()
        second = get_config()

        assert second is not first
        assert second.lock_timeout == 2.0
