"""Tests for Settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from filebrowser_client import Settings
from filebrowser_client.config import DEFAULT_CHUNK_SIZE
from filebrowser_client.exceptions import ConfigurationError
from filebrowser_client.models import BackendKind, ServerConfig, UploadSettings

ENV_VARS = [
    "FILEBROWSER_URL",
    "FILEBROWSER_STORAGE",
    "FILEBROWSER_SCOPE",
    "FILEBROWSER_CHUNK_SIZE",
    "FILEBROWSER_RETRY_COUNT",
    "FILEBROWSER_RESUMABLE",
    "FILEBROWSER_TIMEOUT",
    "FILEBROWSER_TOKEN_CACHE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Start every test without FILEBROWSER_* variables or a .env file."""
    for name in ENV_VARS:
        # setenv first so values loaded from .env files are undone too
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


class TestSettings:
    """Tests for Settings validation."""

    def test_defaults(self) -> None:
        """Test the default transfer settings."""
        settings = Settings(base_url="http://localhost:8080")

        assert settings.backend is BackendKind.LOCAL
        assert settings.chunk_size == DEFAULT_CHUNK_SIZE
        assert settings.retry_count == 5
        assert settings.retry_base_delay == 1000
        assert settings.retry_max_delay == 20000
        assert not settings.is_scoped

    def test_missing_url(self) -> None:
        """Test an empty base URL is rejected."""
        with pytest.raises(ConfigurationError):
            Settings(base_url="")

    def test_invalid_values(self) -> None:
        """Test chunk size and retry count are validated."""
        with pytest.raises(ConfigurationError):
            Settings(base_url="http://x", chunk_size=0)
        with pytest.raises(ConfigurationError):
            Settings(base_url="http://x", retry_count=-1)


class TestFromEnv:
    """Tests for Settings.from_env."""

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test every variable is picked up."""
        monkeypatch.setenv("FILEBROWSER_URL", "http://fb:8080")
        monkeypatch.setenv("FILEBROWSER_STORAGE", "S3")
        monkeypatch.setenv("FILEBROWSER_SCOPE", "photos")
        monkeypatch.setenv("FILEBROWSER_CHUNK_SIZE", "1024")
        monkeypatch.setenv("FILEBROWSER_RETRY_COUNT", "2")
        monkeypatch.setenv("FILEBROWSER_RESUMABLE", "false")
        monkeypatch.setenv("FILEBROWSER_TIMEOUT", "5.5")
        monkeypatch.setenv("FILEBROWSER_TOKEN_CACHE", "/tmp/fb-cache.json")

        settings = Settings.from_env()

        assert settings.base_url == "http://fb:8080"
        assert settings.backend is BackendKind.S3
        assert settings.scope == "photos"
        assert settings.chunk_size == 1024
        assert settings.retry_count == 2
        assert settings.resumable is False
        assert settings.timeout == 5.5
        assert settings.token_cache == Path("/tmp/fb-cache.json")

    def test_reads_env_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test variables are loaded from a .env file."""
        env_file = tmp_path / "custom.env"
        env_file.write_text("FILEBROWSER_URL=http://from-file\nFILEBROWSER_RETRY_COUNT=1\n")

        settings = Settings.from_env(env_file)

        assert settings.base_url == "http://from-file"
        assert settings.retry_count == 1

    def test_missing_url(self) -> None:
        """Test FILEBROWSER_URL is required."""
        with pytest.raises(ConfigurationError, match="FILEBROWSER_URL"):
            Settings.from_env()

    def test_overrides_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test keyword overrides replace environment values."""
        monkeypatch.setenv("FILEBROWSER_URL", "http://env")

        settings = Settings.from_env(base_url="http://override", token_cache=None)

        assert settings.base_url == "http://override"
        assert settings.token_cache is None

    def test_malformed_number(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a non-numeric value is a configuration error."""
        monkeypatch.setenv("FILEBROWSER_URL", "http://env")
        monkeypatch.setenv("FILEBROWSER_CHUNK_SIZE", "big")

        with pytest.raises(ConfigurationError, match="FILEBROWSER_CHUNK_SIZE"):
            Settings.from_env()


class TestMergeServerConfig:
    """Tests for adopting the server's configuration."""

    def test_adopts_upload_settings(self) -> None:
        """Test storage type and chunking come from the server."""
        settings = Settings(base_url="http://x")
        server = ServerConfig(
            storage_type=BackendKind.S3,
            upload=UploadSettings(chunk_size=2048, retry_count=3),
        )

        merged = settings.merge_server_config(server)

        assert merged.backend is BackendKind.S3
        assert merged.chunk_size == 2048
        assert merged.retry_count == 3
        assert merged.resumable

    def test_no_upload_settings_disables_resumable(self) -> None:
        """Test a server without chunked upload support gets simple uploads."""
        merged = Settings(base_url="http://x").merge_server_config(ServerConfig())

        assert not merged.resumable
