"""Client configuration.

Settings can be built directly or loaded from environment variables (a
``.env`` file in the working directory is read first).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

from dotenv import load_dotenv

from filebrowser_client.exceptions import ConfigurationError
from filebrowser_client.models import BackendKind, ServerConfig

DEFAULT_TOKEN_CACHE = Path.home() / ".filebrowser" / "token_cache.json"
DEFAULT_CHUNK_SIZE = 10 * 1024 * 1024
DEFAULT_RETRY_COUNT = 5
RETRY_BASE_DELAY = 1000
RETRY_MAX_DELAY = 20000


@dataclass(frozen=True)
class Settings:
    """Connection and transfer settings for a FileBrowserClient.

    The backend kind is explicit: it decides whether a ``scope`` parameter is
    sent with requests, so it is never guessed from individual paths.
    """

    base_url: str
    backend: BackendKind = BackendKind.LOCAL
    scope: str | None = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    retry_count: int = DEFAULT_RETRY_COUNT
    retry_base_delay: int = RETRY_BASE_DELAY  # milliseconds
    retry_max_delay: int = RETRY_MAX_DELAY  # milliseconds
    resumable: bool = True
    timeout: float = 30.0
    token_cache: Path | None = DEFAULT_TOKEN_CACHE
    renew_margin: int = 300  # seconds before expiry

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ConfigurationError("base_url is required")
        if self.chunk_size < 1:
            raise ConfigurationError("chunk_size must be positive")
        if self.retry_count < 0:
            raise ConfigurationError("retry_count must not be negative")

    @property
    def is_scoped(self) -> bool:
        return self.backend is BackendKind.S3

    @classmethod
    def from_env(cls, env_file: str | Path | None = None, **overrides: object) -> Settings:
        """Load settings from environment variables.

        Raises:
            ConfigurationError: If required variables are missing or malformed
        """
        load_dotenv(env_file)

        base_url = os.getenv("FILEBROWSER_URL")
        if not base_url and "base_url" not in overrides:
            raise ConfigurationError("Missing required environment variable: FILEBROWSER_URL")

        values: dict[str, object] = {
            "base_url": base_url,
            "backend": BackendKind.parse(os.getenv("FILEBROWSER_STORAGE")),
            "scope": os.getenv("FILEBROWSER_SCOPE") or None,
            "chunk_size": _int_env("FILEBROWSER_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            "retry_count": _int_env("FILEBROWSER_RETRY_COUNT", DEFAULT_RETRY_COUNT),
            "resumable": os.getenv("FILEBROWSER_RESUMABLE", "true").lower()
            not in ("0", "false", "no"),
            "timeout": _float_env("FILEBROWSER_TIMEOUT", 30.0),
        }
        token_cache = os.getenv("FILEBROWSER_TOKEN_CACHE")
        if token_cache:
            values["token_cache"] = Path(token_cache).expanduser()

        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]

    def merge_server_config(self, server: ServerConfig) -> Settings:
        """Adopt the storage type and upload settings advertised by the server."""
        changes: dict[str, object] = {"backend": server.storage_type}
        if server.upload is not None:
            changes["chunk_size"] = server.upload.chunk_size or self.chunk_size
            changes["retry_count"] = server.upload.retry_count
        else:
            changes["resumable"] = False
        return replace(self, **changes)  # type: ignore[arg-type]


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
