"""Data models for the filebrowser_client library."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from filebrowser_client.exceptions import TransportError


class BackendKind(str, Enum):
    """Storage backend behind the server."""

    LOCAL = "local"
    S3 = "s3"

    @classmethod
    def parse(cls, value: str | None) -> BackendKind:
        """Map a server or environment value onto a backend kind."""
        if value and value.strip().lower() == "s3":
            return cls.S3
        return cls.LOCAL


@dataclass(frozen=True)
class ScopedPath:
    """A backend-relative path plus the scope it lives in (None for local storage)."""

    scope: str | None
    path: str


@dataclass(frozen=True)
class ResourceEntry:
    """One entry of a directory listing."""

    name: str
    is_dir: bool
    path: str
    index: int
    modified_at: datetime | None = None
    size: int = 0
    url: str = ""


@dataclass(frozen=True)
class Resource:
    """A fetched file or directory."""

    name: str
    path: str
    is_dir: bool
    url: str
    size: int = 0
    modified_at: datetime | None = None
    items: tuple[ResourceEntry, ...] = ()


@dataclass(frozen=True)
class TransferItem:
    """One move/copy/upload unit."""

    source: ScopedPath
    destination: ScopedPath
    name: str


@dataclass(frozen=True)
class ConflictResult:
    """Outcome of comparing proposed names against a destination listing."""

    has_conflict: bool
    duplicate_names: tuple[str, ...]
    existing_names: frozenset[str]
    suggested_name: str | None = None


class ConflictAction(str, Enum):
    OVERWRITE = "overwrite"
    RENAME = "rename"
    SKIP = "skip"


@dataclass(frozen=True)
class ResolutionPolicy:
    overwrite: bool = False
    rename: bool = False
    custom_name: str | None = None


@dataclass(frozen=True)
class ConflictResolution:
    resolved_names: tuple[str, ...]
    action: ConflictAction


class UploadState(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadState.SUCCEEDED, UploadState.FAILED, UploadState.ABORTED)


@dataclass
class UploadSession:
    """Bookkeeping for one resumable upload.

    Owned by the TransferCoordinator that created it; callers only read it.
    """

    path: str
    scope: str | None
    size: int
    chunk_size: int
    retry_delays: list[int] | None
    state: UploadState = UploadState.PENDING
    offset: int = 0
    error: TransportError | None = None


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a move or copy."""

    success: bool
    message: str | None = None
    error: str | None = None
    affected_items: tuple[str, ...] = ()
    redirect_path: str | None = None
    reload: bool = False
    preselect: str | None = None
    conflict: ConflictResult | None = None


@dataclass(frozen=True)
class UploadResult:
    """Result of an upload operation."""

    success: bool
    source: Path | None
    destination: str
    name: str
    resumable: bool = False
    error: str | None = None


@dataclass(frozen=True)
class UploadSettings:
    """Chunking parameters advertised by the server."""

    chunk_size: int = 10 * 1024 * 1024
    retry_count: int = 5


@dataclass(frozen=True)
class ServerConfig:
    """Subset of the server's public configuration."""

    name: str = "File Browser"
    version: str = ""
    storage_type: BackendKind = BackendKind.LOCAL
    upload: UploadSettings | None = None
    no_auth: bool = False
    s3_bucket: str = ""


@dataclass(frozen=True)
class Bucket:
    name: str


@dataclass(frozen=True)
class Usage:
    total: int = 0
    used: int = 0
