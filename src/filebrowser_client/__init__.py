"""filebrowser_client - An async Python client for file browser servers.

Supports servers backed by a local filesystem and by S3-compatible storage
split into scopes (buckets).

Example usage:
    from filebrowser_client import FileBrowserClient, Settings

    async with FileBrowserClient(Settings.from_env()) as client:
        await client.login("admin", "secret")
        result = await client.upload("article.pdf", "/buckets/docs/inbox")
        print(f"Upload {'succeeded' if result.success else 'failed'}")

        outcome = await client.move(["/buckets/docs/inbox/article.pdf"], "/buckets/docs/read")
        if outcome.conflict:
            print(f"Already there, try {outcome.conflict.suggested_name}")
"""

from filebrowser_client.client import FileBrowserClient
from filebrowser_client.config import Settings
from filebrowser_client.conflicts import check_conflict, generate_name, resolve_conflict
from filebrowser_client.exceptions import (
    AuthError,
    ConfigurationError,
    ConflictError,
    CrossScopeError,
    ErrorKind,
    FileBrowserError,
    LocalFileError,
    SessionError,
    TransportError,
    UploadAbortedError,
)
from filebrowser_client.models import (
    BackendKind,
    Bucket,
    ConflictAction,
    ConflictResolution,
    ConflictResult,
    OperationResult,
    Resource,
    ResourceEntry,
    ResolutionPolicy,
    ScopedPath,
    TransferItem,
    UploadResult,
    UploadSession,
    UploadState,
)
from filebrowser_client.operations import OperationExecutor, OperationMode
from filebrowser_client.paths import (
    from_scoped_path,
    normalize,
    resolve_path,
    strip_scope_prefix,
    to_scoped_path,
)
from filebrowser_client.uploads import (
    CancellationToken,
    ProgressChannel,
    TransferCoordinator,
    UploadRegistry,
    compute_retry_delays,
)

__version__ = "0.1.0"

__all__ = [
    # Main client
    "FileBrowserClient",
    "Settings",
    # Core services
    "OperationExecutor",
    "OperationMode",
    "TransferCoordinator",
    "UploadRegistry",
    "CancellationToken",
    "ProgressChannel",
    "compute_retry_delays",
    # Paths
    "normalize",
    "resolve_path",
    "strip_scope_prefix",
    "to_scoped_path",
    "from_scoped_path",
    # Conflicts
    "check_conflict",
    "resolve_conflict",
    "generate_name",
    # Models
    "BackendKind",
    "Bucket",
    "ConflictAction",
    "ConflictResolution",
    "ConflictResult",
    "OperationResult",
    "Resource",
    "ResourceEntry",
    "ResolutionPolicy",
    "ScopedPath",
    "TransferItem",
    "UploadResult",
    "UploadSession",
    "UploadState",
    # Exceptions
    "FileBrowserError",
    "ConfigurationError",
    "SessionError",
    "CrossScopeError",
    "LocalFileError",
    "ErrorKind",
    "TransportError",
    "ConflictError",
    "AuthError",
    "UploadAbortedError",
]
