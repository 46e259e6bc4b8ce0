"""Exception hierarchy for the filebrowser_client library."""

from __future__ import annotations

from enum import Enum

NO_CONNECTION_MESSAGE = "000 No connection"


class ErrorKind(str, Enum):
    """Closed set of failure kinds recognised at the transport boundary."""

    NO_CONNECTION = "no_connection"
    CANCELED = "canceled"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    HTTP = "http"


class FileBrowserError(Exception):
    """Base exception for all filebrowser_client errors."""

    pass


class ConfigurationError(FileBrowserError):
    """Raised when client settings are missing or invalid."""

    pass


class SessionError(FileBrowserError):
    """Raised when there's an issue with the session state."""

    pass


class CrossScopeError(FileBrowserError):
    """Raised when a move or copy spans two different scopes."""

    pass


class LocalFileError(FileBrowserError):
    """Raised when a local file cannot be read for an upload."""

    pass


class TransportError(FileBrowserError):
    """Raised when a request fails on the network or with a non-2xx status.

    A status of 0 means no response was received; that includes
    user-initiated cancellation, which also sets is_canceled.
    """

    kind: ErrorKind = ErrorKind.HTTP

    def __init__(
        self,
        message: str = "",
        status: int = 0,
        *,
        kind: ErrorKind | None = None,
    ) -> None:
        super().__init__(message or NO_CONNECTION_MESSAGE)
        self.status = status
        if kind is not None:
            self.kind = kind
        elif status == 0:
            self.kind = ErrorKind.NO_CONNECTION

    @property
    def message(self) -> str:
        return str(self)

    @property
    def is_canceled(self) -> bool:
        return self.kind is ErrorKind.CANCELED


class ConflictError(TransportError):
    """Raised when the destination already exists (HTTP 409)."""

    kind = ErrorKind.CONFLICT


class AuthError(TransportError):
    """Raised when the server rejects the credential (HTTP 401)."""

    kind = ErrorKind.UNAUTHORIZED


class UploadAbortedError(TransportError):
    """Raised from an upload that was cancelled before it finished."""

    kind = ErrorKind.CANCELED

    def __init__(self, message: str = "Upload aborted") -> None:
        super().__init__(message, 0, kind=ErrorKind.CANCELED)


def error_for_status(status: int, message: str) -> TransportError:
    """Build the typed error for an HTTP status."""
    if status == 409:
        return ConflictError(message, status)
    if status == 401:
        return AuthError(message, status)
    return TransportError(message, status)
