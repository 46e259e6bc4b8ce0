"""Translation between user-facing paths and backend addresses.

User-facing paths come in two shapes:

    /buckets/{scope}/a/b    an entry inside a named scope (S3 bucket)
    /files/a/b              an entry of the local backend view

The server only understands backend-relative paths (``/a/b``) plus, for
scoped storage, a ``scope`` query parameter. Every function in this module is
total: malformed input is treated as ``/`` with no scope instead of raising.
This is the only module that pattern-matches on path structure.
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import quote

from filebrowser_client.models import BackendKind, ScopedPath

BUCKETS_ROOT = "/buckets"
FILES_ROUTE = "/files"

_SCOPE_PREFIX = re.compile(r"^/buckets/([^/]+)")
_SCOPE_ROOT = re.compile(r"^/buckets/[^/]+/?$")


def _text(path: Any) -> str:
    return path if isinstance(path, str) else ""


def normalize(path: str) -> str:
    """Ensure a leading slash and drop the trailing one (root excepted)."""
    path = _text(path)
    if not path:
        return "/"
    if not path.startswith("/"):
        path = "/" + path
    return path.rstrip("/") or "/"


def is_scoped_path(path: str) -> bool:
    """Whether path lives under a ``/buckets/{scope}`` container."""
    return _SCOPE_PREFIX.match(_text(path)) is not None


def extract_scope(path: str) -> str | None:
    """Return the scope named by a ``/buckets/{scope}`` path, if any."""
    match = _SCOPE_PREFIX.match(_text(path))
    return match.group(1) if match else None


def to_scoped(scope: str | None, path: str) -> str:
    """Build the ``/buckets/{scope}`` form of a backend path.

    The root path is omitted so that ``to_scoped("b", "/")`` is ``/buckets/b``.
    """
    normalized = normalize(path)
    if not scope:
        return normalized
    return f"{BUCKETS_ROOT}/{scope}{'' if normalized == '/' else normalized}"


def from_scoped(path: str) -> ScopedPath:
    """Split a user-facing path into its scope and backend path."""
    path = _text(path)
    match = _SCOPE_PREFIX.match(path)
    if match:
        return ScopedPath(scope=match.group(1), path=normalize(path[match.end():]))
    return ScopedPath(scope=None, path=normalize(path))


def strip_scope_prefix(path: str, scope: str | None = None) -> str:
    """Remove the ``/buckets/{scope}`` container from a path.

    A prefix matching ``scope`` is removed first; failing that, any scope
    container is removed. Non-scoped paths come back unchanged apart from a
    guaranteed leading slash.
    """
    path = _text(path)
    if not path:
        return "/"

    stripped = None
    if scope:
        prefix = f"{BUCKETS_ROOT}/{scope}"
        if path == prefix or path.startswith(prefix + "/"):
            stripped = path[len(prefix):]
    if stripped is None:
        match = _SCOPE_PREFIX.match(path)
        stripped = path[match.end():] if match else path

    if not stripped:
        return "/"
    return stripped if stripped.startswith("/") else "/" + stripped


def strip_route_prefix(path: str) -> str:
    """Drop the first segment of a UI path (``/files/a`` -> ``/a``)."""
    segments = normalize(path).split("/")[2:]
    return normalize("/".join(segments))


def parent_of(path: str) -> str | None:
    """Return the parent path, or None at ``/`` and at the scope container root."""
    normalized = normalize(path)
    if normalized in ("/", BUCKETS_ROOT):
        return None
    if _SCOPE_ROOT.match(normalized):
        return BUCKETS_ROOT

    index = normalized.rfind("/")
    if index <= 0:
        return "/"
    return normalized[:index]


def relative_of(base: str, target: str) -> str:
    """Compute the relative path leading from ``base`` to ``target``."""
    base_parts = [p for p in normalize(base).split("/") if p]
    target_parts = [p for p in normalize(target).split("/") if p]

    common = 0
    while (
        common < len(base_parts)
        and common < len(target_parts)
        and base_parts[common] == target_parts[common]
    ):
        common += 1

    parts = [".."] * (len(base_parts) - common) + target_parts[common:]
    return "/".join(parts)


def split_name(path: str) -> str:
    """Return the last segment of a path ("" for the root)."""
    return normalize(path).rsplit("/", 1)[-1]


def encode_name(name: str) -> str:
    """Percent-encode one path segment."""
    return quote(name, safe="!'()*~")


def encode_path(path: str) -> str:
    """Percent-encode every segment of a path, keeping the separators."""
    return quote(normalize(path), safe="/!'()*~")


def join(base: str, name: str, *, encode: bool = False) -> str:
    """Append one entry name to a directory path."""
    base = normalize(base)
    segment = encode_name(name) if encode else name
    return f"{base.rstrip('/')}/{segment}"


def resolve_path(
    path: str,
    backend: BackendKind,
    active_scope: str | None = None,
) -> ScopedPath:
    """Resolve any user-facing path into the backend address the server expects.

    For scoped storage the scope embedded in the path wins over the active
    one; local storage never carries a scope.
    """
    path = _text(path)
    if is_scoped_path(path):
        scoped = from_scoped(path)
        scope = scoped.scope if backend is BackendKind.S3 else None
        return ScopedPath(scope=scope, path=scoped.path)

    normalized = normalize(path)
    if normalized == FILES_ROUTE or normalized.startswith(FILES_ROUTE + "/"):
        normalized = strip_route_prefix(normalized)

    scope = active_scope if backend is BackendKind.S3 and active_scope else None
    return ScopedPath(scope=scope, path=normalized)


def to_ui_path(address: ScopedPath) -> str:
    """Inverse of resolve_path: the user-facing path for a backend address."""
    if address.scope:
        return to_scoped(address.scope, address.path)
    normalized = normalize(address.path)
    return FILES_ROUTE if normalized == "/" else FILES_ROUTE + normalized


# Aliases matching the names of the public client surface.
to_scoped_path = to_scoped
from_scoped_path = from_scoped
