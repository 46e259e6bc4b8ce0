"""Resumable (chunked) uploads.

Uploads go through the server's tus endpoint: a POST announces the upload
and its length, PATCH requests append chunks at the offset the server
reports, and after a failure a HEAD request tells us where to resume.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import aiofiles

from filebrowser_client import paths
from filebrowser_client._internal.transport import Transport
from filebrowser_client.config import RETRY_BASE_DELAY, RETRY_MAX_DELAY
from filebrowser_client.exceptions import (
    ConflictError,
    LocalFileError,
    TransportError,
    UploadAbortedError,
)
from filebrowser_client.models import BackendKind, ScopedPath, UploadSession, UploadState

logger = logging.getLogger(__name__)

TUS_ENDPOINT = "/api/tus"
TUS_VERSION = "1.0.0"

UploadContent = Union[bytes, bytearray, memoryview, Path, str, None]


def compute_retry_delays(
    retry_count: int,
    base: int = RETRY_BASE_DELAY,
    maximum: int = RETRY_MAX_DELAY,
) -> list[int] | None:
    """Backoff schedule in milliseconds, e.g. [0, 1000, 2000, 4000, 8000].

    Returns None when retries are disabled.
    """
    if not retry_count or retry_count < 1:
        return None

    delays = []
    delay = 0
    for _ in range(retry_count):
        delays.append(min(delay, maximum))
        delay = base if delay == 0 else min(delay * 2, maximum)
    return delays


def should_use_resumable(path: str, content: UploadContent, supported: bool) -> bool:
    """Decide between the chunked upload and a single POST.

    Directory creation, a client without resumable support and anything
    that is not binary content all go through the simple upload.
    """
    if path.endswith("/") or not supported:
        return False
    return isinstance(content, (bytes, bytearray, memoryview, Path))


class CancellationToken:
    """Cooperative cancellation signal handed to TransferCoordinator.start."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        """Whether cancel() has been called."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Signal the upload to stop."""
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


class ProgressChannel:
    """Cumulative byte counts of one upload; only the latest value is kept."""

    def __init__(self) -> None:
        self._latest = 0
        self._listeners: list[Callable[[int], None]] = []

    @property
    def latest(self) -> int:
        """The most recently published byte count."""
        return self._latest

    def subscribe(self, listener: Callable[[int], None]) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, sent: int) -> None:
        """Record the cumulative bytes sent and notify every listener."""
        self._latest = sent
        for listener in list(self._listeners):
            listener(sent)


@dataclass
class _LiveUpload:
    session: UploadSession
    token: CancellationToken


class UploadRegistry:
    """The set of in-flight uploads, keyed by backend path.

    One registry belongs to one TransferCoordinator; anything that needs to
    see or abort uploads gets it by reference.
    """

    def __init__(self) -> None:
        self._uploads: dict[str, _LiveUpload] = {}

    def __len__(self) -> int:
        return len(self._uploads)

    def __contains__(self, key: object) -> bool:
        return key in self._uploads

    @property
    def active(self) -> bool:
        return bool(self._uploads)

    def get(self, key: str) -> UploadSession | None:
        live = self._uploads.get(key)
        return live.session if live else None

    def sessions(self) -> list[UploadSession]:
        return [live.session for live in self._uploads.values()]

    def lookup(self, key: str) -> _LiveUpload | None:
        return self._uploads.get(key)

    def register(self, session: UploadSession, token: CancellationToken) -> None:
        self._uploads[session.path] = _LiveUpload(session, token)

    def remove(self, key: str, session: UploadSession) -> bool:
        """Remove the entry for key if it still belongs to session."""
        live = self._uploads.get(key)
        if live is None or live.session is not session:
            return False
        del self._uploads[key]
        return True

    def drain(self) -> list[_LiveUpload]:
        entries = list(self._uploads.values())
        self._uploads.clear()
        return entries


class _ChunkSource:
    """Random access to the bytes being uploaded."""

    def __init__(self, content: bytes | bytearray | memoryview | Path | str) -> None:
        self._path: Path | None = None
        self._data = b""
        if isinstance(content, Path):
            self._path = content
            self.size = _file_size(content)
        else:
            self._data = content.encode() if isinstance(content, str) else bytes(content)
            self.size = len(self._data)

    async def read(self, offset: int, length: int) -> bytes:
        if self._path is None:
            return self._data[offset:offset + length]
        try:
            async with aiofiles.open(self._path, "rb") as f:
                await f.seek(offset)
                return await f.read(length)
        except OSError as e:
            raise LocalFileError(f"Cannot read {self._path}: {e}") from e


def _is_empty(content: UploadContent) -> bool:
    if content is None:
        return True
    if isinstance(content, Path):
        return _file_size(content) == 0
    return len(content) == 0


def _file_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError as e:
        raise LocalFileError(f"Cannot read {path}: {e}") from e


class TransferCoordinator:
    """Drives one chunked, resumable upload per backend path.

    Session states: PENDING -> UPLOADING -> SUCCEEDED | FAILED | ABORTED.
    Chunk retries happen inside UPLOADING and are only visible through the
    logs and the progress channel.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        backend: BackendKind = BackendKind.LOCAL,
        chunk_size: int = 10 * 1024 * 1024,
        retry_count: int = 5,
        retry_base_delay: int = RETRY_BASE_DELAY,
        retry_max_delay: int = RETRY_MAX_DELAY,
        scope_provider: Callable[[], str | None] | None = None,
        registry: UploadRegistry | None = None,
    ) -> None:
        self._transport = transport
        self._backend = backend
        self._chunk_size = chunk_size
        self._retry_count = retry_count
        self._retry_base_delay = retry_base_delay
        self._retry_max_delay = retry_max_delay
        self._scope_provider = scope_provider
        self._registry = registry if registry is not None else UploadRegistry()

    @property
    def registry(self) -> UploadRegistry:
        return self._registry

    def translate(self, path: str) -> ScopedPath:
        """Backend address for a user-facing upload path."""
        scope = self._scope_provider() if self._scope_provider else None
        return paths.resolve_path(path, self._backend, scope)

    def retry_delays(self) -> list[int] | None:
        return compute_retry_delays(
            self._retry_count, self._retry_base_delay, self._retry_max_delay
        )

    async def start(
        self,
        path: str,
        content: UploadContent,
        overwrite: bool = False,
        progress: ProgressChannel | None = None,
        cancel: CancellationToken | None = None,
    ) -> bool:
        """Upload content to path.

        Args:
            path: Destination path (UI form, scoped or not)
            content: Bytes or a file to send
            overwrite: Replace an existing file instead of failing with 409
            progress: Channel receiving cumulative bytes sent
            cancel: Token that aborts this upload when cancelled

        Returns:
            False if there was nothing to upload (no session is created),
            True once the upload completed

        Raises:
            ConflictError: If the file exists and overwrite is False
            LocalFileError: If a local file cannot be read
            UploadAbortedError: If the upload was aborted
            TransportError: If the upload failed after all retries
        """
        if _is_empty(content):
            return False

        address = self.translate(path)
        source = _ChunkSource(content)  # type: ignore[arg-type]
        session = UploadSession(
            path=address.path,
            scope=address.scope,
            size=source.size,
            chunk_size=self._chunk_size,
            retry_delays=self.retry_delays(),
        )
        token = cancel or CancellationToken()

        previous = self._registry.lookup(session.path)
        if previous is not None:
            logger.info(f"Replacing running upload of {session.path}")
            self._abort(previous)
        self._registry.register(session, token)

        try:
            await self._run(session, source, overwrite, progress, token)
        finally:
            self._registry.remove(session.path, session)
        return True

    async def _run(
        self,
        session: UploadSession,
        source: _ChunkSource,
        overwrite: bool,
        progress: ProgressChannel | None,
        token: CancellationToken,
    ) -> None:
        transfer = asyncio.ensure_future(self._transfer(session, source, overwrite, progress))
        waiter = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait({transfer, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            transfer.cancel()
            session.state = UploadState.ABORTED
            raise
        finally:
            waiter.cancel()

        if transfer in done:
            transfer.result()
            return

        transfer.cancel()
        try:
            await transfer
        except asyncio.CancelledError:
            pass
        except (TransportError, LocalFileError) as e:
            logger.debug(f"Upload of {session.path} failed while aborting: {e}")

        session.state = UploadState.ABORTED
        if session.error is None:
            session.error = UploadAbortedError()
        raise session.error

    async def _transfer(
        self,
        session: UploadSession,
        source: _ChunkSource,
        overwrite: bool,
        progress: ProgressChannel | None,
    ) -> None:
        url = f"{TUS_ENDPOINT}{paths.encode_path(session.path)}"
        delays = session.retry_delays or []
        attempt = 0
        created = False
        resync = False
        offset_before_retry = 0

        session.state = UploadState.UPLOADING
        while True:
            try:
                if not created:
                    await self._create(url, session, overwrite)
                    created = True
                elif resync:
                    session.offset = await self._head(url, session)
                    resync = False

                while session.offset < session.size:
                    chunk = await source.read(session.offset, session.chunk_size)
                    session.offset = await self._patch(url, session, chunk)
                    if progress is not None:
                        progress.publish(session.offset)
                break
            except TransportError as e:
                # Progress since the last failure resets the retry count
                if session.offset > offset_before_retry:
                    attempt = 0
                offset_before_retry = session.offset

                if isinstance(e, ConflictError) or attempt >= len(delays):
                    session.state = UploadState.FAILED
                    session.error = e
                    logger.error(f"Upload of {session.path} failed: {e}")
                    raise

                delay = delays[attempt]
                attempt += 1
                logger.warning(
                    f"Upload of {session.path} failed ({e}), retry {attempt}/{len(delays)} "
                    f"in {delay} ms"
                )
                await asyncio.sleep(delay / 1000)
                resync = created
            except LocalFileError as e:
                session.state = UploadState.FAILED
                logger.error(f"Upload of {session.path} failed: {e}")
                raise

        session.state = UploadState.SUCCEEDED
        logger.info(f"Uploaded {session.size} bytes to {session.path}")

    async def _create(self, url: str, session: UploadSession, overwrite: bool) -> None:
        await self._transport.send(
            "POST",
            url,
            params={"override": overwrite},
            scope=session.scope,
            headers={"Upload-Length": str(session.size), "Tus-Resumable": TUS_VERSION},
        )

    async def _head(self, url: str, session: UploadSession) -> int:
        response = await self._transport.send(
            "HEAD",
            url,
            scope=session.scope,
            headers={"Tus-Resumable": TUS_VERSION},
        )
        return _offset_header(response.headers.get("Upload-Offset"), response.status_code)

    async def _patch(self, url: str, session: UploadSession, chunk: bytes) -> int:
        logger.debug(f"PATCH {session.path} offset={session.offset} size={len(chunk)}")
        response = await self._transport.send(
            "PATCH",
            url,
            scope=session.scope,
            content=chunk,
            headers={
                "Content-Type": "application/offset+octet-stream",
                "Upload-Offset": str(session.offset),
                "Tus-Resumable": TUS_VERSION,
            },
        )
        header = response.headers.get("Upload-Offset")
        if header is None:
            return session.offset + len(chunk)
        return _offset_header(header, response.status_code)

    def _abort(self, live: _LiveUpload) -> None:
        session = live.session
        if not session.state.is_terminal:
            session.state = UploadState.ABORTED
            session.error = UploadAbortedError()
            logger.info(f"Aborted upload of {session.path}")
        live.token.cancel()

    def abort_all(self) -> None:
        """Abort every registered upload.

        Each aborted ``start`` call raises UploadAbortedError. The registry is
        emptied immediately; nothing waits for the server. Calling this with
        no uploads running does nothing.
        """
        for live in self._registry.drain():
            self._abort(live)


def _offset_header(value: str | None, status: int) -> int:
    if value is None:
        raise TransportError("Missing Upload-Offset header", status)
    try:
        return int(value)
    except ValueError as e:
        raise TransportError(f"Invalid Upload-Offset header: {value!r}", status) from e
