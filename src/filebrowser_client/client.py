"""Main FileBrowserClient class for interacting with a file browser server."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import httpx

from filebrowser_client import paths
from filebrowser_client._internal.transport import Transport
from filebrowser_client.auth import AuthSession, JsonFileStore, KeyValueStore, MemoryStore
from filebrowser_client.config import Settings
from filebrowser_client.exceptions import LocalFileError, SessionError, TransportError
from filebrowser_client.models import (
    Bucket,
    OperationResult,
    Resource,
    ResourceEntry,
    ResolutionPolicy,
    ScopedPath,
    ServerConfig,
    TransferItem,
    UploadResult,
    Usage,
)
from filebrowser_client.operations import OperationExecutor
from filebrowser_client.resources import ResourceApi
from filebrowser_client.uploads import (
    CancellationToken,
    ProgressChannel,
    TransferCoordinator,
    UploadContent,
    UploadRegistry,
    should_use_resumable,
)

logger = logging.getLogger(__name__)


class FileBrowserClient:
    """Async client for a file browser server backed by local or S3 storage.

    Example:
        async with FileBrowserClient(Settings(base_url="http://localhost:8080")) as client:
            await client.login("admin", "secret")
            await client.upload("report.pdf", "/files/Documents")
            result = await client.copy(["/files/Documents/report.pdf"], "/files/Archive")
    """

    def __init__(
        self,
        settings: Settings,
        *,
        store: KeyValueStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Connection and transfer settings
            store: Credential storage (defaults to the token cache file, or memory)
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests
        """
        self._settings = settings
        self._http = httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.timeout,
            transport=transport,
        )
        if store is None:
            store = JsonFileStore(settings.token_cache) if settings.token_cache else MemoryStore()
        self._session = AuthSession(
            self._http,
            store,
            namespace=settings.base_url,
            renew_margin=settings.renew_margin,
        )
        self._registry = UploadRegistry()
        self._transport = Transport(
            self._http,
            self._session,
            uploads_active=lambda: self._registry.active,
        )
        self._resources = ResourceApi(self._transport)
        self._build_services()

    def _build_services(self) -> None:
        settings = self._settings
        self._uploads = TransferCoordinator(
            self._transport,
            backend=settings.backend,
            chunk_size=settings.chunk_size,
            retry_count=settings.retry_count,
            retry_base_delay=settings.retry_base_delay,
            retry_max_delay=settings.retry_max_delay,
            scope_provider=self.active_scope,
            registry=self._registry,
        )
        self._operations = OperationExecutor(
            self._resources,
            backend=settings.backend,
            scope_provider=self.active_scope,
        )

    async def __aenter__(self) -> FileBrowserClient:
        """Enter async context manager."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit async context manager."""
        await self.close()

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def session(self) -> AuthSession:
        return self._session

    @property
    def resources(self) -> ResourceApi:
        return self._resources

    @property
    def uploads(self) -> UploadRegistry:
        """In-flight uploads, shared with the upload coordinator."""
        return self._registry

    @property
    def is_authenticated(self) -> bool:
        return self._session.is_authenticated

    def active_scope(self) -> str | None:
        """Scope used for paths that do not name one; None for local storage."""
        if not self._settings.is_scoped:
            return None
        return self._settings.scope or self._session.current_scope

    def _ensure_authenticated(self) -> None:
        if not self.is_authenticated:
            raise SessionError("Not authenticated. Call login() first.")

    def resolve_path(self, path: str) -> ScopedPath:
        """Backend address for a user-facing path."""
        return paths.resolve_path(path, self._settings.backend, self.active_scope())

    async def login(self, username: str, password: str, recaptcha: str = "") -> str:
        return await self._session.login(username, password, recaptcha)

    async def renew(self) -> str:
        return await self._session.renew()

    def logout(self) -> None:
        self.abort_all_uploads()
        self._session.logout()

    async def configure_from_server(self) -> ServerConfig:
        """Fetch the server config and adopt its storage type and upload settings."""
        server = await self._resources.server_config()
        self._settings = self._settings.merge_server_config(server)
        self._build_services()
        logger.info(
            f"Server {server.name} {server.version} uses {server.storage_type.value} storage"
        )
        return server

    async def fetch(self, path: str = "/") -> Resource:
        self._ensure_authenticated()
        return await self._resources.fetch(self.resolve_path(path))

    async def list_folder(self, path: str = "/") -> list[ResourceEntry]:
        """List the entries of a folder.

        Raises:
            SessionError: If not authenticated
            TransportError: If listing fails
        """
        self._ensure_authenticated()
        return await self._resources.list_entries(self.resolve_path(path))

    async def mkdir(self, path: str) -> ScopedPath:
        self._ensure_authenticated()
        address = self.resolve_path(path)
        await self._resources.create_directory(address)
        return address

    async def delete(self, path: str) -> None:
        self._ensure_authenticated()
        await self._resources.remove(self.resolve_path(path))

    async def checksum(self, path: str, algorithm: str = "sha256") -> str:
        self._ensure_authenticated()
        return await self._resources.checksum(self.resolve_path(path), algorithm)

    async def usage(self, path: str = "/") -> Usage:
        self._ensure_authenticated()
        return await self._resources.usage(self.resolve_path(path))

    async def buckets(self) -> list[Bucket]:
        self._ensure_authenticated()
        return await self._resources.buckets()

    async def switch_bucket(self, name: str) -> None:
        self._ensure_authenticated()
        await self._resources.switch_bucket(name)
        if self._settings.is_scoped and self._settings.scope:
            logger.debug(f"Configured scope {self._settings.scope} still overrides {name}")

    async def start_upload(
        self,
        path: str,
        content: UploadContent,
        overwrite: bool = False,
        progress: ProgressChannel | None = None,
        cancel: CancellationToken | None = None,
    ) -> bool:
        """Resumable upload of content to path (see TransferCoordinator.start)."""
        self._ensure_authenticated()
        return await self._uploads.start(path, content, overwrite, progress, cancel)

    def abort_all_uploads(self) -> None:
        self._uploads.abort_all()

    async def upload(
        self,
        source: str | Path | bytes,
        target_folder: str = "/",
        *,
        name: str | None = None,
        overwrite: bool = False,
        on_progress: Callable[[int], None] | None = None,
        cancel: CancellationToken | None = None,
    ) -> UploadResult:
        """Upload a local file (or raw bytes) into a folder.

        Large binary content goes through the resumable upload; everything
        else is sent in a single request.

        Args:
            source: Local file path, or the content itself
            target_folder: Destination folder (UI form)
            name: Remote file name (defaults to the local file name)
            overwrite: Replace an existing remote file
            on_progress: Called with cumulative bytes sent
            cancel: Token that aborts the upload

        Returns:
            UploadResult with success status and details

        Raises:
            SessionError: If not authenticated
        """
        self._ensure_authenticated()

        file_path: Path | None = None
        content: UploadContent
        if isinstance(source, (bytes, bytearray)):
            content = source
        else:
            file_path = Path(source)
            content = file_path

        file_name = name or (file_path.name if file_path else "")
        if not file_name:
            return UploadResult(
                success=False,
                source=file_path,
                destination=target_folder,
                name="",
                error="A name is required when uploading raw content",
            )
        if file_path is not None and not file_path.is_file():
            return UploadResult(
                success=False,
                source=file_path,
                destination=target_folder,
                name=file_name,
                error=f"File not found: {file_path}",
            )

        destination = paths.join(target_folder, file_name)
        resumable = should_use_resumable(destination, content, self._settings.resumable)
        try:
            if resumable:
                progress = ProgressChannel()
                if on_progress is not None:
                    progress.subscribe(on_progress)
                sent = await self._uploads.start(
                    destination, content, overwrite, progress, cancel
                )
                if not sent:
                    logger.warning(f"Skipped upload of {file_name}: nothing to send")
                    return UploadResult(
                        success=False,
                        source=file_path,
                        destination=destination,
                        name=file_name,
                        resumable=resumable,
                        error="Nothing to upload: content is empty",
                    )
            else:
                data = file_path.read_bytes() if file_path is not None else content
                await self._resources.post(
                    self.resolve_path(destination),
                    data,  # type: ignore[arg-type]
                    overwrite=overwrite,
                )
                if on_progress is not None:
                    on_progress(len(data))  # type: ignore[arg-type]
        except (TransportError, LocalFileError) as e:
            logger.error(f"Upload of {file_name} failed: {e}")
            return UploadResult(
                success=False,
                source=file_path,
                destination=destination,
                name=file_name,
                resumable=resumable,
                error=str(e),
            )

        logger.info(f"Successfully uploaded {file_name} to {target_folder}")
        return UploadResult(
            success=True,
            source=file_path,
            destination=destination,
            name=file_name,
            resumable=resumable,
        )

    async def upload_many(
        self,
        sources: Sequence[str | Path],
        target_folder: str = "/",
        *,
        overwrite: bool = False,
        stop_on_error: bool = False,
    ) -> list[UploadResult]:
        """Upload several files one after another.

        Args:
            sources: Local files to upload
            target_folder: Destination folder
            overwrite: Replace existing remote files
            stop_on_error: If True, stop uploading on first error

        Returns:
            List of UploadResult for each file
        """
        results: list[UploadResult] = []

        for source in sources:
            result = await self.upload(source, target_folder, overwrite=overwrite)
            results.append(result)

            if stop_on_error and not result.success:
                break

        return results

    def transfer_items(self, sources: Sequence[str], dest_path: str) -> list[TransferItem]:
        return self._operations.items_for(sources, dest_path)

    async def execute_move(
        self,
        items: Sequence[TransferItem],
        dest_path: str,
        options: ResolutionPolicy | None = None,
        current_path: str | None = None,
    ) -> OperationResult:
        self._ensure_authenticated()
        return await self._operations.execute_move(items, dest_path, options, current_path)

    async def execute_copy(
        self,
        items: Sequence[TransferItem],
        dest_path: str,
        options: ResolutionPolicy | None = None,
        current_path: str | None = None,
    ) -> OperationResult:
        self._ensure_authenticated()
        return await self._operations.execute_copy(items, dest_path, options, current_path)

    async def move(
        self,
        sources: Sequence[str],
        dest_path: str,
        *,
        overwrite: bool = False,
        rename: bool = False,
        current_path: str | None = None,
    ) -> OperationResult:
        """Move UI paths into dest_path."""
        items = self.transfer_items(sources, dest_path)
        policy = ResolutionPolicy(overwrite=overwrite, rename=rename)
        return await self.execute_move(items, dest_path, policy, current_path)

    async def copy(
        self,
        sources: Sequence[str],
        dest_path: str,
        *,
        overwrite: bool = False,
        rename: bool = False,
        current_path: str | None = None,
    ) -> OperationResult:
        """Copy UI paths into dest_path."""
        items = self.transfer_items(sources, dest_path)
        policy = ResolutionPolicy(overwrite=overwrite, rename=rename)
        return await self.execute_copy(items, dest_path, policy, current_path)

    async def close(self) -> None:
        """Abort running uploads and close the HTTP client."""
        self.abort_all_uploads()
        await self._http.aclose()
