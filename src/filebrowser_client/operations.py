"""Move and copy with conflict checks and navigation hints."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from filebrowser_client import paths
from filebrowser_client.conflicts import check_conflict
from filebrowser_client.exceptions import CrossScopeError, TransportError
from filebrowser_client.models import (
    BackendKind,
    ConflictResult,
    OperationResult,
    ResolutionPolicy,
    ScopedPath,
    TransferItem,
)
from filebrowser_client.resources import ResourceApi

logger = logging.getLogger(__name__)

CONFLICT_ERROR = "conflict"


class OperationMode(str, Enum):
    MOVE = "move"
    COPY = "copy"


@dataclass(frozen=True)
class MoveCopyRequest:
    """One PATCH request: encoded backend paths plus the entry name."""

    source: str
    destination: str
    name: str
    scope: str | None


class OperationExecutor:
    """Runs move and copy operations end to end.

    The destination listing is always fetched fresh and checked for name
    conflicts before anything is changed on the server. Failures are reported
    once in the returned OperationResult and never retried.
    """

    def __init__(
        self,
        resources: ResourceApi,
        *,
        backend: BackendKind = BackendKind.LOCAL,
        scope_provider: Callable[[], str | None] | None = None,
    ) -> None:
        self._resources = resources
        self._backend = backend
        self._scope_provider = scope_provider

    def _active_scope(self) -> str | None:
        return self._scope_provider() if self._scope_provider else None

    def resolve(self, path: str) -> ScopedPath:
        return paths.resolve_path(path, self._backend, self._active_scope())

    def items_for(self, sources: Sequence[str], dest_path: str) -> list[TransferItem]:
        """Build transfer items for UI paths being moved or copied into dest_path."""
        destination = self.resolve(dest_path)
        items = []
        for source in sources:
            address = self.resolve(source)
            name = paths.split_name(address.path)
            items.append(
                TransferItem(
                    source=address,
                    destination=ScopedPath(
                        destination.scope, paths.join(destination.path, name)
                    ),
                    name=name,
                )
            )
        return items

    def build_payload(
        self, items: Sequence[TransferItem], destination: ScopedPath
    ) -> list[MoveCopyRequest]:
        """Translate items into request payloads.

        Raises:
            CrossScopeError: If an item lives in another scope than the destination
        """
        payload = []
        for item in items:
            scopes = {item.source.scope, item.destination.scope}
            if scopes != {destination.scope}:
                raise CrossScopeError(
                    f"Cannot transfer {item.name} from scope {item.source.scope!r} "
                    f"to scope {destination.scope!r}"
                )
            payload.append(
                MoveCopyRequest(
                    source=paths.encode_path(item.source.path),
                    destination=paths.join(
                        paths.encode_path(destination.path), item.name, encode=True
                    ),
                    name=item.name,
                    scope=destination.scope,
                )
            )
        return payload

    async def check(self, items: Sequence[TransferItem], dest_path: str) -> ConflictResult:
        """Compare items against the current destination listing.

        Raises:
            TransportError: If the destination cannot be listed
        """
        existing = await self._resources.list_entries(self.resolve(dest_path))
        return check_conflict(items, existing)

    async def execute(
        self,
        mode: OperationMode | str,
        items: Sequence[TransferItem],
        dest_path: str,
        options: ResolutionPolicy | None = None,
        current_path: str | None = None,
    ) -> OperationResult:
        """Move or copy items into dest_path.

        Args:
            mode: "move" or "copy"
            items: Entries to transfer
            dest_path: Destination directory (UI form)
            options: overwrite / rename flags for conflicting names
            current_path: Directory the caller is showing, used for the reload hint

        Returns:
            OperationResult; on a conflict without overwrite or rename the
            error is "conflict" and nothing was changed
        """
        mode = OperationMode(mode)
        options = options or ResolutionPolicy()
        if not items:
            return OperationResult(success=True, message=f"Nothing to {mode.value}")

        destination = self.resolve(dest_path)
        try:
            payload = self.build_payload(items, destination)
        except CrossScopeError as e:
            logger.error(f"{mode.value.capitalize()} operation rejected: {e}")
            return OperationResult(success=False, error=str(e))

        try:
            existing = await self._resources.list_entries(destination)
        except TransportError as e:
            logger.error(f"Failed to list {destination.path}: {e}")
            return OperationResult(success=False, error=e.message)

        conflict = check_conflict(items, existing)
        if conflict.has_conflict and not (options.overwrite or options.rename):
            logger.info(
                f"{mode.value.capitalize()} into {destination.path} stopped, "
                f"existing names: {', '.join(conflict.duplicate_names)}"
            )
            return OperationResult(
                success=False,
                error=CONFLICT_ERROR,
                message="Conflict detected: File already exists at destination",
                conflict=conflict,
            )

        try:
            for request in payload:
                await self._resources.move_copy(
                    request.source,
                    request.destination,
                    copy=mode is OperationMode.COPY,
                    overwrite=options.overwrite,
                    rename=options.rename,
                    scope=request.scope,
                )
        except TransportError as e:
            logger.error(f"{mode.value.capitalize()} operation failed: {e}")
            return OperationResult(success=False, error=e.message)

        return self._success(mode, items, destination, dest_path, current_path)

    def _success(
        self,
        mode: OperationMode,
        items: Sequence[TransferItem],
        destination: ScopedPath,
        dest_path: str,
        current_path: str | None,
    ) -> OperationResult:
        redirect_path: str | None = dest_path
        reload = False
        if mode is OperationMode.COPY and current_path is not None:
            # Copying into the directory on screen: the route stays the same
            if paths.normalize(current_path) == paths.normalize(dest_path):
                redirect_path = None
                reload = True

        logger.info(f"{mode.value.capitalize()} of {len(items)} item(s) to {destination.path} done")
        return OperationResult(
            success=True,
            message=f"{mode.value.capitalize()} operation completed successfully",
            affected_items=tuple(item.name for item in items),
            redirect_path=redirect_path,
            reload=reload,
            preselect=paths.join(destination.path, items[0].name),
        )

    async def execute_move(
        self,
        items: Sequence[TransferItem],
        dest_path: str,
        options: ResolutionPolicy | None = None,
        current_path: str | None = None,
    ) -> OperationResult:
        return await self.execute(OperationMode.MOVE, items, dest_path, options, current_path)

    async def execute_copy(
        self,
        items: Sequence[TransferItem],
        dest_path: str,
        options: ResolutionPolicy | None = None,
        current_path: str | None = None,
    ) -> OperationResult:
        return await self.execute(OperationMode.COPY, items, dest_path, options, current_path)
