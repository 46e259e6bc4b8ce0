"""Resource endpoints: listing, simple uploads, move/copy and friends."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from dateutil import parser as date_parser

from filebrowser_client import paths
from filebrowser_client._internal.transport import Transport
from filebrowser_client.exceptions import TransportError
from filebrowser_client.models import (
    BackendKind,
    Bucket,
    Resource,
    ResourceEntry,
    ScopedPath,
    ServerConfig,
    UploadSettings,
    Usage,
)

logger = logging.getLogger(__name__)

RESOURCES_ENDPOINT = "/api/resources"


def _parse_time(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return date_parser.isoparse(value)
    except ValueError:
        return None


def parse_resource(data: dict[str, Any], address: ScopedPath) -> Resource:
    """Build a Resource from the server's JSON, indexing the listing entries."""
    base_url = paths.to_ui_path(address)
    is_dir = bool(data.get("isDir"))
    if is_dir and not base_url.endswith("/"):
        base_url += "/"

    entries = []
    if is_dir:
        for index, item in enumerate(data.get("items") or []):
            name = str(item.get("name", ""))
            item_is_dir = bool(item.get("isDir"))
            url = base_url + paths.encode_name(name) + ("/" if item_is_dir else "")
            entries.append(
                ResourceEntry(
                    name=name,
                    is_dir=item_is_dir,
                    path=paths.join(address.path, name),
                    index=index,
                    modified_at=_parse_time(item.get("modified")),
                    size=int(item.get("size") or 0),
                    url=url,
                )
            )

    return Resource(
        name=str(data.get("name", paths.split_name(address.path))),
        path=address.path,
        is_dir=is_dir,
        url=base_url,
        size=int(data.get("size") or 0),
        modified_at=_parse_time(data.get("modified")),
        items=tuple(entries),
    )


class ResourceApi:
    """Calls on ``/api/resources`` and the small endpoints around it.

    Every method takes backend addresses (ScopedPath); translating UI paths is
    the caller's job (see paths.resolve_path).
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def fetch(self, address: ScopedPath) -> Resource:
        data = await self._transport.send_json(
            "GET",
            RESOURCES_ENDPOINT,
            params={"path": address.path},
            scope=address.scope,
        )
        if not isinstance(data, dict):
            raise TransportError(f"Unexpected listing for {address.path}", 200)
        return parse_resource(data, address)

    async def list_entries(self, address: ScopedPath) -> list[ResourceEntry]:
        """Entries of a directory (empty for a file)."""
        resource = await self.fetch(address)
        return list(resource.items)

    async def remove(self, address: ScopedPath) -> None:
        await self._transport.send(
            "DELETE",
            RESOURCES_ENDPOINT,
            params={"path": paths.encode_path(address.path)},
            scope=address.scope,
        )
        logger.info(f"Deleted {address.path}")

    async def put(self, address: ScopedPath, content: bytes | str = b"") -> None:
        """Replace the content of an existing file."""
        await self._transport.send(
            "PUT",
            RESOURCES_ENDPOINT,
            params={"path": paths.encode_path(address.path)},
            scope=address.scope,
            content=content,
        )

    async def post(
        self,
        address: ScopedPath,
        content: bytes | str = b"",
        *,
        overwrite: bool = False,
        directory: bool = False,
    ) -> None:
        """Create a file in one request (the non-resumable upload path).

        A trailing slash on the path asks the server to create a directory.
        """
        path = paths.encode_path(address.path)
        if directory and not path.endswith("/"):
            path += "/"
        await self._transport.send(
            "POST",
            RESOURCES_ENDPOINT,
            params={"path": path, "override": overwrite},
            scope=address.scope,
            content=content,
        )

    async def create_directory(self, address: ScopedPath) -> None:
        await self.post(address, directory=True)
        logger.info(f"Created folder: {address.path}")

    async def move_copy(
        self,
        source: str,
        destination: str,
        *,
        copy: bool,
        overwrite: bool = False,
        rename: bool = False,
        scope: str | None = None,
    ) -> None:
        """Move (``action=rename``) or copy one entry.

        ``source`` and ``destination`` are encoded backend paths; the server
        decodes both.
        """
        await self._transport.send(
            "PATCH",
            RESOURCES_ENDPOINT,
            params={
                "path": source,
                "action": "copy" if copy else "rename",
                "destination": destination,
                "override": overwrite,
                "rename": rename,
            },
            scope=scope,
        )

    async def checksum(self, address: ScopedPath, algorithm: str) -> str:
        data = await self._transport.send_json(
            "GET",
            RESOURCES_ENDPOINT,
            params={"path": address.path, "checksum": algorithm},
            scope=address.scope,
        )
        try:
            return str(data["checksums"][algorithm])
        except (KeyError, TypeError) as e:
            raise TransportError(f"No {algorithm} checksum for {address.path}", 200) from e

    async def usage(self, address: ScopedPath) -> Usage:
        data = await self._transport.send_json(
            "GET",
            "/api/usage",
            params={"path": address.path},
            scope=address.scope,
        )
        data = data if isinstance(data, dict) else {}
        return Usage(total=int(data.get("total") or 0), used=int(data.get("used") or 0))

    async def buckets(self) -> list[Bucket]:
        data = await self._transport.send_json("GET", "/api/buckets")
        return [Bucket(name=str(item["name"])) for item in data or [] if item.get("name")]

    async def switch_bucket(self, name: str) -> None:
        await self._transport.send("PUT", "/api/buckets", json={"bucket": name})
        logger.info(f"Switched to bucket {name}")

    async def server_config(self) -> ServerConfig:
        data = await self._transport.send_json("GET", "/api/config")
        data = data if isinstance(data, dict) else {}

        upload = None
        tus = data.get("TusSettings")
        if isinstance(tus, dict):
            upload = UploadSettings(
                chunk_size=int(tus.get("chunkSize") or UploadSettings.chunk_size),
                retry_count=int(tus.get("retryCount") or 0),
            )

        return ServerConfig(
            name=str(data.get("Name") or "File Browser"),
            version=str(data.get("Version") or ""),
            storage_type=BackendKind.parse(data.get("StorageType")),
            upload=upload,
            no_auth=bool(data.get("NoAuth")),
            s3_bucket=str(data.get("S3Bucket") or ""),
        )
