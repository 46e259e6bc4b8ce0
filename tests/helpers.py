"""Shared test helpers for filebrowser_client tests."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from urllib.parse import unquote

import httpx

TEST_TOKEN = "test-token"


@dataclass
class InjectedFailure:
    method: str
    status: int
    times: int
    path: str | None = None


class FakeServer:
    """In-memory file browser server for httpx.MockTransport.

    Files and folders are keyed by (scope, path); the local backend uses the
    empty scope. Only the behaviour the client relies on is modelled.
    """

    def __init__(self) -> None:
        self.files: dict[tuple[str, str], bytearray] = {}
        self.dirs: set[tuple[str, str]] = {("", "/")}
        self.uploads: dict[tuple[str, str], int] = {}
        self.requests: list[httpx.Request] = []
        self.failures: list[InjectedFailure] = []
        self.renew_header = False
        self.users = {"admin": "secret"}
        self.user = {"username": "admin", "currentScope": {"name": "docs"}}
        self.buckets = ["docs", "photos"]
        self.config: dict = {
            "Name": "File Browser",
            "Version": "2.0.0",
            "StorageType": "local",
            "TusSettings": {"chunkSize": 4, "retryCount": 3},
        }
        # When set, PATCH requests on the tus endpoint wait for this event
        self.patch_gate: asyncio.Event | None = None
        self.patch_started = asyncio.Event()

    # -- setup helpers -------------------------------------------------

    def add_dir(self, path: str, scope: str = "") -> None:
        self.dirs.add((scope, "/"))
        self.dirs.add((scope, path))

    def add_file(self, path: str, content: bytes = b"", scope: str = "") -> None:
        self.dirs.add((scope, "/"))
        self.files[(scope, path)] = bytearray(content)

    def fail(
        self, method: str, status: int = 500, times: int = 1, path: str | None = None
    ) -> None:
        """Make the next matching request(s) fail; status 0 drops the connection."""
        self.failures.append(InjectedFailure(method, status, times, path))

    def requests_for(self, method: str, prefix: str = "") -> list[httpx.Request]:
        return [
            r for r in self.requests if r.method == method and r.url.path.startswith(prefix)
        ]

    # -- request handling ----------------------------------------------

    def _injected(self, request: httpx.Request) -> httpx.Response | None:
        for failure in self.failures:
            if failure.times <= 0 or failure.method != request.method:
                continue
            if failure.path and not request.url.path.startswith(failure.path):
                continue
            failure.times -= 1
            if failure.status == 0:
                raise httpx.ConnectError("connection dropped", request=request)
            return httpx.Response(failure.status, text="injected failure")
        return None

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        injected = self._injected(request)
        if injected is not None:
            return injected

        route = request.url.path
        if route == "/api/login":
            return self._login(request)
        if route == "/api/renew":
            return self._renew(request)
        if route == "/api/config":
            return httpx.Response(200, json=self.config)

        if request.headers.get("X-Auth") not in (TEST_TOKEN, "renewed-token"):
            return httpx.Response(401, text="401 Unauthorized")

        if route == "/api/buckets":
            if request.method == "PUT":
                body = json.loads(request.content)
                self.user["currentScope"] = {"name": body["bucket"]}
                return httpx.Response(200)
            return httpx.Response(200, json=[{"name": name} for name in self.buckets])
        if route == "/api/usage":
            return httpx.Response(200, json={"total": 1000, "used": 250})
        if route.startswith("/api/tus"):
            return await self._tus(request, route[len("/api/tus"):] or "/")
        if route == "/api/resources":
            return self._resources(request)
        return httpx.Response(404, text="404 Not Found")

    def _headers(self) -> dict[str, str]:
        return {"X-Renew-Token": "true"} if self.renew_header else {}

    def _login(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if self.users.get(body.get("username")) != body.get("password"):
            return httpx.Response(403, text="403 Forbidden")
        return httpx.Response(200, json={"token": TEST_TOKEN, "user": self.user})

    def _renew(self, request: httpx.Request) -> httpx.Response:
        if not request.headers.get("X-Auth"):
            return httpx.Response(401, text="401 Unauthorized")
        return httpx.Response(200, json={"token": "renewed-token", "user": self.user})

    def _exists(self, key: tuple[str, str]) -> bool:
        return key in self.files or key in self.dirs

    def _resources(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        scope = params.get("scope", "")
        raw_path = params.get("path", "/")
        path = raw_path if request.method == "GET" else unquote(raw_path)
        key = (scope, path.rstrip("/") or "/")

        if request.method == "GET":
            if "checksum" in params:
                if key not in self.files:
                    return httpx.Response(404, text="404 Not Found")
                return httpx.Response(
                    200, json={"checksums": {params["checksum"]: "abc123"}}
                )
            return self._listing(key)

        if request.method == "POST":
            if path.endswith("/"):
                self.dirs.add(key)
                return httpx.Response(200, headers=self._headers())
            if self._exists(key) and params.get("override") != "true":
                return httpx.Response(409, text="409 Conflict")
            self.files[key] = bytearray(request.content)
            return httpx.Response(200, headers=self._headers())

        if request.method == "DELETE":
            if key not in self.files and key not in self.dirs:
                return httpx.Response(404, text="404 Not Found")
            self.files.pop(key, None)
            self.dirs.discard(key)
            return httpx.Response(200)

        if request.method == "PATCH":
            destination = (scope, unquote(params.get("destination", "")))
            if key not in self.files and key not in self.dirs:
                return httpx.Response(404, text="404 Not Found")
            override = params.get("override") == "true"
            rename = params.get("rename") == "true"
            if self._exists(destination) and not override and not rename:
                return httpx.Response(409, text="409 Conflict")
            if rename and self._exists(destination):
                destination = (scope, destination[1] + " (1)")
            if key in self.files:
                content = self.files[key]
                if params.get("action") == "rename":
                    del self.files[key]
                self.files[destination] = bytearray(content)
            else:
                if params.get("action") == "rename":
                    self.dirs.discard(key)
                self.dirs.add(destination)
            return httpx.Response(200, headers=self._headers())

        return httpx.Response(405, text="405 Method Not Allowed")

    def _listing(self, key: tuple[str, str]) -> httpx.Response:
        scope, path = key
        if key in self.files:
            return httpx.Response(
                200,
                json={
                    "name": path.rsplit("/", 1)[-1],
                    "isDir": False,
                    "size": len(self.files[key]),
                },
                headers=self._headers(),
            )
        if key not in self.dirs:
            return httpx.Response(404, text="404 Not Found")

        prefix = path.rstrip("/") + "/"
        items = []
        for s, p in sorted(self.dirs):
            if s == scope and p != path and p.startswith(prefix) and "/" not in p[len(prefix):]:
                items.append({"name": p[len(prefix):], "isDir": True, "size": 0})
        for (s, p), content in sorted(self.files.items()):
            if s == scope and p.startswith(prefix) and "/" not in p[len(prefix):]:
                items.append(
                    {
                        "name": p[len(prefix):],
                        "isDir": False,
                        "size": len(content),
                        "modified": "2024-05-01T10:20:30.123456+02:00",
                    }
                )
        return httpx.Response(
            200,
            json={"name": path.rsplit("/", 1)[-1], "isDir": True, "items": items},
            headers=self._headers(),
        )

    async def _tus(self, request: httpx.Request, path: str) -> httpx.Response:
        key = (request.url.params.get("scope", ""), path)

        if request.method == "POST":
            if key in self.files and request.url.params.get("override") != "true":
                return httpx.Response(409, text="409 Conflict")
            self.files[key] = bytearray()
            self.uploads[key] = int(request.headers["Upload-Length"])
            return httpx.Response(201, headers={"Location": f"/api/tus{path}"})

        if key not in self.uploads:
            return httpx.Response(404, text="404 Not Found")
        content = self.files[key]

        if request.method == "HEAD":
            return httpx.Response(
                200,
                headers={
                    "Upload-Offset": str(len(content)),
                    "Upload-Length": str(self.uploads[key]),
                },
            )

        if request.method == "PATCH":
            self.patch_started.set()
            if self.patch_gate is not None:
                await self.patch_gate.wait()
            if int(request.headers["Upload-Offset"]) != len(content):
                return httpx.Response(409, text="offset mismatch")
            content.extend(request.content)
            if len(content) >= self.uploads[key]:
                del self.uploads[key]
            return httpx.Response(204, headers={"Upload-Offset": str(len(content))})

        return httpx.Response(405, text="405 Method Not Allowed")
