"""httpx wrapper that adds the credential header and types every failure."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from filebrowser_client.auth import AuthSession
from filebrowser_client.exceptions import (
    NO_CONNECTION_MESSAGE,
    AuthError,
    SessionError,
    TransportError,
    error_for_status,
)

logger = logging.getLogger(__name__)

RENEW_HEADER = "X-Renew-Token"


class Transport:
    """Sends requests to the server and maps failures onto TransportError.

    Raw httpx exceptions never leave this class: connection problems and
    timeouts become status 0 ("no connection"), non-2xx responses become the
    error type of their status (ConflictError for 409, AuthError for 401).
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        session: AuthSession | None = None,
        *,
        uploads_active: Callable[[], bool] | None = None,
    ) -> None:
        self._http = http
        self._session = session
        self._uploads_active = uploads_active

    @property
    def http(self) -> httpx.AsyncClient:
        return self._http

    async def _renew(self) -> None:
        if self._session is None:
            return
        try:
            await self._session.renew()
        except (TransportError, SessionError) as e:
            # The server answers 401 later if the token really expired
            logger.warning(f"Token renewal failed: {e}")

    def _on_unauthorized(self, error: AuthError) -> None:
        if self._session is None:
            return
        if self._uploads_active is not None and self._uploads_active():
            logger.warning(f"Request unauthorized during an upload, keeping session: {error}")
            return
        self._session.logout("unauthorized")

    async def send(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        scope: str | None = None,
        content: bytes | str | None = None,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Send one request.

        Args:
            method: HTTP method
            path: Path below the server's base URL
            params: Query parameters
            scope: Scope sent as the ``scope`` query parameter when given
            content: Raw request body
            json: JSON request body
            headers: Extra headers

        Returns:
            The 2xx response

        Raises:
            TransportError: On connection failure or a non-2xx status
        """
        if self._session is not None and self._session.is_expiring_soon():
            await self._renew()

        query = {k: _query_value(v) for k, v in (params or {}).items() if v is not None}
        if scope:
            query["scope"] = scope

        request_headers: dict[str, str] = {}
        if self._session is not None:
            request_headers.update(self._session.headers())
        if headers:
            request_headers.update(headers)

        try:
            response = await self._http.request(
                method,
                path,
                params=query or None,
                content=content,
                json=json,
                headers=request_headers,
            )
        except httpx.HTTPError as e:
            logger.debug(f"{method} {path} failed: {e}")
            raise TransportError(NO_CONNECTION_MESSAGE, 0) from e

        if response.headers.get(RENEW_HEADER) == "true":
            await self._renew()

        if not 200 <= response.status_code <= 299:
            body = response.text
            error = error_for_status(
                response.status_code,
                body or f"{response.status_code} {response.reason_phrase}",
            )
            if isinstance(error, AuthError):
                self._on_unauthorized(error)
            raise error

        return response

    async def send_json(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and decode the JSON body."""
        response = await self.send(method, path, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"Invalid JSON from {path}", response.status_code
            ) from e


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
