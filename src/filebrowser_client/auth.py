"""Authentication session and credential persistence."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Protocol

import httpx
from joserfc import jws
from joserfc.errors import JoseError

from filebrowser_client.exceptions import (
    NO_CONNECTION_MESSAGE,
    AuthError,
    SessionError,
    TransportError,
    error_for_status,
)

logger = logging.getLogger(__name__)

TOKEN_KEY = "jwt"
USER_KEY = "user_data"


class KeyValueStore(Protocol):
    """Persistent string storage used for the credential."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """KeyValueStore kept in memory only."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """KeyValueStore backed by a JSON file (the token cache).

    Entries are written as ``{"value": ..., "updated_at": ...}``. Read and
    write failures are logged and otherwise ignored: a broken cache only
    means logging in again.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._data: dict[str, str] = {}
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text())
            if isinstance(data, dict):
                for key, value in data.items():
                    stored = value.get("value") if isinstance(value, dict) else value
                    if key and isinstance(stored, str):
                        self._data[key] = stored
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load token cache: {e}")

    def _save(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            payload = {
                key: {
                    "value": value,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                }
                for key, value in self._data.items()
            }
            self._path.write_text(json.dumps(payload, indent=2))
        except OSError as e:
            logger.warning(f"Failed to save token cache: {e}")

    def get(self, key: str) -> str | None:
        self._load()
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._load()
        self._data[key] = value
        self._save()

    def remove(self, key: str) -> None:
        self._load()
        if key in self._data:
            del self._data[key]
            self._save()


def token_expiry(token: str) -> datetime | None:
    """Read the ``exp`` claim of a JWT without verifying its signature."""
    try:
        claims = json.loads(jws.extract_compact(token.encode()).payload)
    except (JoseError, ValueError, UnicodeDecodeError):
        return None
    exp = claims.get("exp") if isinstance(claims, dict) else None
    if not isinstance(exp, (int, float)):
        return None
    return datetime.fromtimestamp(exp, tz=timezone.utc)


class AuthSession:
    """Holds the bearer credential and talks to the login/renew endpoints.

    The session is the authentication collaborator of the transport: it
    supplies the ``X-Auth`` token, renews it when the server asks, and is
    torn down on a 401.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        store: KeyValueStore | None = None,
        *,
        namespace: str = "",
        renew_margin: int = 300,
    ) -> None:
        self._http = http
        self._store: KeyValueStore = store if store is not None else MemoryStore()
        self._prefix = f"{namespace}:" if namespace else ""
        self._renew_margin = timedelta(seconds=renew_margin)

    def _key(self, name: str) -> str:
        return f"{self._prefix}{name}"

    @property
    def token(self) -> str | None:
        return self._store.get(self._key(TOKEN_KEY))

    @property
    def user(self) -> dict[str, Any] | None:
        raw = self._store.get(self._key(USER_KEY))
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    @property
    def current_scope(self) -> str | None:
        """Name of the scope the server has selected for this user."""
        user = self.user or {}
        scope = user.get("currentScope") or {}
        name = scope.get("name") if isinstance(scope, dict) else None
        return name or None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def expires_at(self) -> datetime | None:
        token = self.token
        return token_expiry(token) if token else None

    def is_expiring_soon(self) -> bool:
        expires_at = self.expires_at
        if expires_at is None:
            return False
        return expires_at - datetime.now(timezone.utc) <= self._renew_margin

    def headers(self) -> dict[str, str]:
        token = self.token
        return {"X-Auth": token} if token else {}

    def set_token(self, token: str, user: dict[str, Any] | None = None) -> None:
        """Store a credential obtained elsewhere (e.g. a cached token)."""
        self._store.set(self._key(TOKEN_KEY), token)
        if user is not None:
            self._store.set(self._key(USER_KEY), json.dumps(user))

    def _accept(self, response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            data = response.text.strip()

        if isinstance(data, dict):
            token = data.get("token")
            user = data.get("user")
        else:
            token, user = data, None

        if not token or not isinstance(token, str):
            raise AuthError("Server returned no token", response.status_code)
        self.set_token(token, user if isinstance(user, dict) else None)
        return token

    async def _post(self, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._http.post(path, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(NO_CONNECTION_MESSAGE, 0) from e
        if response.status_code != 200:
            body = response.text
            raise error_for_status(
                response.status_code,
                body or f"{response.status_code} {response.reason_phrase}",
            )
        return response

    async def login(self, username: str, password: str, recaptcha: str = "") -> str:
        """Login with username and password.

        Returns:
            The new token

        Raises:
            SessionError: If credentials are missing
            TransportError: If the server rejects the login
        """
        if not username or not password:
            raise SessionError("Username and password are required")

        response = await self._post(
            "/api/login",
            json={"username": username, "password": password, "recaptcha": recaptcha},
        )
        token = self._accept(response)
        logger.info(f"Logged in as {username}")
        return token

    async def renew(self) -> str:
        """Exchange the current token for a fresh one."""
        token = self.token
        if not token:
            raise SessionError("Not authenticated. Call login() first.")
        response = await self._post("/api/renew", headers={"X-Auth": token})
        token = self._accept(response)
        logger.debug("Token renewed")
        return token

    def logout(self, reason: str | None = None) -> None:
        """Forget the credential and the cached user."""
        if reason:
            logger.info(f"Logging out: {reason}")
        self._store.remove(self._key(TOKEN_KEY))
        self._store.remove(self._key(USER_KEY))
