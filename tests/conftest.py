"""Pytest fixtures for filebrowser_client tests."""

from __future__ import annotations

import copy
from collections.abc import AsyncIterator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from helpers import TEST_TOKEN, FakeServer

from filebrowser_client import FileBrowserClient, Settings
from filebrowser_client.models import BackendKind

BASE_URL = "http://testserver"


@pytest.fixture
def server() -> FakeServer:
    """Create an empty in-memory server."""
    return FakeServer()


@pytest.fixture
def settings() -> Settings:
    """Settings with tiny chunks and millisecond retry delays."""
    return Settings(
        base_url=BASE_URL,
        token_cache=None,
        chunk_size=4,
        retry_base_delay=1,
        retry_max_delay=4,
    )


@pytest_asyncio.fixture
async def client(server: FakeServer, settings: Settings) -> AsyncIterator[FileBrowserClient]:
    """Authenticated client for a local-storage server."""
    fb = FileBrowserClient(settings, transport=httpx.MockTransport(server))
    fb.session.set_token(TEST_TOKEN)
    yield fb
    await fb.close()


@pytest_asyncio.fixture
async def s3_client(
    server: FakeServer, settings: Settings
) -> AsyncIterator[FileBrowserClient]:
    """Authenticated client for an S3 server whose current scope is "docs"."""
    s3_settings = Settings(
        base_url=settings.base_url,
        backend=BackendKind.S3,
        token_cache=None,
        chunk_size=settings.chunk_size,
        retry_base_delay=settings.retry_base_delay,
        retry_max_delay=settings.retry_max_delay,
    )
    fb = FileBrowserClient(s3_settings, transport=httpx.MockTransport(server))
    fb.session.set_token(TEST_TOKEN, copy.deepcopy(server.user))
    yield fb
    await fb.close()


@pytest.fixture
def temp_file(tmp_path: Path) -> Path:
    """Create a temporary file for upload tests."""
    path = tmp_path / "report.pdf"
    path.write_bytes(b"%PDF-1.4 test content")
    return path
