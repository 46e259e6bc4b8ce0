"""Command-line interface for filebrowser_client."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from functools import wraps
from pathlib import Path
from typing import Any, TypeVar

import click

from filebrowser_client import (
    ConfigurationError,
    FileBrowserClient,
    FileBrowserError,
    OperationResult,
    Settings,
)
from filebrowser_client.models import ResourceEntry

T = TypeVar("T")


def build_settings(url: str | None, token_cache: Path | None) -> Settings:
    """Settings from the environment, with command-line values taking precedence."""
    overrides: dict[str, Any] = {}
    if url:
        overrides["base_url"] = url
    if token_cache:
        overrides["token_cache"] = token_cache
    return Settings.from_env(**overrides)


async def get_client(
    settings: Settings,
    username: str | None = None,
    password: str | None = None,
) -> FileBrowserClient:
    """Create a client, reusing the cached token or logging in with the given credentials."""
    client = FileBrowserClient(settings)
    if not client.is_authenticated:
        if not username:
            username = click.prompt("Username")
        if not password:
            password = click.prompt("Password", hide_input=True)
        try:
            await client.login(username, password)
        except FileBrowserError:
            await client.close()
            raise
    return client


def _run(coro: Awaitable[T]) -> T:
    return asyncio.run(coro)  # type: ignore[arg-type]


def handle_errors(func: Callable[..., None]) -> Callable[..., None]:
    """Turn library errors into a red message and exit code 1."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> None:
        try:
            func(*args, **kwargs)
        except ConfigurationError as e:
            click.echo(click.style(f"Configuration error: {e}", fg="red"), err=True)
            sys.exit(1)
        except FileBrowserError as e:
            click.echo(click.style(f"Error: {e}", fg="red"), err=True)
            sys.exit(1)

    return wrapper


def connection_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option(
        "--token-cache",
        type=click.Path(path_type=Path),
        default=None,
        help="Token cache file path",
    )(func)
    func = click.option(
        "--password", "-p", envvar="FILEBROWSER_PASSWORD", help="Account password"
    )(func)
    func = click.option(
        "--username", "-u", envvar="FILEBROWSER_USERNAME", help="Account username"
    )(func)
    func = click.option("--url", envvar="FILEBROWSER_URL", help="Server URL")(func)
    return func


def _print_result(result: OperationResult, verb: str) -> None:
    if result.success:
        click.echo(click.style(f"{verb} {len(result.affected_items)} item(s)", fg="green"))
        if result.redirect_path:
            click.echo(f"Now in {result.redirect_path}")
        return

    if result.conflict is not None:
        click.echo(
            click.style("Destination already contains: ", fg="red")
            + ", ".join(result.conflict.duplicate_names),
            err=True,
        )
        if result.conflict.suggested_name:
            click.echo(f"Suggested name: {result.conflict.suggested_name}", err=True)
        click.echo("Use --overwrite or --rename to continue.", err=True)
    else:
        click.echo(click.style(f"{verb} failed: {result.error}", fg="red"), err=True)
    sys.exit(1)


@click.group()
@click.version_option(package_name="filebrowser-client")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """File Browser CLI - Manage files on local or S3-backed servers."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@main.command()
@click.option("--url", envvar="FILEBROWSER_URL", help="Server URL")
@click.option("--username", "-u", prompt=True, help="Account username")
@click.option("--password", "-p", prompt=True, hide_input=True, help="Account password")
@click.option(
    "--token-cache",
    type=click.Path(path_type=Path),
    default=None,
    help="Token cache file path",
)
@handle_errors
def login(url: str | None, username: str, password: str, token_cache: Path | None) -> None:
    """Login and cache the token."""
    settings = build_settings(url, token_cache)

    async def run() -> None:
        async with FileBrowserClient(settings) as client:
            await client.login(username, password)

    _run(run())
    click.echo(click.style("Login successful!", fg="green"))


@main.command("ls")
@click.argument("path", default="/")
@connection_options
@handle_errors
def list_folder(
    path: str,
    url: str | None,
    username: str | None,
    password: str | None,
    token_cache: Path | None,
) -> None:
    """List contents of a folder.

    PATH: Folder path to list (default: /)

    Examples:

        filebrowser ls /files/Documents

        filebrowser ls /buckets/photos/2024
    """
    settings = build_settings(url, token_cache)

    async def run() -> list[ResourceEntry]:
        async with await get_client(settings, username, password) as client:
            return await client.list_folder(path)

    items = _run(run())
    if not items:
        click.echo(f"(empty folder: {path})")
    for item in items:
        if item.is_dir:
            click.echo(click.style(f"  {item.name}/", fg="blue"))
        else:
            click.echo(f"  {item.name}  ({_format_size(item.size)})")


@main.command()
@click.argument("path")
@connection_options
@handle_errors
def mkdir(
    path: str,
    url: str | None,
    username: str | None,
    password: str | None,
    token_cache: Path | None,
) -> None:
    """Create a folder."""
    settings = build_settings(url, token_cache)

    async def run() -> None:
        async with await get_client(settings, username, password) as client:
            await client.mkdir(path)

    _run(run())
    click.echo(click.style(f"Created folder: {path}", fg="green"))


@main.command("rm")
@click.argument("path")
@connection_options
@handle_errors
def remove(
    path: str,
    url: str | None,
    username: str | None,
    password: str | None,
    token_cache: Path | None,
) -> None:
    """Delete a file or folder."""
    settings = build_settings(url, token_cache)

    async def run() -> None:
        async with await get_client(settings, username, password) as client:
            await client.delete(path)

    _run(run())
    click.echo(click.style(f"Deleted: {path}", fg="green"))


@main.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("--folder", "-f", default="/", help="Target folder (default: /)")
@click.option("--overwrite", is_flag=True, help="Replace files that already exist")
@connection_options
@handle_errors
def upload(
    files: tuple[Path, ...],
    folder: str,
    overwrite: bool,
    url: str | None,
    username: str | None,
    password: str | None,
    token_cache: Path | None,
) -> None:
    """Upload files.

    FILES: One or more local files to upload.

    Examples:

        filebrowser upload report.pdf --folder /files/Documents

        filebrowser upload *.jpg -f /buckets/photos/2024 --overwrite
    """
    settings = build_settings(url, token_cache)

    async def run() -> list:
        async with await get_client(settings, username, password) as client:
            return await client.upload_many(list(files), folder, overwrite=overwrite)

    results = _run(run())

    success_count = 0
    for result in results:
        if result.success:
            click.echo(click.style("✓ ", fg="green") + f"{result.name} -> {result.destination}")
            success_count += 1
        else:
            click.echo(click.style("✗ ", fg="red") + f"{result.name}: {result.error}", err=True)

    total = len(results)
    if success_count == total:
        click.echo(click.style(f"\nAll {total} file(s) uploaded successfully!", fg="green"))
    else:
        click.echo(f"\n{success_count}/{total} file(s) uploaded.", err=True)
        sys.exit(1)


def _transfer_command(copy: bool) -> Callable[..., None]:
    verb = "Copied" if copy else "Moved"

    @click.argument("sources", nargs=-1, required=True)
    @click.argument("destination")
    @click.option("--overwrite", is_flag=True, help="Replace entries with the same name")
    @click.option("--rename", is_flag=True, help="Keep both, renaming the new entry")
    @connection_options
    @handle_errors
    def command(
        sources: tuple[str, ...],
        destination: str,
        overwrite: bool,
        rename: bool,
        url: str | None,
        username: str | None,
        password: str | None,
        token_cache: Path | None,
    ) -> None:
        settings = build_settings(url, token_cache)

        async def run() -> OperationResult:
            async with await get_client(settings, username, password) as client:
                operation = client.copy if copy else client.move
                return await operation(
                    list(sources), destination, overwrite=overwrite, rename=rename
                )

        _print_result(_run(run()), verb)

    command.__doc__ = (
        "Copy entries into DESTINATION." if copy else "Move entries into DESTINATION."
    )
    return command


main.command("cp")(_transfer_command(copy=True))
main.command("mv")(_transfer_command(copy=False))


@main.command()
@click.option("--switch", "switch_to", default=None, help="Select this bucket")
@connection_options
@handle_errors
def buckets(
    switch_to: str | None,
    url: str | None,
    username: str | None,
    password: str | None,
    token_cache: Path | None,
) -> None:
    """List buckets, or switch the current one."""
    settings = build_settings(url, token_cache)

    async def run() -> list:
        async with await get_client(settings, username, password) as client:
            if switch_to:
                await client.switch_bucket(switch_to)
                return []
            return await client.buckets()

    names = _run(run())
    if switch_to:
        click.echo(click.style(f"Switched to bucket: {switch_to}", fg="green"))
    for bucket in names:
        click.echo(f"  {bucket.name}")


def _format_size(size_bytes: int) -> str:
    """Format file size in human-readable form."""
    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024:
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


if __name__ == "__main__":
    main()
