"""Dump byte-stream sources.

This module opens the compressed dump as an async stream of raw chunks,
either over HTTP or from a local file. Failures surface as
``TransportError`` so the coordinator can retry the whole download.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import AsyncIterator, Protocol
from urllib.parse import unquote, urlsplit

import httpx

from core.constants import DEFAULT_DOWNLOAD_CHUNK_SIZE
from core.errors import TransportError
from core.types import DumpLocation
from remote.http_client import response_preview


class DumpSource(Protocol):
    """Source of raw compressed chunks."""

    def open_stream(self) -> AsyncIterator[bytes]:
        """Return a fresh chunk stream starting at the first byte."""
        ...


class HttpDumpSource:
    """Stream a dump from a (signed) HTTP URL."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        chunk_size: int = DEFAULT_DOWNLOAD_CHUNK_SIZE,
    ) -> None:
        self._client = client
        self._url = url
        self._chunk_size = chunk_size

    async def open_stream(self) -> AsyncIterator[bytes]:
        try:
            async with self._client.stream("GET", self._url) as response:
                if not response.is_success:
                    await response.aread()
                    raise TransportError(
                        f"Dump download failed with status {response.status_code}: "
                        f"{response_preview(response)}",
                        status_code=response.status_code,
                    )
                async for chunk in response.aiter_bytes(self._chunk_size):
                    yield chunk
        except httpx.HTTPError as error:
            raise TransportError(
                f"Dump download interrupted: {type(error).__name__}: {error}"
            ) from error


class FileDumpSource:
    """Stream a dump from a local file."""

    def __init__(self, path: Path, chunk_size: int = DEFAULT_DOWNLOAD_CHUNK_SIZE) -> None:
        self._path = path
        self._chunk_size = chunk_size

    async def open_stream(self) -> AsyncIterator[bytes]:
        try:
            handle = self._path.open("rb")
        except OSError as error:
            raise TransportError(
                f"Failed to open dump file {self._path}: {error}. Provide a readable file."
            ) from error
        with handle:
            while True:
                try:
                    chunk = await asyncio.to_thread(handle.read, self._chunk_size)
                except OSError as error:
                    raise TransportError(
                        f"Failed to read dump file {self._path}: {error}"
                    ) from error
                if not chunk:
                    return
                yield chunk


def open_dump_source(location: DumpLocation, client: httpx.AsyncClient | None) -> DumpSource:
    """Pick the source implementation for a download location.

    Args:
        location: Locator result.
        client: HTTP client; required for http(s) URLs.

    Returns:
        Source for the location's scheme.

    Raises:
        TransportError: If an HTTP URL is given without a client.
    """
    parts = urlsplit(location.download_url)
    if parts.scheme in ("http", "https"):
        if client is None:
            raise TransportError(
                f"Cannot download {location.download_url}: no HTTP client configured."
            )
        return HttpDumpSource(client, location.download_url)
    if parts.scheme == "file":
        return FileDumpSource(Path(unquote(parts.path)))
    return FileDumpSource(Path(location.download_url).expanduser())
