"""Pytest configuration for repository test runs."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, AsyncIterator, Callable, Iterable

import pytest
import zstandard


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


def hotel_record(index: int, **overrides: Any) -> dict[str, Any]:
    """Build one complete hotel-like record."""
    record: dict[str, Any] = {
        "id": f"hotel-{index}",
        "name": f"Hotel {index}",
        "star_rating": 4,
        "images": [f"https://cdn.example.com/{index}/main.jpg"],
        "latitude": 48.85,
        "longitude": 2.35,
        "address": f"{index} Rue de Rivoli",
        "region": {"country_code": "FR"},
    }
    record.update(overrides)
    return record


def encode_lines(lines: Iterable[Any]) -> bytes:
    """Encode records (dicts) or raw lines (str/bytes) as JSON-lines text."""
    parts: list[bytes] = []
    for line in lines:
        if isinstance(line, bytes):
            parts.append(line)
        elif isinstance(line, str):
            parts.append(line.encode("utf-8"))
        else:
            parts.append(json.dumps(line).encode("utf-8"))
    return b"\n".join(parts) + b"\n"


def compress_dump(plain: bytes, frames: int = 1) -> bytes:
    """Compress bytes as one or more concatenated zstd frames."""
    compressor = zstandard.ZstdCompressor()
    if frames <= 1:
        return compressor.compress(plain)
    step = max(1, len(plain) // frames)
    pieces = [plain[offset : offset + step] for offset in range(0, len(plain), step)]
    return b"".join(compressor.compress(piece) for piece in pieces)


async def iterate_chunks(data: bytes, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield bytes in fixed-size chunks."""
    for offset in range(0, len(data), chunk_size):
        yield data[offset : offset + chunk_size]


async def collect(stream: AsyncIterator[Any]) -> list[Any]:
    """Drain an async iterator into a list."""
    return [item async for item in stream]


class BytesDumpSource:
    """In-memory dump source that counts how often it was opened."""

    def __init__(self, data: bytes, chunk_size: int = 1024, fail_after: int | None = None) -> None:
        self.data = data
        self.chunk_size = chunk_size
        self.fail_after = fail_after
        self.opened = 0

    async def open_stream(self) -> AsyncIterator[bytes]:
        from core.errors import TransportError

        self.opened += 1
        sent = 0
        async for chunk in iterate_chunks(self.data, self.chunk_size):
            if self.fail_after is not None and self.opened == 1 and sent >= self.fail_after:
                raise TransportError("connection reset by peer")
            sent += len(chunk)
            yield chunk


class StaticLocator:
    """Locator returning a fixed location."""

    def __init__(self, download_url: str = "memory://dump.zst", download_id: str = "run-1") -> None:
        self.download_url = download_url
        self.download_id = download_id
        self.calls: list[str] = []

    async def locate(self, inventory: str):
        from core.types import DumpLocation

        self.calls.append(inventory)
        return DumpLocation(download_url=self.download_url, download_id=self.download_id)


class ScriptedSink:
    """Sink that answers with scripted statuses and records every call."""

    def __init__(self, statuses: Iterable[int] = (), success: bool = True) -> None:
        self.statuses = list(statuses)
        self.success = success
        self.calls: list[tuple[int, int]] = []

    async def write_batch(self, batch):
        from core.types import SinkResponse

        self.calls.append((batch.batch_index, len(batch)))
        status = self.statuses.pop(0) if self.statuses else 200
        return SinkResponse(status_code=status, success=self.success, accepted_count=len(batch))


class RecordingSleep:
    """Sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def dump_helpers() -> Any:
    """Expose dump-building helpers to test modules."""
    return SimpleNamespace(
        hotel_record=hotel_record,
        encode_lines=encode_lines,
        compress_dump=compress_dump,
        iterate_chunks=iterate_chunks,
        collect=collect,
    )


@pytest.fixture
def bytes_source_factory() -> Callable[..., BytesDumpSource]:
    return BytesDumpSource


@pytest.fixture
def static_locator() -> StaticLocator:
    return StaticLocator()


@pytest.fixture
def scripted_sink_factory() -> Callable[..., ScriptedSink]:
    return ScriptedSink


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
