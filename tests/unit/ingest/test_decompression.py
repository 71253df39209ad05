"""Unit tests for streaming zstd decompression."""

from __future__ import annotations

import pytest

from core.errors import DumpFormatError
from ingest.decompression import decompress_stream, ensure_zstd_magic


@pytest.mark.asyncio
async def test_decompress_stream_handles_tiny_chunks(dump_helpers) -> None:
    """Chunks smaller than the frame header should still decode."""
    plain = dump_helpers.encode_lines(dump_helpers.hotel_record(i) for i in range(50))
    compressed = dump_helpers.compress_dump(plain)

    output = await dump_helpers.collect(
        decompress_stream(dump_helpers.iterate_chunks(compressed, 3))
    )

    assert b"".join(output) == plain


@pytest.mark.asyncio
async def test_decompress_stream_reads_concatenated_frames(dump_helpers) -> None:
    """Multi-frame dumps should decode every frame in order."""
    plain = dump_helpers.encode_lines(dump_helpers.hotel_record(i) for i in range(200))
    compressed = dump_helpers.compress_dump(plain, frames=4)

    output = await dump_helpers.collect(
        decompress_stream(dump_helpers.iterate_chunks(compressed, 4096))
    )

    assert b"".join(output) == plain


@pytest.mark.asyncio
async def test_decompress_stream_caps_output_of_compressible_chunk(dump_helpers) -> None:
    """A tiny chunk that inflates to 1 MiB is emitted in bounded pieces."""
    plain = b"x" * (1024 * 1024)
    compressed = dump_helpers.compress_dump(plain)
    assert len(compressed) < 4096

    output = await dump_helpers.collect(
        decompress_stream(dump_helpers.iterate_chunks(compressed, len(compressed)), input_slice=8)
    )

    assert b"".join(output) == plain
    assert len(output) >= 4
    assert max(len(piece) for piece in output) <= 2 * 128 * 1024


@pytest.mark.asyncio
async def test_decompress_stream_rejects_plain_json(dump_helpers) -> None:
    """Uncompressed input should fail before any output with a preview."""
    plain = b'{"error": "AccessDenied"}\n'

    with pytest.raises(DumpFormatError) as error_info:
        await dump_helpers.collect(decompress_stream(dump_helpers.iterate_chunks(plain, 64)))

    assert "AccessDenied" in error_info.value.preview


@pytest.mark.asyncio
async def test_decompress_stream_rejects_truncated_frame(dump_helpers) -> None:
    """A stream ending mid-frame should fail instead of completing silently."""
    plain = dump_helpers.encode_lines(dump_helpers.hotel_record(i) for i in range(100))
    compressed = dump_helpers.compress_dump(plain)

    with pytest.raises(DumpFormatError, match="truncated"):
        await dump_helpers.collect(
            decompress_stream(dump_helpers.iterate_chunks(compressed[:-10], 512))
        )


@pytest.mark.asyncio
async def test_decompress_stream_rejects_incomplete_header(dump_helpers) -> None:
    """Fewer than four bytes cannot hold a frame header."""
    with pytest.raises(DumpFormatError, match="complete zstd header"):
        await dump_helpers.collect(
            decompress_stream(dump_helpers.iterate_chunks(b"\x28\xb5", 1))
        )


@pytest.mark.asyncio
async def test_decompress_stream_accepts_empty_stream(dump_helpers) -> None:
    """An empty body yields no output."""
    output = await dump_helpers.collect(decompress_stream(dump_helpers.iterate_chunks(b"", 1)))

    assert output == []


def test_ensure_zstd_magic_accepts_skippable_frames() -> None:
    """Skippable frame magic numbers are valid stream starts."""
    ensure_zstd_magic(b"\x50\x2a\x4d\x18\x00\x00\x00\x00")
    ensure_zstd_magic(b"\x5f\x2a\x4d\x18")

    with pytest.raises(DumpFormatError):
        ensure_zstd_magic(b"\x60\x2a\x4d\x18")
