"""Newline framing for decompressed dump bytes."""

from __future__ import annotations

from typing import AsyncIterator


async def frame_lines(chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    """Split a byte stream into newline-delimited lines.

    Only the current unterminated line is buffered. A trailing ``\\r`` is
    removed from each line, the final line is emitted even without a
    separator, and blank or whitespace-only lines are dropped.

    Args:
        chunks: Decompressed chunks in order.

    Yields:
        Non-blank lines without separators.
    """
    pending = b""
    async for chunk in chunks:
        if not chunk:
            continue
        pieces = (pending + chunk).split(b"\n")
        pending = pieces.pop()
        for piece in pieces:
            line = _strip_carriage_return(piece)
            if line.strip():
                yield line
    line = _strip_carriage_return(pending)
    if line.strip():
        yield line


def _strip_carriage_return(line: bytes) -> bytes:
    return line[:-1] if line.endswith(b"\r") else line
