"""Streaming zstd decompression stage.

This module turns an async stream of compressed chunks into an async
stream of decompressed chunks. Input is only pulled when the consumer
asks for more output, so a slow consumer bounds upstream memory.
Each source chunk is decoded in fixed-size input slices and every
slice's output is yielded before the next slice is decoded, which caps
what a single highly compressible chunk can expand into at once.
"""

from __future__ import annotations

from typing import AsyncIterator, Iterator

import zstandard

from core.constants import (
    DEFAULT_DECOMPRESS_INPUT_SLICE,
    DEFAULT_DECOMPRESS_WRITE_SIZE,
    FORMAT_PREVIEW_BYTES,
    ZSTD_FRAME_MAGIC,
    ZSTD_MAGIC_LENGTH,
    ZSTD_SKIPPABLE_MAGIC_SUFFIX,
)
from core.errors import DumpFormatError
from core.previews import preview_bytes


class _FrameDecoder:
    """Incremental decoder that continues across zstd frame boundaries."""

    def __init__(self, write_size: int, input_slice: int) -> None:
        self._decompressor = zstandard.ZstdDecompressor()
        self._write_size = write_size
        self._input_slice = input_slice
        self._decoder = self._decompressor.decompressobj(write_size=write_size)
        self.frame_open = False

    def feed(self, data: bytes) -> Iterator[bytes]:
        """Decode one compressed chunk, yielding output slice by slice."""
        for start in range(0, len(data), self._input_slice):
            yield from self._decode(data[start : start + self._input_slice])

    def _decode(self, data: bytes) -> Iterator[bytes]:
        while data:
            try:
                output = self._decoder.decompress(data)
            except zstandard.ZstdError as error:
                raise DumpFormatError(
                    f"Corrupt zstd stream: {error}. The dump download may be truncated or damaged.",
                    preview=preview_bytes(data, FORMAT_PREVIEW_BYTES),
                ) from error
            if output:
                yield output
            if self._decoder.eof:
                data = self._decoder.unused_data
                self._decoder = self._decompressor.decompressobj(write_size=self._write_size)
                self.frame_open = False
            else:
                self.frame_open = True
                data = b""


async def decompress_stream(
    chunks: AsyncIterator[bytes],
    write_size: int = DEFAULT_DECOMPRESS_WRITE_SIZE,
    input_slice: int = DEFAULT_DECOMPRESS_INPUT_SLICE,
) -> AsyncIterator[bytes]:
    """Decompress a zstd byte stream lazily.

    Args:
        chunks: Compressed chunks in source order.
        write_size: Decoder output buffer size.
        input_slice: Compressed bytes decoded per step.

    Yields:
        Decompressed chunks in order.

    Raises:
        DumpFormatError: If the stream does not start with a zstd frame,
            is corrupt, or ends inside a frame.
    """
    header = bytearray()
    decoder: _FrameDecoder | None = None
    async for chunk in chunks:
        if not chunk:
            continue
        if decoder is None:
            header.extend(chunk)
            if len(header) < ZSTD_MAGIC_LENGTH:
                continue
            ensure_zstd_magic(bytes(header))
            decoder = _FrameDecoder(write_size, input_slice)
            data = bytes(header)
            header.clear()
        else:
            data = chunk
        for output in decoder.feed(data):
            yield output
    if decoder is None and header:
        raise DumpFormatError(
            f"Dump ended after {len(header)} bytes, before a complete zstd header.",
            preview=preview_bytes(bytes(header), FORMAT_PREVIEW_BYTES),
        )
    if decoder is not None and decoder.frame_open:
        raise DumpFormatError(
            "Dump ended inside a zstd frame. The download was truncated; retry the sync."
        )


def ensure_zstd_magic(leading_bytes: bytes) -> None:
    """Validate the leading bytes against zstd frame magic numbers.

    Args:
        leading_bytes: At least the first four bytes of the stream.

    Raises:
        DumpFormatError: If the bytes are not a zstd or skippable frame header.
    """
    magic = leading_bytes[:ZSTD_MAGIC_LENGTH]
    if magic == ZSTD_FRAME_MAGIC or _is_skippable_magic(magic):
        return
    preview = preview_bytes(leading_bytes, FORMAT_PREVIEW_BYTES)
    raise DumpFormatError(
        f"Dump is not zstd-compressed (leading bytes {magic.hex()}). "
        f"The download URL may have served an error page: {preview!r}",
        preview=preview,
    )


def _is_skippable_magic(magic: bytes) -> bool:
    """Return whether bytes are a skippable-frame magic (0x184D2A50..5F)."""
    return (
        len(magic) == ZSTD_MAGIC_LENGTH
        and magic[1:] == ZSTD_SKIPPABLE_MAGIC_SUFFIX
        and 0x50 <= magic[0] <= 0x5F
    )
