"""Fixed-size batching of accepted records."""

from __future__ import annotations

from core.errors import SyncConfigError
from core.types import Batch, Record


class Batcher:
    """Accumulate records into sealed, sequentially numbered batches.

    Indices start at zero and increase by one per sealed batch. Empty
    batches are never sealed.
    """

    def __init__(self, download_id: str, batch_size: int) -> None:
        if batch_size < 1:
            raise SyncConfigError(f"Invalid batch_size {batch_size}: must be at least 1.")
        self._download_id = download_id
        self._batch_size = batch_size
        self._pending: list[Record] = []
        self._next_index = 0

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def sealed_count(self) -> int:
        return self._next_index

    def add(self, record: Record) -> Batch | None:
        """Append a record and return a sealed batch when full."""
        self._pending.append(record)
        if len(self._pending) >= self._batch_size:
            return self._seal()
        return None

    def flush(self) -> Batch | None:
        """Seal the partial final batch, or return ``None`` when empty."""
        if not self._pending:
            return None
        return self._seal()

    def _seal(self) -> Batch:
        batch = Batch(
            batch_index=self._next_index,
            download_id=self._download_id,
            records=tuple(self._pending),
        )
        self._next_index += 1
        self._pending = []
        return batch
