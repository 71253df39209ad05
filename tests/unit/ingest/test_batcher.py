"""Unit tests for fixed-size batching."""

from __future__ import annotations

import pytest

from core.errors import SyncConfigError
from ingest.batcher import Batcher


def _fill(batcher: Batcher, count: int) -> list:
    sealed = [batcher.add({"id": str(index)}) for index in range(count)]
    sealed.append(batcher.flush())
    return [batch for batch in sealed if batch is not None]


def test_batcher_seals_full_batches_and_flushes_remainder() -> None:
    """1200 records with size 500 should seal 500, 500 and 200."""
    batches = _fill(Batcher("run-1", 500), 1200)

    assert [len(batch) for batch in batches] == [500, 500, 200]
    assert [batch.batch_index for batch in batches] == [0, 1, 2]


def test_batcher_exact_multiple_has_no_empty_tail() -> None:
    """Exactly batch_size records produce one batch and no empty flush."""
    batches = _fill(Batcher("run-1", 4), 4)

    assert [len(batch) for batch in batches] == [4]


def test_batcher_one_over_batch_size() -> None:
    """batch_size + 1 records produce a full batch and a single-record batch."""
    batches = _fill(Batcher("run-1", 4), 5)

    assert [len(batch) for batch in batches] == [4, 1]


def test_batcher_preserves_order_and_download_id() -> None:
    batches = _fill(Batcher("run-9", 2), 3)

    assert [record["id"] for batch in batches for record in batch.records] == ["0", "1", "2"]
    assert {batch.download_id for batch in batches} == {"run-9"}


def test_batcher_flush_on_empty_returns_none() -> None:
    batcher = Batcher("run-1", 3)

    assert batcher.flush() is None and batcher.sealed_count == 0


def test_batcher_rejects_zero_size() -> None:
    with pytest.raises(SyncConfigError):
        Batcher("run-1", 0)
