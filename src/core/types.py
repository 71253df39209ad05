"""Shared typed models.

This module defines the data models passed between the decompression,
parsing, batching and delivery stages to keep interfaces explicit.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Literal

from core.constants import (
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_BATCH_SIZE,
    DEFAULT_DOWNLOAD_ATTEMPTS,
    DEFAULT_INVENTORY,
    DEFAULT_LOG_EVERY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MIN_IMAGES,
    DEFAULT_MIN_STAR_RATING,
    DEFAULT_PIPELINE_DEPTH,
)

Record = dict[str, Any]

RunStatus = Literal[
    "idle",
    "locating",
    "downloading",
    "streaming",
    "completing",
    "succeeded",
    "failed",
    "cancelled",
]


@dataclass(frozen=True)
class PolicyThresholds:
    """Completeness thresholds for record validation.

    Attributes:
        min_images: Minimum count of valid absolute image URLs.
        min_star_rating: Minimum numeric star rating.
        require_geo: Require latitude/longitude inside valid ranges.
        require_address: Require a non-empty address string.
        require_country: Require a two-letter country code under ``region``.
    """

    min_images: int = DEFAULT_MIN_IMAGES
    min_star_rating: float = DEFAULT_MIN_STAR_RATING
    require_geo: bool = False
    require_address: bool = False
    require_country: bool = False


@dataclass(frozen=True)
class SyncOptions:
    """Run options for one dump sync.

    Attributes:
        inventory: Inventory selector passed to the locator.
        batch_size: Maximum records per delivered batch.
        max_retries: Retry budget per batch for transient sink failures.
        base_delay_ms: Linear backoff base delay in milliseconds.
        pipeline_depth: Maximum batch deliveries in flight.
        log_every: Progress log cadence in scanned lines.
        download_attempts: Whole-download attempts before transport failure is fatal.
        policy: Record validation thresholds.
        dump_file: Optional local dump path that bypasses the locator.
        dry_run: Validate and batch without calling the sink.
    """

    inventory: str = DEFAULT_INVENTORY
    batch_size: int = DEFAULT_BATCH_SIZE
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS
    pipeline_depth: int = DEFAULT_PIPELINE_DEPTH
    log_every: int = DEFAULT_LOG_EVERY
    download_attempts: int = DEFAULT_DOWNLOAD_ATTEMPTS
    policy: PolicyThresholds = field(default_factory=PolicyThresholds)
    dump_file: str | None = None
    dry_run: bool = False


@dataclass(frozen=True)
class DumpLocation:
    """Download location returned by the locator service."""

    download_url: str
    download_id: str | None = None
    session_id: str | None = None


@dataclass(frozen=True)
class Batch:
    """Sealed group of accepted records.

    Attributes:
        batch_index: Zero-based gapless sequence number within the run.
        download_id: Run identifier used for sink-side idempotency.
        records: Accepted records in original relative order.
    """

    batch_index: int
    download_id: str
    records: tuple[Record, ...]

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class SinkResponse:
    """Raw response reported by a batch sink."""

    status_code: int
    success: bool = True
    accepted_count: int | None = None
    body_preview: str = ""


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of delivering one batch.

    Attributes:
        batch_index: Delivered batch sequence number.
        succeeded: Whether the sink accepted the whole batch.
        accepted_count: Sink-reported accepted count, if any.
        status_code: Last HTTP-equivalent status observed.
        retryable: Whether the last failure was classified as transient.
        attempts: Number of sink calls made.
        detail: Short diagnostic for failures.
    """

    batch_index: int
    succeeded: bool
    accepted_count: int | None = None
    status_code: int | None = None
    retryable: bool = False
    attempts: int = 1
    detail: str = ""


@dataclass
class RunState:
    """Mutable counters threaded through one pipeline run."""

    download_id: str
    status: RunStatus = "idle"
    scanned: int = 0
    kept: int = 0
    skipped: int = 0
    decode_errors: int = 0
    rejected: int = 0
    batches_sealed: int = 0
    batches_delivered: int = 0
    records_delivered: int = 0
    last_batch_index: int | None = None
    started_at: float = field(default_factory=time.monotonic)

    def reset_counters(self) -> None:
        """Zero record and batch counters before a fresh download attempt."""
        self.scanned = 0
        self.kept = 0
        self.skipped = 0
        self.decode_errors = 0
        self.rejected = 0
        self.batches_sealed = 0
        self.batches_delivered = 0
        self.records_delivered = 0
        self.last_batch_index = None

    def to_summary(
        self,
        error: str | None = None,
        failed_batch_index: int | None = None,
    ) -> "RunSummary":
        """Snapshot current counters into an immutable summary."""
        return RunSummary(
            download_id=self.download_id,
            status=self.status,
            scanned=self.scanned,
            kept=self.kept,
            skipped=self.skipped,
            decode_errors=self.decode_errors,
            rejected=self.rejected,
            batches_delivered=self.batches_delivered,
            records_delivered=self.records_delivered,
            last_batch_index=self.last_batch_index,
            elapsed_seconds=round(time.monotonic() - self.started_at, 3),
            error=error,
            failed_batch_index=failed_batch_index,
        )


@dataclass(frozen=True)
class RunSummary:
    """Terminal counters for one run.

    Attributes:
        download_id: Run identifier.
        status: Terminal run status.
        scanned: Non-blank lines read.
        kept: Records accepted by the policy.
        skipped: Lines that failed decoding or validation.
        decode_errors: Lines that were not valid JSON objects.
        rejected: Decoded records rejected by the policy.
        batches_delivered: Batches accepted by the sink.
        records_delivered: Records inside delivered batches.
        last_batch_index: Highest delivered batch index, if any.
        elapsed_seconds: Wall-clock duration of the run.
        error: Fatal error message on failure.
        failed_batch_index: Batch whose delivery failed, if any.
    """

    download_id: str
    status: RunStatus
    scanned: int
    kept: int
    skipped: int
    decode_errors: int
    rejected: int
    batches_delivered: int
    records_delivered: int
    last_batch_index: int | None
    elapsed_seconds: float
    error: str | None = None
    failed_batch_index: int | None = None

    @property
    def succeeded(self) -> bool:
        """Return whether the run reached the success terminal state."""
        return self.status == "succeeded"

    def as_fields(self) -> dict[str, object]:
        """Return summary fields for logging and CLI output."""
        return {
            "download_id": self.download_id,
            "status": self.status,
            "scanned": self.scanned,
            "kept": self.kept,
            "skipped": self.skipped,
            "decode_errors": self.decode_errors,
            "rejected": self.rejected,
            "batches_delivered": self.batches_delivered,
            "records_delivered": self.records_delivered,
            "last_batch_index": self.last_batch_index,
            "elapsed_seconds": self.elapsed_seconds,
            "error": self.error,
            "failed_batch_index": self.failed_batch_index,
        }
