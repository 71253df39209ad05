"""Dump sync orchestration.

This module coordinates locating the dump, streaming decompression,
line framing, record validation, batching and delivery as one async
pipeline. All run state lives in a ``RunState`` owned by the runner,
so a pipeline instance can be exercised in isolation.
"""

from __future__ import annotations

import asyncio
from contextlib import aclosing
from typing import AsyncIterator, Awaitable, Callable
import uuid

import httpx

from core.constants import DEFAULT_DOWNLOAD_RETRY_DELAY_SECONDS
from core.errors import DeliveryError, SyncError, TransportError
from core.logging_config import get_logger
from core.types import (
    Batch,
    DeliveryOutcome,
    DumpLocation,
    RunState,
    RunStatus,
    RunSummary,
    SyncOptions,
)
from delivery.batch_sink import BatchSink
from delivery.delivery_stage import DeliveryQueue, DeliveryStage, failure_outcome
from delivery.retry_policy import RetryPolicy, linear_backoff
from ingest.batcher import Batcher
from ingest.decompression import decompress_stream
from ingest.dump_source import DumpSource, open_dump_source
from ingest.line_framer import frame_lines
from ingest.record_parser import RecordParser
from ingest.validation_policy import ValidationPolicy
from remote.gateway_locator import DumpLocator
from remote.session_tracker import BestEffortTracker, SessionTracker

_LOGGER = get_logger(__name__)

SourceOpener = Callable[[DumpLocation, httpx.AsyncClient | None], DumpSource]
SleepFunction = Callable[[float], Awaitable[None]]


class _DownloadInterrupted(Exception):
    """Raised from the chunk relay when cancellation wins over the next read."""


class SyncPipeline:
    """Stateful runner for one dump sync.

    The runner walks ``idle -> locating -> downloading -> streaming ->
    completing`` and ends in ``succeeded``, ``failed`` or ``cancelled``.
    ``run`` always returns a summary; fatal errors are reported in it.
    """

    def __init__(
        self,
        locator: DumpLocator,
        sink: BatchSink,
        options: SyncOptions,
        client: httpx.AsyncClient | None = None,
        tracker: SessionTracker | None = None,
        cancel_event: asyncio.Event | None = None,
        retry_policy: RetryPolicy | None = None,
        source_opener: SourceOpener = open_dump_source,
        sleep: SleepFunction = asyncio.sleep,
    ) -> None:
        self._locator = locator
        self._options = options
        self._client = client
        self._tracker = BestEffortTracker(tracker)
        self._cancel_event = cancel_event or asyncio.Event()
        self._source_opener = source_opener
        self._sleep = sleep
        policy = retry_policy or RetryPolicy.from_options(
            options.max_retries, options.base_delay_ms
        )
        self._stage = DeliveryStage(sink, policy, sleep=sleep)
        self._parser = RecordParser(ValidationPolicy(options.policy))
        self._state = RunState(download_id=uuid.uuid4().hex)
        self._session_id: str | None = None
        self._interrupted = False

    @property
    def state(self) -> RunState:
        return self._state

    def cancel(self) -> None:
        """Request cooperative cancellation; in-flight deliveries finish."""
        self._cancel_event.set()

    async def run(self) -> RunSummary:
        """Execute the sync and return its terminal summary."""
        error: SyncError | None = None
        try:
            location = await self._locate()
            await self._tracker.start(
                self._state.download_id, self._options.inventory, self._session_id
            )
            await self._stream_with_retries(location)
            self._transition("cancelled" if self._interrupted else "succeeded")
        except SyncError as sync_error:
            error = sync_error
            self._transition("failed")
        summary = self._build_summary(error)
        await self._tracker.complete(self._state.download_id, summary, self._session_id)
        _log_run_completion(summary)
        return summary

    async def _locate(self) -> DumpLocation:
        self._transition("locating")
        location = await self._locator.locate(self._options.inventory)
        if location.download_id:
            self._state.download_id = location.download_id
        self._session_id = location.session_id
        _LOGGER.info(
            "dump_located",
            download_id=self._state.download_id,
            inventory=self._options.inventory,
            session_id=self._session_id,
        )
        return location

    async def _stream_with_retries(self, location: DumpLocation) -> None:
        attempts = self._options.download_attempts
        for attempt in range(1, attempts + 1):
            if attempt > 1:
                self._state.reset_counters()
            try:
                await self._stream_once(location)
                return
            except TransportError as error:
                if self._cancel_event.is_set():
                    self._interrupted = True
                    return
                # Retrying after a sealed batch would deliver records twice.
                if self._state.batches_sealed > 0 or attempt >= attempts:
                    raise
                delay = linear_backoff(DEFAULT_DOWNLOAD_RETRY_DELAY_SECONDS, attempt)
                _LOGGER.warning(
                    "dump_download_retry",
                    download_id=self._state.download_id,
                    attempt=attempt,
                    max_attempts=attempts,
                    delay_seconds=delay,
                    error=str(error),
                )
                backoff = asyncio.ensure_future(self._sleep(delay))
                if not await _finished_before_cancel(backoff, self._cancel_event):
                    self._interrupted = True
                    return

    async def _stream_once(self, location: DumpLocation) -> None:
        self._transition("downloading")
        source = self._source_opener(location, self._client)
        batcher = Batcher(self._state.download_id, self._options.batch_size)
        queue = DeliveryQueue(self._stage, self._options.pipeline_depth, self._record_delivery)
        try:
            try:
                async with (
                    aclosing(source.open_stream()) as raw_chunks,
                    aclosing(self._relay_until_cancelled(raw_chunks)) as relayed_chunks,
                    aclosing(decompress_stream(relayed_chunks)) as plain_chunks,
                    aclosing(frame_lines(plain_chunks)) as lines,
                ):
                    async for line in lines:
                        if self._cancel_event.is_set():
                            self._interrupted = True
                            break
                        if self._state.status != "streaming":
                            self._transition("streaming")
                        record = self._parser.parse(line, self._state)
                        self._log_progress()
                        if record is not None:
                            await self._submit(queue, batcher.add(record))
            except _DownloadInterrupted:
                self._interrupted = True
            if self._interrupted:
                await queue.drain()
                return
            self._transition("completing")
            await self._submit(queue, batcher.flush())
            await queue.drain()
        except BaseException:
            await queue.settle()
            raise

    async def _relay_until_cancelled(self, chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        """Relay source chunks until the stream ends or cancellation is requested.

        A dedicated task owns the source stream, so a read that stalls
        (a hung download, for example) is abandoned as soon as the cancel
        event fires instead of when the transport times out.
        """
        relay: asyncio.Queue[bytes | Exception | None] = asyncio.Queue(maxsize=1)
        pump = asyncio.create_task(_pump_chunks(chunks, relay))
        try:
            while True:
                next_item = asyncio.ensure_future(relay.get())
                if not await _finished_before_cancel(next_item, self._cancel_event):
                    _LOGGER.info("dump_download_abandoned", download_id=self._state.download_id)
                    raise _DownloadInterrupted()
                item = next_item.result()
                if item is None:
                    return
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            pump.cancel()
            await asyncio.wait({pump})

    async def _submit(self, queue: DeliveryQueue, batch: Batch | None) -> None:
        if batch is None:
            return
        self._state.batches_sealed += 1
        await queue.submit(batch)

    def _record_delivery(self, batch: Batch, outcome: DeliveryOutcome) -> None:
        self._state.batches_delivered += 1
        self._state.records_delivered += len(batch)
        self._state.last_batch_index = outcome.batch_index

    def _log_progress(self) -> None:
        state = self._state
        if state.scanned % self._options.log_every != 0:
            return
        _LOGGER.info(
            "sync_progress",
            download_id=state.download_id,
            scanned=state.scanned,
            kept=state.kept,
            skipped=state.skipped,
            batches_delivered=state.batches_delivered,
        )

    def _transition(self, status: RunStatus) -> None:
        previous = self._state.status
        self._state.status = status
        _LOGGER.info(
            "sync_state_changed",
            download_id=self._state.download_id,
            previous=previous,
            current=status,
        )

    def _build_summary(self, error: SyncError | None) -> RunSummary:
        if error is None:
            return self._state.to_summary()
        failed_batch_index = None
        if isinstance(error, DeliveryError):
            failed_batch_index = error.batch_index
            _LOGGER.error("batch_delivery_failed", **_outcome_fields(failure_outcome(error)))
        return self._state.to_summary(
            error=f"{type(error).__name__}: {error}",
            failed_batch_index=failed_batch_index,
        )


async def sync_dump(
    locator: DumpLocator,
    sink: BatchSink,
    options: SyncOptions,
    client: httpx.AsyncClient | None = None,
    tracker: SessionTracker | None = None,
    cancel_event: asyncio.Event | None = None,
) -> RunSummary:
    """Run one dump sync with explicit collaborators.

    Args:
        locator: Resolves the inventory selector into a download location.
        sink: Receives sealed batches.
        options: Run options.
        client: HTTP client for http(s) download URLs.
        tracker: Optional session tracker.
        cancel_event: Optional event that requests cooperative cancellation.

    Returns:
        Terminal run summary.
    """
    pipeline = SyncPipeline(
        locator=locator,
        sink=sink,
        options=options,
        client=client,
        tracker=tracker,
        cancel_event=cancel_event,
    )
    return await pipeline.run()


async def _pump_chunks(
    chunks: AsyncIterator[bytes],
    relay: asyncio.Queue[bytes | Exception | None],
) -> None:
    """Copy chunks into the relay, then an error or the ``None`` end marker."""
    try:
        async with aclosing(chunks):
            async for chunk in chunks:
                await relay.put(chunk)
    except Exception as error:
        await relay.put(error)
        return
    await relay.put(None)


async def _finished_before_cancel(task: asyncio.Future, cancel_event: asyncio.Event) -> bool:
    """Wait for ``task`` unless ``cancel_event`` fires first.

    Returns:
        True when the task finished, False when it was cancelled because
        cancellation was requested first.
    """
    cancel_wait = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({task, cancel_wait}, return_when=asyncio.FIRST_COMPLETED)
    except BaseException:
        task.cancel()
        raise
    finally:
        cancel_wait.cancel()
    if task in done:
        return True
    task.cancel()
    return False


def _outcome_fields(outcome: DeliveryOutcome) -> dict[str, object]:
    return {
        "batch_index": outcome.batch_index,
        "status_code": outcome.status_code,
        "retryable": outcome.retryable,
        "attempts": outcome.attempts,
        "detail": outcome.detail,
    }


def _log_run_completion(summary: RunSummary) -> None:
    """Log the terminal summary with contextual counters."""
    if summary.status == "failed":
        _LOGGER.error("sync_failed", **summary.as_fields())
        return
    _LOGGER.info("sync_completed", **summary.as_fields())
