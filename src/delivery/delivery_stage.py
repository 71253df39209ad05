"""Batch delivery with retry and bounded in-flight depth.

``DeliveryStage`` sends one batch to the sink, classifying failures as
retryable or terminal and retrying the whole batch with the same
``(download_id, batch_index)`` key. ``DeliveryQueue`` bounds how many
deliveries may be outstanding so upstream stages cannot outrun the sink.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Awaitable, Callable

from core.errors import (
    DeliveryError,
    DeliveryRetriesExhaustedError,
    RetryableDeliveryError,
    SinkConnectionError,
    TerminalDeliveryError,
)
from core.logging_config import get_logger
from core.types import Batch, DeliveryOutcome, SinkResponse
from delivery.batch_sink import BatchSink
from delivery.retry_policy import RetryPolicy

_LOGGER = get_logger(__name__)

SleepFunction = Callable[[float], Awaitable[None]]


class DeliveryStage:
    """Deliver batches atomically with bounded retry."""

    def __init__(
        self,
        sink: BatchSink,
        retry_policy: RetryPolicy | None = None,
        sleep: SleepFunction = asyncio.sleep,
    ) -> None:
        self._sink = sink
        self._retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    async def deliver(self, batch: Batch) -> DeliveryOutcome:
        """Deliver one batch, retrying transient failures.

        Args:
            batch: Sealed batch to deliver.

        Returns:
            Success outcome with the sink-reported count, if any.

        Raises:
            TerminalDeliveryError: On a non-retryable failure.
            DeliveryRetriesExhaustedError: When retries run out.
        """
        policy = self._retry_policy
        attempt = 0
        while True:
            attempt += 1
            try:
                response = await self._attempt(batch, attempt)
            except RetryableDeliveryError as error:
                if attempt > policy.max_retries:
                    raise DeliveryRetriesExhaustedError(
                        f"Batch {batch.batch_index} failed after {attempt} attempts: {error}",
                        batch_index=batch.batch_index,
                        status_code=error.status_code,
                        attempts=attempt,
                    ) from error
                delay = policy.delay_for(attempt)
                _LOGGER.warning(
                    "batch_delivery_retry",
                    download_id=batch.download_id,
                    batch_index=batch.batch_index,
                    attempt=attempt,
                    status_code=error.status_code,
                    delay_seconds=delay,
                    reason=str(error),
                )
                await self._sleep(delay)
                continue
            outcome = DeliveryOutcome(
                batch_index=batch.batch_index,
                succeeded=True,
                accepted_count=response.accepted_count,
                status_code=response.status_code,
                attempts=attempt,
            )
            _LOGGER.info(
                "batch_delivered",
                download_id=batch.download_id,
                batch_index=batch.batch_index,
                records=len(batch),
                accepted_count=response.accepted_count,
                attempts=attempt,
            )
            return outcome

    async def _attempt(self, batch: Batch, attempt: int) -> SinkResponse:
        try:
            response = await self._sink.write_batch(batch)
        except SinkConnectionError as error:
            raise RetryableDeliveryError(
                str(error), batch_index=batch.batch_index, attempts=attempt
            ) from error
        except DeliveryError:
            raise
        except Exception as error:
            raise TerminalDeliveryError(
                f"Sink failed on batch {batch.batch_index}: {type(error).__name__}: {error}",
                batch_index=batch.batch_index,
                attempts=attempt,
            ) from error
        classify_response(batch.batch_index, response, self._retry_policy, attempt)
        return response


def classify_response(
    batch_index: int,
    response: SinkResponse,
    retry_policy: RetryPolicy,
    attempt: int = 1,
) -> None:
    """Raise the matching delivery error for a failed sink response.

    Raises:
        RetryableDeliveryError: For statuses the policy deems transient.
        TerminalDeliveryError: For other non-2xx statuses and explicit
            application-level failures.
    """
    status_code = response.status_code
    if 200 <= status_code < 300:
        if response.success:
            return
        raise TerminalDeliveryError(
            f"Sink rejected batch {batch_index}: {response.body_preview or 'success=false'}",
            batch_index=batch_index,
            status_code=status_code,
            attempts=attempt,
        )
    message = f"Sink returned {status_code} for batch {batch_index}: {response.body_preview}"
    if retry_policy.retryable_status(status_code):
        raise RetryableDeliveryError(
            message, batch_index=batch_index, status_code=status_code, attempts=attempt
        )
    raise TerminalDeliveryError(
        message, batch_index=batch_index, status_code=status_code, attempts=attempt
    )


def failure_outcome(error: DeliveryError) -> DeliveryOutcome:
    """Describe a delivery error as a failed outcome."""
    return DeliveryOutcome(
        batch_index=error.batch_index,
        succeeded=False,
        status_code=error.status_code,
        retryable=isinstance(error, RetryableDeliveryError),
        attempts=error.attempts,
        detail=str(error),
    )


class DeliveryQueue:
    """Bounded queue of in-flight deliveries completed in batch order.

    With ``depth == 1`` each batch is delivered before the caller resumes.
    With larger depths up to ``depth`` deliveries overlap, and completions
    are still awaited oldest first.
    """

    def __init__(
        self,
        stage: DeliveryStage,
        depth: int = 1,
        on_delivered: Callable[[Batch, DeliveryOutcome], None] | None = None,
    ) -> None:
        if depth < 1:
            raise ValueError(f"Delivery depth must be at least 1, got {depth}.")
        self._stage = stage
        self._depth = depth
        self._on_delivered = on_delivered
        self._in_flight: deque[tuple[Batch, asyncio.Task[DeliveryOutcome]]] = deque()

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def submit(self, batch: Batch) -> None:
        """Start delivering a batch, waiting while the queue is full.

        Raises:
            DeliveryError: If any awaited delivery failed.
        """
        task = asyncio.create_task(self._stage.deliver(batch))
        self._in_flight.append((batch, task))
        while len(self._in_flight) >= self._depth:
            await self._complete_oldest()

    async def drain(self) -> None:
        """Await every outstanding delivery in batch order."""
        while self._in_flight:
            await self._complete_oldest()

    async def _complete_oldest(self) -> None:
        batch, task = self._in_flight.popleft()
        try:
            outcome = await task
        except BaseException:
            await self.settle()
            raise
        if self._on_delivered is not None:
            self._on_delivered(batch, outcome)

    async def settle(self) -> None:
        """Let outstanding deliveries finish after a failure, logging their errors."""
        while self._in_flight:
            batch, task = self._in_flight.popleft()
            try:
                outcome = await task
            except Exception as error:  # noqa: BLE001
                _LOGGER.error(
                    "batch_delivery_failed",
                    download_id=batch.download_id,
                    batch_index=batch.batch_index,
                    error=str(error),
                )
                continue
            if self._on_delivered is not None:
                self._on_delivered(batch, outcome)
