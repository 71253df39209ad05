"""Batch sink clients.

A sink receives one sealed batch keyed by ``(download_id, batch_index)``
and reports an HTTP-equivalent status. Network failures raise
``SinkConnectionError``; status classification belongs to the delivery
stage.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol

import httpx

from core.config import SyncConfig, require_setting
from core.errors import SinkConnectionError
from core.types import Batch, SinkResponse
from remote.http_client import response_preview


class BatchSink(Protocol):
    """Durable destination for sealed batches."""

    async def write_batch(self, batch: Batch) -> SinkResponse:
        ...


class HttpBatchSink:
    """Sink that posts batches to the write API."""

    def __init__(self, client: httpx.AsyncClient, url: str, token: str) -> None:
        self._client = client
        self._url = url
        self._headers = {"Authorization": f"Bearer {token}"}

    @classmethod
    def from_config(cls, client: httpx.AsyncClient, config: SyncConfig) -> "HttpBatchSink":
        """Build an HTTP sink, failing on missing settings."""
        return cls(
            client=client,
            url=require_setting(config.sink_url, "DUMPSYNC_SINK_URL"),
            token=require_setting(config.sink_token, "DUMPSYNC_SINK_TOKEN"),
        )

    async def write_batch(self, batch: Batch) -> SinkResponse:
        """Post one batch and translate the response.

        Raises:
            SinkConnectionError: If the request fails before a response.
        """
        body = {
            "download_id": batch.download_id,
            "batch_index": batch.batch_index,
            "records": list(batch.records),
        }
        try:
            response = await self._client.post(self._url, headers=self._headers, json=body)
        except httpx.HTTPError as error:
            raise SinkConnectionError(
                f"Sink request for batch {batch.batch_index} failed: "
                f"{type(error).__name__}: {error}"
            ) from error
        return parse_sink_response(response)


class DryRunSink:
    """Sink that accepts every batch without sending it anywhere."""

    def __init__(self) -> None:
        self.batches_seen = 0

    async def write_batch(self, batch: Batch) -> SinkResponse:
        self.batches_seen += 1
        return SinkResponse(status_code=200, success=True, accepted_count=len(batch))


def parse_sink_response(response: httpx.Response) -> SinkResponse:
    """Translate an HTTP response into a ``SinkResponse``.

    Non-JSON bodies count as success on 2xx without an accepted count.
    Only an explicit ``"success": false`` marks an application failure.
    """
    payload = _json_or_none(response)
    success = True
    accepted_count: int | None = None
    if isinstance(payload, Mapping):
        success = payload.get("success") is not False
        accepted_count = _as_count(payload.get("accepted_count"))
    return SinkResponse(
        status_code=response.status_code,
        success=success,
        accepted_count=accepted_count,
        body_preview="" if response.is_success and success else response_preview(response),
    )


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _as_count(value: object) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None
