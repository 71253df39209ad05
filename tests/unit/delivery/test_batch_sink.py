"""Unit tests for batch sink clients."""

from __future__ import annotations

import json

import httpx
import pytest

from core.config import SyncConfig
from core.errors import SinkConnectionError, SyncConfigError
from core.types import Batch
from delivery.batch_sink import DryRunSink, HttpBatchSink, parse_sink_response

_SINK_URL = "https://sink.example.com/v1/batches"


def _batch() -> Batch:
    return Batch(batch_index=3, download_id="run-1", records=({"id": "a"}, {"id": "b"}))


def _config(**overrides) -> SyncConfig:
    values = {
        "gateway_url": None,
        "gateway_token": None,
        "target": None,
        "dump_path": None,
        "language": "en",
        "sink_url": _SINK_URL,
        "sink_token": "secret",
        "session_url": None,
        "http_timeout_seconds": 5.0,
    }
    values.update(overrides)
    return SyncConfig(**values)


@pytest.mark.asyncio
async def test_http_sink_posts_batch_contract() -> None:
    """The sink request carries the idempotency key, records and bearer token."""
    captured: dict[str, object] = {}

    def _handler(request: httpx.Request) -> httpx.Response:
        captured["authorization"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "accepted_count": 2})

    async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as client:
        response = await HttpBatchSink.from_config(client, _config()).write_batch(_batch())

    assert captured["authorization"] == "Bearer secret"
    assert captured["body"] == {
        "download_id": "run-1",
        "batch_index": 3,
        "records": [{"id": "a"}, {"id": "b"}],
    }
    assert response.status_code == 200 and response.success and response.accepted_count == 2


@pytest.mark.asyncio
async def test_http_sink_wraps_network_errors() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as client:
        with pytest.raises(SinkConnectionError, match="batch 3"):
            await HttpBatchSink(client, _SINK_URL, "secret").write_batch(_batch())


@pytest.mark.asyncio
async def test_from_config_requires_sink_url() -> None:
    async with httpx.AsyncClient() as client:
        with pytest.raises(SyncConfigError, match="DUMPSYNC_SINK_URL"):
            HttpBatchSink.from_config(client, _config(sink_url=None))


def test_parse_sink_response_accepts_non_json_success() -> None:
    """A 2xx body that is not JSON still counts as success."""
    response = parse_sink_response(httpx.Response(204))

    assert response.success and response.accepted_count is None


def test_parse_sink_response_reads_application_failure() -> None:
    response = parse_sink_response(
        httpx.Response(200, json={"success": False, "error": "schema mismatch"})
    )

    assert not response.success and "schema mismatch" in response.body_preview


def test_parse_sink_response_keeps_error_preview() -> None:
    response = parse_sink_response(httpx.Response(503, text="upstream\n  unavailable"))

    assert response.status_code == 503 and response.body_preview == "upstream unavailable"


@pytest.mark.asyncio
async def test_dry_run_sink_accepts_everything() -> None:
    sink = DryRunSink()

    response = await sink.write_batch(_batch())

    assert response.accepted_count == 2 and sink.batches_seen == 1
