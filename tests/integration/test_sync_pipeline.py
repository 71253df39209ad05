"""Integration test for an HTTP-backed dump sync."""

from __future__ import annotations

import json

import httpx
import pytest

from core.config import SyncConfig
from core.types import SyncOptions
from ingest.sync_runner import build_sync_pipeline

_GATEWAY = "https://gateway.example.com"
_DUMP_URL = "https://dumps.example.com/signed/all.jsonl.zst?sig=abc"
_SINK_URL = "https://sink.example.com/v1/batches"
_SESSION_URL = "https://sessions.example.com/v1/dump-sessions"


def _config() -> SyncConfig:
    return SyncConfig(
        gateway_url=_GATEWAY,
        gateway_token="internal-token",
        target="content-api",
        dump_path="/api/b2b/v3/hotel/info/dump/",
        language="en",
        sink_url=_SINK_URL,
        sink_token="sink-token",
        session_url=_SESSION_URL,
        http_timeout_seconds=5.0,
    )


@pytest.mark.asyncio
async def test_sync_streams_dump_from_gateway_to_sink(dump_helpers) -> None:
    """Locator, download, delivery and session tracking work end to end."""
    lines = [dump_helpers.hotel_record(index) for index in range(23)]
    lines.insert(5, "{broken json")
    lines.insert(9, dump_helpers.hotel_record(99, images=["relative/path.jpg"]))
    dump = dump_helpers.compress_dump(dump_helpers.encode_lines(lines), frames=3)
    sink_statuses = [503]
    delivered: list[dict[str, object]] = []
    session_events: list[dict[str, object]] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url == f"{_GATEWAY}/etg/proxy":
            return httpx.Response(200, json={"data": {"url": _DUMP_URL, "session_id": "s-7"}})
        if url == _DUMP_URL:
            return httpx.Response(200, content=dump)
        if url == _SINK_URL:
            if sink_statuses:
                return httpx.Response(sink_statuses.pop(0), text="try again")
            body = json.loads(request.content)
            delivered.append(body)
            accepted = len(body["records"])
            return httpx.Response(200, json={"success": True, "accepted_count": accepted})
        if url == _SESSION_URL:
            session_events.append(json.loads(request.content))
            return httpx.Response(204)
        return httpx.Response(404)

    options = SyncOptions(batch_size=10, base_delay_ms=0, log_every=5)
    async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as client:
        summary = await build_sync_pipeline(options, _config(), client).run()

    assert summary.status == "succeeded"
    assert (summary.scanned, summary.kept, summary.skipped) == (25, 23, 2)
    assert [body["batch_index"] for body in delivered] == [0, 1, 2]
    assert [len(body["records"]) for body in delivered] == [10, 10, 3]
    assert {body["download_id"] for body in delivered} == {summary.download_id}
    assert [event["event"] for event in session_events] == ["start", "complete"]
    assert session_events[1]["session_id"] == "s-7"
    assert session_events[1]["summary"]["records_delivered"] == 23
