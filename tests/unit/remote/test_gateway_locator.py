"""Unit tests for dump locator clients."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from core.errors import LocatorError
from remote.gateway_locator import GatewayLocator, LocalFileLocator, parse_locator_payload


def _locator(client: httpx.AsyncClient) -> GatewayLocator:
    return GatewayLocator(
        client=client,
        gateway_url="https://gateway.example.com/",
        gateway_token="internal-token",
        target="content-api",
        dump_path="/api/b2b/v3/hotel/info/dump/",
        language="en",
    )


@pytest.mark.asyncio
async def test_gateway_locator_sends_proxy_request() -> None:
    """The locator posts the proxy envelope and reads data.url."""
    captured: dict[str, object] = {}

    def _handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["token"] = request.headers["x-internal-token"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"data": {"url": "https://dumps.example.com/all.zst", "download_id": "dl-42"}},
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as client:
        location = await _locator(client).locate("direct_fast")

    assert captured["url"] == "https://gateway.example.com/etg/proxy"
    assert captured["token"] == "internal-token"
    assert captured["body"] == {
        "target": "content-api",
        "path": "/api/b2b/v3/hotel/info/dump/",
        "options": {"method": "POST", "body": {"language": "en", "inventory": "direct_fast"}},
    }
    assert location.download_url == "https://dumps.example.com/all.zst"
    assert location.download_id == "dl-42"


@pytest.mark.asyncio
async def test_gateway_locator_raises_on_error_status() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(502, text="bad gateway"))

    async with httpx.AsyncClient(transport=transport) as client:
        with pytest.raises(LocatorError, match="502") as error_info:
            await _locator(client).locate("all")

    assert error_info.value.status_code == 502


@pytest.mark.asyncio
async def test_gateway_locator_raises_on_non_json_body() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))

    async with httpx.AsyncClient(transport=transport) as client:
        with pytest.raises(LocatorError, match="non-JSON"):
            await _locator(client).locate("all")


def test_parse_locator_payload_falls_back_to_top_level_url() -> None:
    location = parse_locator_payload(
        {"data": {"session_id": "s-1"}, "download_url": "https://dumps.example.com/a.zst"}
    )

    assert location.download_url == "https://dumps.example.com/a.zst"
    assert location.session_id == "s-1"


def test_parse_locator_payload_reads_data_download_url() -> None:
    location = parse_locator_payload({"data": {"download_url": "https://dumps.example.com/b.zst"}})

    assert location.download_url == "https://dumps.example.com/b.zst"


def test_parse_locator_payload_requires_url() -> None:
    with pytest.raises(LocatorError, match="no dump URL"):
        parse_locator_payload({"data": {"status": "ok"}})


@pytest.mark.asyncio
async def test_local_file_locator(tmp_path: Path) -> None:
    """Local locator returns a file URI for existing dumps only."""
    dump_path = tmp_path / "dump.zst"
    dump_path.write_bytes(b"")

    location = await LocalFileLocator(str(dump_path)).locate("all")

    assert location.download_url == dump_path.resolve().as_uri()
    with pytest.raises(LocatorError, match="not found"):
        await LocalFileLocator(str(tmp_path / "absent.zst")).locate("all")
