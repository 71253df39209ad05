"""Dump locator clients.

The gateway locator asks the internal gateway proxy for a time-limited
dump URL. The local locator serves offline runs from a file on disk.
Locator failures are fatal and are not retried here.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Protocol

import httpx

from core.config import SyncConfig, require_setting
from core.constants import LOCATOR_PROXY_PATH, LOCATOR_TOKEN_HEADER
from core.errors import LocatorError
from core.logging_config import get_logger
from core.types import DumpLocation
from remote.http_client import response_preview

_LOGGER = get_logger(__name__)


class DumpLocator(Protocol):
    """Resolve an inventory selector into a download location."""

    async def locate(self, inventory: str) -> DumpLocation:
        ...


class GatewayLocator:
    """Locator backed by the gateway proxy endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        gateway_url: str,
        gateway_token: str,
        target: str,
        dump_path: str,
        language: str,
    ) -> None:
        self._client = client
        self._endpoint = gateway_url.rstrip("/") + LOCATOR_PROXY_PATH
        self._token = gateway_token
        self._target = target
        self._dump_path = dump_path
        self._language = language

    @classmethod
    def from_config(cls, client: httpx.AsyncClient, config: SyncConfig) -> "GatewayLocator":
        """Build a gateway locator, failing on missing settings."""
        return cls(
            client=client,
            gateway_url=require_setting(config.gateway_url, "DUMPSYNC_GATEWAY_URL"),
            gateway_token=require_setting(config.gateway_token, "DUMPSYNC_GATEWAY_TOKEN"),
            target=require_setting(config.target, "DUMPSYNC_TARGET"),
            dump_path=require_setting(config.dump_path, "DUMPSYNC_DUMP_PATH"),
            language=config.language,
        )

    async def locate(self, inventory: str) -> DumpLocation:
        """Request a dump URL for one inventory selector.

        Args:
            inventory: Inventory selector, e.g. ``all`` or ``direct_fast``.

        Returns:
            Download location with optional run and session ids.

        Raises:
            LocatorError: On network failure, non-2xx status or missing URL.
        """
        _LOGGER.info("dump_url_requested", inventory=inventory, target=self._target)
        try:
            response = await self._client.post(
                self._endpoint,
                headers={LOCATOR_TOKEN_HEADER: self._token},
                json=self._build_request_body(inventory),
            )
        except httpx.HTTPError as error:
            raise LocatorError(
                f"Gateway request failed: {type(error).__name__}: {error}"
            ) from error
        if not response.is_success:
            raise LocatorError(
                f"Gateway failed with status {response.status_code}: {response_preview(response)}",
                status_code=response.status_code,
            )
        return parse_locator_payload(_decode_json(response), response)

    def _build_request_body(self, inventory: str) -> dict[str, Any]:
        return {
            "target": self._target,
            "path": self._dump_path,
            "options": {
                "method": "POST",
                "body": {"language": self._language, "inventory": inventory},
            },
        }


class LocalFileLocator:
    """Locator that points at a dump already on disk."""

    def __init__(self, dump_file: str) -> None:
        self._dump_path = Path(dump_file).expanduser().resolve()

    async def locate(self, inventory: str) -> DumpLocation:
        if not self._dump_path.is_file():
            raise LocatorError(
                f"Dump file not found at {self._dump_path}. Provide an existing --dump-file."
            )
        _LOGGER.info("dump_file_located", inventory=inventory, path=str(self._dump_path))
        return DumpLocation(download_url=self._dump_path.as_uri())


def parse_locator_payload(payload: object, response: httpx.Response | None = None) -> DumpLocation:
    """Extract the download location from a gateway payload.

    The URL is read from ``data.url``, ``data.download_url`` or a
    top-level ``download_url``.

    Raises:
        LocatorError: If no URL is present.
    """
    root = payload if isinstance(payload, Mapping) else {}
    data = root.get("data")
    data = data if isinstance(data, Mapping) else root
    url = _first_string(data, "url", "download_url") or _first_string(root, "download_url")
    if not url:
        status = response.status_code if response is not None else None
        body = response_preview(response) if response is not None else ""
        raise LocatorError(f"Gateway returned no dump URL: {body}", status_code=status)
    return DumpLocation(
        download_url=url,
        download_id=_first_string(data, "download_id") or _first_string(root, "download_id"),
        session_id=_first_string(data, "session_id") or _first_string(root, "session_id"),
    )


def _decode_json(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError as error:
        raise LocatorError(
            f"Gateway returned non-JSON body: {response_preview(response)}",
            status_code=response.status_code,
        ) from error


def _first_string(mapping: Mapping[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = mapping.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None
