"""Session tracking for sync observability.

Trackers record start and completion events for a run. They are best
effort: ``BestEffortTracker`` logs failures and never lets them reach
the pipeline.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from core.errors import SyncError
from core.logging_config import get_logger
from core.types import RunSummary
from remote.http_client import response_preview

_LOGGER = get_logger(__name__)


class SessionTracker(Protocol):
    """Receives run lifecycle events."""

    async def start(self, download_id: str, inventory: str, session_id: str | None) -> None:
        ...

    async def complete(self, download_id: str, summary: RunSummary, session_id: str | None) -> None:
        ...


class HttpSessionTracker:
    """Post lifecycle events to a session endpoint."""

    def __init__(self, client: httpx.AsyncClient, url: str, token: str | None = None) -> None:
        self._client = client
        self._url = url
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}

    async def start(self, download_id: str, inventory: str, session_id: str | None) -> None:
        await self._post(
            {
                "event": "start",
                "download_id": download_id,
                "session_id": session_id,
                "inventory": inventory,
            }
        )

    async def complete(self, download_id: str, summary: RunSummary, session_id: str | None) -> None:
        await self._post(
            {
                "event": "complete",
                "download_id": download_id,
                "session_id": session_id,
                "summary": summary.as_fields(),
            }
        )

    async def _post(self, body: dict[str, Any]) -> None:
        try:
            response = await self._client.post(self._url, headers=self._headers, json=body)
        except httpx.HTTPError as error:
            raise SyncError(f"Session tracker unreachable: {error}") from error
        if not response.is_success:
            raise SyncError(
                f"Session tracker returned {response.status_code}: {response_preview(response)}"
            )


class BestEffortTracker:
    """Wrap a tracker so its failures are logged, not raised."""

    def __init__(self, tracker: SessionTracker | None) -> None:
        self._tracker = tracker

    async def start(self, download_id: str, inventory: str, session_id: str | None) -> None:
        if self._tracker is None:
            return
        try:
            await self._tracker.start(download_id, inventory, session_id)
        except Exception as error:  # noqa: BLE001
            _LOGGER.warning(
                "session_tracker_failed",
                event_name="start",
                download_id=download_id,
                error=str(error),
            )

    async def complete(self, download_id: str, summary: RunSummary, session_id: str | None) -> None:
        if self._tracker is None:
            return
        try:
            await self._tracker.complete(download_id, summary, session_id)
        except Exception as error:  # noqa: BLE001
            _LOGGER.warning(
                "session_tracker_failed",
                event_name="complete",
                download_id=download_id,
                error=str(error),
            )
