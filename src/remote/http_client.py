"""Shared HTTP client construction for remote collaborators."""

from __future__ import annotations

import httpx

from core.config import SyncConfig
from core.previews import preview_text


def build_http_client(config: SyncConfig) -> httpx.AsyncClient:
    """Build the async HTTP client shared by locator, source, sink and tracker.

    Args:
        config: Runtime config providing the timeout.

    Returns:
        Configured ``httpx.AsyncClient``; callers own its lifecycle.
    """
    timeout = httpx.Timeout(config.http_timeout_seconds)
    return httpx.AsyncClient(timeout=timeout, follow_redirects=True)


def response_preview(response: httpx.Response) -> str:
    """Return a truncated single-line preview of a read response body."""
    try:
        return preview_text(response.text)
    except UnicodeDecodeError:
        return preview_text(response.content.decode("utf-8", errors="replace"))
