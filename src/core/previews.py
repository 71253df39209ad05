"""Diagnostic preview helpers.

This module renders short, single-line previews of payloads so errors
and logs stay readable when upstream services return unexpected bodies.
"""

from __future__ import annotations

from core.constants import BODY_PREVIEW_CHARS


def preview_text(text: str, limit: int = BODY_PREVIEW_CHARS) -> str:
    """Collapse whitespace and truncate text for diagnostics.

    Args:
        text: Raw text payload.
        limit: Maximum characters kept before the ellipsis.

    Returns:
        Single-line preview.
    """
    collapsed = " ".join(text.split())
    if len(collapsed) <= limit:
        return collapsed
    return collapsed[:limit] + "..."


def preview_bytes(data: bytes, limit: int = BODY_PREVIEW_CHARS) -> str:
    """Decode leading bytes leniently and preview them as text."""
    return preview_text(data[:limit].decode("utf-8", errors="replace"), limit)
