"""Record parsing and validation stage.

This module decodes framed lines into records, applies the validation
policy and keeps the run counters current. Decode failures and policy
rejections are recovered locally and never abort the run.
"""

from __future__ import annotations

import json

from core.constants import RECORD_PREVIEW_CHARS
from core.errors import RecordDecodeError
from core.logging_config import get_logger
from core.previews import preview_bytes
from core.types import Record, RunState
from ingest.validation_policy import ValidationPolicy

_LOGGER = get_logger(__name__)


class RecordParser:
    """Decode and validate lines, updating ``RunState`` counters."""

    def __init__(self, policy: ValidationPolicy) -> None:
        self._policy = policy

    def parse(self, line: bytes, state: RunState) -> Record | None:
        """Parse one line into an accepted record.

        Every call counts the line as scanned. Undecodable lines and
        policy rejections count as skipped and return ``None``.

        Args:
            line: Non-blank line bytes without separator.
            state: Run counters to update.

        Returns:
            Normalized accepted record, or ``None`` when skipped.
        """
        state.scanned += 1
        try:
            record = decode_record(line)
        except RecordDecodeError as error:
            state.skipped += 1
            state.decode_errors += 1
            _LOGGER.debug(
                "record_decode_failed",
                line_number=state.scanned,
                reason=str(error),
                preview=preview_bytes(line, RECORD_PREVIEW_CHARS),
            )
            return None
        verdict = self._policy.evaluate(record)
        if not verdict.accepted:
            state.skipped += 1
            state.rejected += 1
            _LOGGER.debug(
                "record_rejected",
                line_number=state.scanned,
                record_id=record.get("id"),
                failed_checks=list(verdict.failed_checks),
                preview=preview_bytes(line, RECORD_PREVIEW_CHARS),
            )
            return None
        state.kept += 1
        return self._policy.normalize(record)


def decode_record(line: bytes) -> Record:
    """Decode one line into a JSON object.

    Args:
        line: Raw line bytes.

    Returns:
        Decoded record mapping.

    Raises:
        RecordDecodeError: If the line is not UTF-8 JSON or not an object.
    """
    try:
        payload = json.loads(line.decode("utf-8"))
    except UnicodeDecodeError as error:
        raise RecordDecodeError(f"Line is not valid UTF-8: {error.reason}") from error
    except json.JSONDecodeError as error:
        raise RecordDecodeError(
            f"Line is not valid JSON: {error.msg} at column {error.colno}"
        ) from error
    if not isinstance(payload, dict):
        raise RecordDecodeError(f"Line decoded to {type(payload).__name__}, expected an object.")
    return payload
