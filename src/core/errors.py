"""Dumpsync exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each pipeline stage raises a specific error type for debuggability.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base exception for all dumpsync failures."""


class SyncConfigError(SyncError):
    """Raised for invalid runtime configuration or run options."""


class SyncProfileError(SyncError):
    """Raised for invalid or unsupported YAML sync profiles."""


class LocatorError(SyncError):
    """Raised when the download location cannot be obtained."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransportError(SyncError):
    """Raised when the dump byte stream cannot be downloaded."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DumpFormatError(SyncError):
    """Raised when the source did not deliver the expected compressed format."""

    def __init__(self, message: str, preview: str = "") -> None:
        super().__init__(message)
        self.preview = preview


class RecordDecodeError(SyncError):
    """Raised when one line cannot be decoded into a record."""


class SinkConnectionError(SyncError):
    """Raised by batch sinks when the sink cannot be reached."""


class DeliveryError(SyncError):
    """Base class for batch delivery failures."""

    def __init__(
        self,
        message: str,
        batch_index: int,
        status_code: int | None = None,
        attempts: int = 1,
    ) -> None:
        super().__init__(message)
        self.batch_index = batch_index
        self.status_code = status_code
        self.attempts = attempts


class RetryableDeliveryError(DeliveryError):
    """Raised for transient delivery failures eligible for retry."""


class TerminalDeliveryError(DeliveryError):
    """Raised for delivery failures that are fatal for the run."""


class DeliveryRetriesExhaustedError(TerminalDeliveryError):
    """Raised when a retryable failure outlives the retry budget."""
