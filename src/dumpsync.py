"""Public SDK surface for dumpsync.

This module provides a stable import path for library users.
It re-exports the runner entry points and typed option models.
"""

from __future__ import annotations

from core.config import SyncConfig
from core.errors import (
    DeliveryError,
    DumpFormatError,
    LocatorError,
    SyncConfigError,
    SyncError,
    TransportError,
)
from core.sync_options import build_sync_options
from core.sync_profile import SyncProfile, load_sync_profile
from core.types import Batch, DumpLocation, PolicyThresholds, RunSummary, SyncOptions
from delivery.batch_sink import BatchSink, DryRunSink, HttpBatchSink
from delivery.retry_policy import RetryPolicy
from ingest.pipeline import SyncPipeline, sync_dump
from ingest.sync_runner import build_sync_pipeline, run_dump_sync
from ingest.validation_policy import ValidationPolicy
from remote.gateway_locator import GatewayLocator, LocalFileLocator

__all__ = [
    "Batch",
    "BatchSink",
    "DeliveryError",
    "DryRunSink",
    "DumpFormatError",
    "DumpLocation",
    "GatewayLocator",
    "HttpBatchSink",
    "LocalFileLocator",
    "LocatorError",
    "PolicyThresholds",
    "RetryPolicy",
    "RunSummary",
    "SyncConfig",
    "SyncConfigError",
    "SyncError",
    "SyncOptions",
    "SyncPipeline",
    "SyncProfile",
    "TransportError",
    "ValidationPolicy",
    "build_sync_options",
    "build_sync_pipeline",
    "load_sync_profile",
    "run_dump_sync",
    "sync_dump",
]
