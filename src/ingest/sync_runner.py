"""Assemble a dump sync from runtime config and run options.

This module picks the collaborators for a run (gateway or local-file
locator, HTTP or dry-run sink, optional session tracker) and owns the
shared HTTP client lifecycle.
"""

from __future__ import annotations

import asyncio

import httpx

from core.config import SyncConfig
from core.types import RunSummary, SyncOptions
from delivery.batch_sink import BatchSink, DryRunSink, HttpBatchSink
from ingest.pipeline import SyncPipeline
from remote.gateway_locator import DumpLocator, GatewayLocator, LocalFileLocator
from remote.http_client import build_http_client
from remote.session_tracker import HttpSessionTracker, SessionTracker


def build_sync_pipeline(
    options: SyncOptions,
    config: SyncConfig,
    client: httpx.AsyncClient,
    cancel_event: asyncio.Event | None = None,
) -> SyncPipeline:
    """Build a pipeline with collaborators chosen from options and config.

    Raises:
        SyncConfigError: If a required endpoint setting is missing.
    """
    return SyncPipeline(
        locator=_build_locator(options, config, client),
        sink=_build_sink(options, config, client),
        options=options,
        client=client,
        tracker=_build_tracker(options, config, client),
        cancel_event=cancel_event,
    )


async def run_dump_sync(
    options: SyncOptions,
    config: SyncConfig,
    cancel_event: asyncio.Event | None = None,
) -> RunSummary:
    """Run one dump sync end to end.

    Args:
        options: Validated run options.
        config: Runtime configuration.
        cancel_event: Optional cooperative cancellation event.

    Returns:
        Terminal run summary.

    Raises:
        SyncConfigError: If a required endpoint setting is missing.
    """
    async with build_http_client(config) as client:
        pipeline = build_sync_pipeline(options, config, client, cancel_event)
        return await pipeline.run()


def _build_locator(
    options: SyncOptions,
    config: SyncConfig,
    client: httpx.AsyncClient,
) -> DumpLocator:
    if options.dump_file:
        return LocalFileLocator(options.dump_file)
    return GatewayLocator.from_config(client, config)


def _build_sink(options: SyncOptions, config: SyncConfig, client: httpx.AsyncClient) -> BatchSink:
    if options.dry_run:
        return DryRunSink()
    return HttpBatchSink.from_config(client, config)


def _build_tracker(
    options: SyncOptions,
    config: SyncConfig,
    client: httpx.AsyncClient,
) -> SessionTracker | None:
    if options.dry_run or not config.session_url:
        return None
    return HttpSessionTracker(client, config.session_url, config.sink_token)
