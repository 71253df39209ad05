"""Sync command wiring for the dumpsync CLI.

This module isolates sync command parser and execution logic.
"""

from __future__ import annotations

import argparse
import asyncio
from contextlib import suppress
import signal
from typing import Any

from core.config import SyncConfig
from core.constants import (
    EXIT_CODE_CANCELLED,
    EXIT_CODE_CONFIG_ERROR,
    EXIT_CODE_FAILED,
    EXIT_CODE_SUCCESS,
)
from core.errors import SyncConfigError, SyncProfileError
from core.sync_options import build_sync_options
from core.sync_profile import load_sync_profile
from core.types import RunSummary, SyncOptions
from ingest.sync_runner import run_dump_sync

_CANCEL_SIGNALS = (signal.SIGINT, signal.SIGTERM)
_OVERRIDE_KEYS = (
    "inventory",
    "batch_size",
    "max_retries",
    "base_delay_ms",
    "pipeline_depth",
    "log_every",
    "download_attempts",
    "min_images",
    "min_star_rating",
    "require_geo",
    "require_address",
    "require_country",
    "dump_file",
    "dry_run",
)


def add_sync_command(subparsers: Any) -> None:
    """Register sync subcommand."""
    parser = subparsers.add_parser(
        "sync",
        help="Stream a compressed dump into the batch sink",
    )
    parser.add_argument("--inventory", help="Inventory selector passed to the locator")
    parser.add_argument("--profile", help="Optional YAML sync profile")
    parser.add_argument("--batch-size", type=int, help="Records per delivered batch")
    parser.add_argument("--max-retries", type=int, help="Retries per batch on transient failures")
    parser.add_argument("--base-delay-ms", type=int, help="Linear backoff base delay")
    parser.add_argument("--pipeline-depth", type=int, help="Maximum deliveries in flight")
    parser.add_argument("--log-every", type=int, help="Progress log cadence in lines")
    parser.add_argument(
        "--download-attempts",
        type=int,
        help="Whole-download attempts before the first batch is sealed",
    )
    parser.add_argument("--min-images", type=int, help="Minimum valid image URLs per record")
    parser.add_argument("--min-star-rating", type=float, help="Minimum star rating")
    parser.add_argument(
        "--require-geo",
        action=argparse.BooleanOptionalAction,
        help="Require valid coordinates (--no-require-geo clears a profile requirement)",
    )
    parser.add_argument(
        "--require-address",
        action=argparse.BooleanOptionalAction,
        help="Require an address",
    )
    parser.add_argument(
        "--require-country",
        action=argparse.BooleanOptionalAction,
        help="Require a two-letter region country code",
    )
    parser.add_argument("--dump-file", help="Local .zst dump used instead of the locator")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate and batch records without calling the sink",
    )


def run_sync_command(args: argparse.Namespace) -> int:
    """Execute one sync and print its summary as key=value lines."""
    try:
        config = SyncConfig.from_env()
        options = _resolve_options(args)
        summary = asyncio.run(_run_with_signal_handlers(options, config))
    except (SyncConfigError, SyncProfileError) as error:
        print("status=config_error")
        print(f"error={error}")
        return EXIT_CODE_CONFIG_ERROR
    print_summary(summary)
    return exit_code_for(summary)


def print_summary(summary: RunSummary) -> None:
    """Print summary counters, using '-' for empty values."""
    for key, value in summary.as_fields().items():
        print(f"{key}={'-' if value is None else value}")


def exit_code_for(summary: RunSummary) -> int:
    """Map a terminal run status onto a process exit code."""
    if summary.status == "succeeded":
        return EXIT_CODE_SUCCESS
    if summary.status == "cancelled":
        return EXIT_CODE_CANCELLED
    return EXIT_CODE_FAILED


def _resolve_options(args: argparse.Namespace) -> SyncOptions:
    profile = load_sync_profile(args.profile) if args.profile else None
    overrides = {key: getattr(args, key) for key in _OVERRIDE_KEYS}
    return build_sync_options(overrides, profile)


async def _run_with_signal_handlers(options: SyncOptions, config: SyncConfig) -> RunSummary:
    loop = asyncio.get_running_loop()
    cancel_event = asyncio.Event()
    installed: list[signal.Signals] = []
    for signum in _CANCEL_SIGNALS:
        # Not available on every platform or outside the main thread.
        with suppress(NotImplementedError, RuntimeError, ValueError):
            loop.add_signal_handler(signum, cancel_event.set)
            installed.append(signum)
    try:
        return await run_dump_sync(options, config, cancel_event)
    finally:
        for signum in installed:
            loop.remove_signal_handler(signum)
