"""Dumpsync CLI entry points.

This module maps argparse commands onto the sync runner.
"""

from __future__ import annotations

import argparse
from typing import Sequence

from cli.sync_command import add_sync_command, run_sync_command
from core.constants import EXIT_CODE_CONFIG_ERROR


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="dumpsync",
        description="Stream compressed JSON-lines dumps into a batch sink",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    add_sync_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the dumpsync CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "sync":
        return run_sync_command(args)
    parser.error(f"Unsupported command: {args.command}")
    return EXIT_CODE_CONFIG_ERROR
