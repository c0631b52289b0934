#!/usr/bin/env python3
"""
dupfinder - command line entry point.

Usage:
    dupfinder ~/Music ~/Music-backup
    dupfinder ~/Drive "~/Drive (old)" --keep-root ~/Drive --delete
    dupfinder /data --report dups.csv --log-format console

Exit codes:
    0: scan complete
    1: fatal error (configuration, inaccessible file, strict incomplete scan)
    2: partial result (some size buckets could not be compared)
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional, Sequence

import structlog

from dupfinder.config.exceptions import DupFinderError, ScanIncompleteError
from dupfinder.config.logging import LOG_FORMATS, LOG_LEVELS, configure_logging_from_env
from dupfinder.config.settings import load_config
from dupfinder.deleter import SafeDeleter
from dupfinder.grouper import DuplicateFinder
from dupfinder.models import ScanConfig, ScanResult
from dupfinder.report_generator import ReportGenerator

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PARTIAL = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dupfinder",
        description="Find groups of byte-identical files under one or more roots.",
    )
    parser.add_argument("roots", nargs="*", type=Path, help="Files or directories to scan")
    parser.add_argument("--config", type=Path, help="YAML file with scan settings")
    parser.add_argument(
        "--no-follow-links",
        dest="follow_symbolic_links",
        action="store_const",
        const=False,
        default=None,
        help="Treat symbolic links as leaves instead of descending into them",
    )
    parser.add_argument("--workers", dest="max_workers", type=int, help="Concurrent bucket comparisons")
    parser.add_argument(
        "--strict",
        action="store_const",
        const=True,
        default=None,
        help="Fail instead of reporting a partial result when a comparison fails",
    )
    parser.add_argument("--report", type=Path, help="Write a CSV report to this file")
    parser.add_argument(
        "--keep-root",
        dest="keep_roots",
        action="append",
        type=Path,
        help="Never delete files under this root (repeatable)",
    )
    parser.add_argument(
        "--delete",
        action="store_true",
        help="Send duplicates to the trash (default: dry run, nothing deleted)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Log level (default: LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        help="Log line format (default: LOG_FORMAT or console)",
    )
    return parser


def print_groups(result: ScanResult) -> None:
    for group in result.groups:
        print(f"[{group.group_id}] {group.size_bytes} bytes x {len(group.files)}")
        for file_path in group.files:
            print(f"    {file_path}")
    print(
        f"{result.total_scanned} files scanned, "
        f"{result.duplicate_groups_count} duplicate groups, "
        f"{result.total_duplicates} duplicates, "
        f"{result.space_reclaimable_bytes} bytes reclaimable"
    )
    for failure in result.failures:
        print(f"FAILED bucket {failure.size_bytes} bytes: {failure.error}", file=sys.stderr)


async def run(config: ScanConfig, report: Optional[Path], delete: bool) -> int:
    finder = DuplicateFinder.from_config(config)
    result = await finder.scan()

    print_groups(result)

    if report:
        ReportGenerator().generate_csv(result, report)

    if result.groups and (delete or config.keep_roots):
        deleter = SafeDeleter(dry_run=not delete, chunk_size=config.chunk_size)
        deletion = await deleter.delete_duplicates(result.groups, config.keep_roots)
        verb = "deleted" if delete else "would delete"
        print(f"{verb} {len(deletion.deleted_files)} files, skipped {deletion.skipped}, errors {deletion.errors}")

    return EXIT_PARTIAL if result.partial else EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        configure_logging_from_env(level=args.log_level, log_format=args.log_format)
        config = load_config(
            args.config,
            roots=args.roots or None,
            follow_symbolic_links=args.follow_symbolic_links,
            max_workers=args.max_workers,
            strict=args.strict,
            keep_roots=args.keep_roots,
        )
        return asyncio.run(run(config, args.report, args.delete))
    except ScanIncompleteError as e:
        logger.error("dupfinder_scan_incomplete", failed_buckets=len(e.failures), error=str(e))
        return EXIT_FATAL
    except DupFinderError as e:
        logger.error("dupfinder_failed", error=str(e), error_type=type(e).__name__)
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
