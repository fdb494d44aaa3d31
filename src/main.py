# src/main.py — v1
"""CLI entry point — scan and ingest commands.

Usage:
    photoingest scan <directory> [options]
    photoingest ingest <directory> --scope <user> [options]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from photoingest.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = _load_settings(args)
    except Exception as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="photoingest",
        description=f"photoingest v{__version__} — Bulk photo ingestion with AI scoring",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- scan ---
    p_scan = subparsers.add_parser(
        "scan", help="Dry-run a folder: counts, cost and time estimate",
    )
    _add_common_arguments(p_scan)
    p_scan.set_defaults(func=_cmd_scan)

    # --- ingest ---
    p_ingest = subparsers.add_parser(
        "ingest", help="Ingest every photo in a folder",
    )
    _add_common_arguments(p_ingest)
    p_ingest.add_argument(
        "--batch-size", type=int, default=None,
        help="Files per concurrent batch (default: BATCH_SIZE)",
    )
    p_ingest.set_defaults(func=_cmd_ingest)

    return parser


def _add_common_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("directory", type=Path, help="Folder containing photos")
    p.add_argument(
        "-s", "--scope", default="default",
        help="User scope for records and duplicate checks (default: default)",
    )
    p.add_argument(
        "--no-recursive", action="store_true",
        help="Only look at the top-level folder",
    )
    p.add_argument(
        "--keep-small", action="store_true",
        help="Do not skip files under the minimum size",
    )
    p.add_argument(
        "--min-size-kb", type=int, default=None,
        help="Minimum file size in KB (default: FILTER_MIN_FILE_SIZE_KB)",
    )
    p.add_argument(
        "--keep-screenshots", action="store_true",
        help="Do not skip files whose name looks like a screenshot",
    )
    p.add_argument(
        "--include-existing", action="store_true",
        help="Re-ingest files already recorded in the scope",
    )


def _load_settings(args: argparse.Namespace):
    from photoingest.config.settings import load_settings
    from photoingest.logging.logger import setup_logging

    overrides: dict[str, object] = {}
    if getattr(args, "batch_size", None) is not None:
        overrides["batch_size"] = args.batch_size
    if args.verbose:
        overrides["log_level"] = "DEBUG"

    settings = load_settings(**overrides)
    setup_logging(
        level=settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    return settings


def _filter_options(args: argparse.Namespace, settings):
    """FilterOptions from settings defaults with CLI flags applied."""
    from photoingest.core.models import FilterOptions

    defaults = settings.to_filter_options()
    return FilterOptions(
        skip_small_files=defaults.skip_small_files and not args.keep_small,
        min_file_size_kb=(
            args.min_size_kb if args.min_size_kb is not None else defaults.min_file_size_kb
        ),
        skip_screenshots=defaults.skip_screenshots and not args.keep_screenshots,
        skip_existing=defaults.skip_existing and not args.include_existing,
    )


async def _cmd_scan(args: argparse.Namespace, settings) -> int:
    """Execute a dry-run scan."""
    from photoingest.ingest.dedup import DuplicateIndex
    from photoingest.ingest.preflight import PreflightFilter
    from photoingest.ingest.scanner import discover_candidates, scan_candidates
    from photoingest.storage.store_factory import create_store

    directory: Path = args.directory
    if not directory.is_dir():
        logger.error("Not a directory: %s", directory)
        return 1

    candidates = discover_candidates(directory, recursive=not args.no_recursive)
    preflight = PreflightFilter(DuplicateIndex(create_store(settings)))
    report = await scan_candidates(
        candidates,
        _filter_options(args, settings),
        preflight,
        args.scope,
        cost_per_file_usd=settings.scan_cost_per_file_usd,
        seconds_per_file=settings.scan_seconds_per_file,
    )

    print(f"\nScan of {directory}:")
    print(f"  Files found:    {report.total_files}")
    print(f"  Total size:     {report.total_size_bytes / (1024 * 1024):.1f} MB")
    print(f"  Duplicates:     {report.duplicates}")
    print(f"  Screenshots:    {report.screenshots}")
    print(f"  Small files:    {report.small_files}")
    print(f"  To process:     {report.valid_files}")
    print(f"  Est. cost:      ${report.estimated_cost_usd:.2f}")
    print(f"  Est. time:      ~{report.estimated_minutes} min")
    return 0


async def _cmd_ingest(args: argparse.Namespace, settings) -> int:
    """Execute a full ingestion session."""
    from photoingest.api.facade import ingest_folder

    directory: Path = args.directory
    if not directory.is_dir():
        logger.error("Not a directory: %s", directory)
        return 1

    result = await ingest_folder(
        directory,
        scope=args.scope,
        options=_filter_options(args, settings),
        settings=settings,
        recursive=not args.no_recursive,
    )
    stats = result.stats

    print(f"\nIngestion {result.status.value}:")
    print(f"  Total:        {stats.total}")
    print(f"  Successful:   {stats.successful}")
    print(f"  Skipped:      {stats.skipped}")
    print(f"  Failed:       {stats.failed}")
    print(f"  Top / High / Archive: "
          f"{stats.tiers.top} / {stats.tiers.high} / {stats.tiers.archive}")
    for err in stats.errors[:10]:
        print(f"  ! {err.filename}: {err.error}")
    if result.quota_exceeded:
        print("  Analyzer quota exceeded; remaining files were not processed.")
        return 3
    return 0 if stats.failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
