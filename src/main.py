# src/main.py — v3
"""CLI entry point.

Usage:
    dealcache serve
    dealcache refresh [--pages N] [--batch-size N] [--no-classifier]
    dealcache cached [--days N] [--limit N] [--min-required N] [--skip-ephemeral]
    dealcache categorize <items.json> [--no-classifier] [--no-persist]
    dealcache cleanup
    dealcache clear-cache
    dealcache purge --days N
    dealcache categories
    dealcache stats
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from dealcache.version import __version__

if TYPE_CHECKING:
    from dealcache.api.service import ServiceContext
    from dealcache.config.settings import Settings

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from dealcache.config.settings import ConfigurationError, load_settings

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    _setup_logging(settings, args.verbose)

    from dealcache.core.errors import LimitExceededError, NotConfiguredError

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except (NotConfiguredError, LimitExceededError) as exc:
        logger.error("%s", exc)
        return 1
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="dealcache",
        description=f"dealcache v{__version__} - tiered cache and categorizer for deal listings",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--fetcher", default=None,
        help="Source fetcher as package.module:attr (default: SOURCE_FETCHER)",
    )

    subparsers = parser.add_subparsers(dest="command")

    p_serve = subparsers.add_parser(
        "serve", help="Run the cleanup and refresh schedulers until interrupted",
    )
    p_serve.set_defaults(func=_cmd_serve)

    p_refresh = subparsers.add_parser("refresh", help="Run one refresh now")
    p_refresh.add_argument("--pages", type=int, default=None, help="Pages to fetch")
    p_refresh.add_argument("--batch-size", type=int, default=None, help="Items per batch")
    p_refresh.add_argument(
        "--no-classifier", action="store_true", help="Use keyword classification only",
    )
    p_refresh.set_defaults(func=_cmd_refresh)

    p_cached = subparsers.add_parser("cached", help="Print cached items as JSON")
    p_cached.add_argument("--days", type=int, default=None, help="Recency window in days")
    p_cached.add_argument("--limit", type=int, default=None, help="Maximum items")
    p_cached.add_argument(
        "--min-required", type=int, default=None,
        help="Refresh once if fewer items are cached",
    )
    p_cached.add_argument(
        "--fallback-pages", type=int, default=None,
        help="Pages fetched by the fallback refresh",
    )
    p_cached.add_argument(
        "--skip-ephemeral", action="store_true", help="Bypass the ephemeral cache",
    )
    p_cached.set_defaults(func=_cmd_cached)

    p_categorize = subparsers.add_parser(
        "categorize", help="Categorize raw items from a JSON file",
    )
    p_categorize.add_argument("file", type=Path, help="JSON array of raw items")
    p_categorize.add_argument(
        "--no-classifier", action="store_true", help="Use keyword classification only",
    )
    p_categorize.add_argument(
        "--no-persist", action="store_true", help="Do not write to the durable store",
    )
    p_categorize.set_defaults(func=_cmd_categorize)

    p_cleanup = subparsers.add_parser("cleanup", help="Sweep expired ephemeral entries")
    p_cleanup.set_defaults(func=_cmd_cleanup)

    p_clear = subparsers.add_parser("clear-cache", help="Empty the ephemeral cache")
    p_clear.set_defaults(func=_cmd_clear_cache)

    p_purge = subparsers.add_parser("purge", help="Delete old durable records")
    p_purge.add_argument("--days", type=int, required=True, help="Keep the last N days")
    p_purge.set_defaults(func=_cmd_purge)

    p_categories = subparsers.add_parser("categories", help="List categories")
    p_categories.set_defaults(func=_cmd_categories)

    p_stats = subparsers.add_parser("stats", help="Print cache and job statistics as JSON")
    p_stats.set_defaults(func=_cmd_stats)

    return parser


async def _open(args: argparse.Namespace, settings: Settings) -> ServiceContext:
    from dealcache.api.service import open_service
    from dealcache.source.base_fetcher import load_fetcher

    fetcher = load_fetcher(args.fetcher) if args.fetcher else None
    return await open_service(settings, fetcher=fetcher)


async def _cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    """Run schedulers until interrupted."""
    service = await _open(args, settings)
    try:
        if settings.scheduler_enabled:
            service.cleanup.start()
        if settings.refresh_scheduler_enabled:
            service.refresh.start()
        if not (settings.scheduler_enabled or settings.refresh_scheduler_enabled):
            logger.warning("All schedulers disabled; nothing to do")
            return 0
        logger.info("dealcache %s serving (Ctrl+C to stop)", __version__)
        await asyncio.Event().wait()
    finally:
        await service.close()
    return 0


async def _cmd_refresh(args: argparse.Namespace, settings: Settings) -> int:
    service = await _open(args, settings)
    try:
        report = await service.refresh.run_once(
            max_pages=args.pages,
            batch_size=args.batch_size,
            use_classifier=False if args.no_classifier else None,
        )
    finally:
        await service.close()

    print(report.model_dump_json(indent=2, exclude={"items"}))
    return 0 if report.status != "failed" else 1


async def _cmd_cached(args: argparse.Namespace, settings: Settings) -> int:
    service = await _open(args, settings)
    try:
        result = await service.get_items_with_fallback(
            days=args.days,
            limit=args.limit,
            min_required=args.min_required,
            fallback_pages=args.fallback_pages,
            skip_ephemeral=args.skip_ephemeral,
        )
    finally:
        await service.close()

    print(result.model_dump_json(indent=2))
    return 0


async def _cmd_categorize(args: argparse.Namespace, settings: Settings) -> int:
    file_path: Path = args.file
    if not file_path.exists():
        logger.error("File not found: %s", file_path)
        return 1
    raw = json.loads(file_path.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        logger.error("Expected a JSON array of items in %s", file_path)
        return 1

    service = await _open(args, settings)
    try:
        result = await service.categorize(
            raw,
            use_classifier=False if args.no_classifier else None,
            persist=not args.no_persist,
        )
    finally:
        await service.close()

    print(result.model_dump_json(indent=2))
    return 0


async def _cmd_cleanup(args: argparse.Namespace, settings: Settings) -> int:
    service = await _open(args, settings)
    try:
        backend = service.ephemeral.backend_name
        removed = await service.cleanup.tick()
    finally:
        await service.close()
    print(f"Removed {removed or 0} expired entries ({backend})")
    return 0


async def _cmd_clear_cache(args: argparse.Namespace, settings: Settings) -> int:
    service = await _open(args, settings)
    try:
        removed = await service.ephemeral.clear()
    finally:
        await service.close()
    print(f"Cleared {removed} ephemeral entries")
    return 0


async def _cmd_purge(args: argparse.Namespace, settings: Settings) -> int:
    if args.days <= 0:
        logger.error("--days must be positive")
        return 1
    service = await _open(args, settings)
    try:
        removed = await service.durable.delete_older_than(args.days)
    finally:
        await service.close()
    print(f"Purged {removed} durable records older than {args.days} days")
    return 0


async def _cmd_categories(args: argparse.Namespace, settings: Settings) -> int:
    from dealcache.categorize.categories import list_categories

    for name in list_categories():
        print(name)
    return 0


async def _cmd_stats(args: argparse.Namespace, settings: Settings) -> int:
    service = await _open(args, settings)
    try:
        stats = await service.stats()
    finally:
        await service.close()
    print(json.dumps(stats, indent=2))
    return 0


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from dealcache.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
