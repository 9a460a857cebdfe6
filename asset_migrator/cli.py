"""Command line interface for asset_migrator."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from . import __version__
from .cli_progress import (
    MigrationProgressDisplay,
    render_configuration_summary,
    render_run_summary,
    render_verification_report,
)
from .config import MigrationSettings, load_env_file, resolve_default_env_file
from .errors import ConfigError
from .models import MAX_PAGE_SIZE, EnumerationFilters, TransferPolicy


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _resolve_log_level(debug: bool, log_level: Optional[str]) -> int:
    if debug:
        return logging.DEBUG
    level = logging.getLevelName(log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Install log handlers for the run.

    Log records stay off unless --debug or --log-level asks for them; the
    console display reports progress either way. Returns the effective mode.
    """
    logging.disable(logging.NOTSET)

    if silent or not (debug or log_level):
        logging.basicConfig(handlers=[logging.NullHandler()], level=logging.CRITICAL + 1, force=True)
        logging.disable(logging.CRITICAL)
        return "silent"

    from rich.logging import RichHandler

    level = _resolve_log_level(debug, log_level)
    logging.basicConfig(
        format="%(message)s",
        level=level,
        handlers=[RichHandler(rich_tracebacks=True, markup=False, show_time=False, show_path=False)],
        force=True,
    )
    # botocore is chatty at DEBUG
    logging.getLogger("botocore").setLevel(max(level, logging.INFO))
    return logging.getLevelName(level)


def _split_ids(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {number}")
    return number


def _collect_public_ids(ids_arg: Optional[str], ids_file: Optional[Path]) -> List[str]:
    from .services.artifacts import load_public_ids

    ids = _split_ids(ids_arg)
    if ids_file is not None:
        if not ids_file.is_file():
            raise CLIError(f"public ids file not found: {ids_file}")
        try:
            ids.extend(load_public_ids(ids_file))
        except (OSError, ValueError) as exc:
            raise CLIError(f"could not read public ids from {ids_file}: {exc}") from exc
    return list(dict.fromkeys(ids))


def _resolve_policy(args: argparse.Namespace) -> TransferPolicy:
    if args.force_overwrite:
        return TransferPolicy(skip_existing=False, force_overwrite=True)
    return TransferPolicy(skip_existing=args.skip_existing, force_overwrite=False)


async def _run_migrate(
    settings: MigrationSettings,
    args: argparse.Namespace,
    filters: EnumerationFilters,
    policy: TransferPolicy,
) -> int:
    from .orchestrator import MigrationOrchestrator, build_clients

    config = settings.engine_config(
        page_size=args.batch_size,
        concurrency=args.concurrency,
        log_dir=args.log_dir,
    )
    catalog, store = build_clients(settings)
    display = MigrationProgressDisplay(verbose=args.verbose)

    async with MigrationOrchestrator(catalog, store, config) as migrator:
        migrator.on_batch_start(display.on_batch_start)
        migrator.on_asset_complete(display.on_asset_complete)
        migrator.on_batch_complete(display.on_batch_complete)
        migrator.on_catalog_error(display.on_catalog_error)

        summary = await migrator.migrate(filters, policy)
        render_run_summary(summary, artifacts=migrator.artifact_paths)
    # per-asset failures and early stops are reported, not fatal
    return 0


async def _run_verify(
    settings: MigrationSettings,
    args: argparse.Namespace,
    filters: EnumerationFilters,
) -> int:
    from .orchestrator import MigrationVerifier, build_clients

    config = settings.engine_config(
        page_size=args.batch_size,
        concurrency=args.concurrency,
        log_dir=args.log_dir,
    )
    catalog, store = build_clients(settings)

    async with MigrationVerifier(catalog, store, config) as verifier:
        report = await verifier.verify(filters, sample_size=args.sample_size)
        render_verification_report(report, verifier.report_path)
    return 0


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--resource-type",
        default=None,
        help="Asset type: image, video, raw (default from RESOURCE_TYPE or image)",
    )
    parser.add_argument(
        "--delivery-type",
        default=None,
        help="Delivery type: upload, private, authenticated, ... (default from DELIVERY_TYPE or upload)",
    )
    parser.add_argument(
        "--concurrency",
        type=_positive_int,
        default=None,
        help="Max simultaneous transfers per batch (default from MIGRATION_CONCURRENCY or 10)",
    )
    parser.add_argument(
        "--batch-size",
        type=_positive_int,
        default=None,
        help=f"Assets per catalog page, max {MAX_PAGE_SIZE} (default from MAX_RESULTS_PER_BATCH or 100)",
    )
    parser.add_argument(
        "--log-dir",
        default=None,
        help="Directory for JSON artifacts (default from MIGRATOR_LOG_DIR or current directory)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="asset-migrator",
        description="Copy Cloudinary assets to S3 and verify the result.",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"asset-migrator {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")

    migrate = subparsers.add_parser("migrate", help="Copy assets to the bucket")
    _add_common_arguments(migrate)
    migrate.add_argument(
        "--skip-existing",
        dest="skip_existing",
        action="store_true",
        default=True,
        help="Skip files that already exist in S3 (default)",
    )
    migrate.add_argument(
        "--no-skip-existing",
        dest="skip_existing",
        action="store_false",
        help="Process all files, even if they exist in S3",
    )
    migrate.add_argument(
        "--force-overwrite",
        action="store_true",
        help="Overwrite existing files in S3 (implies --no-skip-existing)",
    )
    migrate.add_argument("--prefix", default=None, help="Only public ids starting with prefix")
    migrate.add_argument(
        "--public-ids",
        default=None,
        help="Comma-separated list of specific public ids to migrate",
    )
    migrate.add_argument(
        "--public-ids-file",
        type=Path,
        default=None,
        help="File of public ids, e.g. a failed-assets.json from a previous run",
    )
    migrate.add_argument(
        "--start-at",
        default=None,
        help="Only assets created since this date (ISO 8601)",
    )
    migrate.add_argument("--tags", action="store_true", help="Include tag information")
    migrate.add_argument("--context", action="store_true", help="Include context metadata")
    migrate.add_argument("--metadata", action="store_true", help="Include structured metadata")
    migrate.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Print a line for every migrated and skipped asset",
    )

    verify = subparsers.add_parser("verify", help="Check the bucket against the catalog")
    _add_common_arguments(verify)
    verify.add_argument(
        "--sample-size",
        type=_positive_int,
        default=None,
        help="Number of assets to verify (all if not specified)",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or resolve_default_env_file()
    if used_env_file is not None:
        try:
            load_env_file(Path(used_env_file))
        except ConfigError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        settings = MigrationSettings.from_env()
    except ConfigError as exc:
        if exc.missing:
            print("ERROR: missing required environment variables:", file=sys.stderr)
            for name in exc.missing:
                print(f"  - {name}", file=sys.stderr)
            print("Update your .env file and try again.", file=sys.stderr)
        else:
            print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    filters_kwargs = dict(
        resource_type=args.resource_type or settings.resource_type,
        delivery_type=args.delivery_type or settings.delivery_type,
    )
    summary = {
        "Command": args.command,
        "Resource Type": filters_kwargs["resource_type"],
        "Delivery Type": filters_kwargs["delivery_type"],
        "Bucket": settings.bucket_name,
        "Key Prefix": settings.key_namespace or "-",
        "Batch Size": min(args.batch_size or settings.page_size, MAX_PAGE_SIZE),
        "Concurrency": args.concurrency or settings.concurrency,
        "Log Dir": args.log_dir or settings.log_dir or os.getcwd(),
        "Env File": str(used_env_file) if used_env_file else "-",
        "Logging": effective_log_mode,
    }

    try:
        if args.command == "migrate":
            public_ids = _collect_public_ids(args.public_ids, args.public_ids_file)
            if public_ids and (args.prefix or args.start_at):
                raise CLIError("--prefix and --start-at cannot be combined with --public-ids/--public-ids-file")
            filters = EnumerationFilters(
                prefix=args.prefix,
                start_at=args.start_at,
                public_ids=tuple(public_ids),
                tags=args.tags,
                context=args.context,
                metadata=args.metadata,
                **filters_kwargs,
            )
            policy = _resolve_policy(args)
            summary.update({
                "Prefix": args.prefix or "-",
                "Start At": args.start_at or "-",
                "Public Ids": len(public_ids) or "-",
                "Skip Existing": "yes" if policy.skip_existing else "no",
                "Force Overwrite": "yes" if policy.force_overwrite else "no",
            })
            render_configuration_summary(summary)
            return asyncio.run(_run_migrate(settings, args, filters, policy))

        filters = EnumerationFilters(**filters_kwargs)
        summary["Sample Size"] = args.sample_size or "all"
        render_configuration_summary(summary)
        return asyncio.run(_run_verify(settings, args, filters))
    except (CLIError, ConfigError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except ConnectionError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Migration interrupted by user.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
