"""courtbulk CLI entry points.
This module exposes the import, checkpoint listing, and store bootstrap
commands. It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
import signal
import sys
import threading
from typing import Any, Sequence

from core.config import BulkImportConfig
from core.constants import EXIT_CONFIGURATION_ERROR, EXIT_OK
from core.errors import ConfigurationError
from core.logging_config import configure_logging, get_logger
from core.types import ImportOptions
from ingest.checkpoint_store import CheckpointManager
from ingest.orchestrator import run_import
from ingest.progress import format_stats_line
from store.entity_store import EntityStore

_LOGGER = get_logger(__name__)

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="courtbulk",
        description="Import California courts and judges from bulk archives",
    )
    parser.add_argument("--cache-dir", help="Override COURTBULK_CACHE_DIR for this command")
    parser.add_argument("--database-url", help="Override COURTBULK_DATABASE_URL for this command")
    parser.add_argument("--verbose", action="store_true", help="Emit debug log events")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_import_command(subparsers)
    _add_checkpoints_command(subparsers)
    _add_init_store_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the courtbulk CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose)
    try:
        config = _build_config(args.cache_dir, args.database_url)
        if args.command == "import":
            return _run_import_command(config, args)
        if args.command == "checkpoints":
            return _run_checkpoints_command(config)
        if args.command == "init-store":
            return _run_init_store_command(config)
    except ConfigurationError as error:
        _LOGGER.error("configuration_error", error=str(error))
        print(f"error: {error}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR
    parser.error(f"Unsupported command: {args.command}")
    return EXIT_CONFIGURATION_ERROR


def _build_config(cache_dir: str | None, database_url: str | None) -> BulkImportConfig:
    """Build runtime config with optional CLI overrides.

    Args:
        cache_dir: Optional cache directory override.
        database_url: Optional entity store URL override.

    Returns:
        Validated config.
    """
    config = BulkImportConfig.from_env()
    if cache_dir:
        config = replace(config, cache_dir=Path(cache_dir).expanduser().resolve())
    if database_url:
        config = replace(config, database_url=database_url)
    return config


def _run_import_command(config: BulkImportConfig, args: argparse.Namespace) -> int:
    """Handle import command.

    Args:
        config: Runtime config.
        args: Parsed CLI args.

    Returns:
        Exit code derived from dataset states.
    """
    options = ImportOptions(
        courts_only=args.courts_only,
        judges_only=args.judges_only,
        resume=args.resume,
        skip_download=args.skip_download,
        force_download=args.force_download,
        concurrency=args.concurrency,
        parallel_datasets=args.parallel_datasets,
    )
    stop_event = threading.Event()
    previous_handlers = _install_stop_handlers(stop_event)
    try:
        summary = run_import(options, config, stop_event=stop_event)
    finally:
        _restore_handlers(previous_handlers)
    for result in summary.results:
        print(format_stats_line(result.dataset_name, result.state.value, result.stats))
        if result.error:
            print(f"{result.dataset_name}\terror={result.error}")
    return summary.exit_code


def _run_checkpoints_command(config: BulkImportConfig) -> int:
    """Handle checkpoints command.

    Args:
        config: Runtime config.

    Returns:
        Exit code.
    """
    manager = CheckpointManager(config.cache_dir, config.checkpoint_interval_seconds)
    for checkpoint in manager.list_checkpoints():
        print(
            f"{checkpoint.dataset_name}\t"
            f"{checkpoint.last_processed_line}\t"
            f"{checkpoint.saved_at.isoformat()}"
        )
    return EXIT_OK


def _run_init_store_command(config: BulkImportConfig) -> int:
    """Handle init-store command.

    Args:
        config: Runtime config.

    Returns:
        Exit code.
    """
    store = EntityStore.from_url(config.require_database_url(), config.network_timeout_seconds)
    store.create_schema()
    return EXIT_OK


def _install_stop_handlers(stop_event: threading.Event) -> dict[int, Any]:
    """Route SIGINT/SIGTERM to a cooperative stop request."""
    if threading.current_thread() is not threading.main_thread():
        return {}

    def _request_stop(signum: int, _frame: Any) -> None:
        _LOGGER.warning("import_stop_requested", signal=signal.Signals(signum).name)
        stop_event.set()

    previous: dict[int, Any] = {}
    for signum in _STOP_SIGNALS:
        previous[signum] = signal.getsignal(signum)
        signal.signal(signum, _request_stop)
    return previous


def _restore_handlers(previous: dict[int, Any]) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def _add_import_command(subparsers: Any) -> None:
    """Register import subcommand."""
    parser = subparsers.add_parser("import", help="Import courts and judges bulk archives")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--courts-only", action="store_true", help="Import only courts")
    mode.add_argument("--judges-only", action="store_true", help="Import only judges")
    parser.add_argument("--resume", action="store_true", help="Resume from saved checkpoints")
    parser.add_argument(
        "--skip-download",
        action="store_true",
        help="Use only cached archives; fail when one is missing",
    )
    parser.add_argument(
        "--force-download",
        action="store_true",
        help="Re-download archives even when cached",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=1,
        help="Maximum in-flight store writes per dataset",
    )
    parser.add_argument(
        "--parallel-datasets",
        action="store_true",
        help="Import courts and judges concurrently",
    )


def _add_checkpoints_command(subparsers: Any) -> None:
    """Register checkpoints subcommand."""
    subparsers.add_parser("checkpoints", help="List saved dataset checkpoints")


def _add_init_store_command(subparsers: Any) -> None:
    """Register init-store subcommand."""
    subparsers.add_parser("init-store", help="Create the court and judge tables when missing")
