from __future__ import annotations

import argparse
import logging
import os
import sys
import threading
from dataclasses import replace
from signal import SIGINT, SIGTERM, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from reconciler.app import audit_hello, run_hello_controller, run_hello_tick
from reconciler.config import (
    ConfigurationError,
    ControllerConfig,
    configure_logging,
    get_controller_config,
    parse_cursor_policy,
    parse_log_level,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--database-uri",
        type=str,
        help=(
            "SQLAlchemy database URI "
            "(defaults to DATABASE_URI, DATABASE_URL or a local SQLite file)"
        ),
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables before starting",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Logging level such as info or debug (defaults to LOG_LEVEL or info)",
    )


def _add_controller_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--poll-interval",
        type=float,
        help="Seconds to wait between ticks (defaults to config)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Maximum number of owners reconciled in parallel (defaults to config)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        help="Maximum changed rows per poll, 0 for no limit (defaults to config)",
    )
    parser.add_argument(
        "--retry-attempts",
        type=int,
        help="Attempts per owner on transient store failures (defaults to config)",
    )
    parser.add_argument(
        "--cursor-policy",
        type=str,
        help="How failed owners are retried: retry-queue or hold-back (defaults to config)",
    )
    parser.add_argument(
        "--resync-every",
        type=int,
        help="Rewind the cursor for a full rescan every N ticks, 0 to disable",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Keep dependent tables consistent with their primary tables"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run the hello controller until interrupted")
    _add_common_arguments(run)
    _add_controller_arguments(run)

    tick = subparsers.add_parser("tick", help="Run a single full reconciliation tick")
    _add_common_arguments(tick)
    _add_controller_arguments(tick)

    audit = subparsers.add_parser(
        "audit", help="Report live status rows whose owner is deleted or missing"
    )
    _add_common_arguments(audit)

    return parser.parse_args(list(argv))


def _resolve_log_level(args: argparse.Namespace) -> int:
    value = args.log_level or os.getenv("LOG_LEVEL") or "info"
    return parse_log_level(value)


def _build_controller_config(args: argparse.Namespace) -> ControllerConfig:
    config = get_controller_config()
    overrides: dict[str, object] = {}
    if args.poll_interval is not None:
        overrides["poll_interval_seconds"] = args.poll_interval
    if args.workers is not None:
        overrides["max_workers"] = args.workers
    if args.batch_size is not None:
        overrides["batch_size"] = args.batch_size if args.batch_size > 0 else None
    if args.retry_attempts is not None:
        overrides["retry"] = replace(config.retry, attempts=args.retry_attempts)
    if args.cursor_policy is not None:
        overrides["cursor_policy"] = parse_cursor_policy(args.cursor_policy)
    if args.resync_every is not None:
        overrides["resync_every_ticks"] = args.resync_every
    return replace(config, **overrides) if overrides else config


def _stop_handler(stop_event: threading.Event) -> Callable[[int, FrameType | None], None]:
    def handler(signal_received: int, _frame: FrameType | None) -> None:
        log.info("Received signal %s, stopping after the current tick", signal_received)
        stop_event.set()

    return handler


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    try:
        configure_logging(level=_resolve_log_level(parsed_args))
        config = (
            _build_controller_config(parsed_args) if parsed_args.command != "audit" else None
        )
    except ConfigurationError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "run":
            stop_event = threading.Event()
            handler = _stop_handler(stop_event)
            signal(SIGINT, handler)
            signal(SIGTERM, handler)
            run_hello_controller(
                config=config,
                database_uri=parsed_args.database_uri,
                create_schema=parsed_args.create_schema,
                stop_event=stop_event,
            )
        elif parsed_args.command == "tick":
            result = run_hello_tick(
                config=config,
                database_uri=parsed_args.database_uri,
                create_schema=parsed_args.create_schema,
            )
            log.info(
                "Tick finished: polled=%s, outcomes=%s, writes=%s, unfinished=%s",
                result.polled,
                len(result.outcomes),
                result.writes.total,
                result.unfinished,
            )
        elif parsed_args.command == "audit":
            orphans = audit_hello(database_uri=parsed_args.database_uri)
            if orphans:
                log.error("Found %d inconsistent record(s)", len(orphans))
                sys.exit(1)
            log.info("No inconsistencies found")
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error in reconciler")
        sys.exit(1)


if __name__ == "__main__":
    main()
