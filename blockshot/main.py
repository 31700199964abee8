"""Command-line entry point.

Usage:
    blockshot timed --items items.json --delay-minutes 10
    blockshot unbonding --from-db
    blockshot monitor --items items.json --signed-tx-dir ./signed
"""

import argparse
import sys

import asyncio

from blockshot.errors import ConfigurationError
from blockshot.helpers.config import Settings
from blockshot.helpers.db import create_engine_from_env, create_session_factory
from blockshot.helpers.logging import get_logger
from blockshot.orchestrator import Orchestrator, RunMode
from blockshot.transactions import SignedTxFilePreparer
from blockshot.work_items import WorkItemStore, load_work_items_file


logger = get_logger(__name__)


async def main(args: argparse.Namespace) -> int:
    """Load settings and work items, then run the selected mode."""
    engine = None
    try:
        settings = Settings.from_env()
        store = None
        if args.from_db:
            try:
                engine = create_engine_from_env()
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
            store = WorkItemStore(create_session_factory(engine))
            items = await store.fetch_pending()
        else:
            items = load_work_items_file(args.items)

        orchestrator = Orchestrator(
            settings,
            SignedTxFilePreparer(args.signed_tx_dir),
            store=store,
        )
        orchestrator.install_signal_handlers()
        results = await orchestrator.run(
            RunMode(args.mode), items, delay_seconds=args.delay_minutes * 60
        )
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return 1
    except Exception:
        logger.exception("Fatal error")
        return 1
    finally:
        if engine is not None:
            await engine.dispose()

    for label, succeeded in results.items():
        logger.info("%s: %s", label, "succeeded" if succeeded else "failed")
    return 0 if all(results.values()) else 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blockshot",
        description="Broadcast pre-signed transactions at a predicted block",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Broadcast each item's transaction ten minutes from now
  blockshot timed --items items.json --delay-minutes 10

  # Race the next unbonding completion of every pending item in the database
  blockshot unbonding --from-db

  # Sweep granter balances as soon as they increase
  blockshot monitor --items items.json
        """,
    )
    parser.add_argument(
        "mode",
        choices=[mode.value for mode in RunMode],
        help="Execution mode",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--items", help="JSON file holding a list of work items")
    source.add_argument(
        "--from-db",
        action="store_true",
        help="Load pending work items from the database and mark them executed",
    )
    parser.add_argument(
        "--delay-minutes",
        type=float,
        default=10.0,
        help="Delay before execution in timed mode (default: 10)",
    )
    parser.add_argument(
        "--signed-tx-dir",
        default=None,
        help="Directory that relative signed_tx_path values resolve against",
    )
    return parser


def cli() -> None:
    """Command-line interface entry point."""
    args = build_parser().parse_args()
    if args.delay_minutes < 0:
        logger.error("--delay-minutes cannot be negative")
        sys.exit(1)

    try:
        exit_code = asyncio.run(main(args))
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, exiting...")
        exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
