from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from gipfelsync.app import fix_summit_names, reconcile, touch_last_change
from gipfelsync.config import ConfigurationError, configure_logging
from gipfelsync.domain.model import Collection, MergeMode

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

COLLECTION_NAMES = tuple(collection.value for collection in Collection)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile climbing data into the entity store")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log every record outcome",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    reconcile_cmd = subparsers.add_parser("reconcile", help="Merge configured sources")
    reconcile_cmd.add_argument(
        "--config",
        type=str,
        help="Reconciliation TOML file (defaults to $GIPFELSYNC_CONFIG)",
    )
    reconcile_cmd.add_argument(
        "--mode",
        type=str,
        choices=[mode.value for mode in MergeMode],
        help="Merge mode (overrides the config file and $GIPFELSYNC_MODE)",
    )
    reconcile_cmd.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy database URI (defaults to $DATABASE_URI)",
    )

    fix_names = subparsers.add_parser(
        "fix-summit-names",
        help='Rewrite inverted summit names such as "Mönch, Großer"',
    )
    fix_names.add_argument("--database-uri", type=str, help="SQLAlchemy database URI")

    touch = subparsers.add_parser(
        "touch-last-change",
        help="Set LastChange markers (every collection when none are given)",
    )
    touch.add_argument(
        "collections",
        nargs="*",
        metavar="COLLECTION",
        help="Collections to mark as changed (" + ", ".join(COLLECTION_NAMES) + ")",
    )
    touch.add_argument("--database-uri", type=str, help="SQLAlchemy database URI")

    args = parser.parse_args(list(argv))
    if args.command == "touch-last-change":
        unknown = sorted(set(args.collections).difference(COLLECTION_NAMES))
        if unknown:
            parser.error(f"unknown collections: {', '.join(unknown)}")
    return args


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    if parsed_args.verbose:
        configure_logging(level=logging.DEBUG, force=True)

    try:
        if parsed_args.command == "reconcile":
            reconcile(
                config_path=parsed_args.config,
                mode=parsed_args.mode,
                database_uri=parsed_args.database_uri,
            )
        elif parsed_args.command == "fix-summit-names":
            result = fix_summit_names(database_uri=parsed_args.database_uri)
            log.info(
                "Summit names fixed: renamed=%s, skipped=%s",
                result.renamed,
                result.skipped,
            )
        elif parsed_args.command == "touch-last-change":
            touch_last_change(parsed_args.collections, database_uri=parsed_args.database_uri)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except ConfigurationError:
        log.exception("Invalid configuration")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during reconciliation")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
