from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from classipy.app import list_classifications, reset_classifications
from classipy.config import configure_logging

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from classipy.domain.model import Classification

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect and manage classification records")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("reset", help="Delete all classification records and results")

    listing = subparsers.add_parser("list", help="List stored classifications of a branch")
    listing.add_argument(
        "--path",
        type=str,
        required=True,
        help="Branch path, e.g. MAIN/PROJECT-A",
    )
    listing.add_argument(
        "--limit",
        type=int,
        default=1000,
        help="Maximum number of records to show (default: %(default)s)",
    )

    return parser.parse_args(list(argv))


def format_classification(classification: Classification) -> str:
    parts = [
        classification.id,
        str(classification.status),
        classification.creation_date.isoformat(),
        classification.reasoner_id,
        classification.user_id or "-",
    ]
    if classification.error_message:
        parts.append(classification.error_message)
    return "\t".join(parts)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)

    try:
        if parsed_args.command == "reset":
            deleted = reset_classifications()
            log.info("Reset finished: %s classifications deleted", deleted)
        elif parsed_args.command == "list":
            if parsed_args.limit <= 0:
                raise ValueError("--limit must be positive")  # noqa: TRY301
            for classification in list_classifications(
                parsed_args.path, limit=parsed_args.limit
            ):
                sys.stdout.write(format_classification(classification) + "\n")
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
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
