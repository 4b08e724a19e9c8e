import argparse
import sys
from typing import List, Optional

import structlog

from config import get_settings, configure_logging
from csv_io import read_transactions, write_accounts
from exceptions import AmountOverflowError
from processor import TransactionProcessor

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_INPUT_ERROR = 1
EXIT_OVERFLOW = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger-engine",
        description="Apply a CSV transaction stream and print the resulting accounts as CSV."
    )
    parser.add_argument("input", help="Path to the input CSV file")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings()
    if args.log_level:
        settings = settings.model_copy(update={"log_level": args.log_level})
    configure_logging(settings)

    processor = TransactionProcessor()
    try:
        with open(args.input, newline="", encoding="utf-8-sig", errors="replace") as stream:
            summary = processor.process_all(read_transactions(stream))
    except OSError as e:
        logger.error("Unable to read input file", path=args.input, error=str(e))
        return EXIT_INPUT_ERROR
    except ValueError as e:
        logger.error("Invalid input file", path=args.input, error=str(e))
        return EXIT_INPUT_ERROR
    except AmountOverflowError as e:
        logger.error("Processing halted", path=args.input, error=str(e))
        return EXIT_OVERFLOW

    logger.info(
        "Input processed",
        path=args.input,
        applied=summary.applied,
        rejected=summary.rejected,
        accounts=len(processor.accounts)
    )
    write_accounts(processor.snapshot(), sys.stdout)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
