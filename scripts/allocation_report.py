#!/usr/bin/env python3
"""
Allocation Report

Print the fund allocation that the stored ballots would produce for a pool.
"""

import argparse
import sys

from baseline_fund.backend.json_store import JsonFileBackend
from baseline_fund.config import config
from baseline_fund.lib.logger import configure_logger
from baseline_fund.services.baseline.allocator import allocation_summary
from baseline_fund.services.baseline.exceptions import BaselineError
from baseline_fund.services.baseline.ledger import VoteLedger

# Configure logger
logger = configure_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Show how the current ballots split a SOL pool."
    )
    parser.add_argument(
        "--pool",
        type=float,
        default=config.allocation.pool_amount,
        help="SOL to allocate (default: %(default)s)",
    )
    parser.add_argument(
        "--min-votes",
        type=int,
        default=config.allocation.min_votes,
        help="Minimum votes a project needs (default: %(default)s)",
    )
    parser.add_argument(
        "--top-n",
        type=int,
        default=None,
        help="Only allocate to the top N projects",
    )
    parser.add_argument(
        "--data-dir",
        default=config.storage.data_dir,
        help="Directory holding votes.json (default: %(default)s)",
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    ledger = VoteLedger(JsonFileBackend(args.data_dir))
    ledger.hydrate()

    try:
        summary = allocation_summary(
            ledger.all_results(),
            args.pool,
            min_votes=args.min_votes,
            top_n=args.top_n,
        )
    except BaselineError as e:
        logger.error(f"Cannot compute allocation: {str(e)}")
        return 1

    print(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
