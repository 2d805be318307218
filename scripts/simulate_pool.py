#!/usr/bin/env python3
"""Run a seeded random session against a fresh pool and report the outcome.

Example:
    python scripts/simulate_pool.py --steps 500 --seed 7 --accounts 4
"""

import argparse
import logging
import random
import sys
from pathlib import Path

import structlog

sys.path.insert(0, str(Path(__file__).parent.parent))

from cpamm.assets.in_memory import InMemoryAssetLedger
from cpamm.config import PoolConfig
from cpamm.errors import InvariantViolation
from cpamm.pool.pool import Pool
from cpamm.simulation import fund_accounts, run_session
from cpamm.types import AssetKind

logger = structlog.get_logger()


def main() -> int:
    parser = argparse.ArgumentParser(description="Simulate random activity on a constant-product pool")
    parser.add_argument("--steps", type=int, default=200, help="Number of operations (default: 200)")
    parser.add_argument("--seed", type=int, default=0, help="Random seed (default: 0)")
    parser.add_argument("--accounts", type=int, default=3, help="Number of accounts (default: 3)")
    parser.add_argument("--fee-numerator", type=int, default=997, help="Fee numerator (default: 997)")
    parser.add_argument("--fee-denominator", type=int, default=1000, help="Fee denominator (default: 1000)")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log every pool operation",
    )
    args = parser.parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.WARNING
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )

    ledgers = {AssetKind.A: InMemoryAssetLedger("TKA"), AssetKind.B: InMemoryAssetLedger("TKB")}
    config = PoolConfig(fee_numerator=args.fee_numerator, fee_denominator=args.fee_denominator)
    pool = Pool(ledgers[AssetKind.A], ledgers[AssetKind.B], config=config)

    accounts = [f"account-{i}" for i in range(args.accounts)]
    fund_accounts(ledgers, pool, accounts, 10**30)

    try:
        report = run_session(pool, accounts, args.steps, random.Random(args.seed))
    except InvariantViolation as err:
        logger.error("invariant_violation", detail=str(err))
        print(f"Invariant violated: {err}")
        return 1

    reserve_a, reserve_b = pool.get_reserves()
    print("=" * 60)
    print("Pool simulation")
    print("=" * 60)
    print(f"Steps:         {report.steps}")
    print(f"Succeeded:     {dict(report.succeeded)}")
    print(f"Rejected:      {dict(report.rejected)}")
    print(f"Reserves:      A={reserve_a} B={reserve_b}")
    print(f"Total shares:  {pool.total_shares}")
    print(f"Price (1e18):  {pool.get_price()}")
    print(f"Events:        {len(pool.events)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
