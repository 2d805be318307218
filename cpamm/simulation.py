"""Randomized pool sessions.

Drives a pool through a seeded mix of deposits, withdrawals and swaps and
checks the pool invariants after every step. Used by the simulate_pool
script and by the property tests.
"""

from __future__ import annotations

import random
from collections import Counter
from dataclasses import dataclass, field
from math import gcd

import structlog

from cpamm.assets.in_memory import InMemoryAssetLedger
from cpamm.constants import UINT256_MAX
from cpamm.errors import AMMError, InvariantViolation
from cpamm.pool.pool import Pool
from cpamm.types import AccountId, AssetKind

logger = structlog.get_logger()


@dataclass
class SessionReport:
    """Outcome of a simulated session."""

    steps: int = 0
    succeeded: Counter[str] = field(default_factory=Counter)
    rejected: Counter[str] = field(default_factory=Counter)


def fund_accounts(
    ledgers: dict[AssetKind, InMemoryAssetLedger],
    pool: Pool,
    accounts: list[AccountId],
    amount: int,
) -> None:
    """Mint amount of both assets to each account and approve the pool for all of it."""
    for account in accounts:
        for ledger in ledgers.values():
            ledger.mint(account, amount)
            ledger.approve(account, pool.address, UINT256_MAX)


def run_session(
    pool: Pool,
    accounts: list[AccountId],
    steps: int,
    rng: random.Random,
    max_amount: int = 10**21,
) -> SessionReport:
    """Run steps random operations against pool.

    Each step picks an account and one of add/remove/swap. Deposits after the
    first are sized to match the current ratio. Rejections are expected
    (e.g. a withdrawal by an account without shares) and are counted, not
    raised. After every step the share-sum and emptiness invariants are
    checked, and swaps are checked for non-decreasing k.

    Raises:
        InvariantViolation: If any invariant breaks
    """
    report = SessionReport()
    for _ in range(steps):
        account = rng.choice(accounts)
        action = rng.choice(("add", "remove", "swap", "swap"))
        try:
            if action == "add":
                _random_deposit(pool, account, rng, max_amount)
            elif action == "remove":
                owned = pool.shares_of(account)
                pool.remove_liquidity(account, rng.randint(1, owned) if owned else 1)
            else:
                k_before = pool.k
                kind = rng.choice((AssetKind.A, AssetKind.B))
                pool.swap(account, kind, rng.randint(1, max_amount // 10))
                if pool.k < k_before:
                    raise InvariantViolation(f"k decreased: {k_before} -> {pool.k}")
        except InvariantViolation:
            raise
        except AMMError as err:
            report.rejected[err.code] += 1
        else:
            report.succeeded[action] += 1
        report.steps += 1
        pool.check_invariants()

    logger.info(
        "session_finished",
        steps=report.steps,
        succeeded=dict(report.succeeded),
        rejected=dict(report.rejected),
    )
    return report


def _random_deposit(pool: Pool, account: AccountId, rng: random.Random, max_amount: int) -> None:
    reserve_a, reserve_b = pool.get_reserves()
    if reserve_a == 0:
        pool.add_liquidity(account, rng.randint(1, max_amount), rng.randint(1, max_amount))
        return
    # Smallest deposit that keeps the exact ratio is (reserve_a / g, reserve_b / g)
    g = gcd(reserve_a, reserve_b)
    unit_a, unit_b = reserve_a // g, reserve_b // g
    multiple = rng.randint(1, max(1, max_amount // max(unit_a, unit_b)))
    pool.add_liquidity(account, unit_a * multiple, unit_b * multiple)
