"""Pytest configuration and fixtures."""

import pytest

from cpamm.assets.in_memory import InMemoryAssetLedger
from cpamm.pool.pool import Pool
from cpamm.types import AssetKind
from tests.helpers import ALICE, BOB, CAROL, make_pool


@pytest.fixture
def funded_pool() -> tuple[Pool, dict[AssetKind, InMemoryAssetLedger]]:
    """Empty pool with ALICE, BOB and CAROL funded and approved."""
    return make_pool(funded=[ALICE, BOB, CAROL])


@pytest.fixture
def pool(funded_pool) -> Pool:
    """Empty pool with funded accounts."""
    return funded_pool[0]


@pytest.fixture
def ledgers(funded_pool) -> dict[AssetKind, InMemoryAssetLedger]:
    """Ledgers backing the `pool` fixture."""
    return funded_pool[1]


@pytest.fixture
def seeded_pool(pool) -> Pool:
    """Pool bootstrapped by ALICE with reserves (100, 200) and 141 shares."""
    pool.add_liquidity(ALICE, 100, 200)
    return pool
