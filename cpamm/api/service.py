"""Pool service backing the HTTP API.

Bundles one pool with the two development ledgers it trades against.
"""

from __future__ import annotations

import os

import structlog

from cpamm.assets.in_memory import InMemoryAssetLedger
from cpamm.config import DEFAULT_POOL_CONFIG, PoolConfig
from cpamm.constants import DEFAULT_ASSET_A, DEFAULT_ASSET_B
from cpamm.pool.pool import Pool
from cpamm.types import AssetKind

logger = structlog.get_logger()


class PoolService:
    """A pool plus its in-memory asset ledgers."""

    def __init__(
        self,
        asset_a: str = DEFAULT_ASSET_A,
        asset_b: str = DEFAULT_ASSET_B,
        config: PoolConfig = DEFAULT_POOL_CONFIG,
    ) -> None:
        self.ledgers = {
            AssetKind.A: InMemoryAssetLedger(asset_a),
            AssetKind.B: InMemoryAssetLedger(asset_b),
        }
        self.pool = Pool(self.ledgers[AssetKind.A], self.ledgers[AssetKind.B], config=config)

    def ledger(self, kind: AssetKind) -> InMemoryAssetLedger:
        return self.ledgers[kind]


# Singleton service configured from the environment
def _create_default_service() -> PoolService:
    """Create the default service.

    Asset ids come from CPAMM_ASSET_A / CPAMM_ASSET_B, fee and price scale
    from PoolConfig.from_env().
    """
    asset_a = os.environ.get("CPAMM_ASSET_A", DEFAULT_ASSET_A)
    asset_b = os.environ.get("CPAMM_ASSET_B", DEFAULT_ASSET_B)
    config = PoolConfig.from_env()
    logger.info(
        "pool_service_created",
        asset_a=asset_a,
        asset_b=asset_b,
        fee_numerator=config.fee_numerator,
        fee_denominator=config.fee_denominator,
        fee_bps=config.fee_bps,
    )
    return PoolService(asset_a, asset_b, config)


service = _create_default_service()


def get_default_service() -> PoolService:
    return service
