"""cpamm - a two-asset constant-product automated market maker."""

from cpamm.assets import AssetLedger, InMemoryAssetLedger
from cpamm.config import DEFAULT_POOL_CONFIG, PoolConfig
from cpamm.math import isqrt
from cpamm.pool import EventLog, Pool
from cpamm.types import AssetKind

__version__ = "0.1.0"
__all__ = [
    "Pool",
    "PoolConfig",
    "DEFAULT_POOL_CONFIG",
    "AssetKind",
    "AssetLedger",
    "InMemoryAssetLedger",
    "EventLog",
    "isqrt",
    "__version__",
]
