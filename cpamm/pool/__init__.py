"""Pool state: reserves, share accounting, events, and the atomic pool itself."""

from cpamm.pool.events import AnyPoolEvent, EventLog, LiquidityAdded, LiquidityRemoved, PoolEvent, Swap
from cpamm.pool.pool import Pool, Transfer, TransferDirection
from cpamm.pool.reserves import ReserveLedger
from cpamm.pool.shares import ShareTable

__all__ = [
    "Pool",
    "Transfer",
    "TransferDirection",
    "ReserveLedger",
    "ShareTable",
    # Events
    "PoolEvent",
    "AnyPoolEvent",
    "LiquidityAdded",
    "LiquidityRemoved",
    "Swap",
    "EventLog",
]
