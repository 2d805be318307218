"""Asset ledger collaborators."""

from cpamm.assets.base import AssetLedger
from cpamm.assets.in_memory import InMemoryAssetLedger

__all__ = ["AssetLedger", "InMemoryAssetLedger"]
