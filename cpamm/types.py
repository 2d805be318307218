"""Shared type definitions for pool state and operations."""

from enum import Enum
from typing import TypeAlias

# Unsigned token amount (validated to fit uint256 where it is stored)
Amount: TypeAlias = int

# Identity of a provider, trader, or custody account in the asset ledgers
AccountId: TypeAlias = str


class AssetKind(str, Enum):
    """Which side of the pool an asset sits on."""

    A = "A"
    B = "B"

    @property
    def other(self) -> "AssetKind":
        """The opposite side of the pool."""
        return AssetKind.B if self is AssetKind.A else AssetKind.A
