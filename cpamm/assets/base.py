"""Asset ledger interface consumed by the pool.

The pool never owns token balances itself. It moves funds through two
ledgers, one per asset, and tracks its reserves internally instead of
reading its own balance, so donations cannot move the price.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from cpamm.types import AccountId, Amount


@runtime_checkable
class AssetLedger(Protocol):
    """Protocol for a fungible-asset ledger.

    Mirrors the ERC-20 subset the pool needs. Transfers report failure by
    returning False; a ledger may also raise, and the pool treats both the
    same way.
    """

    @property
    def asset_id(self) -> str:
        """Stable identity of the asset (symbol or address)."""
        ...

    def transfer_from(self, owner: AccountId, recipient: AccountId, amount: Amount) -> bool:
        """Move amount from owner to recipient using recipient's allowance.

        Args:
            owner: Account whose balance is debited
            recipient: Account credited (the pool when pulling funds)
            amount: Amount to move

        Returns:
            True if the transfer happened
        """
        ...

    def transfer(self, sender: AccountId, recipient: AccountId, amount: Amount) -> bool:
        """Move amount from sender to recipient.

        Returns:
            True if the transfer happened
        """
        ...

    def balance_of(self, owner: AccountId) -> Amount:
        """Current balance of owner. Not used by the pool's invariants."""
        ...
