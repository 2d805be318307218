"""In-memory fungible-asset ledger for development and tests."""

from __future__ import annotations

from collections import defaultdict

import structlog

from cpamm.constants import UINT256_MAX
from cpamm.types import AccountId, Amount

logger = structlog.get_logger()


class InMemoryAssetLedger:
    """Dictionary-backed ledger with ERC-20 style balances and allowances.

    Allowances are keyed by (owner, spender). A failed transfer returns
    False and leaves balances untouched.
    """

    def __init__(self, asset_id: str) -> None:
        self._asset_id = asset_id
        self._balances: dict[AccountId, Amount] = defaultdict(int)
        self._allowances: dict[tuple[AccountId, AccountId], Amount] = defaultdict(int)

    @property
    def asset_id(self) -> str:
        return self._asset_id

    def __repr__(self) -> str:
        return f"InMemoryAssetLedger({self._asset_id!r}, holders={len(self._balances)})"

    @property
    def total_supply(self) -> Amount:
        return sum(self._balances.values())

    def mint(self, account: AccountId, amount: Amount) -> None:
        """Credit newly created units to account."""
        if amount < 0:
            raise ValueError(f"Mint amount must be non-negative: {amount}")
        if self._balances[account] + amount > UINT256_MAX:
            raise ValueError(f"Mint would overflow balance of {account}")
        self._balances[account] += amount

    def approve(self, owner: AccountId, spender: AccountId, amount: Amount) -> bool:
        """Set the amount spender may pull from owner."""
        if amount < 0:
            raise ValueError(f"Allowance must be non-negative: {amount}")
        self._allowances[(owner, spender)] = amount
        return True

    def allowance(self, owner: AccountId, spender: AccountId) -> Amount:
        return self._allowances.get((owner, spender), 0)

    def balance_of(self, owner: AccountId) -> Amount:
        return self._balances.get(owner, 0)

    def transfer(self, sender: AccountId, recipient: AccountId, amount: Amount) -> bool:
        if amount < 0 or self.balance_of(sender) < amount:
            logger.debug(
                "transfer_rejected",
                asset=self._asset_id,
                sender=sender,
                amount=amount,
                balance=self.balance_of(sender),
            )
            return False
        self._move(sender, recipient, amount)
        return True

    def transfer_from(self, owner: AccountId, recipient: AccountId, amount: Amount) -> bool:
        allowed = self.allowance(owner, recipient)
        if amount < 0 or allowed < amount or self.balance_of(owner) < amount:
            logger.debug(
                "transfer_from_rejected",
                asset=self._asset_id,
                owner=owner,
                spender=recipient,
                amount=amount,
                allowance=allowed,
                balance=self.balance_of(owner),
            )
            return False
        if allowed != UINT256_MAX:
            self._allowances[(owner, recipient)] = allowed - amount
        self._move(owner, recipient, amount)
        return True

    def _move(self, sender: AccountId, recipient: AccountId, amount: Amount) -> None:
        self._balances[sender] -= amount
        self._balances[recipient] += amount
