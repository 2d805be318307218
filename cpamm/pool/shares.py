"""Pool share accounting.

Shares are an internal fungible unit of proportional ownership. They are
tracked separately from asset balances and never leave the pool.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from cpamm.errors import InsufficientShares, InvalidAmount, InvariantViolation
from cpamm.safe_int import S
from cpamm.types import AccountId, Amount


@dataclass(frozen=True)
class ShareSnapshot:
    """Point-in-time copy of the share table, used for rollback."""

    balances: dict[AccountId, Amount] = field(default_factory=dict)
    total: Amount = 0


class ShareTable:
    """Provider -> shares mapping plus the outstanding total.

    Notes:
    - Balances are always non-negative.
    - Zero balances are omitted to keep the table sparse; a provider whose
      balance returns to zero simply reads 0 again.
    - sum(balances) == total after every public method.
    """

    def __init__(self) -> None:
        self._balances: dict[AccountId, Amount] = {}
        self._total: Amount = 0

    def __repr__(self) -> str:
        return f"ShareTable({len(self._balances)} holders, total={self._total})"

    @property
    def total(self) -> Amount:
        return self._total

    def balance_of(self, provider: AccountId) -> Amount:
        """Get share balance for provider. Returns 0 if not found."""
        return self._balances.get(provider, 0)

    def holders(self) -> dict[AccountId, Amount]:
        """Return a copy of all non-zero balances."""
        return dict(self._balances)

    def check_mint(self, shares: Amount) -> None:
        """Raise InvalidAmount if minting would push the total past uint256."""
        if not (S(self._total) + S(shares)).is_uint256():
            raise InvalidAmount(f"Minting {shares} shares would overflow supply {self._total}")

    def mint(self, provider: AccountId, shares: Amount) -> None:
        if shares <= 0:
            raise InvalidAmount(f"Shares to mint must be positive: {shares}")
        self.check_mint(shares)
        self._balances[provider] = self.balance_of(provider) + shares
        self._total += shares

    def burn(self, provider: AccountId, shares: Amount) -> None:
        """Remove shares from provider.

        Raises:
            InvalidAmount: If shares is not positive
            InsufficientShares: If provider holds fewer than shares
        """
        if shares <= 0:
            raise InvalidAmount(f"Shares to burn must be positive: {shares}")
        current = self.balance_of(provider)
        if current < shares:
            raise InsufficientShares(
                f"Insufficient shares owned: {provider} has {current}, requested {shares}"
            )
        remaining = current - shares
        if remaining:
            self._balances[provider] = remaining
        else:
            self._balances.pop(provider, None)
        self._total -= shares

    def snapshot(self) -> ShareSnapshot:
        return ShareSnapshot(balances=dict(self._balances), total=self._total)

    def restore(self, snapshot: ShareSnapshot) -> None:
        self._balances = dict(snapshot.balances)
        self._total = snapshot.total

    def verify(self) -> None:
        """Check that balances are positive and sum to the total.

        Raises:
            InvariantViolation: If the table is inconsistent
        """
        if any(amount <= 0 for amount in self._balances.values()):
            raise InvariantViolation("Share table holds a non-positive balance")
        balance_sum = sum(self._balances.values())
        if balance_sum != self._total:
            raise InvariantViolation(
                f"Share balances sum to {balance_sum} but total is {self._total}"
            )
