"""Reserve ledger: the two balances the pool prices against."""

from __future__ import annotations

from dataclasses import dataclass

from cpamm.errors import InvalidAmount, InvariantViolation
from cpamm.safe_int import S, SafeIntError
from cpamm.types import Amount, AssetKind


@dataclass(frozen=True)
class ReserveSnapshot:
    """Point-in-time copy of the reserves, used for rollback."""

    reserve_a: Amount
    reserve_b: Amount


class ReserveLedger:
    """Holds reserve_a and reserve_b and checks them after every mutation.

    Invariants:
        reserve_a == 0 <=> reserve_b == 0
        both reserves fit in uint256
        a swap never decreases reserve_a * reserve_b
    """

    def __init__(self) -> None:
        self._reserve_a: Amount = 0
        self._reserve_b: Amount = 0

    def __repr__(self) -> str:
        return f"ReserveLedger(reserve_a={self._reserve_a}, reserve_b={self._reserve_b})"

    @property
    def reserve_a(self) -> Amount:
        return self._reserve_a

    @property
    def reserve_b(self) -> Amount:
        return self._reserve_b

    @property
    def k(self) -> int:
        """Constant-product value reserve_a * reserve_b."""
        return self._reserve_a * self._reserve_b

    @property
    def is_empty(self) -> bool:
        return self._reserve_a == 0 and self._reserve_b == 0

    def get(self, kind: AssetKind) -> Amount:
        return self._reserve_a if kind is AssetKind.A else self._reserve_b

    def ordered(self, kind_in: AssetKind) -> tuple[Amount, Amount]:
        """Get reserves ordered as (reserve_in, reserve_out)."""
        return self.get(kind_in), self.get(kind_in.other)

    # --- Pre-checks (no mutation) ---

    def check_deposit(self, amount_a: Amount, amount_b: Amount) -> tuple[Amount, Amount]:
        """Return the reserves a deposit would produce.

        Raises:
            InvalidAmount: If either reserve would exceed uint256
        """
        try:
            return (
                (S(self._reserve_a) + S(amount_a)).to_uint256(),
                (S(self._reserve_b) + S(amount_b)).to_uint256(),
            )
        except SafeIntError as err:
            raise InvalidAmount(f"Deposit would overflow reserves: {err}") from err

    def check_swap(self, kind_in: AssetKind, amount_in: Amount) -> None:
        """Validate that a swap fits the uint256 bound on the input side.

        Raises:
            InvalidAmount: If reserve_in + amount_in would exceed uint256
        """
        reserve_in = self.get(kind_in)
        if not (S(reserve_in) + S(amount_in)).is_uint256():
            raise InvalidAmount(
                f"Swap input {amount_in} would overflow reserve {reserve_in}"
            )

    # --- Mutations ---

    def deposit(self, amount_a: Amount, amount_b: Amount) -> None:
        self._reserve_a, self._reserve_b = self.check_deposit(amount_a, amount_b)
        self.verify()

    def withdraw(self, amount_a: Amount, amount_b: Amount) -> None:
        try:
            self._reserve_a = (S(self._reserve_a) - S(amount_a)).value
            self._reserve_b = (S(self._reserve_b) - S(amount_b)).value
        except SafeIntError as err:
            raise InvariantViolation(f"Withdrawal exceeds reserves: {err}") from err
        self.verify()

    def apply_swap(self, kind_in: AssetKind, amount_in: Amount, amount_out: Amount) -> None:
        k_before = self.k
        reserve_in, reserve_out = self.ordered(kind_in)
        self.check_swap(kind_in, amount_in)
        if amount_out >= reserve_out:
            raise InvariantViolation(f"Swap output {amount_out} drains reserve {reserve_out}")

        new_in = reserve_in + amount_in
        new_out = reserve_out - amount_out
        if kind_in is AssetKind.A:
            self._reserve_a, self._reserve_b = new_in, new_out
        else:
            self._reserve_a, self._reserve_b = new_out, new_in

        if self.k < k_before:
            raise InvariantViolation(f"Invariant violation: new_k ({self.k}) < old_k ({k_before})")
        self.verify()

    def snapshot(self) -> ReserveSnapshot:
        return ReserveSnapshot(self._reserve_a, self._reserve_b)

    def restore(self, snapshot: ReserveSnapshot) -> None:
        self._reserve_a = snapshot.reserve_a
        self._reserve_b = snapshot.reserve_b

    def verify(self) -> None:
        """Raise InvariantViolation if exactly one reserve is zero."""
        if (self._reserve_a == 0) != (self._reserve_b == 0):
            raise InvariantViolation(
                f"Half-empty pool: reserves ({self._reserve_a}, {self._reserve_b})"
            )
