"""Checked integer arithmetic for pool amounts.

Intermediate products such as amount_in * fee_numerator * reserve_out are
allowed to grow past 2^256; Python ints are unbounded. What must never
happen is a stored reserve, share balance or transfer amount that is
negative or wider than uint256. SafeInt makes those failures loud:

    (S(reserve) + S(deposit)).to_uint256()   # Uint256Overflow past 2^256-1
    S(reserve) - S(withdrawal)               # Underflow below zero
    S(numerator) // S(0)                     # DivisionByZero
"""

from __future__ import annotations

from cpamm.constants import UINT256_MAX


class SafeIntError(ArithmeticError):
    """An amount calculation left the unsigned domain."""


class DivisionByZero(SafeIntError):
    pass


class Underflow(SafeIntError):
    pass


class Uint256Overflow(SafeIntError):
    pass


def _unwrap(operand: SafeInt | int) -> int:
    if isinstance(operand, SafeInt):
        return operand.value
    if isinstance(operand, bool) or not isinstance(operand, int):
        raise TypeError(f"Cannot combine SafeInt with {type(operand).__name__}")
    return operand


class SafeInt:
    """Immutable integer whose subtraction and division are checked."""

    __slots__ = ("value",)

    def __init__(self, value: SafeInt | int) -> None:
        # bool is an int subclass but never a valid amount
        if isinstance(value, bool):
            raise TypeError("SafeInt does not accept bool")
        object.__setattr__(self, "value", _unwrap(value))

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("SafeInt is immutable")

    def __repr__(self) -> str:
        return f"S({self.value})"

    def __hash__(self) -> int:
        return hash(self.value)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SafeInt):
            return self.value == other.value
        if isinstance(other, int) and not isinstance(other, bool):
            return self.value == other
        return NotImplemented

    def __add__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self.value + _unwrap(other))

    __radd__ = __add__

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self.value * _unwrap(other))

    __rmul__ = __mul__

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        subtrahend = _unwrap(other)
        if subtrahend > self.value:
            raise Underflow(f"{self.value} - {subtrahend} is negative")
        return SafeInt(self.value - subtrahend)

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        divisor = _unwrap(other)
        if divisor == 0:
            raise DivisionByZero(f"{self.value} // 0")
        return SafeInt(self.value // divisor)

    def is_uint256(self) -> bool:
        return 0 <= self.value <= UINT256_MAX

    def to_uint256(self) -> int:
        """Return the plain int, or raise if it cannot be stored.

        Raises:
            Uint256Overflow: If the value is negative or above 2^256 - 1
        """
        if not self.is_uint256():
            raise Uint256Overflow(f"{self.value} is outside [0, 2^256 - 1]")
        return self.value


S = SafeInt
