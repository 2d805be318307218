"""Integer helpers with exact rounding contracts.

All pool math is done on Python ints. Nothing here touches floats, so every
result is deterministic and reproducible across platforms.
"""

from __future__ import annotations

from cpamm.constants import UINT256_MAX
from cpamm.errors import InvalidAmount


def isqrt(x: int) -> int:
    """Floor integer square root.

    Contract:
        isqrt(0) == 0
        isqrt(n * n) == n
        isqrt(x) == floor(sqrt(x)) for every other non-negative x
        isqrt is monotonically non-decreasing

    Uses Newton's method starting from a power of two that is guaranteed to
    be >= sqrt(x). From such a start the iterates decrease strictly until they
    reach floor(sqrt(x)), so the loop stops at the first non-decrease.

    Args:
        x: Non-negative integer

    Returns:
        Largest integer r such that r * r <= x

    Raises:
        TypeError: If x is not an int
        ValueError: If x is negative
    """
    if not isinstance(x, int) or isinstance(x, bool):
        raise TypeError(f"isqrt requires int, got {type(x).__name__}")
    if x < 0:
        raise ValueError(f"isqrt of negative number: {x}")
    if x < 2:
        return x

    # 2^ceil(bits/2) >= sqrt(x)
    r = 1 << ((x.bit_length() + 1) // 2)
    while True:
        y = (r + x // r) // 2
        if y >= r:
            return r
        r = y


def validate_amount(amount: object, name: str = "amount") -> int:
    """Check that a caller-supplied amount is a positive uint256.

    Args:
        amount: Value to validate
        name: Parameter name used in the error message

    Returns:
        The amount as an int

    Raises:
        InvalidAmount: If amount is not an int, is <= 0, or exceeds 2^256-1
    """
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise InvalidAmount(f"{name} must be an integer, got {type(amount).__name__}")
    if amount <= 0:
        raise InvalidAmount(f"{name} must be > 0: {amount}")
    if amount > UINT256_MAX:
        raise InvalidAmount(f"{name} exceeds uint256 max: {amount}")
    return amount
