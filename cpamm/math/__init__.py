"""Integer math primitives for pool calculations.

- isqrt: floor integer square root used for bootstrap share issuance
- validate_amount: uint256 domain check for caller-supplied amounts
"""

from cpamm.math.integer import isqrt, validate_amount

__all__ = ["isqrt", "validate_amount"]
