"""Pool-wide constants for the constant-product AMM.

Centralizes the economic parameters so they are auditable in one place.
"""

# Trading fee expressed as the fraction of input that is kept for the swap.
# 997/1000 retains 99.7% of the input, i.e. a 0.3% fee.
FEE_NUMERATOR = 997
FEE_DENOMINATOR = 1000

# Fixed-point scale for spot prices (1e18 for precision)
PRICE_SCALE = 10**18

# Largest value any stored amount (reserve, share balance) may hold
UINT256_MAX = 2**256 - 1

# Default asset identities used by the development service and CLI
DEFAULT_ASSET_A = "TKA"
DEFAULT_ASSET_B = "TKB"
