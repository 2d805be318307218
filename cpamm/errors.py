"""Pool error classes.

Every error is a rejected operation: when one is raised from a pool
operation, no reserve, share or ledger change from that call persists.
"""


class AMMError(Exception):
    """Base error for pool operations."""

    code = "amm_error"


class InvalidConfiguration(AMMError):
    """Constructor received missing or duplicate asset identities, or a bad fee/scale."""

    code = "invalid_configuration"


class InvalidAmount(AMMError):
    """Amount is zero, negative, not an integer, or outside the uint256 range."""

    code = "invalid_amount"


class RatioMismatch(AMMError):
    """Deposit ratio disagrees with the current reserve ratio."""

    code = "ratio_mismatch"


class InsufficientSharesMinted(AMMError):
    """Proportional share issuance for the deposit rounds down to zero."""

    code = "insufficient_shares_minted"


class InsufficientShares(AMMError):
    """Withdrawal exceeds the provider's recorded share balance."""

    code = "insufficient_shares"


class InsufficientLiquidity(AMMError):
    """A reserve on either side of the pool is zero."""

    code = "insufficient_liquidity"


class InsufficientOutputLiquidity(AMMError):
    """Computed output would meet or exceed the output reserve."""

    code = "insufficient_output_liquidity"


class InsufficientOutputAmount(AMMError):
    """Swap output rounds down to zero."""

    code = "insufficient_output_amount"


class SlippageExceeded(AMMError):
    """Swap output is below the caller's minimum."""

    code = "slippage_exceeded"


class AssetTransferFailed(AMMError):
    """An asset ledger refused or failed a transfer; the operation was rolled back."""

    code = "asset_transfer_failed"


class ReentrantCall(AMMError):
    """A pool operation was invoked while another one is running on the same thread."""

    code = "reentrant_call"


class InvariantViolation(AMMError):
    """Internal consistency check failed. Indicates a bug, not bad input."""

    code = "invariant_violation"
