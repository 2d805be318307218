"""Constant-product (x * y = k) pool math.

Pure functions only: nothing here reads or writes pool state. The pool calls
these to decide what a transition should be, then applies the result.

Swap formula, with the fee taken from the input:
    in_after_fee = amount_in * fee_numerator
    amount_out = (in_after_fee * reserve_out) / (reserve_in * fee_denominator + in_after_fee)

For the default 997/1000 fee this is the familiar UniswapV2 formula. All
divisions round down, so reserve_in' * reserve_out' never decreases.
"""

from __future__ import annotations

from cpamm.config import DEFAULT_POOL_CONFIG, PoolConfig
from cpamm.errors import (
    InsufficientLiquidity,
    InsufficientOutputLiquidity,
    InsufficientShares,
    InsufficientSharesMinted,
    RatioMismatch,
)
from cpamm.math.integer import isqrt, validate_amount
from cpamm.safe_int import S
from cpamm.types import Amount


def quote_output(
    amount_in: Amount,
    reserve_in: Amount,
    reserve_out: Amount,
    config: PoolConfig = DEFAULT_POOL_CONFIG,
) -> Amount:
    """Calculate output amount for an exact input.

    Formula: amount_out = (in * num * res_out) / (res_in * den + in * num)

    Args:
        amount_in: Input token amount
        reserve_in: Reserve of input token in pool
        reserve_out: Reserve of output token in pool
        config: Fee parameters (default 997/1000)

    Returns:
        Output token amount, rounded down

    Raises:
        InvalidAmount: If amount_in is not a positive uint256
        InsufficientLiquidity: If either reserve is zero
        InsufficientOutputLiquidity: If the output would drain reserve_out
    """
    validate_amount(amount_in, "amount_in")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(
            f"Insufficient liquidity: reserves ({reserve_in}, {reserve_out})"
        )

    amount_in_with_fee = S(amount_in) * S(config.fee_numerator)
    numerator = amount_in_with_fee * S(reserve_out)
    denominator = S(reserve_in) * S(config.fee_denominator) + amount_in_with_fee
    amount_out = (numerator // denominator).value

    if amount_out >= reserve_out:
        raise InsufficientOutputLiquidity(
            f"Output {amount_out} would drain reserve_out {reserve_out}"
        )
    return amount_out


def quote_input(
    amount_out: Amount,
    reserve_in: Amount,
    reserve_out: Amount,
    config: PoolConfig = DEFAULT_POOL_CONFIG,
) -> Amount:
    """Calculate required input for a desired output.

    Formula: amount_in = (res_in * out * den) / ((res_out - out) * num) + 1

    The +1 rounds up, so quote_output(quote_input(x)) >= x.

    Raises:
        InvalidAmount: If amount_out is not a positive uint256
        InsufficientLiquidity: If either reserve is zero
        InsufficientOutputLiquidity: If amount_out >= reserve_out
    """
    validate_amount(amount_out, "amount_out")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(
            f"Insufficient liquidity: reserves ({reserve_in}, {reserve_out})"
        )
    if amount_out >= reserve_out:
        raise InsufficientOutputLiquidity(
            f"Cannot drain full reserve: amount_out ({amount_out}) >= reserve_out ({reserve_out})"
        )

    numerator = S(reserve_in) * S(amount_out) * S(config.fee_denominator)
    denominator = (S(reserve_out) - S(amount_out)) * S(config.fee_numerator)
    return ((numerator // denominator) + S(1)).value


def shares_to_mint(
    amount_a: Amount,
    amount_b: Amount,
    reserve_a: Amount,
    reserve_b: Amount,
    total_shares: Amount,
) -> Amount:
    """Compute pool shares issued for a deposit.

    Bootstrap deposit (total_shares == 0):
        shares = floor(sqrt(amount_a * amount_b))

    Subsequent deposits must match the reserve ratio exactly:
        amount_a * reserve_b == amount_b * reserve_a
        shares = floor(amount_a * total_shares / reserve_a)

    Raises:
        InvalidAmount: If either amount is not a positive uint256
        RatioMismatch: If a non-bootstrap deposit changes the price ratio
        InsufficientSharesMinted: If issuance rounds down to zero
    """
    validate_amount(amount_a, "amount_a")
    validate_amount(amount_b, "amount_b")

    if total_shares == 0:
        shares = isqrt(amount_a * amount_b)
    else:
        if S(amount_a) * S(reserve_b) != S(amount_b) * S(reserve_a):
            raise RatioMismatch(
                f"Ratio mismatch: deposit ({amount_a}, {amount_b}) vs reserves ({reserve_a}, {reserve_b})"
            )
        # Ratio is exact, so the B-side formula gives the same floor.
        shares = (S(amount_a) * S(total_shares) // S(reserve_a)).value

    if shares <= 0:
        raise InsufficientSharesMinted(
            f"Deposit ({amount_a}, {amount_b}) mints zero shares against supply {total_shares}"
        )
    return shares


def withdrawal_amounts(
    shares: Amount,
    reserve_a: Amount,
    reserve_b: Amount,
    total_shares: Amount,
) -> tuple[Amount, Amount]:
    """Compute reserves returned for burning pool shares.

    Formula (floor):
        amount_a = shares * reserve_a / total_shares
        amount_b = shares * reserve_b / total_shares

    Rounding dust stays in the pool and accrues to the remaining providers.

    Raises:
        InvalidAmount: If shares is not a positive uint256
        InsufficientShares: If shares exceeds the total supply
    """
    validate_amount(shares, "shares")
    if shares > total_shares:
        raise InsufficientShares(f"Cannot burn more shares than supply: {shares} > {total_shares}")

    amount_a = (S(shares) * S(reserve_a) // S(total_shares)).value
    amount_b = (S(shares) * S(reserve_b) // S(total_shares)).value
    return amount_a, amount_b


def spot_price(reserve_a: Amount, reserve_b: Amount, price_scale: int) -> int:
    """Price of A in units of B, scaled by price_scale. Zero for an empty pool."""
    if reserve_a <= 0:
        return 0
    return (S(reserve_b) * S(price_scale) // S(reserve_a)).value
