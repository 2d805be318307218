"""Constant-product AMM math."""

from cpamm.amm.constant_product import (
    quote_input,
    quote_output,
    shares_to_mint,
    spot_price,
    withdrawal_amounts,
)

__all__ = [
    "quote_output",
    "quote_input",
    "shares_to_mint",
    "withdrawal_amounts",
    "spot_price",
]
