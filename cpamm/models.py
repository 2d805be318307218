"""Pydantic models for the pool HTTP API.

Amounts travel as decimal strings so that values above 2^53 survive JSON
clients that parse numbers as doubles. Inside the service they are ints.
"""

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field, PlainSerializer

from cpamm.constants import UINT256_MAX
from cpamm.pool.events import AnyPoolEvent
from cpamm.types import AssetKind


def parse_uint256(value: Any) -> int:
    """Validate that a value is a valid uint256 decimal string or int.

    Args:
        value: Value to validate (string or int)

    Returns:
        The value as an int

    Raises:
        ValueError: If value is not a non-negative integer within uint256 range
    """
    if isinstance(value, bool):
        raise ValueError("Uint256 must be string or int, got bool")
    if isinstance(value, int):
        int_value = value
    elif isinstance(value, str):
        if not value.isdigit():
            raise ValueError(f"Uint256 must be a decimal integer string: '{value}'")
        int_value = int(value)
    else:
        raise ValueError(f"Uint256 must be string or int, got {type(value).__name__}")

    if int_value < 0:
        raise ValueError(f"Uint256 cannot be negative: {value}")
    if int_value > UINT256_MAX:
        raise ValueError(f"Uint256 overflow: {value} > 2^256-1")
    return int_value


# 256-bit unsigned integer, accepted as decimal string or int, serialized as string
Uint256 = Annotated[
    int,
    BeforeValidator(parse_uint256),
    PlainSerializer(str, return_type=str),
    Field(description="256-bit unsigned integer as decimal string"),
]

# Provider, trader, or custody account
Account = Annotated[str, Field(min_length=1, max_length=128)]


class AddLiquidityRequest(BaseModel):
    """Deposit both assets into the pool."""

    provider: Account
    amount_a: Uint256
    amount_b: Uint256


class AddLiquidityResponse(BaseModel):
    shares: Uint256
    total_shares: Uint256


class RemoveLiquidityRequest(BaseModel):
    """Burn pool shares for the proportional reserves."""

    provider: Account
    shares: Uint256


class RemoveLiquidityResponse(BaseModel):
    amount_a_out: Uint256
    amount_b_out: Uint256
    total_shares: Uint256


class SwapRequest(BaseModel):
    """Exact-input swap."""

    trader: Account
    asset_in: AssetKind
    amount_in: Uint256
    min_amount_out: Uint256 = 0


class SwapResponse(BaseModel):
    asset_in: AssetKind
    amount_in: Uint256
    amount_out: Uint256


class QuoteResponse(BaseModel):
    asset_in: AssetKind
    amount_in: Uint256
    amount_out: Uint256


class MintRequest(BaseModel):
    """Credit development funds to an account."""

    account: Account
    amount: Uint256


class ApproveRequest(BaseModel):
    """Allow the pool to pull up to amount from owner."""

    owner: Account
    amount: Uint256


class BalanceResponse(BaseModel):
    asset: str
    account: str
    balance: Uint256


class SharesResponse(BaseModel):
    provider: str
    shares: Uint256


class PoolStateResponse(BaseModel):
    """Snapshot of the pool's public state."""

    address: str
    asset_a: str
    asset_b: str
    reserve_a: Uint256
    reserve_b: Uint256
    total_shares: Uint256
    price: Uint256
    fee_numerator: int
    fee_denominator: int
    fee_bps: int = Field(description="Trading fee in basis points, rounded down")


class EventsResponse(BaseModel):
    events: list[AnyPoolEvent]


class ErrorResponse(BaseModel):
    """Body returned for rejected operations."""

    error: str = Field(description="Stable error code, e.g. 'ratio_mismatch'")
    detail: str


class ClaimRequest(BaseModel):
    """Collect amounts the pool holds for an account."""

    account: Account


class OwedResponse(BaseModel):
    account: str
    amount_a: Uint256
    amount_b: Uint256
