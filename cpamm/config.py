"""Pool configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from cpamm.constants import FEE_DENOMINATOR, FEE_NUMERATOR, PRICE_SCALE
from cpamm.errors import InvalidConfiguration


@dataclass(frozen=True)
class PoolConfig:
    """Economic parameters for a pool.

    Holding these in one frozen object keeps the fee auditable and makes it
    easy to build pools with different parameters in tests.

    Attributes:
        fee_numerator: Share of the input kept for the swap (default: 997)
        fee_denominator: Denominator of the fee fraction (default: 1000)
        price_scale: Fixed-point scale for get_price() (default: 1e18)
    """

    fee_numerator: int = FEE_NUMERATOR
    fee_denominator: int = FEE_DENOMINATOR
    price_scale: int = PRICE_SCALE

    @property
    def fee_bps(self) -> int:
        """Trading fee in basis points, rounded down (30 for 997/1000)."""
        return (self.fee_denominator - self.fee_numerator) * 10_000 // self.fee_denominator

    def validate(self) -> None:
        """Check the parameters are usable.

        Raises:
            InvalidConfiguration: If the fee fraction is not in (0, 1] or the
                price scale is not positive
        """
        for name in ("fee_numerator", "fee_denominator", "price_scale"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise InvalidConfiguration(f"{name} must be an integer: {value!r}")
        if self.fee_denominator <= 0:
            raise InvalidConfiguration(f"fee_denominator must be > 0: {self.fee_denominator}")
        if not (0 < self.fee_numerator <= self.fee_denominator):
            raise InvalidConfiguration(
                f"fee_numerator must be in (0, {self.fee_denominator}]: {self.fee_numerator}"
            )
        if self.price_scale <= 0:
            raise InvalidConfiguration(f"price_scale must be > 0: {self.price_scale}")

    @classmethod
    def from_env(cls) -> PoolConfig:
        """Build a config from environment variables, falling back to defaults.

        Reads CPAMM_FEE_NUMERATOR, CPAMM_FEE_DENOMINATOR and CPAMM_PRICE_SCALE.
        """
        try:
            config = cls(
                fee_numerator=int(os.environ.get("CPAMM_FEE_NUMERATOR", FEE_NUMERATOR)),
                fee_denominator=int(os.environ.get("CPAMM_FEE_DENOMINATOR", FEE_DENOMINATOR)),
                price_scale=int(os.environ.get("CPAMM_PRICE_SCALE", PRICE_SCALE)),
            )
        except ValueError as err:
            raise InvalidConfiguration(f"Invalid pool configuration in environment: {err}") from err
        config.validate()
        return config


# Default configuration instance (0.3% fee, 1e18 price scale)
DEFAULT_POOL_CONFIG = PoolConfig()
