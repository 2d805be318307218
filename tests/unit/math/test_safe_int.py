"""Tests for SafeInt checked arithmetic."""

import pytest

from cpamm.constants import UINT256_MAX
from cpamm.safe_int import (
    DivisionByZero,
    S,
    SafeInt,
    SafeIntError,
    Uint256Overflow,
    Underflow,
)


class TestSafeIntConstruction:
    def test_from_int_and_safeint(self):
        assert SafeInt(42).value == 42
        assert SafeInt(SafeInt(42)).value == 42

    @pytest.mark.parametrize("value", ["42", 3.14, True, None])
    def test_rejects_non_integers(self, value):
        with pytest.raises(TypeError):
            SafeInt(value)  # type: ignore[arg-type]

    def test_immutable(self):
        with pytest.raises(AttributeError):
            S(1).value = 2  # type: ignore[misc]

    def test_alias(self):
        assert S is SafeInt


class TestSafeIntArithmetic:
    """Checked and unchecked operations."""

    def test_add_and_mul_accept_plain_ints(self):
        assert S(10) + S(5) == 15
        assert 5 + S(10) == 15
        assert S(6) * 7 == 42
        assert 7 * S(6) == 42

    def test_sub(self):
        assert S(10) - S(3) == 7
        assert S(10) - 10 == 0

    def test_sub_below_zero_raises(self):
        with pytest.raises(Underflow):
            S(3) - S(10)

    def test_floordiv(self):
        assert S(10) // S(3) == 3

    def test_floordiv_by_zero_raises(self):
        with pytest.raises(DivisionByZero):
            S(10) // 0

    def test_float_operand_rejected(self):
        with pytest.raises(TypeError):
            S(10) * 1.5  # type: ignore[operator]

    def test_inequality(self):
        assert S(5) != S(6)
        assert S(5) != "5"

    def test_error_hierarchy(self):
        for error in (Underflow, DivisionByZero, Uint256Overflow):
            assert issubclass(error, SafeIntError)
        assert issubclass(SafeIntError, ArithmeticError)


class TestUint256:
    """Bounds are checked only on conversion."""

    def test_max_is_valid(self):
        assert S(UINT256_MAX).to_uint256() == UINT256_MAX
        assert S(UINT256_MAX).is_uint256()

    def test_overflow_raises(self):
        with pytest.raises(Uint256Overflow):
            (S(UINT256_MAX) + 1).to_uint256()
        assert not (S(UINT256_MAX) + 1).is_uint256()

    def test_negative_raises(self):
        with pytest.raises(Uint256Overflow):
            S(-1).to_uint256()

    def test_intermediate_products_are_unbounded(self):
        result = S(UINT256_MAX) * S(UINT256_MAX) // S(UINT256_MAX)
        assert result.to_uint256() == UINT256_MAX
