"""Tests for ShareTable."""

import pytest

from cpamm.constants import UINT256_MAX
from cpamm.errors import InsufficientShares, InvalidAmount, InvariantViolation
from cpamm.pool.shares import ShareSnapshot, ShareTable
from tests.helpers import ALICE, BOB


@pytest.fixture
def shares() -> ShareTable:
    table = ShareTable()
    table.mint(ALICE, 141)
    table.mint(BOB, 70)
    return table


class TestShareTable:
    """Tests for share minting and burning."""

    def test_unknown_provider_has_zero(self):
        assert ShareTable().balance_of(ALICE) == 0

    def test_mint_tracks_total(self, shares):
        assert shares.total == 211
        assert shares.balance_of(ALICE) == 141
        assert shares.balance_of(BOB) == 70
        assert shares.holders() == {ALICE: 141, BOB: 70}

    def test_mint_accumulates(self, shares):
        shares.mint(ALICE, 9)
        assert shares.balance_of(ALICE) == 150
        assert shares.total == 220

    def test_mint_non_positive_raises(self):
        with pytest.raises(InvalidAmount):
            ShareTable().mint(ALICE, 0)

    def test_mint_overflow_raises(self):
        table = ShareTable()
        table.mint(ALICE, UINT256_MAX)
        with pytest.raises(InvalidAmount):
            table.mint(BOB, 1)
        assert table.total == UINT256_MAX

    def test_burn(self, shares):
        shares.burn(BOB, 30)
        assert shares.balance_of(BOB) == 40
        assert shares.total == 181

    def test_burn_to_zero_removes_holder(self, shares):
        shares.burn(BOB, 70)
        assert shares.balance_of(BOB) == 0
        assert BOB not in shares.holders()
        shares.verify()

    def test_burn_more_than_owned_raises(self, shares):
        with pytest.raises(InsufficientShares):
            shares.burn(BOB, 71)
        assert shares.balance_of(BOB) == 70

    def test_burn_non_positive_raises(self, shares):
        with pytest.raises(InvalidAmount):
            shares.burn(ALICE, 0)

    def test_holders_is_a_copy(self, shares):
        holders = shares.holders()
        holders[ALICE] = 0
        assert shares.balance_of(ALICE) == 141


class TestShareSnapshots:
    def test_restore_undoes_changes(self, shares):
        snapshot = shares.snapshot()
        shares.burn(ALICE, 141)
        shares.mint(BOB, 5)
        shares.restore(snapshot)
        assert shares.holders() == {ALICE: 141, BOB: 70}
        assert shares.total == 211

    def test_verify_detects_sum_mismatch(self):
        table = ShareTable()
        table.restore(ShareSnapshot(balances={ALICE: 10}, total=11))
        with pytest.raises(InvariantViolation):
            table.verify()
