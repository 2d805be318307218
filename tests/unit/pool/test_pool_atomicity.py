"""Tests for rollback on ledger failure, reentrancy and concurrent callers."""

import threading
from collections.abc import Callable

import pytest
from structlog.testing import capture_logs

from cpamm.assets.in_memory import InMemoryAssetLedger
from cpamm.errors import AssetTransferFailed, InsufficientShares, ReentrantCall
from cpamm.pool.events import LiquidityRemoved
from cpamm.types import AssetKind
from tests.helpers import ALICE, BOB, FUNDING, TOKEN_A, TOKEN_B, make_ledgers, make_pool


class FaultyLedger(InMemoryAssetLedger):
    """In-memory ledger that can be told to refuse or raise on outgoing transfers."""

    def __init__(self, asset_id: str) -> None:
        super().__init__(asset_id)
        self.refuse_transfers = False
        self.raise_on_transfer = False

    def transfer(self, sender, recipient, amount):
        if self.raise_on_transfer:
            raise RuntimeError("ledger offline")
        if self.refuse_transfers:
            return False
        return super().transfer(sender, recipient, amount)


class CallbackLedger(InMemoryAssetLedger):
    """In-memory ledger that runs a hook before every pull, like a token with callbacks."""

    def __init__(self, asset_id: str) -> None:
        super().__init__(asset_id)
        self.on_pull: Callable[[], None] | None = None

    def transfer_from(self, owner, recipient, amount):
        if self.on_pull is not None:
            self.on_pull()
        return super().transfer_from(owner, recipient, amount)


def balances(ledgers, account):
    return ledgers[AssetKind.A].balance_of(account), ledgers[AssetKind.B].balance_of(account)


def assert_custody_matches(pool, ledgers):
    """The pool holds exactly its reserves plus what it owes accounts."""
    reserves = dict(zip(AssetKind, pool.get_reserves()))
    for kind in AssetKind:
        assert ledgers[kind].balance_of(pool.address) == reserves[kind] + pool.total_owed(kind)


class TestRollback:
    """A failed transfer undoes the whole operation."""

    @pytest.fixture
    def faulty(self):
        ledgers = make_ledgers(ledger_b=FaultyLedger(TOKEN_B))
        pool, ledgers = make_pool(funded=[ALICE, BOB], ledgers=ledgers)
        pool.add_liquidity(ALICE, 100, 200)
        return pool, ledgers

    def test_second_pull_failure_refunds_first(self):
        pool, ledgers = make_pool()
        ledgers[AssetKind.A].mint("dave", 1000)
        ledgers[AssetKind.B].mint("dave", 10)
        for ledger in ledgers.values():
            ledger.approve("dave", pool.address, 10**30)

        with pytest.raises(AssetTransferFailed, match="refused"):
            pool.add_liquidity("dave", 100, 200)

        assert balances(ledgers, "dave") == (1000, 10)
        assert balances(ledgers, pool.address) == (0, 0)
        assert pool.get_reserves() == (0, 0)
        assert pool.total_shares == 0
        assert len(pool.events) == 0
        assert_custody_matches(pool, ledgers)

    def test_refused_push_restores_removal(self, faulty):
        pool, ledgers = faulty
        ledgers[AssetKind.B].refuse_transfers = True

        with pytest.raises(AssetTransferFailed):
            pool.remove_liquidity(ALICE, 41)

        assert pool.get_reserves() == (100, 200)
        assert pool.shares_of(ALICE) == 141
        assert balances(ledgers, ALICE) == (FUNDING - 100, FUNDING - 200)
        assert balances(ledgers, pool.address) == (100, 200)
        assert pool.owed_to(ALICE) == (0, 0)
        assert len(pool.events) == 1
        assert_custody_matches(pool, ledgers)

    def test_raising_ledger_is_wrapped(self, faulty):
        pool, ledgers = faulty
        ledgers[AssetKind.B].raise_on_transfer = True

        with pytest.raises(AssetTransferFailed) as exc_info:
            pool.swap_a_for_b(BOB, 10)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert pool.get_reserves() == (100, 200)
        assert balances(ledgers, BOB) == (FUNDING, FUNDING)
        assert pool.check_invariants() is None
        assert_custody_matches(pool, ledgers)

    def test_rollback_is_logged(self, faulty):
        pool, ledgers = faulty
        ledgers[AssetKind.B].refuse_transfers = True

        with capture_logs() as logs, pytest.raises(AssetTransferFailed):
            pool.swap_a_for_b(BOB, 10)

        events = [entry["event"] for entry in logs]
        assert "operation_rolled_back" in events
        assert "compensation_incomplete" not in events
        assert "swap_executed" not in events


class TestUnrecoverableTransfers:
    """Transfers that can be neither finished nor undone become debts."""

    @pytest.fixture
    def two_providers(self):
        ledgers = make_ledgers(ledger_b=FaultyLedger(TOKEN_B))
        pool, ledgers = make_pool(funded=[ALICE, BOB], ledgers=ledgers)
        pool.add_liquidity(ALICE, 100, 200)
        pool.add_liquidity(BOB, 100, 200)
        return pool, ledgers

    def test_unreclaimable_payout_settles_withdrawal(self, two_providers):
        """A payout that cannot be reclaimed keeps the burn; the other side is owed."""
        pool, ledgers = two_providers
        ledgers[AssetKind.A].approve(ALICE, pool.address, 0)
        ledgers[AssetKind.B].refuse_transfers = True

        with capture_logs() as logs, pytest.raises(AssetTransferFailed):
            pool.remove_liquidity(ALICE, 141)

        assert "operation_settled_with_debt" in [entry["event"] for entry in logs]
        assert pool.shares_of(ALICE) == 0
        assert pool.total_shares == 141
        assert pool.get_reserves() == (100, 200)
        assert pool.owed_to(ALICE) == (0, 200)
        assert balances(ledgers, ALICE) == (FUNDING, FUNDING - 200)
        assert isinstance(pool.events.last(), LiquidityRemoved)
        assert_custody_matches(pool, ledgers)
        pool.check_invariants()

    def test_failed_withdrawal_cannot_be_repeated(self, two_providers):
        """The provider gets their share once; the other provider keeps theirs."""
        pool, ledgers = two_providers
        ledgers[AssetKind.A].approve(ALICE, pool.address, 0)
        ledgers[AssetKind.B].refuse_transfers = True
        with pytest.raises(AssetTransferFailed):
            pool.remove_liquidity(ALICE, 141)
        ledgers[AssetKind.B].refuse_transfers = False

        with pytest.raises(InsufficientShares):
            pool.remove_liquidity(ALICE, 141)
        assert pool.claim(ALICE) == (0, 200)
        assert balances(ledgers, ALICE) == (FUNDING, FUNDING)

        assert pool.remove_liquidity(BOB, 141) == (100, 200)
        assert balances(ledgers, BOB) == (FUNDING, FUNDING)
        assert balances(ledgers, pool.address) == (0, 0)
        assert_custody_matches(pool, ledgers)

    def test_unrefundable_pull_is_owed(self):
        ledgers = make_ledgers(ledger_a=FaultyLedger(TOKEN_A))
        pool, ledgers = make_pool(ledgers=ledgers)
        ledgers[AssetKind.A].mint("dave", 1000)
        ledgers[AssetKind.B].mint("dave", 10)
        for ledger in ledgers.values():
            ledger.approve("dave", pool.address, 10**30)
        ledgers[AssetKind.A].refuse_transfers = True

        with capture_logs() as logs, pytest.raises(AssetTransferFailed):
            pool.add_liquidity("dave", 100, 200)

        assert "compensation_incomplete" in [entry["event"] for entry in logs]
        assert pool.get_reserves() == (0, 0)
        assert pool.total_shares == 0
        assert pool.owed_to("dave") == (100, 0)
        assert len(pool.events) == 0
        assert_custody_matches(pool, ledgers)

        ledgers[AssetKind.A].refuse_transfers = False
        assert pool.claim("dave") == (100, 0)
        assert balances(ledgers, "dave") == (1000, 10)
        assert pool.owed_to("dave") == (0, 0)
        assert_custody_matches(pool, ledgers)

    def test_refused_claim_keeps_debt(self, two_providers):
        pool, ledgers = two_providers
        ledgers[AssetKind.A].approve(ALICE, pool.address, 0)
        ledgers[AssetKind.B].refuse_transfers = True
        with pytest.raises(AssetTransferFailed):
            pool.remove_liquidity(ALICE, 141)

        with pytest.raises(AssetTransferFailed):
            pool.claim(ALICE)
        assert pool.owed_to(ALICE) == (0, 200)
        assert_custody_matches(pool, ledgers)

    def test_claim_with_nothing_owed(self, two_providers):
        pool, _ = two_providers
        assert pool.claim(ALICE) == (0, 0)
        assert len(pool.events) == 2


class TestReentrancy:
    """Calls back into the pool from a ledger hook are rejected."""

    @pytest.fixture
    def hooked(self):
        ledgers = make_ledgers(ledger_a=CallbackLedger(TOKEN_A))
        pool, ledgers = make_pool(funded=[ALICE, BOB], ledgers=ledgers)
        pool.add_liquidity(ALICE, 1000, 2000)
        return pool, ledgers

    def test_reentrant_swap_aborts_outer_operation(self, hooked):
        pool, ledgers = hooked
        ledgers[AssetKind.A].on_pull = lambda: pool.swap_b_for_a(BOB, 10)

        with pytest.raises(ReentrantCall):
            pool.swap_a_for_b(BOB, 10)

        assert pool.get_reserves() == (1000, 2000)
        assert balances(ledgers, BOB) == (FUNDING, FUNDING)
        assert len(pool.events) == 1

    def test_reentrant_read_rejected(self, hooked):
        pool, ledgers = hooked
        seen: list[Exception] = []

        def peek():
            try:
                pool.get_reserves()
            except ReentrantCall as err:
                seen.append(err)

        ledgers[AssetKind.A].on_pull = peek
        assert pool.swap_a_for_b(BOB, 10) > 0
        assert len(seen) == 1

    def test_pool_usable_after_rejected_reentry(self, hooked):
        pool, ledgers = hooked
        ledgers[AssetKind.A].on_pull = lambda: pool.add_liquidity(BOB, 1, 2)
        with pytest.raises(ReentrantCall):
            pool.add_liquidity(ALICE, 10, 20)

        ledgers[AssetKind.A].on_pull = None
        assert pool.add_liquidity(BOB, 10, 20) > 0


class TestConcurrency:
    def test_parallel_swaps_keep_ledgers_and_reserves_in_sync(self):
        traders = [f"trader-{i}" for i in range(8)]
        pool, ledgers = make_pool(funded=[ALICE, *traders])
        pool.add_liquidity(ALICE, 10**24, 2 * 10**24)
        start = threading.Barrier(len(traders))
        errors: list[Exception] = []

        def trade(trader: str, kind: AssetKind) -> None:
            start.wait()
            try:
                for _ in range(25):
                    pool.swap(trader, kind, 10**18)
            except Exception as err:
                errors.append(err)

        threads = [
            threading.Thread(target=trade, args=(t, AssetKind.A if i % 2 else AssetKind.B))
            for i, t in enumerate(traders)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(pool.events) == 1 + 8 * 25
        assert pool.get_reserves() == balances(ledgers, pool.address)
        pool.check_invariants()
