"""Two-asset constant-product pool.

Every public mutating operation is one atomic transition:

    validate -> snapshot -> mutate reserves/shares -> run asset transfers -> emit event

All validation happens before the first write. If an asset transfer fails,
completed transfers are compensated, reserves and shares are restored from
the snapshot, no event is emitted, and AssetTransferFailed is raised.

A transfer that can be neither completed nor undone becomes a debt: the
amount stays in the pool's custody on the account's behalf and is paid out
with claim(). At all times, for each asset:

    ledger.balance_of(pool.address) == reserve + total_owed

Operations are serialized per pool with a lock. A call back into the same
pool from inside an asset-ledger callback raises ReentrantCall.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum

import structlog

from cpamm.amm.constant_product import (
    quote_input,
    quote_output,
    shares_to_mint,
    spot_price,
    withdrawal_amounts,
)
from cpamm.assets.base import AssetLedger
from cpamm.config import DEFAULT_POOL_CONFIG, PoolConfig
from cpamm.errors import (
    AMMError,
    AssetTransferFailed,
    InsufficientOutputAmount,
    InsufficientShares,
    InvalidAmount,
    InvalidConfiguration,
    InvariantViolation,
    ReentrantCall,
    SlippageExceeded,
)
from cpamm.math.integer import validate_amount
from cpamm.pool.events import EventLog, LiquidityAdded, LiquidityRemoved, PoolEvent, Swap
from cpamm.pool.reserves import ReserveLedger
from cpamm.pool.shares import ShareTable
from cpamm.types import AccountId, Amount, AssetKind

logger = structlog.get_logger()


class TransferDirection(str, Enum):
    """Whether funds move into or out of pool custody."""

    PULL = "pull"
    PUSH = "push"


@dataclass(frozen=True)
class Transfer:
    """One asset movement between an account and the pool."""

    direction: TransferDirection
    asset: AssetKind
    account: AccountId
    amount: Amount


class _TransferJournal:
    """Runs transfers in order and remembers which ones completed."""

    def __init__(self, pool: Pool) -> None:
        self._pool = pool
        self._completed: list[Transfer] = []

    def run(self, transfer: Transfer) -> None:
        """Execute a transfer.

        Raises:
            AssetTransferFailed: If the ledger returns False or raises
        """
        if transfer.amount == 0:
            return
        ledger = self._pool.ledger(transfer.asset)
        try:
            if transfer.direction is TransferDirection.PULL:
                ok = ledger.transfer_from(transfer.account, self._pool.address, transfer.amount)
            else:
                ok = ledger.transfer(self._pool.address, transfer.account, transfer.amount)
        except AMMError:
            raise
        except Exception as err:
            raise AssetTransferFailed(
                f"{transfer.direction.value} of {transfer.amount} {ledger.asset_id} "
                f"for {transfer.account} raised: {err}"
            ) from err
        if not ok:
            raise AssetTransferFailed(
                f"{transfer.direction.value} of {transfer.amount} {ledger.asset_id} "
                f"for {transfer.account} was refused"
            )
        self._completed.append(transfer)

    def compensate(self) -> list[Transfer]:
        """Undo completed transfers in reverse order.

        Pulls are refunded with transfer(). Pushes are reclaimed with
        transfer_from(), which only works if the recipient has granted the
        pool an allowance. Operations list their pulls before their pushes,
        so stopping at the first push that cannot be reclaimed leaves every
        pull of that operation in place.

        Returns:
            Transfers still in effect: pulls whose refund failed, or the
            unreclaimable push together with everything completed before it
        """
        held: list[Transfer] = []
        while self._completed:
            transfer = self._completed.pop()
            ledger = self._pool.ledger(transfer.asset)
            try:
                if transfer.direction is TransferDirection.PULL:
                    ok = ledger.transfer(self._pool.address, transfer.account, transfer.amount)
                else:
                    ok = ledger.transfer_from(transfer.account, self._pool.address, transfer.amount)
            except Exception:
                logger.exception("compensation_raised", transfer=transfer)
                ok = False
            if ok:
                continue
            held.append(transfer)
            if transfer.direction is TransferDirection.PUSH:
                held.extend(self._completed)
                self._completed.clear()
        return held


class Pool:
    """Constant-product pool between asset A and asset B.

    Attributes:
        address: Custody account of the pool in both asset ledgers
        config: Fee and price-scale parameters
        events: Append-only log of successful operations
    """

    def __init__(
        self,
        asset_a: AssetLedger | None,
        asset_b: AssetLedger | None,
        *,
        address: AccountId | None = None,
        config: PoolConfig = DEFAULT_POOL_CONFIG,
        event_log: EventLog | None = None,
    ) -> None:
        """Create an empty pool.

        Raises:
            InvalidConfiguration: If an asset is missing, the two assets share an
                identity, the address is empty, or the config is invalid
        """
        if asset_a is None or asset_b is None:
            raise InvalidConfiguration("Invalid token addresses: both assets are required")
        id_a, id_b = asset_a.asset_id, asset_b.asset_id
        if not id_a or not id_b:
            raise InvalidConfiguration(f"Invalid token addresses: ({id_a!r}, {id_b!r})")
        if asset_a is asset_b or id_a == id_b:
            raise InvalidConfiguration(f"Tokens must be different: {id_a!r}")
        config.validate()
        if address is not None and not address:
            raise InvalidConfiguration("Pool address must be non-empty")

        self._assets = {AssetKind.A: asset_a, AssetKind.B: asset_b}
        self.address: AccountId = address or f"pool:{id_a}/{id_b}"
        self.config = config
        self.events = event_log if event_log is not None else EventLog()

        self._reserves = ReserveLedger()
        self._shares = ShareTable()
        # (account, side) -> amount held in custody on behalf of account
        self._owed: dict[tuple[AccountId, AssetKind], Amount] = {}
        self._lock = threading.Lock()
        self._owner: int | None = None

    def __repr__(self) -> str:
        return (
            f"Pool({self.asset_id(AssetKind.A)}/{self.asset_id(AssetKind.B)}, "
            f"reserves=({self._reserves.reserve_a}, {self._reserves.reserve_b}), "
            f"total_shares={self._shares.total})"
        )

    # --- Views ---

    def ledger(self, kind: AssetKind) -> AssetLedger:
        return self._assets[kind]

    def asset_id(self, kind: AssetKind) -> str:
        return self._assets[kind].asset_id

    def get_reserves(self) -> tuple[Amount, Amount]:
        """Current (reserve_a, reserve_b)."""
        with self._reading():
            return self._reserves.reserve_a, self._reserves.reserve_b

    @property
    def total_shares(self) -> Amount:
        with self._reading():
            return self._shares.total

    @property
    def k(self) -> int:
        with self._reading():
            return self._reserves.k

    def shares_of(self, provider: AccountId) -> Amount:
        with self._reading():
            return self._shares.balance_of(provider)

    def provider_shares(self) -> dict[AccountId, Amount]:
        """Snapshot of every non-zero provider balance."""
        with self._reading():
            return self._shares.holders()

    def owed_to(self, account: AccountId) -> tuple[Amount, Amount]:
        """(A, B) held for account after transfers that could not complete."""
        with self._reading():
            return self._owed.get((account, AssetKind.A), 0), self._owed.get((account, AssetKind.B), 0)

    def total_owed(self, kind: AssetKind) -> Amount:
        """Custody of one asset that is owed to accounts rather than part of the reserve."""
        with self._reading():
            return sum(amount for (_, side), amount in self._owed.items() if side is kind)

    def get_price(self) -> int:
        """Spot price of A in B, scaled by config.price_scale. Zero when empty.

        The default scale is 1e18. The unscaled integer ratio reserve_b // reserve_a,
        which truncates prices below 1 to 0, is PoolConfig(price_scale=1).
        """
        with self._reading():
            return spot_price(self._reserves.reserve_a, self._reserves.reserve_b, self.config.price_scale)

    def quote_output(self, asset_in: AssetKind | str, amount_in: Amount) -> Amount:
        """Quote an exact-input swap against the current reserves. No side effects."""
        kind = AssetKind(asset_in)
        with self._reading():
            reserve_in, reserve_out = self._reserves.ordered(kind)
        return quote_output(amount_in, reserve_in, reserve_out, self.config)

    def quote_input(self, asset_in: AssetKind | str, amount_out: Amount) -> Amount:
        """Quote the input needed to receive amount_out of the other asset."""
        kind = AssetKind(asset_in)
        with self._reading():
            reserve_in, reserve_out = self._reserves.ordered(kind)
        return quote_input(amount_out, reserve_in, reserve_out, self.config)

    def check_invariants(self) -> None:
        """Verify emptiness equivalence and that provider shares sum to the total.

        Raises:
            InvariantViolation: If the pool state is inconsistent
        """
        with self._reading():
            self._shares.verify()
            self._reserves.verify()
            if self._reserves.is_empty != (self._shares.total == 0):
                raise InvariantViolation(
                    f"Reserves {self._reserves.snapshot()} disagree with total shares {self._shares.total}"
                )

    # --- Liquidity ---

    def add_liquidity(self, provider: AccountId, amount_a: Amount, amount_b: Amount) -> Amount:
        """Deposit both assets and receive pool shares.

        The first deposit into an empty pool mints floor(sqrt(amount_a * amount_b))
        shares and sets the price. Later deposits must match the reserve ratio
        exactly and mint amount_a * total_shares / reserve_a shares.

        Args:
            provider: Account supplying the assets (must have approved the pool)
            amount_a: Amount of asset A to deposit
            amount_b: Amount of asset B to deposit

        Returns:
            Shares issued to provider

        Raises:
            InvalidAmount: If either amount is not a positive uint256 or a
                reserve would overflow
            RatioMismatch: If the deposit ratio differs from the reserve ratio
            InsufficientSharesMinted: If the deposit is too small to mint a share
            AssetTransferFailed: If either ledger refuses the pull
        """
        with self._transaction("add_liquidity", provider=provider, amount_a=amount_a, amount_b=amount_b):
            shares = shares_to_mint(
                amount_a,
                amount_b,
                self._reserves.reserve_a,
                self._reserves.reserve_b,
                self._shares.total,
            )
            self._reserves.check_deposit(amount_a, amount_b)
            self._shares.check_mint(shares)

            def mutate() -> None:
                self._reserves.deposit(amount_a, amount_b)
                self._shares.mint(provider, shares)

            self._commit(
                mutate,
                [
                    Transfer(TransferDirection.PULL, AssetKind.A, provider, amount_a),
                    Transfer(TransferDirection.PULL, AssetKind.B, provider, amount_b),
                ],
                lambda: LiquidityAdded(
                    provider=provider,
                    amount_a=amount_a,
                    amount_b=amount_b,
                    total_shares_after=self._shares.total,
                ),
            )
            total_after = self._shares.total

        logger.info(
            "liquidity_added",
            provider=provider,
            amount_a=amount_a,
            amount_b=amount_b,
            shares=shares,
            total_shares=total_after,
        )
        return shares

    def remove_liquidity(self, provider: AccountId, shares: Amount) -> tuple[Amount, Amount]:
        """Burn pool shares and withdraw the proportional reserves.

        Outputs round down; the remainder stays in the pool for the other
        providers.

        Returns:
            Tuple of (amount_a_out, amount_b_out)

        Raises:
            InvalidAmount: If shares is not a positive uint256
            InsufficientShares: If provider owns fewer than shares (always the
                case for an empty pool)
            AssetTransferFailed: If either ledger refuses the push. If a payout
                already made cannot be reclaimed, the withdrawal still stands
                and the missing side is owed to provider (see claim())
        """
        with self._transaction("remove_liquidity", provider=provider, shares=shares):
            validate_amount(shares, "shares")
            owned = self._shares.balance_of(provider)
            if owned < shares:
                raise InsufficientShares(
                    f"Insufficient liquidity owned: {provider} has {owned}, requested {shares}"
                )
            amount_a_out, amount_b_out = withdrawal_amounts(
                shares,
                self._reserves.reserve_a,
                self._reserves.reserve_b,
                self._shares.total,
            )

            def mutate() -> None:
                self._shares.burn(provider, shares)
                self._reserves.withdraw(amount_a_out, amount_b_out)

            self._commit(
                mutate,
                [
                    Transfer(TransferDirection.PUSH, AssetKind.A, provider, amount_a_out),
                    Transfer(TransferDirection.PUSH, AssetKind.B, provider, amount_b_out),
                ],
                lambda: LiquidityRemoved(
                    provider=provider,
                    amount_a_out=amount_a_out,
                    amount_b_out=amount_b_out,
                    total_shares_after=self._shares.total,
                ),
            )
            total_after = self._shares.total

        logger.info(
            "liquidity_removed",
            provider=provider,
            shares=shares,
            amount_a_out=amount_a_out,
            amount_b_out=amount_b_out,
            total_shares=total_after,
        )
        return amount_a_out, amount_b_out

    # --- Swaps ---

    def swap(
        self,
        trader: AccountId,
        asset_in: AssetKind | str,
        amount_in: Amount,
        min_amount_out: Amount = 0,
    ) -> Amount:
        """Swap an exact amount of one asset for the other.

        Args:
            trader: Account paying amount_in and receiving the output
            asset_in: Side of the pool being sold (A or B)
            amount_in: Exact input amount
            min_amount_out: Reject the swap if the output is below this

        Returns:
            Amount of the other asset sent to trader

        Raises:
            InvalidAmount: If amount_in is not a positive uint256
            InsufficientLiquidity: If either reserve is zero
            InsufficientOutputLiquidity: If the output would drain the reserve
            InsufficientOutputAmount: If the output rounds down to zero
            SlippageExceeded: If the output is below min_amount_out
            AssetTransferFailed: If either ledger refuses a transfer
        """
        kind_in = AssetKind(asset_in)
        with self._transaction("swap", trader=trader, asset_in=kind_in.value, amount_in=amount_in):
            if not isinstance(min_amount_out, int) or isinstance(min_amount_out, bool) or min_amount_out < 0:
                raise InvalidAmount(f"min_amount_out must be a non-negative integer: {min_amount_out}")
            reserve_in, reserve_out = self._reserves.ordered(kind_in)
            amount_out = quote_output(amount_in, reserve_in, reserve_out, self.config)
            if amount_out == 0:
                raise InsufficientOutputAmount(
                    f"Input {amount_in} is too small to produce any output"
                )
            if amount_out < min_amount_out:
                raise SlippageExceeded(f"Output {amount_out} below minimum {min_amount_out}")
            self._reserves.check_swap(kind_in, amount_in)

            self._commit(
                lambda: self._reserves.apply_swap(kind_in, amount_in, amount_out),
                [
                    Transfer(TransferDirection.PULL, kind_in, trader, amount_in),
                    Transfer(TransferDirection.PUSH, kind_in.other, trader, amount_out),
                ],
                lambda: Swap(trader=trader, asset_in=kind_in, amount_in=amount_in, amount_out=amount_out),
            )

        logger.info(
            "swap_executed",
            trader=trader,
            asset_in=kind_in.value,
            amount_in=amount_in,
            amount_out=amount_out,
        )
        return amount_out

    def swap_a_for_b(self, trader: AccountId, amount_in: Amount, min_amount_out: Amount = 0) -> Amount:
        return self.swap(trader, AssetKind.A, amount_in, min_amount_out)

    def swap_b_for_a(self, trader: AccountId, amount_in: Amount, min_amount_out: Amount = 0) -> Amount:
        return self.swap(trader, AssetKind.B, amount_in, min_amount_out)

    # --- Debts ---

    def claim(self, account: AccountId) -> tuple[Amount, Amount]:
        """Pay out everything the pool owes account.

        Debts only arise when an asset ledger fails part way through an
        operation. Claiming does not touch reserves or shares.

        Returns:
            Tuple of (amount_a, amount_b) paid, (0, 0) when nothing is owed

        Raises:
            AssetTransferFailed: If a ledger refuses the payout; whatever was
                not paid stays owed
        """
        with self._transaction("claim", account=account):
            owed_a = self._owed.get((account, AssetKind.A), 0)
            owed_b = self._owed.get((account, AssetKind.B), 0)
            if not owed_a and not owed_b:
                return 0, 0

            def mutate() -> None:
                self._owed.pop((account, AssetKind.A), None)
                self._owed.pop((account, AssetKind.B), None)

            self._commit(
                mutate,
                [
                    Transfer(TransferDirection.PUSH, AssetKind.A, account, owed_a),
                    Transfer(TransferDirection.PUSH, AssetKind.B, account, owed_b),
                ],
            )

        logger.info("debt_claimed", account=account, amount_a=owed_a, amount_b=owed_b)
        return owed_a, owed_b

    # --- Internals ---

    @contextmanager
    def _transaction(self, operation: str, **context: object) -> Iterator[None]:
        """Serialize a mutating operation and reject re-entry from the same thread."""
        ident = threading.get_ident()
        if self._owner == ident:
            logger.warning("reentrant_call_rejected", operation=operation, **context)
            raise ReentrantCall(f"{operation} called while another pool operation is running")
        with self._lock:
            self._owner = ident
            try:
                yield
            except AMMError as err:
                logger.debug(
                    "operation_rejected", operation=operation, error=err.code, detail=str(err), **context
                )
                raise
            finally:
                self._owner = None

    @contextmanager
    def _reading(self) -> Iterator[None]:
        """Consistent read of pool state.

        Reads from inside a running operation (an asset-ledger callback) would
        observe half-applied state, so they are rejected like writes.
        """
        if self._owner == threading.get_ident():
            raise ReentrantCall("Pool state read while a pool operation is running")
        with self._lock:
            yield

    def _credit_owed(self, account: AccountId, kind: AssetKind, amount: Amount) -> None:
        key = (account, kind)
        self._owed[key] = self._owed.get(key, 0) + amount

    def _commit(
        self,
        mutate: Callable[[], None],
        transfers: list[Transfer],
        make_event: Callable[[], PoolEvent] | None = None,
    ) -> None:
        """Apply internal state changes, then run transfers, all or nothing.

        If a transfer fails, completed transfers are undone and the snapshot is
        restored. Two cases cannot be undone, and the pool then keeps its
        state equal to what it holds in custody:

        - A refund of a pull fails: the snapshot is restored and the pulled
          amount is owed to the account.
        - A payout cannot be reclaimed: the operation stands (shares burned,
          reserves debited) and the payouts that did not happen are owed.

        Either way the error is re-raised.
        """
        reserves_before = self._reserves.snapshot()
        shares_before = self._shares.snapshot()
        owed_before = dict(self._owed)
        journal = _TransferJournal(self)
        try:
            mutate()
            for transfer in transfers:
                journal.run(transfer)
        except Exception as err:
            held = journal.compensate()
            if any(t.direction is TransferDirection.PUSH for t in held):
                unpaid = [
                    t
                    for t in transfers
                    if t.direction is TransferDirection.PUSH
                    and t.amount
                    and not any(t is h for h in held)
                ]
                for transfer in unpaid:
                    self._credit_owed(transfer.account, transfer.asset, transfer.amount)
                if make_event is not None:
                    self.events.append(make_event())
                logger.error(
                    "operation_settled_with_debt",
                    pool=self.address,
                    error=type(err).__name__,
                    detail=str(err),
                    owed=[(t.account, t.asset.value, t.amount) for t in unpaid],
                )
                raise

            self._reserves.restore(reserves_before)
            self._shares.restore(shares_before)
            self._owed = owed_before
            for transfer in held:
                self._credit_owed(transfer.account, transfer.asset, transfer.amount)
            logger.warning(
                "operation_rolled_back",
                error=type(err).__name__,
                detail=str(err),
                uncompensated=[t.asset.value for t in held],
            )
            if held:
                logger.error("compensation_incomplete", pool=self.address, transfers=held)
            raise

        if make_event is not None:
            self.events.append(make_event())
