"""API endpoints for the pool service.

Mutating endpoints are plain (sync) functions, so FastAPI runs them in its
worker threadpool; the pool's lock serializes them.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException

from cpamm.api.service import PoolService, get_default_service
from cpamm.models import (
    AddLiquidityRequest,
    AddLiquidityResponse,
    ApproveRequest,
    BalanceResponse,
    ClaimRequest,
    EventsResponse,
    MintRequest,
    OwedResponse,
    PoolStateResponse,
    QuoteResponse,
    RemoveLiquidityRequest,
    RemoveLiquidityResponse,
    SharesResponse,
    SwapRequest,
    SwapResponse,
    parse_uint256,
)
from cpamm.types import AssetKind

logger = structlog.get_logger()

router = APIRouter()


def get_service() -> PoolService:
    """Dependency provider for the pool service.

    Override this in tests to inject a fresh pool:
        app.dependency_overrides[get_service] = lambda: PoolService()
    """
    return get_default_service()


@router.get("/pool")
def pool_state(svc: PoolService = Depends(get_service)) -> PoolStateResponse:
    """Reserves, total shares and spot price."""
    pool = svc.pool
    reserve_a, reserve_b = pool.get_reserves()
    return PoolStateResponse(
        address=pool.address,
        asset_a=pool.asset_id(AssetKind.A),
        asset_b=pool.asset_id(AssetKind.B),
        reserve_a=reserve_a,
        reserve_b=reserve_b,
        total_shares=pool.total_shares,
        price=pool.get_price(),
        fee_numerator=pool.config.fee_numerator,
        fee_denominator=pool.config.fee_denominator,
        fee_bps=pool.config.fee_bps,
    )


@router.get("/pool/shares/{provider}")
def provider_shares(provider: str, svc: PoolService = Depends(get_service)) -> SharesResponse:
    return SharesResponse(provider=provider, shares=svc.pool.shares_of(provider))


@router.get("/quote")
def quote(
    asset_in: AssetKind,
    amount_in: str,
    svc: PoolService = Depends(get_service),
) -> QuoteResponse:
    """Quote an exact-input swap without executing it."""
    try:
        amount = parse_uint256(amount_in)
    except ValueError as err:
        raise HTTPException(status_code=422, detail=str(err)) from err
    amount_out = svc.pool.quote_output(asset_in, amount)
    return QuoteResponse(asset_in=asset_in, amount_in=amount, amount_out=amount_out)


@router.post("/liquidity/add")
def add_liquidity(
    request: AddLiquidityRequest,
    svc: PoolService = Depends(get_service),
) -> AddLiquidityResponse:
    shares = svc.pool.add_liquidity(request.provider, request.amount_a, request.amount_b)
    return AddLiquidityResponse(shares=shares, total_shares=svc.pool.total_shares)


@router.post("/liquidity/remove")
def remove_liquidity(
    request: RemoveLiquidityRequest,
    svc: PoolService = Depends(get_service),
) -> RemoveLiquidityResponse:
    amount_a_out, amount_b_out = svc.pool.remove_liquidity(request.provider, request.shares)
    return RemoveLiquidityResponse(
        amount_a_out=amount_a_out,
        amount_b_out=amount_b_out,
        total_shares=svc.pool.total_shares,
    )


@router.post("/swap")
def swap(request: SwapRequest, svc: PoolService = Depends(get_service)) -> SwapResponse:
    amount_out = svc.pool.swap(
        request.trader,
        request.asset_in,
        request.amount_in,
        min_amount_out=request.min_amount_out,
    )
    return SwapResponse(asset_in=request.asset_in, amount_in=request.amount_in, amount_out=amount_out)


@router.get("/pool/owed/{account}")
def owed(account: str, svc: PoolService = Depends(get_service)) -> OwedResponse:
    """Amounts held for account after a partially failed operation."""
    amount_a, amount_b = svc.pool.owed_to(account)
    return OwedResponse(account=account, amount_a=amount_a, amount_b=amount_b)


@router.post("/claim")
def claim(request: ClaimRequest, svc: PoolService = Depends(get_service)) -> OwedResponse:
    """Pay out what the pool owes an account; returns the amounts paid."""
    amount_a, amount_b = svc.pool.claim(request.account)
    return OwedResponse(account=request.account, amount_a=amount_a, amount_b=amount_b)


@router.post("/assets/{asset}/mint")
def mint(asset: AssetKind, request: MintRequest, svc: PoolService = Depends(get_service)) -> BalanceResponse:
    """Credit development funds. Only meaningful for the in-memory ledgers."""
    ledger = svc.ledger(asset)
    try:
        ledger.mint(request.account, request.amount)
    except ValueError as err:
        raise HTTPException(status_code=422, detail=str(err)) from err
    logger.info("dev_mint", asset=ledger.asset_id, account=request.account, amount=request.amount)
    return BalanceResponse(
        asset=ledger.asset_id,
        account=request.account,
        balance=ledger.balance_of(request.account),
    )


@router.post("/assets/{asset}/approve")
def approve(asset: AssetKind, request: ApproveRequest, svc: PoolService = Depends(get_service)) -> dict[str, str]:
    """Allow the pool to pull up to amount of asset from owner."""
    ledger = svc.ledger(asset)
    ledger.approve(request.owner, svc.pool.address, request.amount)
    return {"status": "ok"}


@router.get("/assets/{asset}/balance/{account}")
def balance(asset: AssetKind, account: str, svc: PoolService = Depends(get_service)) -> BalanceResponse:
    ledger = svc.ledger(asset)
    return BalanceResponse(asset=ledger.asset_id, account=account, balance=ledger.balance_of(account))


@router.get("/events")
def events(svc: PoolService = Depends(get_service)) -> EventsResponse:
    """All events emitted by the pool, oldest first."""
    return EventsResponse(events=list(svc.pool.events))
