"""FastAPI application exposing a single constant-product pool.

The service runs against in-memory asset ledgers and is intended for
development and integration testing, not for custody of real funds.
"""

import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cpamm import __version__
from cpamm.api.endpoints import router
from cpamm.errors import AMMError, AssetTransferFailed, InvariantViolation, ReentrantCall
from cpamm.models import ErrorResponse

logger = structlog.get_logger()

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("CPAMM_HOST", "127.0.0.1")
PORT = int(os.environ.get("CPAMM_PORT", "8000"))
DEBUG = os.environ.get("CPAMM_DEBUG", "false").lower() in ("true", "1", "yes")

# Maximum request body size (64 KB); every request body is a few small fields
MAX_REQUEST_SIZE = 64 * 1024

# HTTP status per error class; anything else derived from AMMError is a 400
ERROR_STATUS: dict[type[AMMError], int] = {
    ReentrantCall: 409,
    AssetTransferFailed: 502,
    InvariantViolation: 500,
}

app = FastAPI(
    title="cpamm",
    description="Two-asset constant-product AMM pool",
    version=__version__,
)


@app.middleware("http")
async def limit_request_size(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Reject requests with body larger than MAX_REQUEST_SIZE."""
    content_length = request.headers.get("content-length")
    if content_length and int(content_length) > MAX_REQUEST_SIZE:
        return JSONResponse(status_code=413, content={"detail": "Request too large"})
    return await call_next(request)


@app.exception_handler(AMMError)
async def amm_error_handler(request: Request, exc: AMMError) -> JSONResponse:
    """Map rejected pool operations to JSON error bodies."""
    status = ERROR_STATUS.get(type(exc), 400)
    log = logger.error if status >= 500 else logger.info
    log("request_rejected", path=request.url.path, error=exc.code, detail=str(exc), status=status)
    body = ErrorResponse(error=exc.code, detail=str(exc))
    return JSONResponse(status_code=status, content=body.model_dump())


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


def run() -> None:
    """Run the pool API server.

    Configuration via environment variables:
    - CPAMM_HOST: Host to bind to (default: 127.0.0.1)
    - CPAMM_PORT: Port to bind to (default: 8000)
    - CPAMM_DEBUG: Enable debug/reload mode (default: false)
    - CPAMM_ASSET_A / CPAMM_ASSET_B: Asset identities (default: TKA / TKB)
    - CPAMM_FEE_NUMERATOR / CPAMM_FEE_DENOMINATOR / CPAMM_PRICE_SCALE
    """
    uvicorn.run(
        "cpamm.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
