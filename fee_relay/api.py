"""
Fee Relay API - HTTP surface over the settlement engine.

Provides REST endpoints for:
- Fee quotes (GET /fee/quote)
- Relaying payments on the local ledger (POST /relay)
- Deposits and account funding (POST /deposit, POST /fund)
- Balances and recorded events (GET /balances/{address}, GET /events)
- Health checks (GET /health)
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .address import normalize_address
from .auth import verify_api_token
from .config import FeeConfig, get_settings
from .db import SqlLedger
from .engine import SettlementEngine
from .errors import (
    FeeRelayError,
    InsufficientBalance,
    InsufficientPayment,
    InvalidConfiguration,
    TransferFailed,
)
from .models import (
    BalanceResponse,
    DepositRequest,
    ErrorResponse,
    EventResponse,
    FeeConfigResponse,
    FundRequest,
    HealthResponse,
    QuoteResponse,
    RelayRequest,
    RelayResponse,
)

# Configure logging
structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
)

logger = structlog.get_logger()


# Global engine (initialized at startup)
_engine: Optional[SettlementEngine] = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    global _engine

    settings = get_settings()

    try:
        config = FeeConfig.from_settings(settings)
    except InvalidConfiguration as e:
        logger.error("fee_config_invalid", error=str(e))
        config = None

    if config is not None:
        _engine = SettlementEngine(
            config,
            SqlLedger(settings.database_url),
            address=settings.engine_address,
        )

    logger.info(
        "API started",
        version=__version__,
        host=settings.host,
        port=settings.port,
        engine_ready=_engine is not None,
    )

    yield

    if _engine is not None and isinstance(_engine.ledger, SqlLedger):
        _engine.ledger.close()
    _engine = None

    logger.info("API stopped")


# Create FastAPI app
app = FastAPI(
    title="Fee Relay API",
    description="Relay payments with a percentage-or-minimum fee",
    version=__version__,
    lifespan=lifespan,
)


# Add CORS middleware
_settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_engine() -> SettlementEngine:
    """Dependency returning the running settlement engine."""
    if _engine is None:
        raise HTTPException(status_code=503, detail="Settlement engine not configured")
    return _engine


def _parse_address(address: str) -> str:
    try:
        return normalize_address(address)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


# ============================================================================
# Error handling
# ============================================================================


@app.exception_handler(FeeRelayError)
async def fee_relay_error_handler(request: Request, exc: FeeRelayError) -> JSONResponse:
    """Render settlement failures as structured JSON."""
    body = ErrorResponse(error=type(exc).__name__, message=str(exc))
    status_code = 400

    if isinstance(exc, InsufficientPayment):
        body.required = exc.required
        body.supplied = exc.supplied
    elif isinstance(exc, InsufficientBalance):
        body.account = exc.account
        body.amount = exc.amount
    elif isinstance(exc, TransferFailed):
        body.recipient = exc.recipient
        body.amount = exc.amount
        status_code = 409

    logger.info("request_failed", path=request.url.path, error=body.error)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


# ============================================================================
# Health Check
# ============================================================================


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check API health."""
    return HealthResponse(
        status="ok" if _engine is not None else "degraded",
        version=__version__,
        ledger=_engine.ledger.backend if _engine is not None else "none",
    )


# ============================================================================
# Configuration / Quote
# ============================================================================


@app.get("/config", response_model=FeeConfigResponse)
async def fee_config(engine: SettlementEngine = Depends(get_engine)) -> FeeConfigResponse:
    """Return the engine's immutable fee configuration."""
    return FeeConfigResponse(
        fee_rate_bps=engine.fee_rate_bps,
        minimum_fee=engine.minimum_fee,
        fee_recipient=engine.fee_recipient,
        engine_address=engine.address,
    )


@app.get("/fee/quote", response_model=QuoteResponse)
async def fee_quote(
    amount: int = Query(..., ge=0, description="Payout amount in wei"),
    engine: SettlementEngine = Depends(get_engine),
) -> QuoteResponse:
    """Quote the fee and required payment for a payout."""
    quote = engine.quote(amount)
    return QuoteResponse(payout_amount=amount, fee=quote.fee, required=quote.required)


# ============================================================================
# Relay
# ============================================================================


@app.post(
    "/relay",
    response_model=RelayResponse,
    dependencies=[Depends(verify_api_token)],
)
def relay(
    request: RelayRequest,
    engine: SettlementEngine = Depends(get_engine),
) -> RelayResponse:
    """
    Settle a relay on the local ledger.

    Fails with 400 if the payment does not cover payout + fee (or the payer
    cannot fund it), 409 if a transfer is rejected.
    """
    settlement = engine.relay(
        payer=_parse_address(request.payer),
        payout_recipient=_parse_address(request.payout_recipient),
        payout_amount=request.payout_amount,
        supplied_payment=request.supplied_payment,
    )
    return RelayResponse(
        payout_recipient=settlement.payout_recipient,
        payout_amount=settlement.payout_amount,
        fee=settlement.fee,
        fee_recipient=settlement.fee_recipient,
        refunded=settlement.refunded,
    )


@app.post(
    "/deposit",
    response_model=BalanceResponse,
    dependencies=[Depends(verify_api_token)],
)
def deposit(
    request: DepositRequest,
    engine: SettlementEngine = Depends(get_engine),
) -> BalanceResponse:
    """Hold a payment in the engine account without settling anything."""
    engine.receive(_parse_address(request.payer), request.amount)
    return BalanceResponse(address=engine.address, balance=engine.balance)


# ============================================================================
# Ledger
# ============================================================================


@app.post(
    "/fund",
    response_model=BalanceResponse,
    dependencies=[Depends(verify_api_token)],
)
def fund(
    request: FundRequest,
    engine: SettlementEngine = Depends(get_engine),
) -> BalanceResponse:
    """Credit an account on the local ledger."""
    address = _parse_address(request.address)
    engine.ledger.mint(address, request.amount)
    return BalanceResponse(address=address, balance=engine.ledger.balance_of(address))


@app.get("/balances/{address}", response_model=BalanceResponse)
def balance(address: str, engine: SettlementEngine = Depends(get_engine)) -> BalanceResponse:
    """Balance of a ledger account."""
    address = _parse_address(address)
    return BalanceResponse(address=address, balance=engine.ledger.balance_of(address))


@app.get("/events", response_model=list[EventResponse])
def events(engine: SettlementEngine = Depends(get_engine)) -> list[EventResponse]:
    """Events recorded by successful relays, oldest first."""
    return [EventResponse(name=e.name, args=e.args) for e in engine.ledger.events()]


def run() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "fee_relay.api:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
