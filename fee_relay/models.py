"""
Pydantic models for API requests and responses.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Health / Config
# ============================================================================

class HealthResponse(BaseModel):
    """API health status."""

    status: str = Field(..., description="Overall status")
    version: str = Field(..., description="API version")
    ledger: str = Field(..., description="Ledger backend (sql/memory)")


class FeeConfigResponse(BaseModel):
    """Immutable fee configuration of the engine."""

    fee_rate_bps: int = Field(..., description="Fee rate in basis points")
    minimum_fee: int = Field(..., description="Minimum fee in wei")
    fee_recipient: str = Field(..., description="Fee recipient address")
    engine_address: str = Field(..., description="Ledger account of the engine")


# ============================================================================
# Quote
# ============================================================================

class QuoteResponse(BaseModel):
    """Fee quote for a payout amount."""

    payout_amount: int = Field(..., description="Requested payout in wei")
    fee: int = Field(..., description="Fee in wei")
    required: int = Field(..., description="Minimum payment to attach (payout + fee)")


# ============================================================================
# Relay
# ============================================================================

class RelayRequest(BaseModel):
    """Request to settle a relay on the local ledger."""

    payer: str = Field(..., description="Paying account (0x...)")
    payout_recipient: str = Field(..., description="Recipient of the payout (0x...)")
    payout_amount: int = Field(..., ge=0, description="Payout in wei")
    supplied_payment: int = Field(..., ge=0, description="Value attached in wei")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "payer": "0x1234567890abcdef1234567890abcdef12345678",
                    "payout_recipient": "0xabcdef1234567890abcdef1234567890abcdef12",
                    "payout_amount": 1000000000000000000,
                    "supplied_payment": 1010000000000000000,
                }
            ]
        }
    }


class RelayResponse(BaseModel):
    """Outcome of a successful relay."""

    payout_recipient: str
    payout_amount: int
    fee: int
    fee_recipient: str
    refunded: int = Field(..., description="Excess returned to the payer")


class ErrorResponse(BaseModel):
    """Structured settlement failure."""

    error: str = Field(..., description="Error type name")
    message: str
    required: Optional[int] = None
    supplied: Optional[int] = None
    recipient: Optional[str] = None
    account: Optional[str] = None
    amount: Optional[int] = None


# ============================================================================
# Ledger
# ============================================================================

class FundRequest(BaseModel):
    """Request to credit (fund) a ledger account."""

    address: str = Field(..., description="Account to credit (0x...)")
    amount: int = Field(..., gt=0, description="Amount in wei")


class DepositRequest(BaseModel):
    """Passive deposit into the engine account."""

    payer: str = Field(..., description="Paying account (0x...)")
    amount: int = Field(..., ge=0, description="Amount in wei")


class BalanceResponse(BaseModel):
    """Balance of one account."""

    address: str
    balance: int


class EventResponse(BaseModel):
    """A recorded ledger event."""

    name: str
    args: dict[str, Any]
