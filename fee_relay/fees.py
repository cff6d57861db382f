"""
Fee arithmetic (integer-only).

The fee for a payout is the larger of a basis-point percentage of the payout
(floor division) and a fixed minimum. Small payouts whose percentage floors to
less than the minimum pay the minimum.
"""

from __future__ import annotations

from dataclasses import dataclass

BPS_DENOM = 10_000
MAX_FEE_RATE_BPS = BPS_DENOM


def _require_amount(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")


@dataclass(frozen=True)
class FeeQuote:
    """Fee and total payment required for a payout."""

    payout_amount: int
    fee: int

    @property
    def required(self) -> int:
        return self.payout_amount + self.fee


def compute_fee(payout_amount: int, fee_rate_bps: int, minimum_fee: int) -> int:
    """
    Compute the fee for `payout_amount`.

    Returns:
        max(payout_amount * fee_rate_bps // 10000, minimum_fee)
    """
    _require_amount("payout_amount", payout_amount)
    _require_amount("fee_rate_bps", fee_rate_bps)
    _require_amount("minimum_fee", minimum_fee)

    percentage_fee = payout_amount * fee_rate_bps // BPS_DENOM
    return max(percentage_fee, minimum_fee)


def quote_fee(payout_amount: int, fee_rate_bps: int, minimum_fee: int) -> FeeQuote:
    """Build a FeeQuote for `payout_amount`."""
    return FeeQuote(
        payout_amount=payout_amount,
        fee=compute_fee(payout_amount, fee_rate_bps, minimum_fee),
    )
