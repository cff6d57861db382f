"""
Fee Relay

Relays a native-value payment to a recipient, collects a fee (the greater of
a basis-point percentage and a fixed minimum) for a fixed fee recipient, and
refunds any excess to the payer, all in one atomic settlement.

Usage:
    # Quote the fee for a payout
    fee-relay quote 1ether

    # Settle a relay on the local ledger
    fee-relay relay --payer 0x... --to 0x... --amount 1ether

    # Submit a relay to the deployed contract
    fee-relay submit --to 0x... --amount 1ether
"""

__version__ = "0.1.0"

from .config import FeeConfig, Settings
from .engine import Settlement, SettlementEngine
from .errors import (
    FeeRelayError,
    InsufficientBalance,
    InsufficientPayment,
    InvalidConfiguration,
    TransferFailed,
)
from .fees import FeeQuote, compute_fee
from .ledger import InMemoryLedger, Ledger, LedgerEvent
from .db import SqlLedger

__all__ = [
    "__version__",
    "FeeConfig",
    "Settings",
    "Settlement",
    "SettlementEngine",
    "FeeRelayError",
    "InsufficientBalance",
    "InsufficientPayment",
    "InvalidConfiguration",
    "TransferFailed",
    "FeeQuote",
    "compute_fee",
    "InMemoryLedger",
    "Ledger",
    "LedgerEvent",
    "SqlLedger",
]
