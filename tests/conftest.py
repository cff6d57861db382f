"""
Shared fixtures: accounts, fee configuration and ledgers.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from fee_relay.config import FeeConfig
from fee_relay.db import SqlLedger
from fee_relay.engine import SettlementEngine
from fee_relay.ledger import InMemoryLedger, Ledger

ETHER = 10**18
MILLI_ETHER = 10**15

PAYER = "0x" + "11" * 20
RECIPIENT = "0x" + "22" * 20
FEE_RECIPIENT = "0x" + "33" * 20
OTHER = "0x" + "44" * 20


@pytest.fixture
def fee_config() -> FeeConfig:
    """1% fee with a 0.001 ether minimum."""
    return FeeConfig(fee_rate_bps=100, minimum_fee=MILLI_ETHER, fee_recipient=FEE_RECIPIENT)


@pytest.fixture(params=["memory", "sql"])
def ledger(request: pytest.FixtureRequest, tmp_path: Path) -> Ledger:
    """Every settlement property must hold on both ledger backends."""
    if request.param == "memory":
        ledger: Ledger = InMemoryLedger()
    else:
        ledger = SqlLedger(f"sqlite:///{tmp_path / 'ledger.db'}")
    ledger.mint(PAYER, 10 * ETHER)
    yield ledger
    if isinstance(ledger, SqlLedger):
        ledger.close()


@pytest.fixture
def engine(fee_config: FeeConfig, ledger: Ledger) -> SettlementEngine:
    return SettlementEngine(fee_config, ledger)
