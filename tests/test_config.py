"""
Tests for fee configuration and environment settings.
"""

from pathlib import Path

import pytest

from fee_relay.address import ZERO_ADDRESS
from fee_relay.config import FeeConfig, Settings
from fee_relay.errors import InvalidConfiguration

from .conftest import FEE_RECIPIENT, MILLI_ETHER


class TestFeeConfig:
    """Construction rules for the immutable fee configuration."""

    def test_valid_config(self) -> None:
        config = FeeConfig(fee_rate_bps=100, minimum_fee=MILLI_ETHER, fee_recipient=FEE_RECIPIENT)
        assert config.fee_rate_bps == 100
        assert config.minimum_fee == MILLI_ETHER

    def test_recipient_is_checksummed(self) -> None:
        config = FeeConfig(fee_rate_bps=0, minimum_fee=0, fee_recipient=FEE_RECIPIENT)
        assert config.fee_recipient == "0x3333333333333333333333333333333333333333"
        lower = "0xabcdef0123456789abcdef0123456789abcdef01"
        config = FeeConfig(fee_rate_bps=0, minimum_fee=0, fee_recipient=lower)
        assert config.fee_recipient.lower() == lower
        assert config.fee_recipient != lower

    def test_zero_recipient_rejected(self) -> None:
        with pytest.raises(InvalidConfiguration):
            FeeConfig(fee_rate_bps=100, minimum_fee=0, fee_recipient=ZERO_ADDRESS)

    def test_malformed_recipient_rejected(self) -> None:
        with pytest.raises(InvalidConfiguration):
            FeeConfig(fee_rate_bps=100, minimum_fee=0, fee_recipient="0x1234")
        with pytest.raises(InvalidConfiguration):
            FeeConfig(fee_rate_bps=100, minimum_fee=0, fee_recipient="")

    def test_rate_above_full_rejected(self) -> None:
        with pytest.raises(InvalidConfiguration):
            FeeConfig(fee_rate_bps=10_001, minimum_fee=0, fee_recipient=FEE_RECIPIENT)

    def test_full_rate_accepted(self) -> None:
        config = FeeConfig(fee_rate_bps=10_000, minimum_fee=0, fee_recipient=FEE_RECIPIENT)
        assert config.fee_rate_bps == 10_000

    def test_negative_minimum_rejected(self) -> None:
        with pytest.raises(InvalidConfiguration):
            FeeConfig(fee_rate_bps=100, minimum_fee=-1, fee_recipient=FEE_RECIPIENT)

    def test_config_is_immutable(self) -> None:
        config = FeeConfig(fee_rate_bps=100, minimum_fee=0, fee_recipient=FEE_RECIPIENT)
        with pytest.raises(AttributeError):
            config.fee_rate_bps = 200  # type: ignore[misc]


class TestSettings:
    """Tests for environment-based settings."""

    def test_env_file(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text(
            "FEE_RATE_BPS=250\n"
            "MINIMUM_FEE_WEI=42\n"
            f"FEE_RECIPIENT={FEE_RECIPIENT}\n"
            "DATABASE_URL=sqlite:///./custom.db\n"
        )

        settings = Settings(_env_file=env_file)

        assert settings.fee_rate_bps == 250
        assert settings.minimum_fee_wei == 42
        assert settings.database_url == "sqlite:///./custom.db"

        config = FeeConfig.from_settings(settings)
        assert config.fee_rate_bps == 250
        assert config.minimum_fee == 42

    def test_environment_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FEE_RATE_BPS", "30")
        monkeypatch.setenv("FEE_RECIPIENT", FEE_RECIPIENT)

        settings = Settings(_env_file=None)

        assert settings.fee_rate_bps == 30
        assert FeeConfig.from_settings(settings).fee_rate_bps == 30

    def test_missing_recipient_is_invalid(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("FEE_RECIPIENT", raising=False)

        settings = Settings(_env_file=None)

        with pytest.raises(InvalidConfiguration):
            FeeConfig.from_settings(settings)
