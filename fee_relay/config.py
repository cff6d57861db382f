"""
Configuration for Fee Relay.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .address import ZERO_ADDRESS, normalize_address
from .errors import InvalidConfiguration
from .fees import MAX_FEE_RATE_BPS

DEFAULT_ENGINE_ADDRESS = "0x000000000000000000000000000000000000fee5"


class Settings(BaseSettings):
    """
    Environment-based settings.

    All settings can be overridden via environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Fee configuration (immutable once an engine is built from it)
    fee_rate_bps: int = Field(default=100, description="Fee rate in basis points (100 = 1%)")
    minimum_fee_wei: int = Field(default=10**15, description="Minimum fee in wei (0.001 ether)")
    fee_recipient: str = Field(default="", description="Account receiving every fee")

    # Local ledger
    database_url: str = Field(
        default="sqlite:///./fee_relay.db",
        description="SQLAlchemy URL of the local ledger (SQLite or PostgreSQL)",
    )
    engine_address: str = Field(
        default=DEFAULT_ENGINE_ADDRESS,
        description="Ledger account holding value attached to relays",
    )

    # EVM
    rpc_url: str = Field(default="http://localhost:8545", description="EVM RPC URL")
    chain_id: int = Field(default=31337, description="EVM chain ID")
    private_key: Optional[str] = Field(default=None, description="Key used to send relay transactions")
    fee_relay_contract: Optional[str] = Field(default=None, description="Deployed FeeRelay contract address")

    # API Server
    host: str = Field(default="127.0.0.1", description="API host", alias="HOST")
    # Hosting platforms inject PORT
    port: int = Field(default=8000, description="API port", validation_alias="PORT")
    debug: bool = Field(default=False, description="Enable debug mode")
    api_token: Optional[str] = Field(
        default=None,
        description="API token for state-changing endpoints (X-API-Key header)",
    )
    allowed_origins: list[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="CORS allowed origins",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


@dataclass(frozen=True)
class FeeConfig:
    """
    Immutable fee configuration of a settlement engine.

    Construction fails with InvalidConfiguration if the fee recipient is
    the zero address or the rate exceeds 100%.
    """

    fee_rate_bps: int
    minimum_fee: int
    fee_recipient: str

    def __post_init__(self) -> None:
        for name, value in (
            ("fee_rate_bps", self.fee_rate_bps),
            ("minimum_fee", self.minimum_fee),
        ):
            if not isinstance(value, int) or isinstance(value, bool):
                raise InvalidConfiguration(f"{name} must be an int")
            if value < 0:
                raise InvalidConfiguration(f"{name} must be non-negative: {value}")

        if self.fee_rate_bps > MAX_FEE_RATE_BPS:
            raise InvalidConfiguration(
                f"fee_rate_bps must be at most {MAX_FEE_RATE_BPS}: {self.fee_rate_bps}"
            )

        try:
            recipient = normalize_address(self.fee_recipient)
        except ValueError as e:
            raise InvalidConfiguration(str(e)) from e
        if recipient == ZERO_ADDRESS:
            raise InvalidConfiguration("fee_recipient must not be the zero address")

        object.__setattr__(self, "fee_recipient", recipient)

    @classmethod
    def from_settings(cls, settings: Settings) -> "FeeConfig":
        """Build the fee configuration from environment settings."""
        return cls(
            fee_rate_bps=settings.fee_rate_bps,
            minimum_fee=settings.minimum_fee_wei,
            fee_recipient=settings.fee_recipient,
        )
