"""
CLI entry point for Fee Relay.
"""

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

import typer
import structlog
from web3 import Web3

from .config import FeeConfig, Settings, get_settings
from .errors import FeeRelayError
from .fees import quote_fee

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ]
)

app = typer.Typer(
    name="fee-relay",
    help="Relay payments with a percentage-or-minimum fee",
    add_completion=False,
)

UNITS = ("ether", "gwei", "wei")


def parse_amount(value: str) -> int:
    """
    Parse an amount in wei.

    Accepts plain integers ("1000") or a unit suffix ("0.01ether", "5gwei").
    """
    text = value.strip().lower().replace("_", "")
    for unit in UNITS:
        if text.endswith(unit):
            number = text[: -len(unit)].strip()
            try:
                scaled = Decimal(number) * Web3.to_wei(1, unit)
            except InvalidOperation as e:
                raise typer.BadParameter(f"Invalid amount: {value}") from e
            if not scaled.is_finite() or scaled != scaled.to_integral_value():
                raise typer.BadParameter(f"Amount is not a whole number of wei: {value}")
            if scaled < 0:
                raise typer.BadParameter(f"Amount must be non-negative: {value}")
            return int(scaled)
    try:
        amount = int(text)
    except ValueError as e:
        raise typer.BadParameter(f"Invalid amount: {value}") from e
    if amount < 0:
        raise typer.BadParameter(f"Amount must be non-negative: {value}")
    return amount


def format_amount(amount: int) -> str:
    return f"{amount} wei ({Web3.from_wei(amount, 'ether')} ETH)"


def _load_settings(config_path: Optional[Path]) -> Settings:
    if config_path:
        return Settings(_env_file=config_path)
    return get_settings()


def _load_fee_config(settings: Settings) -> FeeConfig:
    try:
        return FeeConfig.from_settings(settings)
    except FeeRelayError as e:
        typer.echo(f"Invalid fee configuration: {e}", err=True)
        raise typer.Exit(code=2)


def _build_engine(settings: Settings):
    from .db import SqlLedger
    from .engine import SettlementEngine

    return SettlementEngine(
        _load_fee_config(settings),
        SqlLedger(settings.database_url),
        address=settings.engine_address,
    )


ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to .env configuration file",
)


@app.command()
def quote(
    amount: str = typer.Argument(..., help="Payout amount (wei, or e.g. 0.5ether)"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """
    Show the fee and required payment for a payout.
    """
    config = _load_fee_config(_load_settings(config_path))
    payout = parse_amount(amount)
    result = quote_fee(payout, config.fee_rate_bps, config.minimum_fee)

    typer.echo(f"Payout:   {format_amount(result.payout_amount)}")
    typer.echo(f"Fee:      {format_amount(result.fee)}")
    typer.echo(f"Required: {format_amount(result.required)}")


@app.command()
def fund(
    address: str = typer.Argument(..., help="Account to credit"),
    amount: str = typer.Argument(..., help="Amount (wei, or e.g. 1ether)"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """
    Credit an account on the local ledger.
    """
    engine = _build_engine(_load_settings(config_path))
    engine.ledger.mint(address, parse_amount(amount))
    typer.echo(f"{address}: {format_amount(engine.ledger.balance_of(address))}")


@app.command()
def relay(
    payer: str = typer.Option(..., "--payer", help="Paying account"),
    to: str = typer.Option(..., "--to", help="Payout recipient"),
    amount: str = typer.Option(..., "--amount", help="Payout amount"),
    value: Optional[str] = typer.Option(
        None,
        "--value",
        help="Attached payment (defaults to payout + fee)",
    ),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """
    Settle a relay on the local ledger.
    """
    engine = _build_engine(_load_settings(config_path))
    payout = parse_amount(amount)
    supplied = parse_amount(value) if value is not None else engine.quote(payout).required

    try:
        settlement = engine.relay(payer, to, payout, supplied)
    except (FeeRelayError, ValueError) as e:
        typer.echo(f"✗ Relay failed: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"✓ Settled {format_amount(settlement.payout_amount)} to {settlement.payout_recipient}")
    typer.echo(f"  Fee: {format_amount(settlement.fee)} -> {settlement.fee_recipient}")
    if settlement.refunded:
        typer.echo(f"  Refunded: {format_amount(settlement.refunded)}")


@app.command()
def balance(
    address: str = typer.Argument(..., help="Account to inspect"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """
    Show an account balance on the local ledger.
    """
    engine = _build_engine(_load_settings(config_path))
    typer.echo(f"{address}: {format_amount(engine.ledger.balance_of(address))}")


@app.command()
def events(config_path: Optional[Path] = ConfigOption) -> None:
    """
    List events recorded on the local ledger.
    """
    engine = _build_engine(_load_settings(config_path))
    recorded = engine.ledger.events()

    if not recorded:
        typer.echo("No events recorded.")
        return

    for event in recorded:
        args = ", ".join(f"{k}={v}" for k, v in event.args.items())
        typer.echo(f"{event.name}({args})")


@app.command()
def submit(
    to: str = typer.Option(..., "--to", help="Payout recipient"),
    amount: str = typer.Option(..., "--amount", help="Payout amount"),
    value: Optional[str] = typer.Option(
        None,
        "--value",
        help="Attached payment (defaults to on-chain payout + fee)",
    ),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """
    Submit a relay transaction to the deployed contract.
    """
    from .evm import EvmClient

    settings = _load_settings(config_path)
    if not settings.fee_relay_contract or not settings.private_key:
        typer.echo("FEE_RELAY_CONTRACT and PRIVATE_KEY must be configured.", err=True)
        raise typer.Exit(code=2)

    client = EvmClient(
        rpc_url=settings.rpc_url,
        contract_address=settings.fee_relay_contract,
        private_key=settings.private_key,
    )
    result = client.relay(
        to,
        parse_amount(amount),
        value=parse_amount(value) if value is not None else None,
    )

    if result.success:
        typer.echo(f"✓ Submitted: {result.tx_hash}")
        typer.echo(f"  Fee: {format_amount(result.fee or 0)}")
    else:
        typer.echo(f"✗ Failed: {result.error}", err=True)
        raise typer.Exit(code=1)


@app.command("onchain-config")
def onchain_config(config_path: Optional[Path] = ConfigOption) -> None:
    """
    Show the fee configuration of the deployed contract.
    """
    from .evm import EvmClient

    settings = _load_settings(config_path)
    if not settings.fee_relay_contract:
        typer.echo("FEE_RELAY_CONTRACT must be configured.", err=True)
        raise typer.Exit(code=2)

    client = EvmClient(rpc_url=settings.rpc_url, contract_address=settings.fee_relay_contract)
    config = client.get_fee_config()

    typer.echo(f"Fee rate:      {config.fee_rate_bps} bps")
    typer.echo(f"Minimum fee:   {format_amount(config.minimum_fee)}")
    typer.echo(f"Fee recipient: {config.fee_recipient}")


@app.command()
def serve() -> None:
    """Run the HTTP API."""
    from .api import run

    run()


@app.command()
def version() -> None:
    """Show the fee relay version."""
    from fee_relay import __version__
    typer.echo(f"fee-relay v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
