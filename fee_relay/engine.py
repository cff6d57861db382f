"""
Settlement engine - forwards a payout, collects a fee, refunds the excess.
"""

from dataclasses import dataclass

import structlog

from .address import normalize_address
from .config import DEFAULT_ENGINE_ADDRESS, FeeConfig
from .errors import InsufficientPayment, TransferFailed
from .fees import FeeQuote, compute_fee
from .ledger import Ledger

logger = structlog.get_logger()

SETTLED_EVENT = "Settled"
FEE_COLLECTED_EVENT = "FeeCollected"


@dataclass(frozen=True)
class Settlement:
    """Outcome of a successful relay."""

    payer: str
    payout_recipient: str
    payout_amount: int
    fee: int
    fee_recipient: str
    refunded: int

    @property
    def required(self) -> int:
        return self.payout_amount + self.fee


class SettlementEngine:
    """
    Relays a payment to a recipient and charges a fee.

    Each relay:
    1. Computes fee = max(payout * rate // 10000, minimum_fee)
    2. Rejects payments below payout + fee
    3. Pays the recipient, then the fee recipient
    4. Emits Settled and FeeCollected
    5. Refunds any excess to the payer

    All of it runs in one ledger atomic scope: any failure leaves no trace.
    The engine keeps no mutable state of its own, so a recipient that calls
    back into `relay` while being paid settles independently.
    """

    def __init__(
        self,
        config: FeeConfig,
        ledger: Ledger,
        address: str = DEFAULT_ENGINE_ADDRESS,
    ):
        self.config = config
        self.ledger = ledger
        self.address = normalize_address(address)

        logger.info(
            "settlement_engine_initialized",
            address=self.address,
            fee_rate_bps=config.fee_rate_bps,
            minimum_fee=config.minimum_fee,
            fee_recipient=config.fee_recipient,
            ledger=ledger.backend,
        )

    @property
    def fee_rate_bps(self) -> int:
        return self.config.fee_rate_bps

    @property
    def minimum_fee(self) -> int:
        return self.config.minimum_fee

    @property
    def fee_recipient(self) -> str:
        return self.config.fee_recipient

    @property
    def balance(self) -> int:
        """Value held by the engine account (deposits only, between relays)."""
        return self.ledger.balance_of(self.address)

    def compute_fee(self, payout_amount: int) -> int:
        """Fee charged for relaying `payout_amount`."""
        return compute_fee(payout_amount, self.config.fee_rate_bps, self.config.minimum_fee)

    def quote(self, payout_amount: int) -> FeeQuote:
        return FeeQuote(payout_amount=payout_amount, fee=self.compute_fee(payout_amount))

    def receive(self, payer: str, amount: int) -> None:
        """Hold an incoming payment with no settlement attached."""
        self.ledger.move(payer, self.address, amount)
        logger.info("deposit_received", payer=normalize_address(payer), amount=amount)

    def relay(
        self,
        payer: str,
        payout_recipient: str,
        payout_amount: int,
        supplied_payment: int,
    ) -> Settlement:
        """
        Settle one relay request.

        Args:
            payer: Account attaching the payment
            payout_recipient: Account receiving `payout_amount` (not validated)
            payout_amount: Amount forwarded to the recipient
            supplied_payment: Value attached to the call

        Returns:
            The settlement

        Raises:
            InsufficientPayment: If supplied_payment < payout_amount + fee
            InsufficientBalance: If the payer cannot fund supplied_payment
            TransferFailed: If the payout, fee or refund transfer is rejected
        """
        payer = normalize_address(payer)
        payout_recipient = normalize_address(payout_recipient)

        fee = self.compute_fee(payout_amount)
        required = payout_amount + fee

        if not isinstance(supplied_payment, int) or isinstance(supplied_payment, bool):
            raise TypeError("supplied_payment must be an int")
        if supplied_payment < 0:
            raise ValueError(f"supplied_payment must be non-negative: {supplied_payment}")

        if supplied_payment < required:
            logger.warning(
                "relay_rejected",
                reason="insufficient_payment",
                payer=payer,
                required=required,
                supplied=supplied_payment,
            )
            raise InsufficientPayment(required, supplied_payment)

        fee_recipient = self.config.fee_recipient
        excess = supplied_payment - required

        try:
            with self.ledger.atomic():
                # Attached value lands in the engine account first
                self.ledger.move(payer, self.address, supplied_payment)

                if not self.ledger.transfer(self.address, payout_recipient, payout_amount):
                    raise TransferFailed(payout_recipient, payout_amount)

                if not self.ledger.transfer(self.address, fee_recipient, fee):
                    raise TransferFailed(fee_recipient, fee)

                self.ledger.emit(
                    SETTLED_EVENT,
                    payout_recipient=payout_recipient,
                    payout_amount=payout_amount,
                    fee=fee,
                )
                self.ledger.emit(
                    FEE_COLLECTED_EVENT,
                    fee_recipient=fee_recipient,
                    fee=fee,
                )

                if excess > 0 and not self.ledger.transfer(self.address, payer, excess):
                    raise TransferFailed(payer, excess)
        except TransferFailed as e:
            logger.warning(
                "relay_rejected",
                reason="transfer_failed",
                payer=payer,
                recipient=e.recipient,
                amount=e.amount,
            )
            raise

        logger.info(
            "relay_settled",
            payer=payer,
            payout_recipient=payout_recipient,
            payout_amount=payout_amount,
            fee=fee,
            refunded=excess,
        )

        return Settlement(
            payer=payer,
            payout_recipient=payout_recipient,
            payout_amount=payout_amount,
            fee=fee,
            fee_recipient=fee_recipient,
            refunded=excess,
        )
