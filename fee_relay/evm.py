"""
EVM interaction with a deployed FeeRelay contract.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from eth_abi import decode
from eth_account import Account
from web3 import Web3
from web3.types import TxReceipt
import structlog

from .config import FeeConfig
from .errors import FeeRelayError, InsufficientPayment, InvalidConfiguration, TransferFailed

logger = structlog.get_logger()


# FeeRelay ABI (relay + views + events + custom errors)
FEE_RELAY_ABI = [
    {
        "inputs": [
            {"name": "payoutRecipient", "type": "address"},
            {"name": "payoutAmount", "type": "uint256"},
        ],
        "name": "relay",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [{"name": "payoutAmount", "type": "uint256"}],
        "name": "computeFee",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "feeRateBasisPoints",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "minimumFee",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "feeRecipient",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "payoutRecipient", "type": "address"},
            {"indexed": False, "name": "payoutAmount", "type": "uint256"},
            {"indexed": False, "name": "fee", "type": "uint256"},
        ],
        "name": "Settled",
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "feeRecipient", "type": "address"},
            {"indexed": False, "name": "fee", "type": "uint256"},
        ],
        "name": "FeeCollected",
        "type": "event",
    },
    {
        "inputs": [
            {"name": "required", "type": "uint256"},
            {"name": "supplied", "type": "uint256"},
        ],
        "name": "InsufficientPayment",
        "type": "error",
    },
    {
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "name": "TransferFailed",
        "type": "error",
    },
    {"inputs": [], "name": "InvalidConfiguration", "type": "error"},
]


def error_selector(signature: str) -> bytes:
    """4-byte selector of a custom error signature."""
    return bytes(Web3.keccak(text=signature)[:4])


INSUFFICIENT_PAYMENT_SELECTOR = error_selector("InsufficientPayment(uint256,uint256)")
TRANSFER_FAILED_SELECTOR = error_selector("TransferFailed(address,uint256)")
INVALID_CONFIGURATION_SELECTOR = error_selector("InvalidConfiguration()")


def decode_revert(data: Union[str, bytes]) -> Optional[FeeRelayError]:
    """
    Map FeeRelay custom-error revert data onto the local error types.

    Returns None for revert data that is not a FeeRelay error.
    """
    if isinstance(data, str):
        data = bytes.fromhex(data.replace("0x", ""))

    selector, payload = data[:4], data[4:]

    if selector == INSUFFICIENT_PAYMENT_SELECTOR:
        required, supplied = decode(["uint256", "uint256"], payload)
        return InsufficientPayment(required, supplied)
    if selector == TRANSFER_FAILED_SELECTOR:
        to, amount = decode(["address", "uint256"], payload)
        return TransferFailed(Web3.to_checksum_address(to), amount)
    if selector == INVALID_CONFIGURATION_SELECTOR:
        return InvalidConfiguration("contract rejected its configuration")
    return None


@dataclass
class RelayResult:
    """Result of submitting a relay transaction."""

    success: bool
    tx_hash: Optional[str] = None
    fee: Optional[int] = None
    gas_used: Optional[int] = None
    error: Optional[str] = None
    events: list[dict[str, Any]] = field(default_factory=list)


class EvmClient:
    """Client for a deployed FeeRelay contract."""

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        private_key: Optional[str] = None,
        gas_limit: int = 200_000,
    ):
        self.w3 = Web3(Web3.HTTPProvider(rpc_url))
        self.account = Account.from_key(private_key) if private_key else None
        self.gas_limit = gas_limit
        self.contract = self.w3.eth.contract(
            address=Web3.to_checksum_address(contract_address),
            abi=FEE_RELAY_ABI,
        )

        logger.info(
            "evm_client_initialized",
            rpc_url=rpc_url,
            contract=contract_address,
            sender=self.account.address if self.account else None,
        )

    def compute_fee(self, payout_amount: int) -> int:
        """Fee the contract charges for `payout_amount`."""
        return self.contract.functions.computeFee(payout_amount).call()

    def get_fee_config(self) -> FeeConfig:
        """Read the contract's immutable fee configuration."""
        functions = self.contract.functions
        return FeeConfig(
            fee_rate_bps=functions.feeRateBasisPoints().call(),
            minimum_fee=functions.minimumFee().call(),
            fee_recipient=functions.feeRecipient().call(),
        )

    def relay(
        self,
        payout_recipient: str,
        payout_amount: int,
        value: Optional[int] = None,
    ) -> RelayResult:
        """
        Submit a relay transaction.

        If `value` is not given, exactly payout_amount + computeFee(payout_amount)
        is attached.
        """
        if self.account is None:
            return RelayResult(success=False, error="No private key configured")

        try:
            fee = self.compute_fee(payout_amount)
            if value is None:
                value = payout_amount + fee

            # Build transaction
            nonce = self.w3.eth.get_transaction_count(self.account.address)
            gas_price = self.w3.eth.gas_price

            tx = self.contract.functions.relay(
                Web3.to_checksum_address(payout_recipient),
                payout_amount,
            ).build_transaction(
                {
                    "from": self.account.address,
                    "value": value,
                    "nonce": nonce,
                    "gasPrice": gas_price,
                    "gas": self.gas_limit,
                }
            )

            # Sign and send
            signed_tx = self.account.sign_transaction(tx)
            tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)

            logger.info(
                "relay_tx_sent",
                tx_hash=tx_hash.hex(),
                payout_recipient=payout_recipient,
                payout_amount=payout_amount,
                value=value,
                fee=fee,
            )

            receipt: TxReceipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=120)

            if receipt["status"] != 1:
                logger.error("relay_tx_reverted", tx_hash=tx_hash.hex())
                return RelayResult(
                    success=False,
                    tx_hash=tx_hash.hex(),
                    fee=fee,
                    error="Transaction reverted",
                )

            logger.info(
                "relay_tx_confirmed",
                tx_hash=tx_hash.hex(),
                gas_used=receipt["gasUsed"],
            )
            return RelayResult(
                success=True,
                tx_hash=tx_hash.hex(),
                fee=fee,
                gas_used=receipt["gasUsed"],
                events=self._receipt_events(receipt),
            )

        except Exception as e:
            decoded = _revert_from_exception(e)
            error = str(decoded) if decoded is not None else str(e)
            logger.error("relay_submission_error", error=error)
            return RelayResult(success=False, error=error)

    def _receipt_events(self, receipt: TxReceipt) -> list[dict[str, Any]]:
        events = []
        for event in (self.contract.events.Settled(), self.contract.events.FeeCollected()):
            for log in event.process_receipt(receipt):
                events.append({"event": log["event"], **dict(log["args"])})
        return events


def _revert_from_exception(exc: Exception) -> Optional[FeeRelayError]:
    # web3 carries custom-error revert data as the exception's `data`
    data = getattr(exc, "data", None)
    if isinstance(data, (str, bytes)) and len(data) >= 4:
        try:
            return decode_revert(data)
        except Exception:
            return None
    return None
