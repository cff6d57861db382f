"""
Tests for the on-chain FeeRelay client.

Contract calls are mocked; nothing talks to an RPC node.
"""

from unittest.mock import MagicMock

from eth_abi import encode

from fee_relay.address import normalize_address
from fee_relay.errors import InsufficientPayment, InvalidConfiguration, TransferFailed
from fee_relay.evm import (
    INSUFFICIENT_PAYMENT_SELECTOR,
    INVALID_CONFIGURATION_SELECTOR,
    TRANSFER_FAILED_SELECTOR,
    EvmClient,
    decode_revert,
    error_selector,
)

from .conftest import ETHER, FEE_RECIPIENT, MILLI_ETHER, RECIPIENT

CONTRACT = "0x" + "55" * 20
SENDER = "0x" + "66" * 20


class _ContractCustomError(Exception):
    """Stand-in for web3's custom-error exception (carries `data`)."""

    def __init__(self, data: str):
        super().__init__("execution reverted")
        self.data = data


def _client() -> EvmClient:
    client = EvmClient(rpc_url="http://localhost:8545", contract_address=CONTRACT)
    client.contract = MagicMock()
    client.w3 = MagicMock()
    client.account = MagicMock(address=SENDER)
    return client


class TestDecodeRevert:
    """Tests for mapping revert data onto local errors."""

    def test_known_selectors(self) -> None:
        assert error_selector("InsufficientPayment(uint256,uint256)") == INSUFFICIENT_PAYMENT_SELECTOR
        assert len(TRANSFER_FAILED_SELECTOR) == 4
        assert len({INSUFFICIENT_PAYMENT_SELECTOR, TRANSFER_FAILED_SELECTOR, INVALID_CONFIGURATION_SELECTOR}) == 3

    def test_insufficient_payment(self) -> None:
        data = INSUFFICIENT_PAYMENT_SELECTOR + encode(["uint256", "uint256"], [1010, 1000])

        error = decode_revert("0x" + data.hex())

        assert isinstance(error, InsufficientPayment)
        assert error.required == 1010
        assert error.supplied == 1000

    def test_transfer_failed(self) -> None:
        data = TRANSFER_FAILED_SELECTOR + encode(["address", "uint256"], [RECIPIENT, ETHER])

        error = decode_revert(data)

        assert isinstance(error, TransferFailed)
        assert error.recipient == normalize_address(RECIPIENT)
        assert error.amount == ETHER

    def test_invalid_configuration(self) -> None:
        assert isinstance(decode_revert(INVALID_CONFIGURATION_SELECTOR), InvalidConfiguration)

    def test_unknown_selector(self) -> None:
        assert decode_revert("0xdeadbeef") is None


class TestEvmClient:
    """Tests for contract reads and relay submission."""

    def test_get_fee_config(self) -> None:
        client = _client()
        functions = client.contract.functions
        functions.feeRateBasisPoints.return_value.call.return_value = 100
        functions.minimumFee.return_value.call.return_value = MILLI_ETHER
        functions.feeRecipient.return_value.call.return_value = FEE_RECIPIENT

        config = client.get_fee_config()

        assert config.fee_rate_bps == 100
        assert config.minimum_fee == MILLI_ETHER
        assert config.fee_recipient == normalize_address(FEE_RECIPIENT)

    def test_relay_attaches_quoted_value(self) -> None:
        client = _client()
        functions = client.contract.functions
        functions.computeFee.return_value.call.return_value = 10 * MILLI_ETHER
        functions.relay.return_value.build_transaction.return_value = {"to": CONTRACT}
        client.w3.eth.get_transaction_count.return_value = 3
        client.w3.eth.gas_price = 10**9
        client.w3.eth.send_raw_transaction.return_value = b"\x12" * 32
        client.w3.eth.wait_for_transaction_receipt.return_value = {"status": 1, "gasUsed": 51_000}

        result = client.relay(RECIPIENT, ETHER)

        assert result.success
        assert result.tx_hash == "12" * 32
        assert result.fee == 10 * MILLI_ETHER
        assert result.gas_used == 51_000

        functions.relay.assert_called_once_with(normalize_address(RECIPIENT), ETHER)
        tx_params = functions.relay.return_value.build_transaction.call_args[0][0]
        assert tx_params["value"] == ETHER + 10 * MILLI_ETHER
        assert tx_params["from"] == SENDER
        assert tx_params["nonce"] == 3

    def test_relay_explicit_value(self) -> None:
        client = _client()
        functions = client.contract.functions
        functions.computeFee.return_value.call.return_value = 10 * MILLI_ETHER
        client.w3.eth.send_raw_transaction.return_value = b"\x01" * 32
        client.w3.eth.wait_for_transaction_receipt.return_value = {"status": 1, "gasUsed": 1}

        client.relay(RECIPIENT, ETHER, value=2 * ETHER)

        tx_params = functions.relay.return_value.build_transaction.call_args[0][0]
        assert tx_params["value"] == 2 * ETHER

    def test_relay_reverted_receipt(self) -> None:
        client = _client()
        client.contract.functions.computeFee.return_value.call.return_value = 0
        client.w3.eth.send_raw_transaction.return_value = b"\x02" * 32
        client.w3.eth.wait_for_transaction_receipt.return_value = {"status": 0, "gasUsed": 1}

        result = client.relay(RECIPIENT, ETHER)

        assert not result.success
        assert result.error == "Transaction reverted"

    def test_relay_custom_error_is_decoded(self) -> None:
        client = _client()
        client.contract.functions.computeFee.return_value.call.return_value = 10 * MILLI_ETHER
        data = INSUFFICIENT_PAYMENT_SELECTOR + encode(["uint256", "uint256"], [1010, 1000])
        client.contract.functions.relay.return_value.build_transaction.side_effect = (
            _ContractCustomError("0x" + data.hex())
        )

        result = client.relay(RECIPIENT, ETHER, value=1000)

        assert not result.success
        assert "required 1010, supplied 1000" in result.error

    def test_relay_without_key(self) -> None:
        client = _client()
        client.account = None

        result = client.relay(RECIPIENT, ETHER)

        assert not result.success
        assert result.error == "No private key configured"
