"""
Error taxonomy for fee relay settlement.
"""


class FeeRelayError(Exception):
    """Base class for all fee relay errors."""


class InvalidConfiguration(FeeRelayError):
    """Fee configuration rejected at construction time."""


class InsufficientPayment(FeeRelayError):
    """Supplied payment does not cover payout + fee."""

    def __init__(self, required: int, supplied: int):
        self.required = required
        self.supplied = supplied
        super().__init__(
            f"Insufficient payment: required {required}, supplied {supplied}"
        )


class TransferFailed(FeeRelayError):
    """An outbound transfer (payout, fee or refund) was not accepted."""

    def __init__(self, recipient: str, amount: int):
        self.recipient = recipient
        self.amount = amount
        super().__init__(f"Transfer of {amount} to {recipient} failed")


class InsufficientBalance(FeeRelayError):
    """A ledger account cannot fund a debit."""

    def __init__(self, account: str, balance: int, amount: int):
        self.account = account
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Account {account} has balance {balance}, cannot debit {amount}"
        )
