"""
Account ledgers with all-or-nothing atomic scopes.

A ledger holds native-value balances per account and an append-only event log.
Every mutation happens inside `atomic()`: if the scope exits with an exception,
all balance changes and events recorded inside it are discarded. Scopes nest,
so a receive hook that calls back into a settlement opens an inner scope that
can fail on its own without undoing the outer one.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional

import structlog

from .address import normalize_address
from .errors import InsufficientBalance

logger = structlog.get_logger()


@dataclass(frozen=True)
class Transfer:
    """A value transfer delivered to a receive hook."""

    sender: str
    recipient: str
    amount: int


@dataclass(frozen=True)
class LedgerEvent:
    """A notification recorded on the ledger."""

    name: str
    args: dict[str, Any] = field(default_factory=dict)


# Returning False (or raising) rejects the incoming transfer.
ReceiveHook = Callable[[Transfer], Optional[bool]]


class TransferRejected(Exception):
    """Raised inside a transfer scope when the recipient refuses the value."""


class Ledger(ABC):
    """
    Base ledger.

    Subclasses provide storage and the atomic scope; the transfer protocol
    (debit, credit, receive hook) lives here.
    """

    backend = "abstract"

    def __init__(self) -> None:
        self._receivers: dict[str, ReceiveHook] = {}

    # ------------------------------------------------------------------
    # Storage primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def atomic(self):
        """Context manager for an all-or-nothing scope."""

    @abstractmethod
    def balance_of(self, address: str) -> int:
        """Current balance of an account."""

    @abstractmethod
    def events(self) -> list[LedgerEvent]:
        """All committed (or currently visible) events, oldest first."""

    @abstractmethod
    def _set_balance(self, address: str, amount: int) -> None:
        ...

    @abstractmethod
    def _append_event(self, event: LedgerEvent) -> None:
        ...

    # ------------------------------------------------------------------
    # Receive hooks
    # ------------------------------------------------------------------

    def register_receiver(self, address: str, hook: ReceiveHook) -> None:
        """Install code that runs whenever `address` receives value."""
        self._receivers[normalize_address(address)] = hook

    def unregister_receiver(self, address: str) -> None:
        self._receivers.pop(normalize_address(address), None)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def mint(self, address: str, amount: int) -> None:
        """Credit an account from outside the ledger (funding)."""
        _require_amount(amount)
        address = normalize_address(address)
        with self.atomic():
            self._set_balance(address, self.balance_of(address) + amount)
        logger.info("ledger_minted", address=address, amount=amount)

    def move(self, sender: str, recipient: str, amount: int) -> None:
        """
        Move value between accounts without running the recipient's hook.

        Raises:
            InsufficientBalance: If the sender cannot fund the amount
        """
        _require_amount(amount)
        sender = normalize_address(sender)
        recipient = normalize_address(recipient)

        with self.atomic():
            balance = self.balance_of(sender)
            if balance < amount:
                raise InsufficientBalance(sender, balance, amount)
            self._set_balance(sender, balance - amount)
            self._set_balance(recipient, self.balance_of(recipient) + amount)

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Send value and run the recipient's receive hook.

        The debit, credit and everything the hook does share one nested
        scope. If the sender is short of funds, the hook raises, or the hook
        returns False, that scope is rolled back and False is returned.

        Returns:
            True if the recipient accepted the value
        """
        sender = normalize_address(sender)
        recipient = normalize_address(recipient)

        try:
            with self.atomic():
                self.move(sender, recipient, amount)
                hook = self._receivers.get(recipient)
                if hook is not None and hook(Transfer(sender, recipient, amount)) is False:
                    raise TransferRejected(recipient)
        except Exception as e:
            logger.warning(
                "transfer_rejected",
                sender=sender,
                recipient=recipient,
                amount=amount,
                error=str(e) or type(e).__name__,
            )
            return False

        return True

    def emit(self, name: str, **args: Any) -> None:
        """Record an event in the current scope."""
        with self.atomic():
            self._append_event(LedgerEvent(name=name, args=args))


def _require_amount(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise TypeError("amount must be an int")
    if amount < 0:
        raise ValueError(f"amount must be non-negative: {amount}")


class InMemoryLedger(Ledger):
    """
    Staged-apply ledger kept in process memory.

    Each atomic scope snapshots balances and the event log length on entry
    and restores them if the scope raises. Top-level scopes are serialized
    with a re-entrant lock.
    """

    backend = "memory"

    def __init__(self, balances: Optional[dict[str, int]] = None) -> None:
        super().__init__()
        self._balances: dict[str, int] = {}
        self._events: list[LedgerEvent] = []
        self._lock = threading.RLock()

        for address, amount in (balances or {}).items():
            self.mint(address, amount)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            snapshot = dict(self._balances)
            event_count = len(self._events)
            try:
                yield
            except BaseException:
                self._balances = snapshot
                del self._events[event_count:]
                raise

    def balance_of(self, address: str) -> int:
        address = normalize_address(address)
        with self._lock:
            return self._balances.get(address, 0)

    def events(self) -> list[LedgerEvent]:
        with self._lock:
            return list(self._events)

    def _set_balance(self, address: str, amount: int) -> None:
        self._balances[address] = amount

    def _append_event(self, event: LedgerEvent) -> None:
        self._events.append(event)
