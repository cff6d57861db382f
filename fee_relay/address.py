"""
Account identifier helpers.

Accounts are EVM addresses. Every address entering a ledger is normalized to
its EIP-55 checksum form so that the same account never appears under two keys.
"""

from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def normalize_address(address: str) -> str:
    """
    Normalize an address to checksum format.

    Raises:
        ValueError: If the value is not a 20-byte hex address
    """
    if not isinstance(address, str) or not Web3.is_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return Web3.to_checksum_address(address)


def is_zero_address(address: str) -> bool:
    """Check whether an address is the zero (null) account."""
    return normalize_address(address) == ZERO_ADDRESS
