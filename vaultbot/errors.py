"""
Failure taxonomy for the vault engine.

Every failure a flow operation can report is a subclass of VaultError, so a
front-end can render an accurate message from the exception type alone.
"""

from typing import Optional


class VaultError(Exception):
    """Base exception for vault engine errors."""
    pass


class WalletNotFound(VaultError):
    """Raised when a user has no wallet in the catalog."""
    pass


class InvalidWalletData(VaultError):
    """Raised when a stored wallet secret cannot be turned back into a keypair."""
    pass


class InvalidKeyData(VaultError):
    """Raised when raw key bytes have the wrong length or encoding."""
    pass


class InvalidAddress(VaultError):
    """Raised when a destination address is not a valid Solana public key."""
    pass


class InvalidMnemonic(VaultError):
    """Raised when a seed phrase fails word-list or checksum validation."""
    pass


class SeedAlreadyBackedUp(VaultError):
    """Raised when the one-time seed phrase export was already used."""
    pass


class NetworkUnavailable(VaultError):
    """Raised when a balance could not be read from the network."""
    pass


class InsufficientBalance(VaultError):
    """No transaction was attempted: the requested amount exceeds the balance."""

    def __init__(self, asset: str, available: float, requested: Optional[float] = None):
        self.asset = asset
        self.available = available
        self.requested = requested
        super().__init__(f"Insufficient {asset} balance: {available:.5f} available")


class InsufficientGasReserve(VaultError):
    """No transaction was attempted: not enough SOL to pay fees."""

    def __init__(self, available: float, required: float):
        self.available = available
        self.required = required
        super().__init__(f"Insufficient SOL for fees: {available:.5f} available, {required} required")


class TransactionFailed(VaultError):
    """The network reported an error; funds did not move."""

    def __init__(self, reason: str, signature: Optional[str] = None):
        self.reason = reason
        self.signature = signature
        super().__init__(f"Transaction failed: {reason}")


class ConfirmationTimeout(VaultError):
    """The transaction was sent but not confirmed in time; funds may have moved."""

    def __init__(self, signature: str):
        self.signature = signature
        super().__init__(f"Confirmation timed out for {signature}")
