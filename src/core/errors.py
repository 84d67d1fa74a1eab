"""Wallet-level exceptions shared by the session, chain and pricing modules."""

from __future__ import annotations


class WalletError(Exception):
    """Base class for wallet errors."""


class ValidationError(WalletError, ValueError):
    """Malformed input (address, key, mnemonic, amount)."""


class PreconditionError(WalletError):
    """Operation attempted in the wrong lock or connection state."""


class NotFoundError(WalletError, LookupError):
    """Operation on a token that is not registered."""


class AuthenticationError(WalletError):
    """Wrong passphrase for an encrypted backup."""


class NetworkError(WalletError):
    """Underlying transport failure."""


class NetworkTimeout(NetworkError, TimeoutError):
    """Request did not complete in time."""
