"""Chain-specific exceptions for RPC and explorer failures."""

from __future__ import annotations

from typing import Optional

from core.errors import NetworkError


class ChainError(NetworkError):
    """Base class for chain errors."""


class RPCError(ChainError):
    """RPC request failed."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        data: Optional[object] = None,
    ):
        self.code = code
        self.data = data
        super().__init__(message)


class InsufficientFunds(ChainError):
    """Not enough balance for transaction."""


class NonceTooLow(ChainError):
    """Nonce already used."""


class ReplacementUnderpriced(ChainError):
    """Replacement transaction gas too low."""


class ExplorerError(NetworkError):
    """Block explorer API returned an error."""
