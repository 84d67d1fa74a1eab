"""Fluent transaction builder for signing and sending."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from eth_account.datastructures import SignedTransaction

from core.base_types import Address, SubmittedTransaction, TransactionRequest
from core.wallet_manager import WalletManager

from .client import ChainClient

logger = logging.getLogger(__name__)


@dataclass
class _TxState:
    to: Address | None = None
    value: int = 0
    data: bytes = b""
    nonce: int | None = None
    gas_limit: int | None = None
    gas_price: int | None = None
    chain_id: int = 1


class TransactionBuilder:
    """
    Fluent builder for legacy (gasPrice) transactions.

    Usage:
        tx = (TransactionBuilder(client, wallet)
            .to(recipient)
            .value(parse_units("0.1"))
            .nonce(7)
            .gas_price(parse_units("20", GWEI_DECIMALS))
            .with_gas_estimate()
            .send())
    """

    def __init__(self, client: ChainClient, wallet: WalletManager):
        self._client = client
        self._wallet = wallet
        self._state = _TxState()

    def to(self, address: Address) -> "TransactionBuilder":
        self._state.to = address
        return self

    def value(self, wei: int) -> "TransactionBuilder":
        if wei < 0:
            raise ValueError("value must not be negative")
        self._state.value = wei
        return self

    def data(self, calldata: bytes) -> "TransactionBuilder":
        self._state.data = calldata
        return self

    def nonce(self, nonce: int) -> "TransactionBuilder":
        """Explicit nonce (the session tracks its own)."""
        if nonce < 0:
            raise ValueError("nonce must not be negative")
        self._state.nonce = nonce
        return self

    def gas_limit(self, limit: int) -> "TransactionBuilder":
        self._state.gas_limit = limit
        return self

    def gas_price(self, wei: int) -> "TransactionBuilder":
        if wei <= 0:
            raise ValueError("gas_price must be positive")
        self._state.gas_price = wei
        return self

    def chain_id(self, chain_id: int) -> "TransactionBuilder":
        """Set EVM chain id for signing."""
        if chain_id <= 0:
            raise ValueError("chain_id must be positive")
        self._state.chain_id = chain_id
        return self

    def with_gas_estimate(self, buffer: float = 1.2) -> "TransactionBuilder":
        """Estimate gas and set limit with buffer."""
        if buffer <= 0:
            raise ValueError("buffer must be positive")
        estimate = self._client.estimate_gas(self._build_request(require_gas=False))
        self._state.gas_limit = int(estimate * buffer)
        return self

    def build(self) -> TransactionRequest:
        """Validate and return transaction request."""
        return self._build_request(require_gas=True)

    def build_and_sign(self) -> tuple[TransactionRequest, SignedTransaction]:
        request = self.build()
        return request, self._wallet.sign_transaction(request.to_dict())

    def send(self) -> SubmittedTransaction:
        """Build, sign, send, return the submitted transaction."""
        request, signed = self.build_and_sign()
        tx_hash = self._client.send_transaction(signed.raw_transaction)
        logger.info(
            "sent tx %s nonce=%s to=%s", tx_hash, request.nonce, request.to.checksum
        )
        assert request.nonce is not None
        assert request.gas_limit is not None
        assert request.gas_price is not None
        return SubmittedTransaction(
            hash=tx_hash,
            nonce=request.nonce,
            to=request.to.checksum,
            value=request.value,
            gas_price=request.gas_price,
            gas_limit=request.gas_limit,
            data=request.data,
            chain_id=request.chain_id,
        )

    def _build_request(self, require_gas: bool) -> TransactionRequest:
        if self._state.to is None:
            raise ValueError("to address is required")
        if require_gas:
            if self._state.gas_limit is None:
                raise ValueError("gas_limit is required (call with_gas_estimate)")
            if self._state.gas_price is None:
                raise ValueError("gas_price is required")

        sender = Address.from_string(self._wallet.address)
        if self._state.nonce is None:
            self._state.nonce = self._client.get_nonce(sender)

        return TransactionRequest(
            to=self._state.to,
            value=self._state.value,
            data=self._state.data,
            sender=sender,
            nonce=self._state.nonce,
            gas_limit=self._state.gas_limit,
            gas_price=self._state.gas_price,
            chain_id=self._state.chain_id,
        )
