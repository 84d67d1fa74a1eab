"""Ethereum JSON-RPC client with endpoint fallback and error classification."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional

import requests

from core.base_types import ETHER_DECIMALS, Address, TokenAmount, TransactionRequest
from core.errors import NetworkTimeout

from .errors import (
    ChainError,
    InsufficientFunds,
    NonceTooLow,
    ReplacementUnderpriced,
    RPCError,
)

logger = logging.getLogger(__name__)


class ChainClient:
    """
    Ethereum RPC client used as a wallet session's provider.

    Features:
    - Multiple RPC endpoint fallback
    - Optional retry with exponential backoff (off by default)
    - Request timing/logging
    - Proper error classification
    """

    def __init__(
        self,
        rpc_urls: list[str],
        timeout: int = 30,
        max_retries: int = 1,
        network: str = "",
    ):
        if not rpc_urls:
            raise ValueError("rpc_urls must not be empty")
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self._rpc_urls = rpc_urls
        self._timeout = timeout
        self._max_retries = max_retries
        self._session = requests.Session()
        self.network = network

    def __repr__(self) -> str:
        return f"ChainClient(network={self.network!r}, endpoints={len(self._rpc_urls)})"

    def close(self) -> None:
        self._session.close()

    def get_balance(self, address: Address, block: str = "latest") -> TokenAmount:
        balance_hex = self._rpc_call("eth_getBalance", [address.checksum, block])
        return TokenAmount(
            raw=_hex_to_int(balance_hex),
            decimals=ETHER_DECIMALS,
            symbol="ETH",
        )

    def get_nonce(self, address: Address, block: str = "pending") -> int:
        nonce_hex = self._rpc_call("eth_getTransactionCount", [address.checksum, block])
        return _hex_to_int(nonce_hex)

    def estimate_gas(self, tx: TransactionRequest) -> int:
        gas_hex = self._rpc_call("eth_estimateGas", [tx.to_rpc_dict()])
        return _hex_to_int(gas_hex)

    def call(self, tx: TransactionRequest, block: str = "latest") -> bytes:
        result = self._rpc_call("eth_call", [tx.to_rpc_dict(), block])
        return _hex_to_bytes(result)

    def get_logs(
        self,
        address: Address,
        topics: list[Optional[str]],
        from_block: int | str = 0,
        to_block: int | str = "latest",
    ) -> list[dict]:
        params = {
            "address": address.checksum,
            "topics": topics,
            "fromBlock": _block_param(from_block),
            "toBlock": _block_param(to_block),
        }
        result = self._rpc_call("eth_getLogs", [params])
        if not isinstance(result, list):
            raise RPCError("Expected list result from eth_getLogs")
        return result

    def send_transaction(self, signed_tx: bytes) -> str:
        tx_hash = self._rpc_call("eth_sendRawTransaction", [f"0x{bytes(signed_tx).hex()}"])
        return str(tx_hash)

    def _rpc_call(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        last_error: Optional[Exception] = None
        for url in self._rpc_urls:
            for attempt in range(self._max_retries):
                start = time.perf_counter()
                try:
                    response = self._session.post(
                        url,
                        json=payload,
                        timeout=self._timeout,
                    )
                    elapsed = time.perf_counter() - start
                    logger.info("rpc %s %s in %.3fs", method, url, elapsed)
                    if response.status_code >= 400:
                        raise RPCError(f"HTTP {response.status_code} from {url}")
                    data = response.json()
                    if "error" in data:
                        self._raise_rpc_error(data["error"])
                    return data.get("result")
                except (requests.Timeout, requests.ConnectionError) as exc:
                    logger.warning("rpc %s %s failed: %s", method, url, exc)
                    last_error = exc
                    self._sleep_backoff(attempt)
                except RPCError:
                    raise
                except json.JSONDecodeError as exc:
                    last_error = exc
                    self._sleep_backoff(attempt)
        if isinstance(last_error, requests.Timeout):
            raise NetworkTimeout(f"RPC {method} timed out") from last_error
        raise ChainError("RPC request failed") from last_error

    def _sleep_backoff(self, attempt: int) -> None:
        if attempt + 1 >= self._max_retries:
            return
        delay = 0.5 * (2**attempt)
        time.sleep(delay)

    def _raise_rpc_error(self, error: dict) -> None:
        message = str(error.get("message", "RPC error"))
        code = error.get("code")
        data = error.get("data")
        lowered = message.lower()
        if "insufficient funds" in lowered:
            raise InsufficientFunds(message)
        if "nonce too low" in lowered:
            raise NonceTooLow(message)
        if "replacement transaction underpriced" in lowered:
            raise ReplacementUnderpriced(message)
        raise RPCError(message, code=code, data=data)


def _block_param(block: int | str) -> str:
    if isinstance(block, int):
        return hex(block)
    return block


def _hex_to_int(value: str) -> int:
    if not isinstance(value, str):
        raise RPCError("Expected hex string result")
    return int(value, 16)


def _hex_to_bytes(value: str) -> bytes:
    if not isinstance(value, str):
        raise RPCError("Expected hex string result")
    normalized = value[2:] if value.startswith("0x") else value
    if normalized == "":
        return b""
    return bytes.fromhex(normalized)
