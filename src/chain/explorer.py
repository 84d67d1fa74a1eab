from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from eth_utils.address import to_checksum_address

from config import ETHERSCAN_API_KEY_ENV, get_env
from core.base_types import Address
from core.errors import NetworkError, NetworkTimeout

from .errors import ExplorerError
from .networks import Network

logger = logging.getLogger(__name__)

# Etherscan treats endblock as an inclusive upper bound; this covers "latest".
LATEST_BLOCK = 99_999_999


@dataclass(frozen=True)
class ExplorerTransaction:
    """One row of the explorer's normal-transaction list."""

    hash: str
    from_address: str
    to_address: Optional[str]
    value: int
    timestamp: int
    block_number: int
    is_error: bool

    @classmethod
    def from_api(cls, row: Dict[str, Any]) -> "ExplorerTransaction":
        return cls(
            hash=str(row["hash"]),
            from_address=_checksum(row.get("from")) or "",
            # Contract creations have an empty "to".
            to_address=_checksum(row.get("to")),
            value=int(row.get("value") or 0),
            timestamp=int(row.get("timeStamp") or 0),
            block_number=int(row.get("blockNumber") or 0),
            is_error=str(row.get("isError", "0")) == "1",
        )


class EtherscanClient:
    """
    Etherscan-compatible account history client.

    Only the ``account/txlist`` endpoint is used: native-currency
    transactions sent from or to an address within a block range.
    """

    def __init__(
        self,
        network: Network,
        api_key: str | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._network = network
        self._api_key = api_key if api_key is not None else get_env(ETHERSCAN_API_KEY_ENV)
        self._timeout = timeout_seconds
        self._session = requests.Session()

    def close(self) -> None:
        self._session.close()

    def get_history(
        self,
        address: Address,
        start_block: int = 0,
        end_block: int | str = "latest",
    ) -> list[ExplorerTransaction]:
        params: Dict[str, Any] = {
            "chainid": self._network.chain_id,
            "module": "account",
            "action": "txlist",
            "address": address.checksum,
            "startblock": start_block,
            "endblock": LATEST_BLOCK if end_block == "latest" else end_block,
            "sort": "asc",
        }
        if self._api_key:
            params["apikey"] = self._api_key
        payload = self._get(params)

        result = payload.get("result")
        if str(payload.get("status")) != "1":
            message = str(payload.get("message", ""))
            if message.lower().startswith("no transactions found"):
                return []
            raise ExplorerError(f"Explorer error: {message} ({result!r})")
        if not isinstance(result, list):
            raise ExplorerError("Explorer returned a non-list result")
        return [ExplorerTransaction.from_api(row) for row in result]

    def _get(self, params: Dict[str, Any]) -> Dict[str, Any]:
        url = self._network.explorer_api_url
        try:
            resp = self._session.get(url, params=params, timeout=self._timeout)
        except requests.Timeout as exc:
            raise NetworkTimeout(f"Explorer request timed out: {url}") from exc
        except requests.RequestException as exc:
            raise NetworkError(f"Explorer request failed: {exc}") from exc
        logger.info("explorer %s %s -> %s", params.get("action"), url, resp.status_code)
        try:
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise ExplorerError(f"Explorer request failed: {exc}") from exc
        try:
            data = resp.json()
        except ValueError as exc:
            raise ExplorerError(f"Invalid JSON from explorer: {resp.text!r}") from exc
        if not isinstance(data, dict):
            raise ExplorerError("Explorer returned an unexpected payload")
        return data


def _checksum(value: Any) -> Optional[str]:
    if not value:
        return None
    return to_checksum_address(str(value))
