from __future__ import annotations

import logging
from typing import Any

import requests

from config import GAS_STATION_URL_ENV, get_env
from core.errors import NetworkError, NetworkTimeout

logger = logging.getLogger(__name__)

DEFAULT_GAS_STATION_URL = "https://ethgasstation.info/json/ethgasAPI.json"


class GasPriceClient:
    """
    Gas price oracle client.

    Issues a single GET and hands back the oracle's JSON untouched; callers
    pick the speed tier they want and pass it to the wallet's send calls.
    """

    def __init__(
        self,
        url: str | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._url = url or get_env(GAS_STATION_URL_ENV) or DEFAULT_GAS_STATION_URL
        self._timeout = timeout_seconds
        self._session = requests.Session()

    @property
    def url(self) -> str:
        return self._url

    def fetch_gas_price(self) -> Any:
        try:
            resp = self._session.get(self._url, timeout=self._timeout)
        except requests.Timeout as exc:
            raise NetworkTimeout(
                f"Gas price request timed out after {self._timeout}s"
            ) from exc
        except requests.RequestException as exc:
            raise NetworkError(f"Gas price request failed: {exc}") from exc
        logger.info("gas price %s -> %s", self._url, resp.status_code)
        try:
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise NetworkError(f"Gas price request failed: {exc}") from exc
        try:
            return resp.json()
        except ValueError as exc:
            raise NetworkError(f"Invalid JSON from gas station: {resp.text!r}") from exc
