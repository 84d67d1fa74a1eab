"""Named EVM networks a wallet session can connect to."""

from __future__ import annotations

from dataclasses import dataclass

from config import get_env, rpc_url_env_name
from core.errors import ValidationError

ETHERSCAN_API_URL = "https://api.etherscan.io/v2/api"


@dataclass(frozen=True)
class Network:
    """An Ethereum network with its default endpoints."""

    name: str
    chain_id: int
    rpc_url: str
    native_symbol: str = "ETH"
    explorer_api_url: str = ETHERSCAN_API_URL

    def rpc_urls(self) -> list[str]:
        """RPC endpoints in fallback order; the env override goes first."""
        override = get_env(rpc_url_env_name(self.name))
        urls = [url.strip() for url in (override or "").split(",") if url.strip()]
        if self.rpc_url not in urls:
            urls.append(self.rpc_url)
        return urls


NETWORKS: dict[str, Network] = {
    "homestead": Network(
        name="homestead",
        chain_id=1,
        rpc_url="https://ethereum-rpc.publicnode.com",
    ),
    "sepolia": Network(
        name="sepolia",
        chain_id=11155111,
        rpc_url="https://ethereum-sepolia-rpc.publicnode.com",
    ),
    "holesky": Network(
        name="holesky",
        chain_id=17000,
        rpc_url="https://ethereum-holesky-rpc.publicnode.com",
    ),
}

_ALIASES = {"mainnet": "homestead", "ethereum": "homestead"}


def get_network(name: str) -> Network:
    """Look up a network by name. Raises ``ValidationError`` if unknown."""
    if not isinstance(name, str):
        raise ValidationError("network name must be a string")
    key = _ALIASES.get(name.lower(), name.lower())
    if key not in NETWORKS:
        raise ValidationError(
            f"Unknown network '{name}'. Available: {list_network_names()}"
        )
    return NETWORKS[key]


def list_network_names() -> list[str]:
    return list(NETWORKS.keys())
