import os

from dotenv import find_dotenv, load_dotenv

_ENV_LOADED = False


def _load_env() -> None:
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    load_dotenv(dotenv_path=find_dotenv(usecwd=True))
    _ENV_LOADED = True


def get_env(
    name: str, default: str | None = None, required: bool = False
) -> str | None:
    _load_env()
    value = os.environ.get(name, default)
    if required and (value is None or value == ""):
        raise SystemExit(f"{name} env var is required")
    return value


def rpc_url_env_name(network: str) -> str:
    """Env var overriding a network's RPC URL, e.g. SEPOLIA_RPC_URL."""
    return f"{network.upper()}_RPC_URL"


ETHERSCAN_API_KEY_ENV = "ETHERSCAN_API_KEY"
GAS_STATION_URL_ENV = "GAS_STATION_URL"
