from .client import ChainClient
from .erc20 import ERC20Contract, TransferLog
from .errors import (
    ChainError,
    ExplorerError,
    InsufficientFunds,
    NonceTooLow,
    ReplacementUnderpriced,
    RPCError,
)
from .explorer import EtherscanClient, ExplorerTransaction
from .networks import NETWORKS, Network, get_network
from .transaction_builder import TransactionBuilder

__all__ = [
    "ChainClient",
    "ERC20Contract",
    "TransferLog",
    "EtherscanClient",
    "ExplorerTransaction",
    "Network",
    "NETWORKS",
    "get_network",
    "TransactionBuilder",
    "ChainError",
    "ExplorerError",
    "RPCError",
    "InsufficientFunds",
    "NonceTooLow",
    "ReplacementUnderpriced",
]
