"""Wallet session: lock state, token registry, queries and sends for one key."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Callable, Optional

from chain.client import ChainClient
from chain.erc20 import ERC20Contract
from chain.explorer import EtherscanClient
from chain.networks import Network, get_network
from chain.transaction_builder import TransactionBuilder
from core.base_types import (
    ETHER_DECIMALS,
    GWEI_DECIMALS,
    Address,
    HistoryEntry,
    SubmittedTransaction,
    TransferStatus,
    format_units,
    parse_units,
)
from core.errors import (
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from core.wallet_manager import WalletManager

logger = logging.getLogger(__name__)

DEFAULT_NETWORK = "homestead"

ProviderFactory = Callable[[Network], ChainClient]
ExplorerFactory = Callable[[Network], EtherscanClient]


def _default_provider(network: Network) -> ChainClient:
    return ChainClient(network.rpc_urls(), network=network.name)


def _default_explorer(network: Network) -> EtherscanClient:
    return EtherscanClient(network)


def _parse_address(value: Any) -> Address:
    if not isinstance(value, str):
        raise ValidationError("Invalid Ethereum address")
    return Address(value)


def _parse_gas_price(gas_price_gwei: str | int | Decimal) -> int:
    gas_price = parse_units(gas_price_gwei, GWEI_DECIMALS)
    if gas_price <= 0:
        raise ValidationError("gas price must be positive")
    return gas_price


@dataclass(frozen=True)
class TokenEntry:
    """A registered ERC-20 token."""

    symbol: str
    address: Address
    decimals: int
    one_token: int
    contract: ERC20Contract


class WalletSession:
    """
    One wallet key plus the session state around it.

    A session starts unlocked. ``lock`` encrypts the key into a keystore
    backup and forgets the key, the provider, the network and the token list;
    ``unlock`` restores the key from that backup.

    Synchronous methods raise immediately. Coroutine methods raise when
    awaited. Every network call runs in a worker thread.

    Sends use a locally tracked nonce: call ``set_nonce`` after connecting and
    before the first send. Each send consumes the nonce before submitting, and
    a failed send does not give it back.
    """

    def __init__(
        self,
        signer: WalletManager,
        encrypted_json: str = "",
        *,
        kdf: Optional[str] = None,
        kdf_iterations: Optional[int] = None,
        provider_factory: ProviderFactory = _default_provider,
        explorer_factory: ExplorerFactory = _default_explorer,
    ) -> None:
        self._signer: Optional[WalletManager] = None
        self._locked = True
        self._tokens: list[TokenEntry] = []
        self._provider: Optional[ChainClient] = None
        self._network: Optional[Network] = None
        self._pending_nonce: Optional[int] = None
        self._encrypted_json = encrypted_json or ""
        self._kdf = kdf
        self._kdf_iterations = kdf_iterations
        self._provider_factory = provider_factory
        self._explorer_factory = explorer_factory
        self._explorers: dict[str, EtherscanClient] = {}
        self._install(signer)

    @classmethod
    def create(cls, **options: Any) -> "WalletSession":
        """New random key with a mnemonic."""
        return cls(WalletManager.generate(), **options)

    @classmethod
    def from_private_key(cls, private_key: str | bytes, **options: Any) -> "WalletSession":
        return cls(WalletManager(private_key), **options)

    @classmethod
    def from_encrypted_json(
        cls, encrypted_json: str | dict, passphrase: str, **options: Any
    ) -> "WalletSession":
        """Decrypt a keystore backup; the backup is kept for the next ``lock``."""
        signer = WalletManager.from_encrypted_json(encrypted_json, passphrase)
        if isinstance(encrypted_json, dict):
            encrypted_json = json.dumps(encrypted_json)
        return cls(signer, encrypted_json=encrypted_json, **options)

    @classmethod
    def from_mnemonic(cls, mnemonic: str, **options: Any) -> "WalletSession":
        return cls(WalletManager.from_mnemonic(mnemonic), **options)

    def __repr__(self) -> str:
        if self._signer is None:
            return "WalletSession(locked=True)"
        return (
            f"WalletSession(address={self._signer.address}, "
            f"network={self.get_network()!r})"
        )

    # lock state

    def is_locked(self) -> bool:
        return self._locked

    async def lock(self, passphrase: str) -> str:
        """Encrypt the key (once), drop all session state, return the backup."""
        if self._locked:
            if not self._encrypted_json:
                raise PreconditionError("Wallet is locked and has no encrypted backup")
            return self._encrypted_json
        signer = self._require_unlocked()
        if not self._encrypted_json:
            self._encrypted_json = await asyncio.to_thread(
                signer.encrypt, passphrase, self._kdf, self._kdf_iterations
            )
        self._signer = None
        self._locked = True
        self._drop_provider()
        self._network = None
        self._tokens = []
        self._pending_nonce = None
        logger.info("wallet locked")
        return self._encrypted_json

    async def unlock(self, passphrase: str) -> None:
        if not self._locked:
            raise PreconditionError("Wallet is already unlocked")
        if not self._encrypted_json:
            raise PreconditionError("Wallet has no encrypted backup to unlock")
        signer = await asyncio.to_thread(
            WalletManager.from_encrypted_json, self._encrypted_json, passphrase
        )
        self._install(signer)

    # network

    def connect(self, network: str = DEFAULT_NETWORK) -> None:
        """Bind a new provider for ``network``; tokens are rebound to it."""
        signer = self._require_unlocked(
            "Wallet is null! You cannot connect to the network without a wallet!"
        )
        resolved = get_network(network)
        provider = self._provider_factory(resolved)
        self._drop_provider()
        self._provider = provider
        self._network = resolved
        self._pending_nonce = None
        self._tokens = [
            replace(
                token,
                contract=ERC20Contract(provider, signer, token.address, resolved.chain_id),
            )
            for token in self._tokens
        ]
        logger.info("wallet %s connected to %s", signer.address, resolved.name)

    def get_provider(self) -> Optional[ChainClient]:
        return self._provider

    def get_network(self) -> str:
        return self._network.name if self._network is not None else ""

    async def set_nonce(self) -> int:
        """Sync the pending nonce with the account's transaction count."""
        signer, provider = self._require_connected()
        nonce = await asyncio.to_thread(provider.get_nonce, Address(signer.address))
        self._pending_nonce = nonce
        logger.info("nonce for %s set to %d", signer.address, nonce)
        return nonce

    # tokens

    async def add_token(self, symbol: str, address: str) -> None:
        signer, provider = self._require_connected()
        token_address = _parse_address(address)
        if self._find_token(token_address.checksum) is not None:
            return

        assert self._network is not None
        contract = ERC20Contract(provider, signer, token_address, self._network.chain_id)
        decimals = await asyncio.to_thread(contract.decimals)
        if self._find_token(token_address.checksum) is not None:
            return
        self._tokens.append(
            TokenEntry(
                symbol=symbol,
                address=token_address,
                decimals=decimals,
                one_token=10**decimals,
                contract=contract,
            )
        )
        logger.info("token %s %s added (decimals=%d)", symbol, token_address, decimals)

    def remove_token(self, address: str) -> None:
        self._require_unlocked()
        token = self._find_token(address)
        if token is None:
            return
        self._tokens = [entry for entry in self._tokens if entry is not token]
        logger.info("token %s %s removed", token.symbol, token.address)

    def get_tokens(self) -> tuple[TokenEntry, ...]:
        self._require_unlocked()
        return tuple(self._tokens)

    # key data

    def get_address(self) -> str:
        return self._require_unlocked().address

    def get_private_key(self) -> str:
        return self._require_unlocked().private_key

    def get_mnemonics(self) -> Optional[str]:
        return self._require_unlocked().mnemonic

    # balances and history

    async def get_ether_balance(self) -> str:
        signer, provider = self._require_connected()
        balance = await asyncio.to_thread(provider.get_balance, Address(signer.address))
        return format_units(balance.raw, ETHER_DECIMALS)

    async def get_token_balance(self, address: str) -> int:
        """Balance in whole tokens, truncated."""
        signer = self._require_unlocked()
        token = self._get_token(address)
        raw = await asyncio.to_thread(token.contract.balance_of, Address(signer.address))
        return raw // token.one_token

    async def get_ether_history(
        self,
        network: Optional[str] = None,
        address: Optional[str] = None,
        start: int = 0,
        end: int | str = "latest",
    ) -> list[HistoryEntry]:
        signer = self._require_unlocked()
        if network:
            resolved = get_network(network)
        else:
            resolved = self._network or get_network(DEFAULT_NETWORK)
        owner = _parse_address(address) if address is not None else Address(signer.address)

        explorer = self._explorer_for(resolved)
        rows = await asyncio.to_thread(explorer.get_history, owner, start, end)
        return [
            HistoryEntry(
                transaction_hash=row.hash,
                status=TransferStatus.classify(owner.checksum, row.from_address, row.to_address),
                from_address=row.from_address,
                to_address=row.to_address,
                amount=format_units(row.value, ETHER_DECIMALS),
                timestamp=row.timestamp,
            )
            for row in rows
        ]

    async def get_token_history(
        self,
        address: str,
        from_block: int | str = 0,
        to_block: int | str = "latest",
    ) -> list[HistoryEntry]:
        """Transfer events of a registered token that involve this wallet."""
        signer = self._require_unlocked()
        token = self._get_token(address)
        owner = Address(signer.address)
        logs = await asyncio.to_thread(token.contract.query_transfers, from_block, to_block)
        return [
            HistoryEntry(
                transaction_hash=log.transaction_hash,
                status=TransferStatus.classify(owner.checksum, log.from_address, log.to_address),
                from_address=log.from_address,
                to_address=log.to_address,
                amount=format_units(log.value, token.decimals),
            )
            for log in logs
            if owner == log.from_address or owner == log.to_address
        ]

    # sends

    async def send_ether(
        self,
        to: str,
        amount: str | int | Decimal,
        gas_price_gwei: str | int | Decimal,
        speed: str = "average",
    ) -> SubmittedTransaction:
        """
        Send ether at ``gas_price_gwei``.

        ``speed`` names a gas-oracle tier (``safeLow``, ``average``, ...). It
        is accepted for callers that track it but does not change the price.
        """
        self._require_unlocked()
        recipient = _parse_address(to)
        value = parse_units(amount, ETHER_DECIMALS)
        gas_price = _parse_gas_price(gas_price_gwei)
        signer, provider = self._require_connected()
        assert self._network is not None

        nonce = self._next_nonce()
        builder = (
            TransactionBuilder(provider, signer)
            .to(recipient)
            .value(value)
            .nonce(nonce)
            .gas_price(gas_price)
            .chain_id(self._network.chain_id)
        )
        return await asyncio.to_thread(_estimate_and_send, builder)

    async def send_token(
        self,
        token_address: str,
        to: str,
        amount: str | int | Decimal,
        gas_price_gwei: str | int | Decimal,
        speed: str = "average",
    ) -> SubmittedTransaction:
        self._require_unlocked()
        token = self._get_token(token_address)
        recipient = _parse_address(to)
        raw_amount = parse_units(amount, token.decimals)
        gas_price = _parse_gas_price(gas_price_gwei)

        nonce = self._next_nonce()
        logger.info("sending %s %s to %s", amount, token.symbol, recipient)
        return await asyncio.to_thread(
            token.contract.transfer, recipient, raw_amount, gas_price, nonce
        )

    # internals

    def _install(self, signer: WalletManager) -> None:
        if not isinstance(signer, WalletManager):
            raise ValidationError("signer must be a WalletManager")
        self._signer = signer
        self._locked = False

    def _require_unlocked(self, message: str = "Wallet is locked!") -> WalletManager:
        if self._locked or self._signer is None:
            raise PreconditionError(message)
        return self._signer

    def _require_connected(self) -> tuple[WalletManager, ChainClient]:
        signer = self._require_unlocked()
        if self._provider is None:
            raise PreconditionError("There is no network provider! Call connect() first")
        return signer, self._provider

    def _drop_provider(self) -> None:
        if self._provider is not None:
            self._provider.close()
        self._provider = None

    def _explorer_for(self, network: Network) -> EtherscanClient:
        explorer = self._explorers.get(network.name)
        if explorer is None:
            explorer = self._explorer_factory(network)
            self._explorers[network.name] = explorer
        return explorer

    def _find_token(self, address: str) -> Optional[TokenEntry]:
        for token in self._tokens:
            if token.address == address:
                return token
        return None

    def _get_token(self, address: str) -> TokenEntry:
        token = self._find_token(address)
        if token is None:
            raise NotFoundError(f"Token {address} does not exist!")
        return token

    def _next_nonce(self) -> int:
        if self._pending_nonce is None:
            raise PreconditionError("Nonce is not set! Call set_nonce() first")
        nonce = self._pending_nonce
        self._pending_nonce += 1
        return nonce


def _estimate_and_send(builder: TransactionBuilder) -> SubmittedTransaction:
    return builder.with_gas_estimate().send()
