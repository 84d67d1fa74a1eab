"""Minimal ERC-20 contract binding over a ChainClient."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from eth_abi import decode
from eth_abi import encode as abi_encode
from eth_utils.address import to_checksum_address
from eth_utils.crypto import keccak

from core.base_types import Address, SubmittedTransaction, TransactionRequest
from core.wallet_manager import WalletManager

from .client import ChainClient
from .errors import RPCError
from .transaction_builder import TransactionBuilder

logger = logging.getLogger(__name__)

TRANSFER_TOPIC = "0x" + keccak(text="Transfer(address,address,uint256)").hex()


def _selector(signature: str) -> bytes:
    return keccak(text=signature)[:4]


def _encode_call(signature: str, arg_types: list[str], args: list) -> bytes:
    return _selector(signature) + abi_encode(arg_types, args)


def _topic_to_address(topic: str) -> str:
    normalized = topic[2:] if topic.startswith("0x") else topic
    return to_checksum_address("0x" + normalized[-40:])


@dataclass(frozen=True)
class TransferLog:
    """Decoded Transfer(address,address,uint256) event."""

    transaction_hash: str
    block_number: int
    from_address: str
    to_address: str
    value: int

    @classmethod
    def from_rpc(cls, log: dict) -> "TransferLog":
        """
        Decode a Transfer log.

        Standard tokens index ``from`` and ``to`` as topics. Some early tokens
        emit the event with nothing indexed, so all three values sit in data.
        """
        topics = log.get("topics") or []
        if not topics or str(topics[0]).lower() != TRANSFER_TOPIC:
            raise ValueError("log is not an ERC-20 Transfer event")
        data = log.get("data") or "0x"
        raw = bytes.fromhex(data[2:] if data.startswith("0x") else data)
        if len(topics) == 3 and len(raw) == 32:
            (value,) = decode(["uint256"], raw)
            sender = _topic_to_address(topics[1])
            recipient = _topic_to_address(topics[2])
        elif len(topics) == 1 and len(raw) == 96:
            sender, recipient, value = decode(["address", "address", "uint256"], raw)
            sender = to_checksum_address(sender)
            recipient = to_checksum_address(recipient)
        else:
            raise ValueError(
                f"unsupported Transfer log layout: {len(topics)} topics, {len(raw)} data bytes"
            )
        block = log.get("blockNumber", "0x0")
        return cls(
            transaction_hash=str(log.get("transactionHash")),
            block_number=int(block, 16) if isinstance(block, str) else int(block),
            from_address=sender,
            to_address=recipient,
            value=value,
        )


class ERC20Contract:
    """
    Read and transfer calls for one token contract.

    Reads go through ``eth_call``; transfers are signed by the bound wallet
    and submitted through the bound client.
    """

    def __init__(
        self,
        client: ChainClient,
        wallet: WalletManager,
        address: Address,
        chain_id: int = 1,
    ) -> None:
        self._client = client
        self._wallet = wallet
        self.address = address
        self._chain_id = chain_id

    def __repr__(self) -> str:
        return f"ERC20Contract(address={self.address.checksum})"

    def decimals(self) -> int:
        (decimals,) = self._read("decimals()", ["uint8"])
        return decimals

    def balance_of(self, owner: Address) -> int:
        (balance,) = self._read(
            "balanceOf(address)", ["uint256"], ["address"], [owner.checksum]
        )
        return balance

    def transfer(
        self,
        to: Address,
        raw_amount: int,
        gas_price: int,
        nonce: int,
    ) -> SubmittedTransaction:
        calldata = _encode_call(
            "transfer(address,uint256)", ["address", "uint256"], [to.checksum, raw_amount]
        )
        return (
            TransactionBuilder(self._client, self._wallet)
            .to(self.address)
            .data(calldata)
            .nonce(nonce)
            .gas_price(gas_price)
            .chain_id(self._chain_id)
            .with_gas_estimate()
            .send()
        )

    def query_transfers(
        self,
        from_block: int | str = 0,
        to_block: int | str = "latest",
    ) -> list[TransferLog]:
        logs = self._client.get_logs(
            self.address, [TRANSFER_TOPIC], from_block=from_block, to_block=to_block
        )
        transfers = []
        for log in logs:
            try:
                transfers.append(TransferLog.from_rpc(log))
            except ValueError as exc:
                logger.warning(
                    "skipping Transfer log %s from %s: %s",
                    log.get("transactionHash"),
                    self.address,
                    exc,
                )
        return transfers

    def _read(
        self,
        signature: str,
        output_types: list[str],
        arg_types: list[str] | None = None,
        args: list | None = None,
    ) -> tuple:
        calldata = _encode_call(signature, arg_types or [], args or [])
        result = self._client.call(TransactionRequest(to=self.address, data=calldata))
        if not result:
            raise RPCError(f"{signature} returned no data from {self.address.checksum}")
        return decode(output_types, result)
