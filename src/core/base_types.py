"""Core type definitions for wallet modules."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional

from eth_utils.address import is_address, to_checksum_address

from .errors import ValidationError

ETHER_DECIMALS = 18
GWEI_DECIMALS = 9


@dataclass(frozen=True)
class Address:
    """Ethereum address with validation and checksumming."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise TypeError("Address value must be a string")
        if not is_address(self.value):
            raise ValidationError("Invalid Ethereum address")
        object.__setattr__(self, "value", to_checksum_address(self.value))

    @classmethod
    def from_string(cls, s: str) -> "Address":
        return cls(s)

    @property
    def checksum(self) -> str:
        return self.value

    @property
    def lower(self) -> str:
        return self.value.lower()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Address):
            return self.lower == other.lower
        if isinstance(other, str):
            return self.lower == other.lower()
        return False

    def __hash__(self) -> int:
        return hash(self.lower)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TokenAmount:
    """
    Represents a token amount with proper decimal handling.

    Internally stores raw integer (wei-equivalent).
    Provides human-readable formatting.
    """

    raw: int
    decimals: int
    symbol: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.raw, int):
            raise TypeError("raw must be an int")
        if not isinstance(self.decimals, int) or self.decimals < 0:
            raise ValueError("decimals must be a non-negative integer")

    @classmethod
    def from_human(
        cls, amount: str | Decimal | int, decimals: int, symbol: str | None = None
    ) -> "TokenAmount":
        """Create from human-readable amount (e.g., '1.5' ETH)."""
        if isinstance(amount, float):
            raise TypeError("amount must be a string, int or Decimal, not float")
        if isinstance(amount, bool):
            raise TypeError("amount must be a string, int or Decimal")
        if isinstance(amount, (str, int)):
            try:
                decimal_amount = Decimal(amount)
            except InvalidOperation as exc:
                raise ValueError(f"Invalid amount: {amount!r}") from exc
        elif isinstance(amount, Decimal):
            decimal_amount = amount
        else:
            raise TypeError("amount must be a string, int or Decimal")
        if not decimal_amount.is_finite():
            raise ValueError(f"Invalid amount: {amount!r}")

        scale = Decimal(10) ** Decimal(decimals)
        raw_decimal = decimal_amount * scale
        if raw_decimal != raw_decimal.to_integral_value():
            raise ValueError("amount has more precision than decimals allow")
        return cls(raw=int(raw_decimal), decimals=decimals, symbol=symbol)

    def formatted(self) -> str:
        return format_units(self.raw, self.decimals)

    def __str__(self) -> str:
        return f"{self.formatted()} {self.symbol or ''}".strip()


def format_units(raw: int, decimals: int = ETHER_DECIMALS) -> str:
    """
    Format a raw integer amount as a decimal string.

    Always keeps at least one fractional digit and strips trailing zeros,
    so 1.5 ether formats as "1.5" and zero as "0.0".
    """
    if not isinstance(raw, int):
        raise TypeError("raw must be an int")
    if decimals < 0:
        raise ValueError("decimals must be a non-negative integer")
    sign = "-" if raw < 0 else ""
    whole, fraction = divmod(abs(raw), 10**decimals)
    if decimals == 0:
        return f"{sign}{whole}.0"
    fraction_str = str(fraction).rjust(decimals, "0").rstrip("0") or "0"
    return f"{sign}{whole}.{fraction_str}"


def parse_units(amount: str | Decimal | int, decimals: int = ETHER_DECIMALS) -> int:
    """Parse a human amount into raw integer units."""
    try:
        value = TokenAmount.from_human(amount, decimals)
    except (TypeError, ValueError) as exc:
        raise ValidationError(str(exc)) from exc
    if value.raw < 0:
        raise ValidationError("amount must not be negative")
    return value.raw


class TransferStatus(str, Enum):
    SELF = "SELF"
    OUT = "OUT"
    IN = "IN"

    @classmethod
    def classify(cls, owner: str, sender: str, recipient: str | None) -> "TransferStatus":
        """SELF if both sides are the owner, OUT if the owner sent, else IN."""
        owner_lower = owner.lower()
        sent = (sender or "").lower() == owner_lower
        received = (recipient or "").lower() == owner_lower
        if sent and received:
            return cls.SELF
        if sent:
            return cls.OUT
        return cls.IN


@dataclass(frozen=True)
class HistoryEntry:
    """One transfer involving the wallet, reshaped for display."""

    transaction_hash: str
    status: TransferStatus
    from_address: str
    to_address: Optional[str]
    amount: str
    timestamp: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "transactionHash": self.transaction_hash,
            "status": self.status.value,
            "from": self.from_address,
            "to": self.to_address,
            "amount": self.amount,
            "timestamp": self.timestamp,
        }


@dataclass
class TransactionRequest:
    """A legacy (gasPrice) transaction ready to be signed."""

    to: Address
    value: int = 0
    data: bytes = b""
    sender: Optional[Address] = None
    nonce: Optional[int] = None
    gas_limit: Optional[int] = None
    gas_price: Optional[int] = None
    chain_id: int = 1

    def to_dict(self) -> dict:
        """Convert to eth-account compatible dict."""
        payload: dict[str, object] = {
            "to": self.to.checksum,
            "value": self.value,
            "data": f"0x{self.data.hex()}",
            "chainId": self.chain_id,
        }
        if self.nonce is not None:
            payload["nonce"] = self.nonce
        if self.gas_limit is not None:
            payload["gas"] = self.gas_limit
        if self.gas_price is not None:
            payload["gasPrice"] = self.gas_price
        return payload

    def to_rpc_dict(self) -> dict:
        """Hex-encoded quantities for eth_call / eth_estimateGas."""
        payload: dict[str, object] = {
            "to": self.to.checksum,
            "value": hex(self.value),
            "data": f"0x{self.data.hex()}",
        }
        if self.sender is not None:
            payload["from"] = self.sender.checksum
        if self.gas_price is not None:
            payload["gasPrice"] = hex(self.gas_price)
        return payload


@dataclass(frozen=True)
class SubmittedTransaction:
    """Handle for a transaction accepted by the node."""

    hash: str
    nonce: int
    to: str
    value: int
    gas_price: int
    gas_limit: int
    data: bytes
    chain_id: int

