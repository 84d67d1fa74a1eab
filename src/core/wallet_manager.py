"""Signing handle: secure key handling, keystore encryption and signing."""

from __future__ import annotations

import json
from typing import Any, Optional

from eth_account import Account
from eth_account.datastructures import SignedTransaction
from eth_utils.address import to_checksum_address

from .errors import AuthenticationError, ValidationError

Account.enable_unaudited_hdwallet_features()


def _mask_private_key(private_key: Any) -> str:
    if isinstance(private_key, (bytes, bytearray)):
        raw = private_key.hex()
    else:
        raw = str(private_key)

    if raw.startswith("0x"):
        raw = raw[2:]

    if len(raw) < 10:
        return "<redacted>"

    return f"0x{raw[:6]}...{raw[-4:]}"


def _load_keystore(encrypted_json: str | dict) -> dict:
    if isinstance(encrypted_json, dict):
        data = encrypted_json
    else:
        try:
            data = json.loads(encrypted_json)
        except (TypeError, json.JSONDecodeError) as exc:
            raise ValidationError("Encrypted backup is not valid JSON") from exc
    if not isinstance(data, dict) or not ("crypto" in data or "Crypto" in data):
        raise ValidationError("Encrypted backup is not a keystore document")
    return data


class WalletManager:
    """
    Holds one private key and signs with it.

    Keys can be loaded from:
    - Raw private key
    - BIP-39 mnemonic
    - Encrypted keystore JSON

    CRITICAL: Private key must never appear in logs, errors, or string
    representations.
    """

    def __init__(self, private_key: str | bytes, mnemonic: Optional[str] = None) -> None:
        try:
            self._account = Account.from_key(private_key)
        except Exception as exc:
            masked = _mask_private_key(private_key)
            raise ValidationError(f"Invalid private key: {masked}") from exc
        self._mnemonic = mnemonic

    @classmethod
    def generate(cls) -> "WalletManager":
        """Generate a new random key together with its mnemonic."""
        account, mnemonic = Account.create_with_mnemonic()
        return cls(account.key, mnemonic=mnemonic)

    @classmethod
    def from_mnemonic(cls, mnemonic: str) -> "WalletManager":
        """Derive the first account (m/44'/60'/0'/0/0) from a mnemonic."""
        if not isinstance(mnemonic, str) or not mnemonic.strip():
            raise ValidationError("mnemonic must be a non-empty string")
        phrase = " ".join(mnemonic.split())
        try:
            account = Account.from_mnemonic(phrase)
        except Exception as exc:
            raise ValidationError("Invalid mnemonic phrase") from exc
        return cls(account.key, mnemonic=phrase)

    @classmethod
    def from_encrypted_json(cls, encrypted_json: str | dict, password: str) -> "WalletManager":
        """Decrypt a keystore document."""
        data = _load_keystore(encrypted_json)
        try:
            private_key = Account.decrypt(data, password)
        except ValueError as exc:
            raise AuthenticationError("Failed to decrypt keystore") from exc
        except (KeyError, TypeError) as exc:
            raise ValidationError("Malformed keystore document") from exc
        return cls(private_key)

    @property
    def address(self) -> str:
        """Returns checksummed address."""
        return to_checksum_address(self._account.address)

    @property
    def private_key(self) -> str:
        return "0x" + bytes(self._account.key).hex()

    @property
    def mnemonic(self) -> Optional[str]:
        return self._mnemonic

    def encrypt(
        self,
        password: str,
        kdf: Optional[str] = None,
        iterations: Optional[int] = None,
    ) -> str:
        """Export as keystore JSON (scrypt unless another kdf is given)."""
        if not isinstance(password, str):
            raise TypeError("password must be a string")
        data = Account.encrypt(
            self._account.key, password, kdf=kdf, iterations=iterations
        )
        return json.dumps(data)

    def sign_transaction(self, tx: dict) -> SignedTransaction:
        """Sign a transaction dict."""
        if not isinstance(tx, dict):
            raise TypeError("tx must be a dict")
        if not tx:
            raise ValueError("tx must not be empty")
        return self._account.sign_transaction(tx)

    def __repr__(self) -> str:
        """MUST NOT expose private key."""
        return f"WalletManager(address={self.address})"

    def __str__(self) -> str:
        return self.__repr__()
