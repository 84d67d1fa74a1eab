"""CLI for gas prices, wallet creation and balance checks."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import logging
from pathlib import Path

from chain.networks import list_network_names
from core.errors import WalletError
from pricing.gas_station import GasPriceClient

from .session import DEFAULT_NETWORK, WalletSession


def _read_passphrase(args: argparse.Namespace, confirm: bool = False) -> str:
    if args.password is not None:
        return args.password
    passphrase = getpass.getpass("Passphrase: ")
    if confirm and getpass.getpass("Repeat passphrase: ") != passphrase:
        raise SystemExit("Passphrases do not match")
    return passphrase


def _cmd_gas(args: argparse.Namespace) -> None:
    client = GasPriceClient(url=args.url, timeout_seconds=args.timeout)
    print(json.dumps(client.fetch_gas_price(), indent=2))


def _cmd_new(args: argparse.Namespace) -> None:
    path = Path(args.keyfile)
    if path.exists() and not args.force:
        raise SystemExit(f"{path} already exists (use --force to overwrite)")
    passphrase = _read_passphrase(args, confirm=True)
    session = WalletSession.create()
    address = session.get_address()
    mnemonic = session.get_mnemonics()
    backup = asyncio.run(session.lock(passphrase))
    path.write_text(backup, encoding="utf-8")
    print(f"Address:  {address}")
    print(f"Keystore: {path}")
    if args.show_mnemonic:
        print(f"MNEMONIC (save securely): {mnemonic}")


async def _balance(session: WalletSession, network: str, tokens: list[str]) -> None:
    session.connect(network)
    print(f"Address: {session.get_address()}")
    print(f"Network: {session.get_network()}")
    print(f"ETH:     {await session.get_ether_balance()}")
    for token in tokens:
        await session.add_token(token, token)
        print(f"{token}: {await session.get_token_balance(token)}")


def _cmd_balance(args: argparse.Namespace) -> None:
    payload = Path(args.keyfile).read_text(encoding="utf-8")
    passphrase = _read_passphrase(args)
    session = WalletSession.from_encrypted_json(payload, passphrase)
    asyncio.run(_balance(session, args.network, args.token or []))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Ethereum web wallet")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log RPC calls")
    sub = parser.add_subparsers(dest="command", required=True)

    gas = sub.add_parser("gas", help="Print the gas oracle's JSON")
    gas.add_argument("--url", help="Oracle URL (or set GAS_STATION_URL env var)")
    gas.add_argument("--timeout", type=float, default=10.0)
    gas.set_defaults(func=_cmd_gas)

    new = sub.add_parser("new", help="Create a wallet and write its keystore")
    new.add_argument("keyfile", help="Path of the keystore JSON to write")
    new.add_argument("--password", help="Passphrase (prompted when omitted)")
    new.add_argument("--force", action="store_true")
    new.add_argument("--show-mnemonic", action="store_true")
    new.set_defaults(func=_cmd_new)

    balance = sub.add_parser("balance", help="Unlock a keystore and print balances")
    balance.add_argument("keyfile", help="Path of the keystore JSON")
    balance.add_argument("--password", help="Passphrase (prompted when omitted)")
    balance.add_argument(
        "--network", choices=list_network_names(), default=DEFAULT_NETWORK
    )
    balance.add_argument(
        "--token", action="append", help="ERC-20 contract address (repeatable)"
    )
    balance.set_defaults(func=_cmd_balance)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except WalletError as exc:
        raise SystemExit(f"Error: {exc}") from exc


if __name__ == "__main__":
    main()
