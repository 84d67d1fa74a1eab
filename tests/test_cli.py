import json

import pytest

from core.errors import NetworkError
from core.wallet_manager import WalletManager
from pricing.gas_station import GasPriceClient
from wallet import cli
from wallet.session import WalletSession

from fakes import FakeChainClient

HARDHAT_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
HARDHAT_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"


def test_gas_command_prints_oracle_json(monkeypatch, capsys):
    monkeypatch.setattr(GasPriceClient, "fetch_gas_price", lambda self: {"average": 300})

    cli.main(["gas", "--url", "https://gas.example"])

    assert json.loads(capsys.readouterr().out) == {"average": 300}


def test_wallet_errors_exit_cleanly(monkeypatch):
    def fail(self):
        raise NetworkError("down")

    monkeypatch.setattr(GasPriceClient, "fetch_gas_price", fail)

    with pytest.raises(SystemExit, match="Error: down"):
        cli.main(["gas"])


def test_new_command_writes_decryptable_keystore(monkeypatch, tmp_path, capsys):
    create = WalletSession.create
    monkeypatch.setattr(
        WalletSession,
        "create",
        classmethod(lambda cls: create(kdf="pbkdf2", kdf_iterations=2)),
    )
    keyfile = tmp_path / "wallet.json"

    cli.main(["new", str(keyfile), "--password", "pw"])

    out = capsys.readouterr().out
    restored = WalletManager.from_encrypted_json(keyfile.read_text(encoding="utf-8"), "pw")
    assert f"Address:  {restored.address}" in out
    assert "MNEMONIC" not in out


def test_new_command_refuses_to_overwrite(tmp_path):
    keyfile = tmp_path / "wallet.json"
    keyfile.write_text("{}", encoding="utf-8")

    with pytest.raises(SystemExit, match="already exists"):
        cli.main(["new", str(keyfile), "--password", "pw"])


def test_balance_command_unlocks_keystore_and_prints_balances(monkeypatch, tmp_path, capsys):
    keyfile = tmp_path / "wallet.json"
    keyfile.write_text(
        WalletManager(HARDHAT_KEY).encrypt("pw", kdf="pbkdf2", iterations=2),
        encoding="utf-8",
    )
    providers = []

    def provider_factory(network):
        client = FakeChainClient(network.name)
        client.ether_balance = 2 * 10**18
        client.decimals[USDC.lower()] = 6
        client.token_balances[USDC.lower()] = 7_500_000
        providers.append(client)
        return client

    restore = WalletSession.from_encrypted_json
    monkeypatch.setattr(
        WalletSession,
        "from_encrypted_json",
        classmethod(
            lambda cls, payload, passphrase: restore(
                payload, passphrase, provider_factory=provider_factory
            )
        ),
    )

    cli.main(
        ["balance", str(keyfile), "--password", "pw", "--network", "sepolia", "--token", USDC]
    )

    out = capsys.readouterr().out
    assert f"Address: {HARDHAT_ADDRESS}" in out
    assert "Network: sepolia" in out
    assert "ETH:     2.0" in out
    assert f"{USDC}: 7" in out
    assert providers[0].network == "sepolia"


def test_balance_command_wrong_passphrase_exits(tmp_path):
    keyfile = tmp_path / "wallet.json"
    keyfile.write_text(
        WalletManager(HARDHAT_KEY).encrypt("pw", kdf="pbkdf2", iterations=2),
        encoding="utf-8",
    )

    with pytest.raises(SystemExit, match="Error:"):
        cli.main(["balance", str(keyfile), "--password", "nope"])
