"""Tests for CLI subcommands."""

import argparse
import json
from unittest.mock import AsyncMock, patch

import pytest
from eth_utils import keccak

from drip.blockchain.client import JsonRpcClient
from drip.cli import (
    CLIContext,
    cmd_claims_check,
    cmd_send,
    cmd_wallet_address,
    cmd_wallet_balance,
    create_parser,
    run_cli,
)
from drip.config import DripConfig
from drip.errors import TransportError

TEST_PRIVATE_KEY = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"
TEST_ADDRESS = "0xFCAd0B19bB29D4674531d6f115237E16AfCE377c"
RECIPIENT = "0x1111111111111111111111111111111111111111"


@pytest.fixture
def env(monkeypatch, tmp_path):
    monkeypatch.setenv("DRIP_RPC_ENDPOINT", "http://localhost:8545")
    monkeypatch.setenv("DRIP_CHAIN_ID", "1337")
    monkeypatch.setenv("DRIP_AMOUNT_WEI", str(10**18))
    monkeypatch.setenv("DRIP_WALLET_PRIVATE_KEY", TEST_PRIVATE_KEY)
    monkeypatch.setenv("DRIP_STATE_PATH", str(tmp_path / "state"))
    monkeypatch.setenv("DRIP_CURRENCY_SYMBOL", "DEV")


@pytest.fixture
def rpc():
    client = AsyncMock(spec=JsonRpcClient)
    client.get_chain_id.return_value = 1337
    client.get_balance.return_value = 25 * 10**17
    client.get_transaction_count.return_value = 3
    client.get_gas_price.return_value = 10**9
    client.estimate_gas.return_value = 21000
    client.send_raw_transaction.side_effect = lambda raw: "0x" + keccak(raw).hex()
    return client


@pytest.fixture
async def ctx(env, rpc):
    ctx = CLIContext(DripConfig(), json_output=True)
    ctx._client = rpc
    yield ctx
    await ctx.close()


def _json(capsys) -> dict:
    return json.loads(capsys.readouterr().out)


class TestCreateParser:
    """Tests for argument parser creation."""

    def test_wallet_subcommands(self):
        parser = create_parser()

        assert parser.parse_args(["wallet", "address"]).wallet_command == "address"
        assert parser.parse_args(["wallet", "balance"]).wallet_command == "balance"

    def test_claims_check(self):
        args = create_parser().parse_args(["claims", "check", RECIPIENT])

        assert args.command == "claims"
        assert args.claims_command == "check"
        assert args.address == RECIPIENT

    def test_send_with_global_flags(self):
        args = create_parser().parse_args(["--json", "--dry-run", "send", RECIPIENT])

        assert args.command == "send"
        assert args.address == RECIPIENT
        assert args.json is True
        assert args.dry_run is True

    def test_run_and_generate_wallet(self):
        parser = create_parser()

        assert parser.parse_args(["run"]).command == "run"
        assert parser.parse_args(["--generate-wallet", "/tmp/k"]).generate_wallet == "/tmp/k"
        assert parser.parse_args([]).command is None


class TestCLIContext:
    """Tests for CLI context."""

    def test_wallet_raises_without_key(self, env, monkeypatch):
        monkeypatch.delenv("DRIP_WALLET_PRIVATE_KEY")
        ctx = CLIContext(DripConfig())

        with pytest.raises(ValueError, match="No wallet configured"):
            _ = ctx.wallet

    def test_output_json(self, env, capsys):
        CLIContext(DripConfig(), json_output=True).output({"address": "0x1", "claimed": False})

        assert _json(capsys) == {"address": "0x1", "claimed": False}

    def test_output_text(self, env, capsys):
        CLIContext(DripConfig()).output({"address": "0x123", "nested": {"chain_id": 1337}})

        out = capsys.readouterr().out
        assert "address: 0x123" in out
        assert "nested:\n  chain_id: 1337" in out

    async def test_close_without_use(self, env):
        await CLIContext(DripConfig()).close()


class TestWalletCommands:
    """Tests for wallet commands."""

    async def test_wallet_address(self, ctx, capsys):
        assert await cmd_wallet_address(ctx) == 0
        assert _json(capsys) == {"address": TEST_ADDRESS}

    async def test_wallet_balance(self, ctx, capsys):
        assert await cmd_wallet_balance(ctx) == 0

        data = _json(capsys)
        assert data["balance_wei"] == 25 * 10**17
        assert data["balance"] == "2.5 DEV"
        assert data["chain_id"] == 1337

    async def test_wallet_balance_node_down(self, ctx, rpc, capsys):
        rpc.get_balance.side_effect = TransportError("connection refused")

        assert await cmd_wallet_balance(ctx) == 1
        assert "connection refused" in _json(capsys)["error"]


class TestClaimsCommands:
    """Tests for claim ledger lookups."""

    async def test_unclaimed(self, ctx, capsys):
        assert await cmd_claims_check(ctx, RECIPIENT) == 0

        data = _json(capsys)
        assert data["claimed"] is False
        assert data["claimed_at"] is None

    async def test_claimed_any_casing(self, ctx, capsys):
        mixed = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
        await ctx.store.mark_claimed(mixed.lower())

        assert await cmd_claims_check(ctx, mixed) == 0

        data = _json(capsys)
        assert data["claimed"] is True
        assert data["claimed_at"] is not None

    async def test_invalid_address(self, ctx, capsys):
        assert await cmd_claims_check(ctx, "0x12") == 1
        assert "Invalid address" in _json(capsys)["error"]


class TestSendCommand:
    """Tests for one-off dispatch."""

    async def test_dry_run_sends_nothing(self, ctx, rpc, capsys):
        ctx.dry_run = True

        assert await cmd_send(ctx, RECIPIENT) == 0

        data = _json(capsys)
        assert data["dry_run"] is True
        assert data["message"] == f"Would send 1 DEV to {RECIPIENT}"
        rpc.send_raw_transaction.assert_not_awaited()

    async def test_send_records_claim(self, ctx, rpc, capsys):
        assert await cmd_send(ctx, RECIPIENT) == 0

        data = _json(capsys)
        assert data["status"] == "success"
        assert data["tx_hash"].startswith("0x")
        assert data["claim_recorded"] is True
        assert await ctx.store.has_claimed(RECIPIENT) is True

    async def test_second_send_refused(self, ctx, rpc, capsys):
        await cmd_send(ctx, RECIPIENT)
        capsys.readouterr()

        assert await cmd_send(ctx, RECIPIENT) == 1
        assert _json(capsys)["status"] == "already_claimed"
        assert rpc.send_raw_transaction.await_count == 1

    async def test_wrong_chain(self, ctx, rpc, capsys):
        rpc.get_chain_id.return_value = 1

        assert await cmd_send(ctx, RECIPIENT) == 1
        assert "serves chain 1" in _json(capsys)["error"]
        rpc.send_raw_transaction.assert_not_awaited()


class TestRunCLI:
    """Tests for command routing."""

    def _args(self, *argv) -> argparse.Namespace:
        return create_parser().parse_args(["--json", *argv])

    async def test_routes_wallet_address(self, env, capsys):
        assert await run_cli(self._args("wallet", "address")) == 0
        assert _json(capsys)["address"] == TEST_ADDRESS

    async def test_config_error(self, capsys):
        assert await run_cli(self._args("wallet", "address")) == 1
        assert "Configuration error" in _json(capsys)["error"]

    async def test_missing_wallet_subcommand(self, env, capsys):
        assert await run_cli(self._args("wallet")) == 1
        assert "Usage: drip wallet" in capsys.readouterr().err

    async def test_no_command_asks_for_help(self, env):
        assert await run_cli(self._args()) == -1

    async def test_json_send_keeps_logs_off_stdout(self, env, stub_node, monkeypatch, capsys):
        node, url = stub_node
        node.results.update(
            {
                "eth_chainId": "0x539",
                "eth_getTransactionCount": "0x3",
                "eth_gasPrice": hex(10**9),
                "eth_estimateGas": "0x5208",
                "eth_sendRawTransaction": lambda params: "0x"
                + keccak(bytes.fromhex(params[0][2:])).hex(),
            }
        )
        monkeypatch.setenv("DRIP_RPC_ENDPOINT", url)
        monkeypatch.setenv("DRIP_LOG_FORMAT", "json")

        assert await run_cli(self._args("send", RECIPIENT)) == 0

        captured = capsys.readouterr()
        data = json.loads(captured.out)
        assert data["status"] == "success"
        assert data["claim_recorded"] is True
        assert "Claim served" in captured.err

    async def test_closes_context(self, env):
        with patch.object(CLIContext, "close", new_callable=AsyncMock) as close:
            await run_cli(self._args("wallet", "address"))

        close.assert_awaited_once()
