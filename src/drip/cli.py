"""CLI subcommands for DRIP operations.

Provides command-line interface for:
- Wallet operations (address, balance)
- Claim ledger lookups (claims check)
- One-off dispatch through the faucet pipeline (send)
"""

import argparse
import json
import sys

from web3 import Web3

from drip.blockchain.client import JsonRpcClient
from drip.blockchain.networks import NetworkInfo
from drip.blockchain.transaction import TransactionSigner, validate_address
from drip.config import DripConfig
from drip.core.wallet import EnvironmentWallet
from drip.faucet.service import FaucetService
from drip.faucet.store import ClaimStore, create_claim_store
from drip.observability.logging import configure_logging


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="drip",
        description="DRIP - single-claim native token faucet",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Global flags
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would happen without executing",
    )
    parser.add_argument(
        "--generate-wallet",
        metavar="FILE",
        help="Generate a new wallet and save private key to FILE, then exit",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Wallet subcommand
    wallet_parser = subparsers.add_parser("wallet", help="Wallet operations")
    wallet_sub = wallet_parser.add_subparsers(dest="wallet_command")

    wallet_sub.add_parser("address", help="Show funding wallet address")
    wallet_sub.add_parser("balance", help="Show funding wallet balance")

    # Claims subcommand
    claims_parser = subparsers.add_parser("claims", help="Claim ledger operations")
    claims_sub = claims_parser.add_subparsers(dest="claims_command")

    check_parser = claims_sub.add_parser("check", help="Show whether an address has claimed")
    check_parser.add_argument("address", type=str, help="Address to look up")

    # Send subcommand
    send_parser = subparsers.add_parser("send", help="Dispatch one claim to an address")
    send_parser.add_argument("address", type=str, help="Recipient address")

    # Run subcommand (start service)
    subparsers.add_parser("run", help="Start the DRIP service")

    return parser


class CLIContext:
    """Shared context for CLI commands."""

    def __init__(self, config: DripConfig, dry_run: bool = False, json_output: bool = False):
        self.config = config
        self.dry_run = dry_run
        self.json_output = json_output
        self._wallet: EnvironmentWallet | None = None
        self._client: JsonRpcClient | None = None
        self._store: ClaimStore | None = None
        self._network: NetworkInfo | None = None

    @property
    def wallet(self) -> EnvironmentWallet:
        """Get wallet (lazy loaded)."""
        if self._wallet is None:
            self._wallet = EnvironmentWallet.from_config(self.config)
        return self._wallet

    @property
    def client(self) -> JsonRpcClient:
        """Get JSON-RPC client (lazy loaded)."""
        if self._client is None:
            self._client = JsonRpcClient(
                self.config.rpc_endpoint,
                timeout=self.config.rpc_timeout_seconds,
            )
        return self._client

    @property
    def store(self) -> ClaimStore:
        """Get claim store (lazy loaded)."""
        if self._store is None:
            self._store = create_claim_store(self.config.state_path, self.config.redis_url)
        return self._store

    @property
    def network(self) -> NetworkInfo:
        """Get network display info."""
        if self._network is None:
            self._network = NetworkInfo(
                rpc_endpoint=self.config.rpc_endpoint,
                chain_id=self.config.chain_id,
                block_explorer_url=self.config.block_explorer_url,
                currency_symbol=self.config.currency_symbol,
            )
        return self._network

    def faucet(self) -> FaucetService:
        """Build a faucet service over the lazily loaded components."""
        signer = TransactionSigner(self.wallet, self.config.chain_id)
        return FaucetService(self.client, signer, self.store, self.config.amount_wei)

    async def close(self) -> None:
        """Release the RPC session and the claim store."""
        if self._client is not None:
            await self._client.close()
        if self._store is not None:
            await self._store.close()

    def output(self, data: dict) -> None:
        """Output data in the appropriate format."""
        if self.json_output:
            print(json.dumps(data, default=str, indent=2))
        else:
            self._print_formatted(data)

    def _print_formatted(self, data: dict, indent: int = 0) -> None:
        """Print data in human-readable format."""
        prefix = "  " * indent
        for key, value in data.items():
            if isinstance(value, dict):
                print(f"{prefix}{key}:")
                self._print_formatted(value, indent + 1)
            else:
                print(f"{prefix}{key}: {value}")


# Wallet commands


async def cmd_wallet_address(ctx: CLIContext) -> int:
    """Show wallet address."""
    try:
        ctx.output({"address": ctx.wallet.address})
        return 0
    except Exception as e:
        ctx.output({"error": str(e)})
        return 1


async def cmd_wallet_balance(ctx: CLIContext) -> int:
    """Show wallet balance."""
    try:
        address = ctx.wallet.address
        balance = await ctx.client.get_balance(address)
        chain_id = await ctx.client.get_chain_id()
        ctx.output(
            {
                "address": address,
                "balance_wei": balance,
                "balance": ctx.network.format_amount(balance),
                "rpc": ctx.config.rpc_endpoint,
                "chain_id": chain_id,
            }
        )
        return 0
    except Exception as e:
        ctx.output({"error": str(e)})
        return 1


# Claim ledger commands


async def cmd_claims_check(ctx: CLIContext, address: str) -> int:
    """Show whether an address has a claim record."""
    try:
        if not validate_address(address):
            ctx.output({"error": f"Invalid address: {address}"})
            return 1

        claimed_at = await ctx.store.get_claim(address)
        ctx.output(
            {
                "address": Web3.to_checksum_address(address),
                "claimed": claimed_at is not None,
                "claimed_at": claimed_at.isoformat() if claimed_at else None,
            }
        )
        return 0
    except Exception as e:
        ctx.output({"error": str(e)})
        return 1


# Dispatch commands


async def cmd_send(ctx: CLIContext, address: str) -> int:
    """Send the configured amount to an address and record the claim."""
    try:
        if not validate_address(address):
            ctx.output({"error": f"Invalid address: {address}"})
            return 1

        if ctx.dry_run:
            claimed_at = await ctx.store.get_claim(address)
            amount = ctx.network.format_amount(ctx.config.amount_wei)
            ctx.output(
                {
                    "dry_run": True,
                    "action": "send",
                    "to": address,
                    "amount_wei": ctx.config.amount_wei,
                    "already_claimed": claimed_at is not None,
                    "message": f"Would send {amount} to {address}",
                }
            )
            return 0

        faucet = ctx.faucet()
        await faucet.verify_chain_id()
        result = await faucet.dispatch(address, channel="cli")

        data = {
            "success": result.success,
            "status": result.status.value,
            "to": result.address,
            "amount_wei": result.amount_wei,
            "message": result.message,
        }
        if result.tx_hash:
            data["tx_hash"] = result.tx_hash
            data["claim_recorded"] = result.claim_recorded
        ctx.output(data)
        return 0 if result.success else 1
    except Exception as e:
        ctx.output({"error": str(e)})
        return 1


async def run_cli(args: argparse.Namespace) -> int:
    """Execute CLI command based on parsed arguments.

    Returns
    -------
    int
        Exit code: 0 for success, positive for error, -1 signals caller
        to show help (no CLI command specified).
    """
    try:
        config = DripConfig()
        # stdout carries the command result; logs go to stderr
        configure_logging(config.log_level, config.log_format, stream=sys.stderr)
    except Exception as e:
        if args.json:
            print(json.dumps({"error": f"Configuration error: {e}"}))
        else:
            print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    ctx = CLIContext(config, dry_run=args.dry_run, json_output=args.json)
    try:
        return await _route(ctx, args)
    finally:
        await ctx.close()


async def _route(ctx: CLIContext, args: argparse.Namespace) -> int:
    if args.command == "wallet":
        if args.wallet_command == "address":
            return await cmd_wallet_address(ctx)
        elif args.wallet_command == "balance":
            return await cmd_wallet_balance(ctx)
        else:
            print("Usage: drip wallet [address|balance]", file=sys.stderr)
            return 1

    elif args.command == "claims":
        if args.claims_command == "check":
            return await cmd_claims_check(ctx, args.address)
        else:
            print("Usage: drip claims check <address>", file=sys.stderr)
            return 1

    elif args.command == "send":
        return await cmd_send(ctx, args.address)

    else:
        # No subcommand - show help
        return -1
