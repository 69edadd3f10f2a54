#!/usr/bin/env python3
"""DRIP - single-claim native token faucet.

Entry point for the DRIP service.
"""

import asyncio
import logging
import os
import signal
import sys
import tempfile
from pathlib import Path

from eth_account import Account

from drip.api.server import FaucetServer
from drip.blockchain.client import JsonRpcClient
from drip.blockchain.networks import NetworkInfo
from drip.blockchain.transaction import TransactionSigner
from drip.cli import create_parser, run_cli
from drip.config import DripConfig
from drip.core.wallet import EnvironmentWallet
from drip.faucet import FaucetService, create_claim_store
from drip.observability.health import FaucetHealthCheck
from drip.observability.logging import configure_logging
from drip.slack.ingress import SlackIngress


def generate_wallet(output_path: str) -> str:
    """Generate a new wallet and save the private key to a file.

    Parameters
    ----------
    output_path : str
        Path to save the private key file.

    Returns
    -------
    str
        Checksummed address of the new wallet.
    """
    account = Account.create()

    # Temp file in the target directory so the rename stays on one filesystem
    key_path = Path(output_path)
    key_path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(dir=key_path.parent, prefix=".drip-key-")
    fd_closed = False
    try:
        os.fchmod(fd, 0o600)
        os.write(fd, account.key.hex().encode())
        os.close(fd)
        fd_closed = True
        os.rename(temp_path, key_path)
    except Exception:
        if not fd_closed:
            os.close(fd)
        Path(temp_path).unlink(missing_ok=True)
        raise

    print(f"""
Wallet generated successfully!

  Address:     {account.address}
  Private Key: {key_path.absolute()}

Next steps:

  1. Fund this address with native tokens on your target network

  2. Launch DRIP with this wallet:

     export DRIP_WALLET_PRIVATE_KEY_FILE={key_path.absolute()}
     export DRIP_RPC_ENDPOINT=http://localhost:8545
     export DRIP_CHAIN_ID=<chain id>
     export DRIP_AMOUNT_WEI=1000000000000000000
     drip run

IMPORTANT: Keep this private key secure. Anyone with access can control the wallet.
""")
    return account.address


def parse_args():
    """Parse command line arguments."""
    return create_parser().parse_args()


async def run_service() -> None:
    """Run the DRIP service (long-running mode).

    Wires up and starts all service components:
    - Wallet, JSON-RPC client and transaction signer
    - Claim store (SQLite, or Redis when DRIP_REDIS_URL is set)
    - FaucetService with the send gate
    - FaucetServer for POST /faucet, probes and metrics
    - SlackIngress for the chat channel, when tokens are configured
    """
    config = DripConfig()
    configure_logging(level=config.log_level, log_format=config.log_format)

    logger = logging.getLogger(__name__)
    logger.info("DRIP starting")
    logger.info("RPC endpoint: %s", config.rpc_endpoint)
    logger.info("Amount per claim: %d wei", config.amount_wei)

    try:
        wallet = EnvironmentWallet.from_config(config)
    except ValueError as e:
        logger.error("%s", e)
        sys.exit(1)
    logger.info("Wallet loaded: %s", wallet.address)

    client = JsonRpcClient(config.rpc_endpoint, timeout=config.rpc_timeout_seconds)
    store = create_claim_store(config.state_path, config.redis_url)
    faucet = FaucetService(
        client=client,
        signer=TransactionSigner(wallet, config.chain_id),
        store=store,
        amount_wei=config.amount_wei,
    )

    try:
        chain_id = await faucet.verify_chain_id()
    except Exception:
        logger.exception("Startup chain check failed")
        await client.close()
        await store.close()
        sys.exit(1)
    logger.info("Connected to chain ID: %d", chain_id)

    network = NetworkInfo(
        rpc_endpoint=config.rpc_endpoint,
        chain_id=chain_id,
        block_explorer_url=config.block_explorer_url,
        currency_symbol=config.currency_symbol,
    )

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def on_shutdown_signal(sig_name: str) -> None:
        logger.info("Received signal %s, initiating shutdown", sig_name)
        shutdown_event.set()

    loop.add_signal_handler(signal.SIGTERM, lambda: on_shutdown_signal("SIGTERM"))
    loop.add_signal_handler(signal.SIGINT, lambda: on_shutdown_signal("SIGINT"))

    server = FaucetServer(faucet, host=config.host, port=config.port)
    server.add_check(FaucetHealthCheck(faucet))
    await server.start()

    slack = None
    if config.slack_enabled:
        slack = SlackIngress(
            bot_token=config.slack_bot_token,
            app_token=config.slack_app_token,
            faucet=faucet,
            network=network,
        )
        await slack.start()
    else:
        logger.info("Slack tokens not set, chat channel disabled")

    logger.info("DRIP service ready")

    await shutdown_event.wait()

    logger.info("DRIP shutting down...")
    if slack:
        await slack.stop()
    await server.stop()
    # Sends past the gate must record their claims before the store closes
    await faucet.drain()
    await client.close()
    await store.close()
    logger.info("DRIP shutdown complete")


async def main() -> None:
    """Main entry point for DRIP."""
    args = parse_args()

    if args.generate_wallet:
        generate_wallet(args.generate_wallet)
        return

    if args.command and args.command != "run":
        exit_code = await run_cli(args)
        if exit_code >= 0:
            sys.exit(exit_code)
        create_parser().print_help()
        sys.exit(0)

    await run_service()


def cli_entry() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    cli_entry()
