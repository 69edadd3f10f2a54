"""Slack chat ingress for DRIP faucet.

Connects over Socket Mode, so no public webhook is needed, and routes
direct messages and ``/drip`` to the faucet service.
"""

import logging

from pydantic import SecretStr
from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler
from slack_bolt.async_app import AsyncApp

from drip.blockchain.networks import NetworkInfo
from drip.faucet.service import FaucetService

from .commands import register_commands

logger = logging.getLogger(__name__)


class SlackIngress:
    """Chat channel that turns Slack messages into faucet claims.

    Parameters
    ----------
    bot_token : SecretStr
        Slack bot token (xoxb-...).
    app_token : SecretStr
        Slack app-level token (xapp-...) for Socket Mode.
    faucet : FaucetService
        Coordinator that serves the claims.
    network : NetworkInfo | None
        Network info for explorer links in replies.
    """

    def __init__(
        self,
        bot_token: SecretStr,
        app_token: SecretStr,
        faucet: FaucetService,
        network: NetworkInfo | None = None,
    ):
        self._app_token = app_token
        self._faucet = faucet
        self._app = AsyncApp(token=bot_token.get_secret_value())
        self._handler: AsyncSocketModeHandler | None = None
        register_commands(self._app, faucet, network)

    @property
    def app(self) -> AsyncApp:
        return self._app

    @property
    def is_running(self) -> bool:
        return self._handler is not None

    async def start(self) -> None:
        """Connect via Socket Mode and start accepting claims."""
        if self._handler is not None:
            logger.warning("Slack ingress already running")
            return

        handler = AsyncSocketModeHandler(self._app, self._app_token.get_secret_value())
        try:
            await handler.connect_async()
        except Exception as e:
            logger.error("Slack connection failed", extra={"error": str(e)})
            raise
        self._handler = handler
        logger.info(
            "Slack ingress accepting claims",
            extra={
                "faucet_address": self._faucet.faucet_address,
                "amount_wei": str(self._faucet.amount_wei),
            },
        )

    async def stop(self) -> None:
        """Stop taking new messages. Sends already underway are drained by the faucet."""
        if self._handler is None:
            return

        try:
            await self._handler.close_async()
        finally:
            self._handler = None
        logger.info("Slack ingress stopped")
