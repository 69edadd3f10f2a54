"""Slack handlers for DRIP faucet.

Direct messages:
- any text: a 42-character ``0x`` string claims tokens for that address

Slash command:
- /drip <address> - Claim tokens
- /drip status - Check faucet status
- /drip help - Show welcome message
"""

import logging

from slack_bolt.async_app import AsyncApp

from drip.blockchain.networks import NetworkInfo
from drip.faucet.service import FaucetService
from drip.observability.logging import bind_request_context, clear_request_id, new_request_id

from .formatter import MessageFormatter

logger = logging.getLogger(__name__)

ADDRESS_LENGTH = 42

INVALID_FORMAT = "Invalid address format. Please send a valid address starting with 0x."


def _parse_address(text: str) -> tuple[str | None, str | None]:
    """Extract a claim address from free text.

    Only the shape is checked here (``0x`` prefix, 42 characters); the
    faucet service does the full validation.

    Returns
    -------
    tuple[str | None, str | None]
        (address, error_message)
    """
    candidate = (text or "").strip()
    if not candidate.startswith("0x") or len(candidate) != ADDRESS_LENGTH:
        return None, INVALID_FORMAT
    return candidate, None


async def _claim(reply, faucet: FaucetService, formatter: MessageFormatter, user_id: str, text: str):
    """Run one chat claim and send the replies."""
    address, error = _parse_address(text)
    if error:
        await reply(formatter.format_error(error))
        return

    refusal = await faucet.precheck_chat_user(user_id)
    if refusal is not None:
        await reply(formatter.format_claim_error(refusal))
        return

    await reply(formatter.format_processing())
    result = await faucet.handle_chat_request(user_id, address)

    if result.success:
        await reply(formatter.format_claim_success(result))
    else:
        await reply(formatter.format_claim_error(result))


def register_commands(
    app: AsyncApp,
    faucet: FaucetService,
    network: NetworkInfo | None = None,
) -> None:
    """Register the DRIP message listener and slash command with the Slack app.

    Parameters
    ----------
    app : AsyncApp
        Slack Bolt async app instance.
    faucet : FaucetService
        Faucet service for handling requests.
    network : NetworkInfo | None
        Network info for explorer links.
    """
    formatter = MessageFormatter(network)

    @app.event("message")
    async def handle_direct_message(event, say):
        """Treat direct messages as claim requests."""
        # Ignore edits, joins, bot echoes and channel chatter
        if event.get("subtype") or event.get("bot_id"):
            return
        if event.get("channel_type") != "im":
            return

        user_id = event.get("user")
        if not user_id:
            return

        new_request_id("slack")
        bind_request_context(user_id=user_id)
        try:
            logger.info("Received direct message")
            await _claim(say, faucet, formatter, user_id, event.get("text", ""))
        except Exception:
            logger.exception("Error handling direct message")
            await say(formatter.format_error("Failed to send tokens. Please try again later."))
        finally:
            clear_request_id()

    @app.command("/drip")
    async def handle_drip_command(ack, command, respond):
        """Handle /drip slash command."""
        await ack()

        new_request_id("slack")
        try:
            user_id = command["user_id"]
            bind_request_context(user_id=user_id)
            text = command.get("text", "").strip()
            subcommand = text.lower()

            logger.info(
                "Received /drip command",
                extra={"command_args": text},
            )

            if subcommand in ("", "help", "start"):
                await respond(formatter.format_welcome(faucet.amount_wei))
            elif subcommand == "status":
                await respond(formatter.format_status(await faucet.get_status()))
            else:
                await _claim(respond, faucet, formatter, user_id, text)
        except Exception:
            logger.exception("Error handling /drip command")
            await respond(formatter.format_error("An unexpected error occurred. Please try again."))
        finally:
            clear_request_id()
