"""Message formatter for Slack responses."""

from drip.blockchain.networks import NetworkInfo
from drip.faucet.service import DispatchResult, DispatchStatus, FaucetStatus

_ERROR_TEXT = {
    DispatchStatus.INVALID_ADDRESS: "{message}",
    DispatchStatus.ALREADY_CLAIMED: "This address has already received tokens from the faucet.",
    DispatchStatus.CLAIM_IN_PROGRESS: "A request for this address is already being processed.",
    DispatchStatus.USER_ALREADY_CLAIMED: "You've already received tokens from this faucet.",
}

_GENERIC_FAILURE = "Failed to send tokens. Please try again later."


def _section(text: str) -> dict:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


class MessageFormatter:
    """Formats faucet replies as Slack Block Kit messages.

    Every message carries a plain ``text`` fallback for notifications.

    Parameters
    ----------
    network : NetworkInfo | None
        Network info for explorer links and amount display.
    """

    def __init__(self, network: NetworkInfo | None = None):
        self._network = network

    def _amount(self, amount_wei: int) -> str:
        if self._network:
            return self._network.format_amount(amount_wei)
        return f"{amount_wei} wei"

    def format_welcome(self, amount_wei: int) -> dict:
        """Format the greeting shown for ``/drip`` and ``/drip help``."""
        text = (
            f"Welcome to the faucet! :potable_water:\n\n"
            f"Send me your address (0x...) in a direct message, or use "
            f"`/drip <address>`, to receive {self._amount(amount_wei)}.\n"
            f"Each address and each Slack user can claim once."
        )
        return {"text": text, "blocks": [_section(text)]}

    def format_processing(self) -> dict:
        """Format the acknowledgement sent before dispatching."""
        text = "Processing your request... :hourglass_flowing_sand:"
        return {"text": text, "blocks": [_section(text)]}

    def format_claim_success(self, result: DispatchResult) -> dict:
        """Format a successful claim.

        Parameters
        ----------
        result : DispatchResult
            The dispatch result.

        Returns
        -------
        dict
            Slack Block Kit message.
        """
        tx_text = f"`{result.tx_hash}`"
        if self._network and result.tx_hash:
            tx_url = self._network.get_tx_url(result.tx_hash)
            if tx_url:
                tx_text = f"<{tx_url}|{result.tx_hash[:18]}...>"

        amount = self._amount(result.amount_wei)
        return {
            "text": f"Tokens sent successfully! Transaction hash: {result.tx_hash}",
            "blocks": [
                _section(f":white_check_mark: *Sent {amount}*"),
                {
                    "type": "section",
                    "fields": [
                        {"type": "mrkdwn", "text": f"*To:*\n`{result.address}`"},
                        {"type": "mrkdwn", "text": f"*Transaction:*\n{tx_text}"},
                    ],
                },
            ],
        }

    def format_claim_error(self, result: DispatchResult) -> dict:
        """Format a failed claim with a user-facing reason."""
        template = _ERROR_TEXT.get(result.status, _GENERIC_FAILURE)
        return self.format_error(template.format(message=result.message))

    def format_status(self, status: FaucetStatus) -> dict:
        """Format faucet status."""
        health_emoji = ":white_check_mark:" if status.healthy else ":warning:"
        balance = "unknown" if status.balance_wei is None else self._amount(status.balance_wei)

        text = f"Faucet status: {status.message}"
        blocks = [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": "DRIP Faucet Status"},
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Health:*\n{health_emoji} {status.message}"},
                    {"type": "mrkdwn", "text": f"*Balance:*\n{balance}"},
                    {"type": "mrkdwn", "text": f"*Per claim:*\n{self._amount(status.amount_wei)}"},
                    {"type": "mrkdwn", "text": f"*Faucet address:*\n`{status.address}`"},
                ],
            },
        ]
        return {"text": text, "blocks": blocks}

    def format_error(self, message: str) -> dict:
        """Format a generic error message."""
        text = f":x: {message}"
        return {"text": text, "blocks": [_section(text)]}
