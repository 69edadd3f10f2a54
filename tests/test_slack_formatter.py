"""Tests for Slack message formatting."""

import pytest

from drip.blockchain.networks import NetworkInfo
from drip.faucet.service import DispatchResult, DispatchStatus, FaucetStatus
from drip.slack.formatter import MessageFormatter

ADDRESS = "0x1111111111111111111111111111111111111111"
TX_HASH = "0x" + "ab" * 32


@pytest.fixture
def network():
    return NetworkInfo(
        rpc_endpoint="http://localhost:8545",
        chain_id=1337,
        block_explorer_url="https://explorer.example.com",
    )


def _result(status: DispatchStatus, message: str = "", tx_hash: str | None = None):
    return DispatchResult(
        success=status == DispatchStatus.SUCCESS,
        status=status,
        address=ADDRESS,
        amount_wei=10**18,
        message=message,
        tx_hash=tx_hash,
    )


def _block_text(message: dict) -> str:
    parts = []
    for block in message["blocks"]:
        if "text" in block:
            parts.append(block["text"]["text"])
        for field in block.get("fields", []):
            parts.append(field["text"])
    return "\n".join(parts)


class TestClaimMessages:
    """Tests for claim success and error messages."""

    def test_success_links_explorer(self, network):
        message = MessageFormatter(network).format_claim_success(
            _result(DispatchStatus.SUCCESS, tx_hash=TX_HASH)
        )

        assert TX_HASH in message["text"]
        body = _block_text(message)
        assert f"https://explorer.example.com/tx/{TX_HASH}" in body
        assert "Sent 1 ETH" in body
        assert ADDRESS in body

    def test_success_without_network(self):
        message = MessageFormatter().format_claim_success(
            _result(DispatchStatus.SUCCESS, tx_hash=TX_HASH)
        )

        body = _block_text(message)
        assert f"`{TX_HASH}`" in body
        assert f"{10**18} wei" in body

    @pytest.mark.parametrize(
        ("status", "fragment"),
        [
            (DispatchStatus.ALREADY_CLAIMED, "This address has already received tokens"),
            (DispatchStatus.CLAIM_IN_PROGRESS, "already being processed"),
            (DispatchStatus.USER_ALREADY_CLAIMED, "You've already received tokens"),
            (DispatchStatus.TRANSACTION_FAILED, "Failed to send tokens"),
            (DispatchStatus.STORE_UNAVAILABLE, "Failed to send tokens"),
        ],
    )
    def test_error_texts(self, status, fragment):
        message = MessageFormatter().format_claim_error(_result(status, "internal detail"))

        assert fragment in message["text"]
        assert "internal detail" not in message["text"]

    def test_invalid_address_shows_reason(self):
        message = MessageFormatter().format_claim_error(
            _result(DispatchStatus.INVALID_ADDRESS, "Invalid address format: 0xZZ")
        )

        assert message["text"] == ":x: Invalid address format: 0xZZ"


class TestOtherMessages:
    """Tests for welcome, status and generic messages."""

    def test_welcome_mentions_amount(self, network):
        message = MessageFormatter(network).format_welcome(10**18)

        assert "1 ETH" in message["text"]
        assert "/drip" in message["text"]

    def test_processing(self):
        assert "Processing" in MessageFormatter().format_processing()["text"]

    def test_status_healthy(self, network):
        status = FaucetStatus(
            healthy=True,
            address=ADDRESS,
            balance_wei=25 * 10**17,
            amount_wei=10**18,
            message="Faucet operational",
        )

        message = MessageFormatter(network).format_status(status)

        body = _block_text(message)
        assert ":white_check_mark:" in body
        assert "2.5 ETH" in body
        assert ADDRESS in body

    def test_status_unknown_balance(self):
        status = FaucetStatus(
            healthy=False,
            address=ADDRESS,
            balance_wei=None,
            amount_wei=10**18,
            message="Chain node unavailable",
        )

        body = _block_text(MessageFormatter().format_status(status))

        assert ":warning:" in body
        assert "unknown" in body

    def test_error(self):
        message = MessageFormatter().format_error("nope")

        assert message["text"] == ":x: nope"
        assert message["blocks"][0]["text"]["text"] == ":x: nope"
