"""Network description used for user-facing links and amounts."""

from dataclasses import dataclass
from decimal import Decimal

from web3 import Web3


@dataclass
class NetworkInfo:
    """Network information derived from runtime config.

    Attributes
    ----------
    rpc_endpoint : str
        The RPC endpoint URL.
    chain_id : int
        The configured chain id.
    block_explorer_url : str | None
        Optional block explorer URL for transaction links.
    currency_symbol : str
        Ticker of the native currency shown to users.
    """

    rpc_endpoint: str
    chain_id: int
    block_explorer_url: str | None = None
    currency_symbol: str = "ETH"

    def get_tx_url(self, tx_hash: str) -> str | None:
        """Get the block explorer URL for a transaction, if an explorer is set."""
        if self.block_explorer_url:
            return f"{self.block_explorer_url.rstrip('/')}/tx/{tx_hash}"
        return None

    def get_address_url(self, address: str) -> str | None:
        """Get the block explorer URL for an address, if an explorer is set."""
        if self.block_explorer_url:
            return f"{self.block_explorer_url.rstrip('/')}/address/{address}"
        return None

    def format_amount(self, amount_wei: int) -> str:
        """Render a wei amount in whole units, e.g. ``1.5 ETH``."""
        amount = Decimal(str(Web3.from_wei(amount_wei, "ether"))).normalize()
        # normalize() turns 100 into 1E+2
        text = f"{amount:f}"
        return f"{text} {self.currency_symbol}"
