"""Chain access for DRIP: JSON-RPC client and transaction signing."""

from .client import DEFAULT_GAS_LIMIT, JsonRpcClient
from .networks import NetworkInfo
from .transaction import LegacyTransaction, SignedTransaction, TransactionSigner, validate_address

__all__ = [
    "DEFAULT_GAS_LIMIT",
    "JsonRpcClient",
    "LegacyTransaction",
    "NetworkInfo",
    "SignedTransaction",
    "TransactionSigner",
    "validate_address",
]
