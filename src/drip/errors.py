"""Exception hierarchy for DRIP.

Lower layers (chain client, signer, claim store) raise these; the faucet
service turns them into ``DispatchResult`` statuses for the ingress channels.
"""


class FaucetError(Exception):
    """Base class for all DRIP errors."""


class AddressValidationError(FaucetError):
    """Destination is not a well-formed account address."""


class TransportError(FaucetError):
    """Network failure talking to the chain node (timeout, refused, bad body)."""


class RpcError(FaucetError):
    """The chain node answered with a JSON-RPC error object.

    Parameters
    ----------
    message : str
        Error message reported by the node.
    code : int | None
        JSON-RPC error code, if present.
    """

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        if self.code is None:
            return f"JSON-RPC error: {self.message}"
        return f"JSON-RPC error {self.code}: {self.message}"


class SigningError(FaucetError):
    """Transaction could not be constructed or signed."""


class StoreError(FaucetError):
    """Claim ledger read or write failed."""
