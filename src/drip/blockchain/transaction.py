"""Legacy transaction construction and EIP-155 signing.

Wire format of a signed legacy transaction is the RLP list::

    [nonce, gasPrice, gasLimit, to, value, data, v, r, s]

The signing digest is keccak256 of ``[nonce, gasPrice, gasLimit, to, value,
data, chainId, 0, 0]`` and ``v = recovery_id + 35 + 2 * chainId``, which binds
the signature to one chain.
"""

import logging
import re
from dataclasses import dataclass

import rlp
from eth_utils import keccak, to_canonical_address

from drip.core.wallet import WalletProvider
from drip.errors import AddressValidationError, SigningError

logger = logging.getLogger(__name__)

# Ethereum address pattern: 0x followed by 40 hex characters
ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")

EIP155_V_OFFSET = 35

# Upper bound for every integer field of a legacy transaction
UINT256_MAX = 2**256 - 1


def validate_address(address: str) -> bool:
    """Validate address format (any casing, checksum not enforced).

    Parameters
    ----------
    address : str
        Address to validate.

    Returns
    -------
    bool
        True if ``0x`` followed by 40 hex characters.
    """
    return bool(ADDRESS_PATTERN.match(address))


def address_to_bytes(address: str) -> bytes:
    """Convert a hex address to its 20-byte form.

    Raises
    ------
    AddressValidationError
        If the address is malformed.
    """
    if not validate_address(address):
        raise AddressValidationError(f"Invalid address format: {address}")
    return to_canonical_address(address)


@dataclass(frozen=True)
class LegacyTransaction:
    """Unsigned pre-EIP-1559 transaction."""

    nonce: int
    gas_price: int
    gas_limit: int
    to: str
    value: int
    chain_id: int
    data: bytes = b""

    def __post_init__(self):
        for name in ("nonce", "gas_price", "gas_limit", "value", "chain_id"):
            field_value = getattr(self, name)
            if isinstance(field_value, bool) or not isinstance(field_value, int):
                raise SigningError(f"{name} must be an integer, got {field_value!r}")
            if not 0 <= field_value <= UINT256_MAX:
                raise SigningError(f"{name} out of range: {field_value}")
        if self.chain_id == 0:
            raise SigningError("chain_id must be non-zero for replay-protected signing")
        if not validate_address(self.to):
            raise AddressValidationError(f"Invalid address format: {self.to}")

    def signing_fields(self) -> list:
        """RLP fields hashed for signing (EIP-155 form)."""
        return [
            self.nonce,
            self.gas_price,
            self.gas_limit,
            address_to_bytes(self.to),
            self.value,
            self.data,
            self.chain_id,
            0,
            0,
        ]

    def signing_payload(self) -> bytes:
        """RLP encoding of the signing fields."""
        return rlp.encode(self.signing_fields())

    def signing_hash(self) -> bytes:
        """Keccak-256 digest the funding key signs."""
        return keccak(self.signing_payload())


@dataclass(frozen=True)
class SignedTransaction:
    """A signed legacy transaction ready for ``eth_sendRawTransaction``."""

    transaction: LegacyTransaction
    raw: bytes
    v: int
    r: int
    s: int

    @property
    def raw_hex(self) -> str:
        """Raw encoding as a 0x-prefixed hex string."""
        return "0x" + self.raw.hex()

    @property
    def hash(self) -> str:
        """Transaction hash (keccak of the raw encoding)."""
        return "0x" + keccak(self.raw).hex()


def encode_signed(tx: LegacyTransaction, v: int, r: int, s: int) -> bytes:
    """RLP-encode a legacy transaction with its signature.

    Parameters
    ----------
    tx : LegacyTransaction
        The unsigned fields.
    v, r, s : int
        Signature components, ``v`` already in EIP-155 form.

    Returns
    -------
    bytes
        The nine-field RLP list.
    """
    return rlp.encode(
        [
            tx.nonce,
            tx.gas_price,
            tx.gas_limit,
            address_to_bytes(tx.to),
            tx.value,
            tx.data,
            v,
            r,
            s,
        ]
    )


class TransactionSigner:
    """Builds and signs native transfers from the funding wallet.

    Pure: no I/O and no shared mutable state, so identical inputs always give
    byte-identical output.

    Parameters
    ----------
    wallet : WalletProvider
        Funding wallet whose key signs every transaction.
    chain_id : int
        Chain id baked into each signature.
    """

    def __init__(self, wallet: WalletProvider, chain_id: int):
        if chain_id <= 0:
            raise ValueError(f"chain_id must be positive, got {chain_id}")
        self._wallet = wallet
        self._chain_id = chain_id

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def address(self) -> str:
        """Checksummed funding address."""
        return self._wallet.address

    def build(
        self,
        to: str,
        value: int,
        nonce: int,
        gas_price: int,
        gas_limit: int,
    ) -> LegacyTransaction:
        """Assemble a plain value transfer (empty input data)."""
        return LegacyTransaction(
            nonce=nonce,
            gas_price=gas_price,
            gas_limit=gas_limit,
            to=to,
            value=value,
            chain_id=self._chain_id,
        )

    def sign(self, tx: LegacyTransaction) -> SignedTransaction:
        """Sign a transaction with the funding key.

        Raises
        ------
        SigningError
            If the transaction targets another chain or signing fails.
        """
        if tx.chain_id != self._chain_id:
            raise SigningError(
                f"Transaction chain id {tx.chain_id} does not match signer chain id "
                f"{self._chain_id}"
            )
        try:
            signature = self._wallet.sign_hash(tx.signing_hash())
        except (ValueError, TypeError) as e:
            raise SigningError(f"Failed to sign transaction: {e}") from e

        v = signature.v + EIP155_V_OFFSET + 2 * self._chain_id
        raw = encode_signed(tx, v, signature.r, signature.s)
        logger.debug(
            "Transaction signed",
            extra={"nonce": tx.nonce, "to": tx.to, "v": v},
        )
        return SignedTransaction(transaction=tx, raw=raw, v=v, r=signature.r, s=signature.s)

    def build_and_sign(
        self,
        to: str,
        value: int,
        nonce: int,
        gas_price: int,
        gas_limit: int,
    ) -> SignedTransaction:
        """Build a transfer and sign it in one step."""
        return self.sign(self.build(to, value, nonce, gas_price, gas_limit))
