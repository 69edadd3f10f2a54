"""Funding identity: the single key the faucet signs transfers with."""

from abc import ABC, abstractmethod
from pathlib import Path

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_keys import keys
from pydantic import SecretStr


class WalletProvider(ABC):
    """Abstract funding wallet.

    Implementations hold the key material for the whole service lifetime and
    never hand it out; callers only get the address and signatures.
    """

    @abstractmethod
    def get_account(self) -> LocalAccount:
        """Get the funding account.

        Returns
        -------
        LocalAccount
            The account instance backing this wallet.
        """
        ...

    @property
    def address(self) -> str:
        """Get the funding address.

        Returns
        -------
        str
            The checksummed funding address.
        """
        return self.get_account().address

    def sign_hash(self, message_hash: bytes) -> keys.Signature:
        """Sign a 32-byte digest with the funding key.

        Parameters
        ----------
        message_hash : bytes
            Keccak-256 digest to sign.

        Returns
        -------
        keys.Signature
            Deterministic (RFC 6979) low-s secp256k1 signature; ``v`` is the
            raw recovery id (0 or 1).
        """
        if len(message_hash) != 32:
            raise ValueError(f"Expected a 32-byte digest, got {len(message_hash)} bytes")
        private_key = keys.PrivateKey(self.get_account().key)
        return private_key.sign_msg_hash(message_hash)


class EnvironmentWallet(WalletProvider):
    """Load the funding key from an environment value or a key file.

    Parameters
    ----------
    private_key : SecretStr, optional
        The private key as a SecretStr (from env var).
    private_key_file : str, optional
        Path to a file containing the private key.

    Raises
    ------
    ValueError
        If neither private_key nor private_key_file is provided.
    FileNotFoundError
        If private_key_file does not exist.
    """

    def __init__(
        self,
        private_key: SecretStr | None = None,
        private_key_file: str | None = None,
    ):
        if private_key is not None:
            self._account = Account.from_key(private_key.get_secret_value())
        elif private_key_file is not None:
            key_path = Path(private_key_file).expanduser()
            if not key_path.exists():
                raise FileNotFoundError(f"Private key file not found: {private_key_file}")
            self._account = Account.from_key(key_path.read_text().strip())
        else:
            raise ValueError("Either private_key or private_key_file must be provided")

    @classmethod
    def from_config(cls, config) -> "EnvironmentWallet":
        """Build the wallet from ``DripConfig`` wallet settings.

        The inline key wins when both the key and the key file are set.
        """
        if config.wallet_private_key:
            return cls(private_key=config.wallet_private_key)
        if config.wallet_private_key_file:
            return cls(private_key_file=config.wallet_private_key_file)
        raise ValueError(
            "No wallet configured. Set DRIP_WALLET_PRIVATE_KEY or DRIP_WALLET_PRIVATE_KEY_FILE"
        )

    def get_account(self) -> LocalAccount:
        return self._account
