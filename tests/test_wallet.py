"""Tests for wallet provider module."""

import tempfile
from pathlib import Path
from types import SimpleNamespace

import pytest
from eth_keys.constants import SECPK1_N
from eth_utils import keccak
from pydantic import SecretStr

from drip.core.wallet import EnvironmentWallet, WalletProvider

# Test private key (DO NOT USE IN PRODUCTION - this is a well-known test key)
TEST_PRIVATE_KEY = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"
TEST_ADDRESS = "0xFCAd0B19bB29D4674531d6f115237E16AfCE377c"


class TestWalletProvider:
    """Tests for WalletProvider abstract class."""

    def test_wallet_provider_is_abstract(self):
        """WalletProvider cannot be instantiated directly."""
        with pytest.raises(TypeError):
            WalletProvider()  # type: ignore


class TestEnvironmentWallet:
    """Tests for EnvironmentWallet."""

    def test_load_from_secret_str(self):
        """Load wallet from SecretStr (simulating env var)."""
        wallet = EnvironmentWallet(private_key=SecretStr(TEST_PRIVATE_KEY))

        assert wallet.address == TEST_ADDRESS
        assert wallet.get_account().address == TEST_ADDRESS

    def test_load_from_file_with_whitespace(self):
        """Key file with trailing whitespace should work."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".key", delete=False) as f:
            f.write(f"{TEST_PRIVATE_KEY}\n  \n")
            key_file = f.name

        try:
            wallet = EnvironmentWallet(private_key_file=key_file)
            assert wallet.address == TEST_ADDRESS
        finally:
            Path(key_file).unlink()

    def test_missing_key_raises_error(self):
        """Neither key nor file provided should raise ValueError."""
        with pytest.raises(ValueError, match="Either private_key or private_key_file"):
            EnvironmentWallet()

    def test_missing_file_raises_error(self):
        """Non-existent key file should raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Private key file not found"):
            EnvironmentWallet(private_key_file="/nonexistent/path/key.txt")

    def test_private_key_takes_precedence(self, tmp_path):
        """If both provided, private_key takes precedence over file."""
        key_file = tmp_path / "other.key"
        key_file.write_text("0xdeadbeefdeadbeefdeadbeefdeadbeefdeadbeefdeadbeefdeadbeefdeadbeef")

        wallet = EnvironmentWallet(
            private_key=SecretStr(TEST_PRIVATE_KEY),
            private_key_file=str(key_file),
        )
        assert wallet.address == TEST_ADDRESS


class TestFromConfig:
    """Tests for building the wallet from DripConfig fields."""

    def test_inline_key(self):
        config = SimpleNamespace(
            wallet_private_key=SecretStr(TEST_PRIVATE_KEY),
            wallet_private_key_file=None,
        )
        assert EnvironmentWallet.from_config(config).address == TEST_ADDRESS

    def test_key_file(self, tmp_path):
        key_file = tmp_path / "faucet.key"
        key_file.write_text(TEST_PRIVATE_KEY)
        config = SimpleNamespace(wallet_private_key=None, wallet_private_key_file=str(key_file))

        assert EnvironmentWallet.from_config(config).address == TEST_ADDRESS

    def test_nothing_configured(self):
        config = SimpleNamespace(wallet_private_key=None, wallet_private_key_file=None)
        with pytest.raises(ValueError, match="DRIP_WALLET_PRIVATE_KEY"):
            EnvironmentWallet.from_config(config)


class TestSignHash:
    """Tests for raw digest signing."""

    def test_signature_recovers_funding_address(self):
        wallet = EnvironmentWallet(private_key=SecretStr(TEST_PRIVATE_KEY))
        digest = keccak(b"drip")

        signature = wallet.sign_hash(digest)

        recovered = signature.recover_public_key_from_msg_hash(digest)
        assert recovered.to_checksum_address() == TEST_ADDRESS
        assert signature.v in (0, 1)

    def test_signing_is_deterministic(self):
        wallet = EnvironmentWallet(private_key=SecretStr(TEST_PRIVATE_KEY))
        digest = keccak(b"drip")

        assert wallet.sign_hash(digest).to_bytes() == wallet.sign_hash(digest).to_bytes()

    def test_low_s(self):
        wallet = EnvironmentWallet(private_key=SecretStr(TEST_PRIVATE_KEY))
        half_order = SECPK1_N // 2

        for i in range(8):
            assert wallet.sign_hash(keccak(bytes([i]))).s <= half_order

    def test_rejects_wrong_digest_length(self):
        wallet = EnvironmentWallet(private_key=SecretStr(TEST_PRIVATE_KEY))
        with pytest.raises(ValueError, match="32-byte digest"):
            wallet.sign_hash(b"short")
