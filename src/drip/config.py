"""Configuration management for DRIP using Pydantic Settings."""

from enum import Enum

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    TEXT = "text"


class DripConfig(BaseSettings):
    """DRIP service configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # Network
    rpc_endpoint: str = Field(alias="DRIP_RPC_ENDPOINT")
    chain_id: int = Field(alias="DRIP_CHAIN_ID", gt=0)
    rpc_timeout_seconds: float = Field(default=30.0, alias="DRIP_RPC_TIMEOUT_SECONDS", gt=0)
    block_explorer_url: str | None = Field(default=None, alias="DRIP_BLOCK_EXPLORER_URL")
    currency_symbol: str = Field(default="ETH", alias="DRIP_CURRENCY_SYMBOL")

    # Wallet
    wallet_private_key: SecretStr | None = Field(default=None, alias="DRIP_WALLET_PRIVATE_KEY")
    wallet_private_key_file: str | None = Field(default=None, alias="DRIP_WALLET_PRIVATE_KEY_FILE")

    # Faucet
    amount_wei: int = Field(alias="DRIP_AMOUNT_WEI", gt=0)

    # Claim ledger
    state_path: str = Field(default="./state", alias="DRIP_STATE_PATH")
    redis_url: str | None = Field(default=None, alias="DRIP_REDIS_URL")

    # HTTP
    host: str = Field(default="0.0.0.0", alias="DRIP_HOST")  # noqa: S104
    port: int = Field(default=8080, alias="DRIP_PORT", ge=1, le=65535)

    # Slack
    slack_bot_token: SecretStr | None = Field(default=None, alias="SLACK_BOT_TOKEN")
    slack_app_token: SecretStr | None = Field(default=None, alias="SLACK_APP_TOKEN")

    # Observability
    log_level: str = Field(default="INFO", alias="DRIP_LOG_LEVEL")
    log_format: LogFormat = Field(default=LogFormat.JSON, alias="DRIP_LOG_FORMAT")

    @property
    def slack_enabled(self) -> bool:
        """Chat channel runs only when both Slack tokens are configured."""
        return bool(self.slack_bot_token and self.slack_app_token)
