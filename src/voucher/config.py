"""
Configuration management for the Flow voucher client.

Supports configuration via environment variables and .env files.
"""

from enum import Enum
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class NetworkType(str, Enum):
    """Flow networks."""
    MAINNET = "mainnet"
    TESTNET = "testnet"
    EMULATOR = "emulator"


class VoucherConfig(BaseSettings):
    """
    Configuration settings for the voucher client.

    All settings can be configured via environment variables with the VOUCHER_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="VOUCHER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Network settings
    network: NetworkType = Field(
        default=NetworkType.TESTNET,
        description="Flow network to connect to"
    )
    access_api_url: Optional[str] = Field(
        default=None,
        description="Custom Access API REST base URL (optional)"
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single HTTP request to the access node"
    )

    # Service account settings
    account_address: Optional[str] = Field(
        default=None,
        description="Address of the account receiving FUSD payments (hex)"
    )
    private_key_hex: Optional[str] = Field(
        default=None,
        description="Hex-encoded private key of the service account"
    )
    key_index: int = Field(
        default=0,
        ge=0,
        description="Index of the service account key used for signing"
    )
    signature_algorithm: str = Field(
        default="ECDSA_P256",
        description="Curve of the service account key (ECDSA_P256 or ECDSA_secp256k1)"
    )

    # Contract addresses (hex, no 0x prefix)
    fusd_address: Optional[str] = Field(
        default=None,
        description="Address of the FUSD contract"
    )
    fungible_token_address: Optional[str] = Field(
        default=None,
        description="Address of the FungibleToken contract"
    )
    flow_token_address: Optional[str] = Field(
        default=None,
        description="Address of the FlowToken contract"
    )

    # Transaction settings
    gas_limit: int = Field(
        default=100,
        ge=1,
        description="Gas (computation) limit for every transaction"
    )
    poll_interval_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Delay between transaction result polls"
    )
    seal_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Maximum time to wait for a transaction to seal"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )

    @field_validator("account_address", "fusd_address", "fungible_token_address", "flow_token_address")
    @classmethod
    def _strip_hex_prefix(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip().lower()
        return value[2:] if value.startswith("0x") else value

    @property
    def api_url(self) -> str:
        """Get the Access API URL for the configured network."""
        if self.access_api_url:
            return self.access_api_url.rstrip("/")

        network_urls = {
            NetworkType.MAINNET: "https://rest-mainnet.onflow.org/v1",
            NetworkType.TESTNET: "https://rest-testnet.onflow.org/v1",
            NetworkType.EMULATOR: "http://localhost:8888/v1",
        }
        return network_urls.get(self.network, "https://rest-testnet.onflow.org/v1")


# Global config instance
_config: Optional[VoucherConfig] = None


def get_config() -> VoucherConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = VoucherConfig()
    return _config


def set_config(config: VoucherConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
