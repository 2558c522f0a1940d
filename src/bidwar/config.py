"""Configuration settings for the bidding service.

Signing keys come from either a JSON object in ``ACCOUNT_KEYS``::

    ACCOUNT_KEYS='{"1": "0x...", "2": "0x..."}'

or from numbered variables, one per account, where the suffix becomes the
identifier callers bid with::

    PRIVATE_KEY_1=0x...
    PRIVATE_KEY_2=0x...

Both forms may be combined; ``ACCOUNT_KEYS`` wins on conflicting identifiers.
The contract address and at least one key are required. Nothing falls back
to a default for either.
"""

import os
import re
from functools import lru_cache
from typing import Optional

from dotenv import dotenv_values
from eth_utils import is_address, is_checksum_address, to_checksum_address
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsError

from .exceptions import ConfigurationError

LEGACY_KEY_PATTERN = re.compile(r"^PRIVATE_KEY_(.+)$")


class Settings(BaseSettings):
    """Bidding service settings from environment."""

    # Network
    rpc_url: str = "https://nodeapi.test.energi.network/v1/jsonrpc"
    rpc_timeout_seconds: float = 30.0

    # Target contract
    contract_address: Optional[str] = None
    bid_function_signature: str = "bid()"
    gas_limit: int = 1_000_000

    # Confirmation wait
    confirmation_timeout_seconds: float = 120.0
    confirmations: int = 1
    poll_interval_seconds: float = 1.0

    # identifier -> private key
    account_keys: dict[str, str] = {}

    # HTTP
    host: str = "0.0.0.0"
    port: int = 3000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


def _legacy_account_keys(env_file: Optional[str] = ".env") -> dict[str, str]:
    """Collect PRIVATE_KEY_<identifier> entries from .env and the environment."""
    sources: dict[str, Optional[str]] = {}
    if env_file and os.path.exists(env_file):
        sources.update(dotenv_values(env_file))
    sources.update(os.environ)

    keys = {}
    for name, value in sources.items():
        match = LEGACY_KEY_PATTERN.match(name)
        if match and value:
            keys[match.group(1)] = value
    return keys


def validate_settings(settings: Settings) -> Settings:
    """Reject settings the service cannot start with.

    Returns a copy with the contract address checksummed.
    """
    if not settings.contract_address:
        raise ConfigurationError("CONTRACT_ADDRESS is not set")
    if not is_address(settings.contract_address):
        raise ConfigurationError(
            f"CONTRACT_ADDRESS is not a valid address: {settings.contract_address}"
        )
    hex_part = settings.contract_address[2:]
    mixed_case = hex_part != hex_part.lower() and hex_part != hex_part.upper()
    if mixed_case and not is_checksum_address(settings.contract_address):
        raise ConfigurationError(
            f"CONTRACT_ADDRESS has an invalid checksum: {settings.contract_address}"
        )
    if not settings.account_keys:
        raise ConfigurationError(
            "No signing accounts configured (set ACCOUNT_KEYS or PRIVATE_KEY_<n>)"
        )
    if not settings.rpc_url:
        raise ConfigurationError("RPC_URL is not set")
    if settings.gas_limit <= 0:
        raise ConfigurationError(f"GAS_LIMIT must be positive, got {settings.gas_limit}")
    if settings.confirmation_timeout_seconds <= 0:
        raise ConfigurationError(
            "CONFIRMATION_TIMEOUT_SECONDS must be positive, "
            f"got {settings.confirmation_timeout_seconds}"
        )
    if settings.confirmations < 1:
        raise ConfigurationError(
            f"CONFIRMATIONS must be at least 1, got {settings.confirmations}"
        )
    if settings.poll_interval_seconds <= 0:
        raise ConfigurationError(
            f"POLL_INTERVAL_SECONDS must be positive, got {settings.poll_interval_seconds}"
        )
    if not re.fullmatch(r"\w+\([^()]*\)", settings.bid_function_signature):
        raise ConfigurationError(
            f"BID_FUNCTION_SIGNATURE is malformed: {settings.bid_function_signature}"
        )

    return settings.model_copy(
        update={"contract_address": to_checksum_address(settings.contract_address)}
    )


def load_settings(**overrides) -> Settings:
    """Build and validate settings from the environment.

    Raises:
        ConfigurationError: if a required value is absent or malformed
    """
    try:
        settings = Settings(**overrides)
    except (ValidationError, SettingsError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    if "account_keys" not in overrides:
        keys = _legacy_account_keys()
        keys.update(settings.account_keys)
        settings = settings.model_copy(update={"account_keys": keys})

    return validate_settings(settings)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return load_settings()
