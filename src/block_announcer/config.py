#!/usr/bin/env python3
"""Configuration management for the Block Announcer.

This module provides type-safe configuration dataclasses with validation
for the Block Announcer. Configuration is loaded from environment variables
with sensible defaults where appropriate.
"""

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

# Get logger for this module
logger = logging.getLogger(__name__)


def _validate_http_url(url: str, name: str) -> str:
    """Check an HTTP(S) URL and strip any trailing slash."""
    if not url:
        raise ValueError(f"{name} is required")

    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ValueError(
            f"Invalid {name}: {url}. Expected an http or https URL"
        )
    return url.rstrip('/')


def _int_from_env(name: str, default: int) -> int:
    """Read an integer environment variable."""
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """Configuration for the block data provider.

    Attributes:
        api_url: Base URL of the Esplora-style REST API
        explorer_url: Base URL of the block explorer used for links
    """

    api_url: str = "https://mempool.space/api"
    explorer_url: str = "https://mempool.space"

    def __post_init__(self) -> None:
        """Validate provider configuration."""
        # Use object.__setattr__ since dataclass is frozen
        object.__setattr__(self, 'api_url', _validate_http_url(self.api_url, "API URL (API_URL)"))
        object.__setattr__(
            self, 'explorer_url', _validate_http_url(self.explorer_url, "explorer URL (EXPLORER_URL)")
        )


@dataclass(frozen=True, slots=True)
class PollingConfig:
    """Configuration for block polling and failure handling."""
    polling_interval: int = 30  # seconds between polls
    error_cooldown: int = 3600  # minimum seconds between failure notices
    request_timeout: int = 30  # HTTP request timeout in seconds
    max_backtrack_depth: int = 1000  # blocks walked back before giving up

    def __post_init__(self) -> None:
        """Validate polling configuration."""
        if self.polling_interval <= 0:
            raise ValueError(f"Polling interval must be positive, got {self.polling_interval}")
        if self.polling_interval > 3600:
            raise ValueError(f"Polling interval too long (max 3600s), got {self.polling_interval}")

        if self.error_cooldown < 0:
            raise ValueError(f"Error cooldown must be non-negative, got {self.error_cooldown}")

        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.request_timeout > 120:
            raise ValueError(f"Request timeout too long (max 120s), got {self.request_timeout}")

        if self.max_backtrack_depth <= 0:
            raise ValueError(f"Max backtrack depth must be positive, got {self.max_backtrack_depth}")
        if self.max_backtrack_depth > 100000:
            raise ValueError(
                f"Max backtrack depth too high (max 100000), got {self.max_backtrack_depth}"
            )


@dataclass(frozen=True, slots=True)
class BotConfig:
    """Main configuration for the Block Announcer.

    Attributes:
        provider: Configuration for the block data provider
        polling: Configuration for polling and failure handling
        start_block_hash: Block to start announcing after (None means current tip)
        local_mode: Whether to log messages instead of publishing them
    """

    provider: ProviderConfig = field(default_factory=ProviderConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    start_block_hash: str | None = None
    local_mode: bool = False

    def __post_init__(self) -> None:
        """Validate bot configuration."""
        if self.start_block_hash is not None:
            block_hash = self.start_block_hash.strip()
            if not block_hash:
                raise ValueError("Start block hash must not be empty")
            object.__setattr__(self, 'start_block_hash', block_hash)

    @classmethod
    def from_env(
        cls,
        start_block_hash: str | None = None,
        local_mode: bool = False
    ) -> "BotConfig":
        """Load configuration from environment variables.

        Args:
            start_block_hash: Start block given on the command line; takes
                precedence over START_BLOCK_HASH
            local_mode: Whether to run in local mode

        Returns:
            BotConfig instance with loaded values

        Raises:
            ValueError: If environment variables are invalid
        """
        provider_config = ProviderConfig(
            api_url=os.environ.get("API_URL", "https://mempool.space/api"),
            explorer_url=os.environ.get("EXPLORER_URL", "https://mempool.space"),
        )

        polling_config = PollingConfig(
            polling_interval=_int_from_env("POLLING_INTERVAL", 30),
            error_cooldown=_int_from_env("ERROR_COOLDOWN", 3600),
            request_timeout=_int_from_env("REQUEST_TIMEOUT", 30),
            max_backtrack_depth=_int_from_env("MAX_BACKTRACK_DEPTH", 1000),
        )

        if start_block_hash is None:
            start_block_hash = os.environ.get("START_BLOCK_HASH") or None

        return cls(
            provider=provider_config,
            polling=polling_config,
            start_block_hash=start_block_hash,
            local_mode=local_mode
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("Block Announcer Configuration")
        logger.info("=" * 60)

        logger.info("Provider:")
        logger.info(f"  API URL: {self.provider.api_url}")
        logger.info(f"  Explorer URL: {self.provider.explorer_url}")

        logger.info("Polling Settings:")
        logger.info(f"  Polling Interval: {self.polling.polling_interval} seconds")
        logger.info(f"  Error Cooldown: {self.polling.error_cooldown} seconds")
        logger.info(f"  Request Timeout: {self.polling.request_timeout} seconds")
        logger.info(f"  Max Backtrack Depth: {self.polling.max_backtrack_depth} blocks")

        logger.info("Announcer Settings:")
        logger.info(f"  Mode: {'LOCAL' if self.local_mode else 'PRODUCTION'}")
        logger.info(f"  Start Block: {self.start_block_hash or '[CURRENT TIP]'}")

        logger.info("=" * 60)
