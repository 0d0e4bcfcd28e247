"""
Ledger Access - Configuration.

============================================================
CONFIGURABLE LEDGER ACCESS
============================================================

Configuration can be loaded from:
- Default values
- Environment variables (a .env file is honoured)
- YAML config file

The endpoint list is read once; the pool built from it is
immutable for the lifetime of the process.

============================================================
"""

import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from ledger_access.classifier import DEFAULT_APP_MEMO_PREFIXES, DEFAULT_APP_SOURCE_TAGS
from ledger_access.exceptions import ConfigurationError
from ledger_access.normalizer import (
    DEFAULT_BASE_RESERVE_XRP,
    DEFAULT_MARKET_TRANSACTION_TYPES,
    DEFAULT_OWNER_RESERVE_XRP,
)


logger = logging.getLogger(__name__)


# =============================================================
# DEFAULTS
# =============================================================


DEFAULT_ENDPOINTS = (
    "wss://xrplcluster.com",
    "wss://s1.ripple.com",
    "wss://s2.ripple.com",
    "wss://rippleitin.com",
    "wss://xrpl.ws",
    "wss://xrpl.link",
)


def _split(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# =============================================================
# LEDGER CONFIG
# =============================================================


@dataclass
class LedgerConfig:
    """Settings for endpoint failover, normalization and classification."""

    # Endpoint pool
    endpoints: list[str] = field(default_factory=lambda: list(DEFAULT_ENDPOINTS))
    shuffle_endpoints: bool = True

    # Failover
    max_passes: int = 2
    retry_delay_seconds: float = 1.0
    request_timeout_seconds: float = 10.0

    # Queries
    history_page_size: int = 200

    # Reserve constants (XRP)
    base_reserve_xrp: Decimal = DEFAULT_BASE_RESERVE_XRP
    owner_reserve_xrp: Decimal = DEFAULT_OWNER_RESERVE_XRP

    # Classification
    app_source_tags: list[int] = field(default_factory=lambda: sorted(DEFAULT_APP_SOURCE_TAGS))
    app_memo_prefixes: list[str] = field(default_factory=lambda: list(DEFAULT_APP_MEMO_PREFIXES))
    market_transaction_types: list[str] = field(
        default_factory=lambda: list(DEFAULT_MARKET_TRANSACTION_TYPES)
    )

    # Collaborators
    cache_ttl_seconds: Optional[int] = None
    max_incidents: int = 100

    def validate(self) -> None:
        """Raise ConfigurationError for unusable settings."""
        if not self.endpoints:
            raise ConfigurationError("At least one endpoint is required", config_key="endpoints")
        if self.max_passes < 1:
            raise ConfigurationError("max_passes must be >= 1", config_key="max_passes")
        if self.retry_delay_seconds < 0:
            raise ConfigurationError(
                "retry_delay_seconds must be >= 0", config_key="retry_delay_seconds"
            )
        if self.request_timeout_seconds <= 0:
            raise ConfigurationError(
                "request_timeout_seconds must be > 0", config_key="request_timeout_seconds"
            )
        if not 1 <= self.history_page_size <= 400:
            raise ConfigurationError(
                "history_page_size must be between 1 and 400", config_key="history_page_size"
            )
        if self.base_reserve_xrp < 0 or self.owner_reserve_xrp < 0:
            raise ConfigurationError("Reserves must be non-negative", config_key="reserve")

    @classmethod
    def from_env(cls) -> "LedgerConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - LEDGER_ENDPOINTS (comma separated URIs)
        - LEDGER_SHUFFLE_ENDPOINTS
        - LEDGER_MAX_PASSES
        - LEDGER_RETRY_DELAY
        - LEDGER_REQUEST_TIMEOUT
        - LEDGER_HISTORY_PAGE_SIZE
        - LEDGER_BASE_RESERVE
        - LEDGER_OWNER_RESERVE
        - LEDGER_APP_SOURCE_TAGS (comma separated)
        - LEDGER_APP_MEMO_PREFIXES (comma separated)
        """
        load_dotenv()
        config = cls()

        try:
            if os.getenv("LEDGER_ENDPOINTS"):
                config.endpoints = _split(os.getenv("LEDGER_ENDPOINTS"))
            if os.getenv("LEDGER_SHUFFLE_ENDPOINTS"):
                config.shuffle_endpoints = _as_bool(os.getenv("LEDGER_SHUFFLE_ENDPOINTS"))
            if os.getenv("LEDGER_MAX_PASSES"):
                config.max_passes = int(os.getenv("LEDGER_MAX_PASSES"))
            if os.getenv("LEDGER_RETRY_DELAY"):
                config.retry_delay_seconds = float(os.getenv("LEDGER_RETRY_DELAY"))
            if os.getenv("LEDGER_REQUEST_TIMEOUT"):
                config.request_timeout_seconds = float(os.getenv("LEDGER_REQUEST_TIMEOUT"))
            if os.getenv("LEDGER_HISTORY_PAGE_SIZE"):
                config.history_page_size = int(os.getenv("LEDGER_HISTORY_PAGE_SIZE"))
            if os.getenv("LEDGER_BASE_RESERVE"):
                config.base_reserve_xrp = Decimal(os.getenv("LEDGER_BASE_RESERVE"))
            if os.getenv("LEDGER_OWNER_RESERVE"):
                config.owner_reserve_xrp = Decimal(os.getenv("LEDGER_OWNER_RESERVE"))
            if os.getenv("LEDGER_APP_SOURCE_TAGS"):
                config.app_source_tags = [int(t) for t in _split(os.getenv("LEDGER_APP_SOURCE_TAGS"))]
            if os.getenv("LEDGER_APP_MEMO_PREFIXES"):
                config.app_memo_prefixes = _split(os.getenv("LEDGER_APP_MEMO_PREFIXES"))
        except (ValueError, ArithmeticError) as e:
            raise ConfigurationError(
                message=f"Invalid ledger setting in environment: {e}",
                original_error=e,
            )

        config.validate()
        return config

    @classmethod
    def from_yaml(cls, path: Path) -> "LedgerConfig":
        """Load configuration from YAML file."""
        try:
            import yaml
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except Exception as e:
            logger.warning(f"Failed to load YAML config from {path}: {e}")
            return cls()

        config = cls()
        try:
            if "endpoints" in data:
                config.endpoints = list(data["endpoints"])
            if "shuffle_endpoints" in data:
                config.shuffle_endpoints = bool(data["shuffle_endpoints"])

            failover = data.get("failover") or {}
            config.max_passes = int(failover.get("max_passes", config.max_passes))
            config.retry_delay_seconds = float(failover.get("retry_delay_seconds", config.retry_delay_seconds))
            config.request_timeout_seconds = float(
                failover.get("request_timeout_seconds", config.request_timeout_seconds)
            )

            if "history_page_size" in data:
                config.history_page_size = int(data["history_page_size"])

            reserve = data.get("reserve") or {}
            if "base" in reserve:
                config.base_reserve_xrp = Decimal(str(reserve["base"]))
            if "owner" in reserve:
                config.owner_reserve_xrp = Decimal(str(reserve["owner"]))

            classification = data.get("classification") or {}
            if "source_tags" in classification:
                config.app_source_tags = [int(t) for t in classification["source_tags"]]
            if "memo_prefixes" in classification:
                config.app_memo_prefixes = list(classification["memo_prefixes"])
            if "market_transaction_types" in classification:
                config.market_transaction_types = list(classification["market_transaction_types"])

            if "cache_ttl_seconds" in data:
                config.cache_ttl_seconds = data["cache_ttl_seconds"]
        except (ValueError, TypeError, AttributeError, ArithmeticError) as e:
            raise ConfigurationError(
                message=f"Invalid ledger setting in {path}: {e}",
                original_error=e,
            )

        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "endpoints": list(self.endpoints),
            "shuffle_endpoints": self.shuffle_endpoints,
            "max_passes": self.max_passes,
            "retry_delay_seconds": self.retry_delay_seconds,
            "request_timeout_seconds": self.request_timeout_seconds,
            "history_page_size": self.history_page_size,
            "base_reserve_xrp": str(self.base_reserve_xrp),
            "owner_reserve_xrp": str(self.owner_reserve_xrp),
            "app_source_tags": list(self.app_source_tags),
            "app_memo_prefixes": list(self.app_memo_prefixes),
            "market_transaction_types": list(self.market_transaction_types),
            "cache_ttl_seconds": self.cache_ttl_seconds,
            "max_incidents": self.max_incidents,
        }


# =============================================================
# GLOBAL CONFIG SINGLETON
# =============================================================


_default_config: Optional[LedgerConfig] = None


def get_config() -> LedgerConfig:
    """Get the global ledger configuration."""
    global _default_config
    if _default_config is None:
        _default_config = LedgerConfig.from_env()
    return _default_config


def set_config(config: LedgerConfig) -> None:
    """Set the global ledger configuration."""
    global _default_config
    _default_config = config
