"""
Ledger Access Package - Read-only XRP Ledger data access.

Provides balances and transaction history for display ONLY.
Does NOT submit transactions or verify signatures/consensus.

Features:
- Classic address validation before any network call
- Failover across interchangeable, untrusted nodes
- One canonical model from heterogeneous reply shapes
- Application tag classification
- Never raises to caller - safe defaults on failure

Quick Start:
    from ledger_access import LedgerQueryService, is_valid_address

    async def show_account(address: str):
        service = LedgerQueryService()

        if not is_valid_address(address):
            return

        balance = await service.fetch_balance(address)
        history = await service.fetch_transactions(address)

        print(f"Total: {balance.total}  Available: {balance.available}")
        for tx in history:
            print(f"{tx.date} {tx.type} {tx.amount} -> {tx.destination}")

Canonical Transaction:
- hash, type, date/timestamp
- amount, fee: "12.345678 XRP" (6 decimals, always)
- status: success / failed / unknown
- sender, destination ("Unknown" / "XRPL DEX" sentinels)
- memo, source_tag, is_app_tagged, direction

Configuration:
    LEDGER_ENDPOINTS=wss://s1.ripple.com,https://s2.ripple.com:51234
    LEDGER_MAX_PASSES=2
    LEDGER_RETRY_DELAY=1.0
"""

from ledger_access.cache import MemoryRecordCache, RecordCache
from ledger_access.classifier import Classifier
from ledger_access.config import LedgerConfig, get_config, set_config
from ledger_access.connection import ConnectionManager
from ledger_access.exceptions import (
    ConfigurationError,
    EndpointConnectionError,
    InvalidAddressError,
    LedgerAccessError,
    LedgerRequestError,
    NoReachableEndpointError,
    NormalizationError,
)
from ledger_access.models import (
    CanonicalBalance,
    CanonicalTransaction,
    Direction,
    Endpoint,
    QueryIncident,
    QueryKind,
    TransactionDetail,
    TransactionStatus,
    TransportKind,
)
from ledger_access.normalizer import FieldRule, ResponseNormalizer
from ledger_access.pool import EndpointPool
from ledger_access.service import LedgerQueryService, get_default_service
from ledger_access.sessions import JsonRpcSession, LedgerSession, WebsocketSession, open_session
from ledger_access.validation import is_valid_address, validate_address


__version__ = "1.0.0"

__all__ = [
    # Facade
    "LedgerQueryService",
    "get_default_service",

    # Validation
    "is_valid_address",
    "validate_address",

    # Connectivity
    "Endpoint",
    "EndpointPool",
    "ConnectionManager",
    "LedgerSession",
    "WebsocketSession",
    "JsonRpcSession",
    "open_session",

    # Normalization
    "ResponseNormalizer",
    "FieldRule",
    "Classifier",

    # Models
    "CanonicalTransaction",
    "TransactionDetail",
    "CanonicalBalance",
    "TransactionStatus",
    "Direction",
    "QueryKind",
    "QueryIncident",
    "TransportKind",

    # Cache
    "RecordCache",
    "MemoryRecordCache",

    # Config
    "LedgerConfig",
    "get_config",
    "set_config",

    # Exceptions
    "LedgerAccessError",
    "InvalidAddressError",
    "ConfigurationError",
    "EndpointConnectionError",
    "NoReachableEndpointError",
    "LedgerRequestError",
    "NormalizationError",
]
