"""
Ledger Query Service - the public facade over untrusted ledger nodes.

Features:
- Balance, account history and single transaction lookups
- Endpoint failover through the connection manager
- One session per call, always closed before returning
- Never raises to caller - returns a safe default on failure

A safe default means "unknown", not "empty": a zero balance or an empty
history may be the result of a swallowed failure. Failures are reported
through incidents and the on_failure() callbacks.
"""

import logging
from typing import Any, Callable, Optional

from ledger_access.cache import MemoryRecordCache, RecordCache
from ledger_access.classifier import Classifier
from ledger_access.config import LedgerConfig, get_config
from ledger_access.connection import ConnectionManager
from ledger_access.exceptions import (
    LedgerAccessError,
    LedgerRequestError,
    NoReachableEndpointError,
    NormalizationError,
)
from ledger_access.models import (
    CanonicalBalance,
    CanonicalTransaction,
    QueryIncident,
    QueryKind,
    TransactionDetail,
)
from ledger_access.normalizer import ResponseNormalizer
from ledger_access.pool import EndpointPool
from ledger_access.sessions import SessionFactory
from ledger_access.validation import is_valid_address


logger = logging.getLogger(__name__)


NOTICES = {
    QueryKind.BALANCE: "Failed to fetch balance",
    QueryKind.TRANSACTIONS: "Failed to fetch transactions",
    QueryKind.TRANSACTION: "Failed to fetch transaction details",
}
NOT_FOUND_NOTICE = "Transaction not found"


def _incident_type(error: Exception) -> str:
    if isinstance(error, NoReachableEndpointError):
        return "no_reachable_endpoint"
    if isinstance(error, LedgerRequestError):
        return "not_found" if error.is_not_found else "request_error"
    if isinstance(error, NormalizationError):
        return "normalization_error"
    return "unexpected_error"


class LedgerQueryService:
    """
    Read-only query facade.

    Usage:
        service = LedgerQueryService()

        if service.validate_address(address):
            balance = await service.fetch_balance(address)
            history = await service.fetch_transactions(address)

        detail = await service.fetch_transaction_details(tx_hash)
        # None if not found OR if every endpoint failed
    """

    def __init__(
        self,
        config: Optional[LedgerConfig] = None,
        connection_manager: Optional[ConnectionManager] = None,
        normalizer: Optional[ResponseNormalizer] = None,
        cache: Optional[RecordCache] = None,
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        self._config = config or get_config()

        if connection_manager is None:
            pool = EndpointPool(
                self._config.endpoints,
                shuffle=self._config.shuffle_endpoints,
            )
            connection_manager = ConnectionManager(
                pool,
                session_factory=session_factory,
                max_passes=self._config.max_passes,
                retry_delay=self._config.retry_delay_seconds,
                timeout=self._config.request_timeout_seconds,
            )
        self._connections = connection_manager

        if normalizer is None:
            normalizer = ResponseNormalizer(
                classifier=Classifier(
                    source_tags=self._config.app_source_tags,
                    memo_prefixes=self._config.app_memo_prefixes,
                ),
                market_transaction_types=self._config.market_transaction_types,
                base_reserve_xrp=self._config.base_reserve_xrp,
                owner_reserve_xrp=self._config.owner_reserve_xrp,
            )
        self._normalizer = normalizer
        self._cache = cache

        # Incident tracking
        self._incidents: list[QueryIncident] = []
        self._max_incidents = self._config.max_incidents
        self._on_failure_callbacks: list[Callable[[QueryIncident], None]] = []

    @property
    def connections(self) -> ConnectionManager:
        return self._connections

    @property
    def cache(self) -> Optional[RecordCache]:
        return self._cache

    @staticmethod
    def validate_address(address: Any) -> bool:
        """Check an address before issuing any query for it."""
        return is_valid_address(address)

    # ─────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────

    async def fetch_balance(self, address: str) -> CanonicalBalance:
        """
        Fetch total, spendable and reserved balance for an account.

        Returns the zero-balance sentinel on any failure.
        """
        try:
            async with self._connections.session() as session:
                logger.info(f"[service] Fetching balance for {address} via {session.endpoint}")
                raw = await session.request(
                    "account_info",
                    account=address,
                    ledger_index="validated",
                )
                balance = self._normalizer.normalize(raw, QueryKind.BALANCE)
        except Exception as e:
            self._record_failure(QueryKind.BALANCE, address, e)
            return CanonicalBalance.zero()

        logger.info(f"[service] Balance for {address}: {balance.total} (available {balance.available})")
        return balance

    async def fetch_transactions(self, address: str) -> list[CanonicalTransaction]:
        """
        Fetch the most recent page of an account's transactions, newest first.

        Returns an empty list on any failure.
        """
        self._remember_address(address)
        try:
            async with self._connections.session() as session:
                logger.info(f"[service] Fetching transactions for {address} via {session.endpoint}")
                raw = await session.request(
                    "account_tx",
                    account=address,
                    ledger_index_min=-1,
                    ledger_index_max=-1,
                    limit=self._config.history_page_size,
                    forward=False,
                )
                transactions = self._normalizer.normalize(raw, QueryKind.TRANSACTIONS, address=address)
        except Exception as e:
            self._record_failure(QueryKind.TRANSACTIONS, address, e)
            return []

        logger.info(f"[service] Fetched {len(transactions)} transactions for {address}")
        return transactions

    async def fetch_transaction_details(self, tx_hash: str) -> Optional[TransactionDetail]:
        """
        Look up one transaction by hash.

        A cached record is returned unmodified without touching the network.
        Returns None when not found or on failure; the recorded incident
        tells the two apart.
        """
        cached = self._cached_transaction(tx_hash)
        if cached is not None:
            logger.debug(f"[service] Cache hit for {tx_hash}")
            return cached

        try:
            async with self._connections.session() as session:
                logger.info(f"[service] Fetching transaction {tx_hash} via {session.endpoint}")
                raw = await session.request("tx", transaction=tx_hash, binary=False)
                detail = self._normalizer.normalize(raw, QueryKind.TRANSACTION)
        except Exception as e:
            self._record_failure(QueryKind.TRANSACTION, tx_hash, e)
            return None

        if detail is None:
            self._record_incident(QueryIncident(
                kind=QueryKind.TRANSACTION,
                subject=tx_hash,
                incident_type="not_found",
                error_message="Reply lacked required transaction fields",
                notice=NOT_FOUND_NOTICE,
            ))
            return None

        self._store_transaction(detail)
        return detail

    # ─────────────────────────────────────────────────────────────
    # Cache collaborator
    # ─────────────────────────────────────────────────────────────

    def _cached_transaction(self, tx_hash: str) -> Optional[TransactionDetail]:
        if self._cache is None:
            return None
        try:
            return self._cache.get_transaction(tx_hash)
        except Exception as e:
            logger.warning(f"[service] Cache read failed for {tx_hash}: {e}")
            return None

    def _store_transaction(self, detail: TransactionDetail) -> None:
        if self._cache is None:
            return
        try:
            self._cache.put_transaction(detail)
        except Exception as e:
            logger.warning(f"[service] Cache write failed for {detail.hash}: {e}")

    def _remember_address(self, address: str) -> None:
        if self._cache is None:
            return
        try:
            self._cache.set_last_address(address)
        except Exception as e:
            logger.warning(f"[service] Cache write failed for last address: {e}")

    # ─────────────────────────────────────────────────────────────
    # Incidents
    # ─────────────────────────────────────────────────────────────

    def _record_failure(self, kind: QueryKind, subject: str, error: Exception) -> None:
        """Turn a swallowed error into a logged incident and a notification."""
        incident_type = _incident_type(error)
        if incident_type == "no_reachable_endpoint":
            logger.error(f"[service] {NOTICES[kind]} for {subject}: {error}")
        elif incident_type == "unexpected_error":
            logger.exception(f"[service] {NOTICES[kind]} for {subject}: {error}")
        else:
            logger.warning(f"[service] {NOTICES[kind]} for {subject}: {error}")

        self._record_incident(QueryIncident(
            kind=kind,
            subject=subject,
            incident_type=incident_type,
            error_message=str(error),
            notice=NOT_FOUND_NOTICE if incident_type == "not_found" else NOTICES[kind],
            endpoint=error.endpoint if isinstance(error, LedgerAccessError) else None,
            context=error.to_dict() if isinstance(error, LedgerAccessError) else {},
        ))

    def _record_incident(self, incident: QueryIncident) -> None:
        self._incidents.append(incident)

        if len(self._incidents) > self._max_incidents:
            self._incidents = self._incidents[-self._max_incidents:]

        for callback in self._on_failure_callbacks:
            try:
                callback(incident)
            except Exception as e:
                logger.error(f"[service] Failure callback error: {e}")

    def on_failure(self, callback: Callable[[QueryIncident], None]) -> None:
        """Register a callback for user-facing failure notifications."""
        self._on_failure_callbacks.append(callback)

    def get_incidents(self, limit: int = 50) -> list[QueryIncident]:
        """Get recent incidents."""
        return self._incidents[-limit:]

    @property
    def last_incident(self) -> Optional[QueryIncident]:
        return self._incidents[-1] if self._incidents else None

    def __repr__(self) -> str:
        return f"<LedgerQueryService(endpoints={len(self._connections.pool)}, incidents={len(self._incidents)})>"


# Singleton instance
_default_service: Optional[LedgerQueryService] = None


def get_default_service() -> LedgerQueryService:
    """Get or create the default service with an in-memory record cache."""
    global _default_service
    if _default_service is None:
        config = get_config()
        _default_service = LedgerQueryService(
            config=config,
            cache=MemoryRecordCache(ttl_seconds=config.cache_ttl_seconds),
        )
    return _default_service
