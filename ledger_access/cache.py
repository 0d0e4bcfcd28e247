"""
Record cache collaborator.

The query facade reads this before going to the network and writes to it
after successful lookups. A hit is returned unmodified.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol, runtime_checkable

from ledger_access.models import TransactionDetail


logger = logging.getLogger(__name__)


@runtime_checkable
class RecordCache(Protocol):
    """Key-value store for viewed transactions and the last viewed address."""

    def get_transaction(self, tx_hash: str) -> Optional[TransactionDetail]:
        ...

    def put_transaction(self, record: TransactionDetail) -> None:
        ...

    def get_last_address(self) -> Optional[str]:
        ...

    def set_last_address(self, address: str) -> None:
        ...


@dataclass
class CacheEntry:
    """Cached transaction record."""
    data: TransactionDetail
    created_at: datetime
    expires_at: Optional[datetime] = None
    hits: int = 0

    def is_expired(self) -> bool:
        """Check if cache entry is expired."""
        return self.expires_at is not None and datetime.now(timezone.utc) > self.expires_at

    def age_seconds(self) -> float:
        """Get age of cache entry in seconds."""
        return (datetime.now(timezone.utc) - self.created_at).total_seconds()


class MemoryRecordCache:
    """In-process RecordCache with an optional time-to-live."""

    def __init__(self, ttl_seconds: Optional[int] = None, max_entries: int = 1000) -> None:
        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries
        self._entries: dict[str, CacheEntry] = {}
        self._last_address: Optional[str] = None
        self._hits = 0
        self._misses = 0

    def get_transaction(self, tx_hash: str) -> Optional[TransactionDetail]:
        entry = self._entries.get(tx_hash)
        if entry is None:
            self._misses += 1
            return None
        if entry.is_expired():
            del self._entries[tx_hash]
            self._misses += 1
            return None
        entry.hits += 1
        self._hits += 1
        return entry.data

    def put_transaction(self, record: TransactionDetail) -> None:
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=self._ttl_seconds) if self._ttl_seconds else None
        self._entries[record.hash] = CacheEntry(data=record, created_at=now, expires_at=expires_at)

        if len(self._entries) > self._max_entries:
            self._evict_oldest()

    def get_last_address(self) -> Optional[str]:
        return self._last_address

    def set_last_address(self, address: str) -> None:
        self._last_address = address

    def _evict_oldest(self) -> None:
        overflow = len(self._entries) - self._max_entries
        oldest = sorted(self._entries, key=lambda key: self._entries[key].created_at)[:overflow]
        for key in oldest:
            del self._entries[key]
        logger.debug(f"[cache] Evicted {len(oldest)} entries")

    def clear(self) -> None:
        """Clear all cache entries."""
        self._entries.clear()
        self._last_address = None
        logger.info("[cache] Cleared")

    def get_stats(self) -> dict[str, int]:
        """Get cache statistics."""
        return {
            "entries": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
        }

    def __len__(self) -> int:
        return len(self._entries)
