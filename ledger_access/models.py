"""
Ledger Data Models - Canonical transaction and balance records.

Every record is a value object built fresh per query. Amounts and fees are
display strings in the network unit with fixed 6-decimal precision.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from urllib.parse import urlparse

from ledger_access.exceptions import ConfigurationError


UNKNOWN = "Unknown"
ZERO_AMOUNT = "0.000000 XRP"


class TransportKind(Enum):
    """Wire transport used to reach a ledger node."""
    WEBSOCKET = "websocket"
    JSON_RPC = "json_rpc"


class TransactionStatus(Enum):
    """Outcome of a transaction as reported by the node."""
    SUCCESS = "success"
    FAILED = "failed"
    UNKNOWN = "unknown"


class Direction(Enum):
    """Direction of fund flow relative to a queried account."""
    INCOMING = "incoming"
    OUTGOING = "outgoing"
    SELF = "self"
    UNRELATED = "unrelated"


class QueryKind(Enum):
    """Kinds of queries issued to ledger nodes."""
    BALANCE = "balance"
    TRANSACTIONS = "transactions"
    TRANSACTION = "transaction"


_SCHEME_TRANSPORTS = {
    "ws": TransportKind.WEBSOCKET,
    "wss": TransportKind.WEBSOCKET,
    "http": TransportKind.JSON_RPC,
    "https": TransportKind.JSON_RPC,
}


@dataclass(frozen=True)
class Endpoint:
    """A ledger node address."""
    uri: str
    transport: TransportKind

    @classmethod
    def from_uri(cls, uri: str) -> "Endpoint":
        """Create an endpoint, inferring the transport from the URI scheme."""
        scheme = urlparse(uri.strip()).scheme.lower()
        transport = _SCHEME_TRANSPORTS.get(scheme)
        if transport is None:
            raise ConfigurationError(
                message=f"Unsupported endpoint scheme in {uri!r}",
                config_key="endpoints",
            )
        return cls(uri=uri.strip(), transport=transport)

    @property
    def key(self) -> str:
        """URI used for de-duplication (case and trailing slash insensitive)."""
        return self.uri.lower().rstrip("/")

    def __str__(self) -> str:
        return self.uri


@dataclass(frozen=True)
class CanonicalTransaction:
    """
    Normalized transaction record - STRICT schema.

    `timestamp` is None when the node reported no usable time, in which
    case `date` carries the "Unknown" sentinel.
    """
    hash: str
    type: str
    date: str
    amount: str
    fee: str
    status: TransactionStatus
    result_code: Optional[str]
    sender: str
    destination: str
    timestamp: Optional[datetime] = None
    memo: Optional[str] = None
    source_tag: Optional[str] = None
    is_app_tagged: bool = False
    direction: Optional[Direction] = None

    @property
    def is_successful(self) -> bool:
        """Check if the transaction settled successfully."""
        return self.status == TransactionStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "hash": self.hash,
            "type": self.type,
            "date": self.date,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "amount": self.amount,
            "fee": self.fee,
            "status": self.status.value,
            "result_code": self.result_code,
            "from": self.sender,
            "to": self.destination,
            "memo": self.memo,
            "source_tag": self.source_tag,
            "is_app_tagged": self.is_app_tagged,
            "direction": self.direction.value if self.direction else None,
        }

    @staticmethod
    def _base_fields(data: dict[str, Any]) -> dict[str, Any]:
        timestamp = data.get("timestamp")
        direction = data.get("direction")
        return {
            "hash": data["hash"],
            "type": data.get("type", UNKNOWN),
            "date": data.get("date", UNKNOWN),
            "timestamp": datetime.fromisoformat(timestamp) if timestamp else None,
            "amount": data.get("amount", ZERO_AMOUNT),
            "fee": data.get("fee", ZERO_AMOUNT),
            "status": TransactionStatus(data.get("status", TransactionStatus.UNKNOWN.value)),
            "result_code": data.get("result_code"),
            "sender": data["from"],
            "destination": data.get("to", UNKNOWN),
            "memo": data.get("memo"),
            "source_tag": data.get("source_tag"),
            "is_app_tagged": bool(data.get("is_app_tagged", False)),
            "direction": Direction(direction) if direction else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CanonicalTransaction":
        """Create from dictionary."""
        return cls(**cls._base_fields(data))


@dataclass(frozen=True)
class TransactionDetail(CanonicalTransaction):
    """Transaction record for single-hash lookups, with instruction details."""
    sequence: Optional[int] = None
    flags: int = 0
    last_ledger_sequence: Optional[int] = None
    ticket_sequence: Optional[int] = None
    ledger_index: Optional[int] = None
    validated: Optional[bool] = None
    memos: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = super().to_dict()
        data.update({
            "sequence": self.sequence,
            "flags": self.flags,
            "last_ledger_sequence": self.last_ledger_sequence,
            "ticket_sequence": self.ticket_sequence,
            "ledger_index": self.ledger_index,
            "validated": self.validated,
            "memos": list(self.memos),
        })
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TransactionDetail":
        """Create from dictionary."""
        return cls(
            **cls._base_fields(data),
            sequence=data.get("sequence"),
            flags=data.get("flags", 0),
            last_ledger_sequence=data.get("last_ledger_sequence"),
            ticket_sequence=data.get("ticket_sequence"),
            ledger_index=data.get("ledger_index"),
            validated=data.get("validated"),
            memos=tuple(data.get("memos") or ()),
        )


@dataclass(frozen=True)
class CanonicalBalance:
    """Account holdings split into spendable and reserved parts."""
    total: str
    available: str
    reserve: str
    owner_count: int = 0

    @classmethod
    def zero(cls) -> "CanonicalBalance":
        """Zero-balance sentinel returned when the balance is unknown."""
        return cls(total=ZERO_AMOUNT, available=ZERO_AMOUNT, reserve=ZERO_AMOUNT)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total": self.total,
            "available": self.available,
            "reserve": self.reserve,
            "owner_count": self.owner_count,
        }


@dataclass
class QueryIncident:
    """Record of a failure swallowed at the query boundary."""
    kind: QueryKind
    subject: str
    incident_type: str
    error_message: str
    notice: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    endpoint: Optional[str] = None
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "kind": self.kind.value,
            "subject": self.subject,
            "incident_type": self.incident_type,
            "error_message": self.error_message,
            "notice": self.notice,
            "timestamp": self.timestamp.isoformat(),
            "endpoint": self.endpoint,
            "context": self.context,
        }
