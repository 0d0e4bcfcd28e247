"""
Response Normalizer - maps node replies into the canonical model.

Nodes disagree on reply shape depending on software and API version:

    API v2 entry:   {"tx_json": {...}, "meta": {...}, "hash": ..., "close_time_iso": ...}
    API v1 entry:   {"tx": {..., "hash": ..., "date": ...}, "meta": {...}}
    v1 tx lookup:   {..., "hash": ..., "date": ..., "meta": {...}}

Each canonical field is resolved by an ordered tuple of named FieldRules.
The first rule that yields an acceptable value wins, so a schema change is
a new rule in one tuple rather than new branching.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional, Union

from ledger_access.classifier import Classifier
from ledger_access.exceptions import NormalizationError
from ledger_access.formatting import (
    DROPS_PER_XRP,
    decode_memo,
    format_drops,
    format_local,
    format_xrp,
    parse_amount,
    parse_iso_timestamp,
    ripple_time_to_datetime,
)
from ledger_access.models import (
    UNKNOWN,
    CanonicalBalance,
    CanonicalTransaction,
    QueryKind,
    TransactionDetail,
    TransactionStatus,
)


logger = logging.getLogger(__name__)


MARKET_DESTINATION = "XRPL DEX"
SUCCESS_RESULT = "tesSUCCESS"
DEFAULT_MARKET_TRANSACTION_TYPES = ("OfferCreate",)
DEFAULT_BASE_RESERVE_XRP = Decimal("10")
DEFAULT_OWNER_RESERVE_XRP = Decimal("2")

_RAW_LOG_LIMIT = 2000


# ─────────────────────────────────────────────────────────────
# Envelope
# ─────────────────────────────────────────────────────────────


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


@dataclass(frozen=True)
class Envelope:
    """
    One transaction reply split into its parts.

    `instruction` is the signed transaction body and `meta` the execution
    metadata, wherever the node put them.
    """
    outer: dict[str, Any]
    instruction: dict[str, Any]
    meta: dict[str, Any]
    shape: str

    @classmethod
    def wrap(cls, raw: dict[str, Any]) -> "Envelope":
        if isinstance(raw.get("tx_json"), dict):
            instruction, shape = raw["tx_json"], "tx_json"
        elif isinstance(raw.get("tx"), dict):
            instruction, shape = raw["tx"], "tx"
        else:
            instruction, shape = raw, "flat"

        meta = (
            _as_dict(raw.get("meta"))
            or _as_dict(raw.get("metaData"))
            or _as_dict(instruction.get("meta"))
            or _as_dict(instruction.get("metaData"))
        )
        return cls(outer=raw, instruction=instruction, meta=meta, shape=shape)


# ─────────────────────────────────────────────────────────────
# Field rules
# ─────────────────────────────────────────────────────────────


def _present(value: Any) -> bool:
    return value is not None and value != ""


def _is_amount(value: Any) -> bool:
    return parse_amount(value) is not None


@dataclass(frozen=True)
class FieldRule:
    """A named way of locating one field in an envelope."""
    name: str
    probe: Callable[[Envelope], Any]
    accept: Callable[[Any], bool] = _present


def resolve(field_name: str, rules: Iterable[FieldRule], envelope: Envelope) -> Any:
    """Value from the first rule that yields an acceptable one, else None."""
    for rule in rules:
        value = rule.probe(envelope)
        if rule.accept(value):
            logger.debug(f"[normalizer] {field_name} <- {rule.name}")
            return value
    return None


HASH_RULES = (
    FieldRule("hash", lambda e: e.outer.get("hash")),
    FieldRule("tx_json.hash", lambda e: _as_dict(e.outer.get("tx_json")).get("hash")),
    FieldRule("tx.hash", lambda e: _as_dict(e.outer.get("tx")).get("hash")),
)

# Delivered beats the instruction's maximum, which beats its declared amount
AMOUNT_RULES = (
    FieldRule("meta.delivered_amount", lambda e: e.meta.get("delivered_amount"), _is_amount),
    FieldRule("meta.DeliveredAmount", lambda e: e.meta.get("DeliveredAmount"), _is_amount),
    FieldRule("DeliverMax", lambda e: e.instruction.get("DeliverMax"), _is_amount),
    FieldRule("Amount", lambda e: e.instruction.get("Amount"), _is_amount),
)

FEE_RULES = (
    FieldRule("Fee", lambda e: e.instruction.get("Fee"), _is_amount),
)

ISO_TIME_RULES = (
    FieldRule("close_time_iso", lambda e: e.outer.get("close_time_iso"), lambda v: parse_iso_timestamp(v) is not None),
    FieldRule(
        "instruction.close_time_iso",
        lambda e: e.instruction.get("close_time_iso"),
        lambda v: parse_iso_timestamp(v) is not None,
    ),
)

EPOCH_TIME_RULES = (
    FieldRule("instruction.date", lambda e: e.instruction.get("date"), lambda v: ripple_time_to_datetime(v) is not None),
    FieldRule("date", lambda e: e.outer.get("date"), lambda v: ripple_time_to_datetime(v) is not None),
)

ACCOUNT_RULES = (
    FieldRule("Account", lambda e: e.instruction.get("Account")),
)

DESTINATION_RULES = (
    FieldRule("Destination", lambda e: e.instruction.get("Destination")),
)

TYPE_RULES = (
    FieldRule("TransactionType", lambda e: e.instruction.get("TransactionType")),
)

RESULT_RULES = (
    FieldRule("meta.TransactionResult", lambda e: e.meta.get("TransactionResult")),
)

SOURCE_TAG_RULES = (
    FieldRule("SourceTag", lambda e: e.instruction.get("SourceTag")),
)

LEDGER_INDEX_RULES = (
    FieldRule("ledger_index", lambda e: e.outer.get("ledger_index")),
    FieldRule("instruction.ledger_index", lambda e: e.instruction.get("ledger_index")),
    FieldRule("inLedger", lambda e: e.outer.get("inLedger")),
)


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _decoded_memos(instruction: dict[str, Any]) -> list[str]:
    memos = instruction.get("Memos")
    if not isinstance(memos, list):
        return []
    decoded = []
    for wrapper in memos:
        memo = _as_dict(_as_dict(wrapper).get("Memo"))
        text = decode_memo(memo.get("MemoData"))
        if text:
            decoded.append(text)
    return decoded


def _first_memo(instruction: dict[str, Any]) -> Optional[str]:
    memos = instruction.get("Memos")
    if not isinstance(memos, list) or not memos:
        return None
    memo = _as_dict(_as_dict(memos[0]).get("Memo"))
    return decode_memo(memo.get("MemoData"))


def _truncate(raw: Any) -> str:
    text = str(raw)
    return text if len(text) <= _RAW_LOG_LIMIT else text[:_RAW_LOG_LIMIT] + "..."


# ─────────────────────────────────────────────────────────────
# Normalizer
# ─────────────────────────────────────────────────────────────


class ResponseNormalizer:
    """
    Converts raw node replies into canonical records.

    Records missing a hash, an originating account or a resolvable outcome
    are not viable: list results drop them, single lookups report them as
    not found.
    """

    def __init__(
        self,
        classifier: Optional[Classifier] = None,
        market_transaction_types: Iterable[str] = DEFAULT_MARKET_TRANSACTION_TYPES,
        base_reserve_xrp: Decimal = DEFAULT_BASE_RESERVE_XRP,
        owner_reserve_xrp: Decimal = DEFAULT_OWNER_RESERVE_XRP,
    ) -> None:
        self._classifier = classifier or Classifier()
        self._market_types = frozenset(market_transaction_types)
        self._base_reserve = Decimal(base_reserve_xrp)
        self._owner_reserve = Decimal(owner_reserve_xrp)

    @property
    def classifier(self) -> Classifier:
        return self._classifier

    def normalize(
        self,
        raw: dict[str, Any],
        kind: QueryKind,
        address: Optional[str] = None,
    ) -> Union[list[CanonicalTransaction], Optional[TransactionDetail], CanonicalBalance]:
        """Normalize a reply according to the query that produced it."""
        logger.debug(f"[normalizer] Raw {kind.value} reply: {_truncate(raw)}")
        if kind == QueryKind.BALANCE:
            return self.normalize_balance(raw)
        if kind == QueryKind.TRANSACTIONS:
            return self.normalize_transactions(raw, address)
        return self.normalize_transaction(raw)

    # ─────────────────────────────────────────────────────────
    # Transactions
    # ─────────────────────────────────────────────────────────

    def normalize_transactions(
        self,
        raw: dict[str, Any],
        address: Optional[str] = None,
    ) -> list[CanonicalTransaction]:
        """Normalize an account history page, dropping non-viable entries."""
        entries = _as_dict(raw).get("transactions")
        if not isinstance(entries, list) or not entries:
            logger.info("[normalizer] No transactions found in reply")
            return []

        records = []
        for position, entry in enumerate(entries):
            if not isinstance(entry, dict):
                logger.warning(f"[normalizer] Dropped entry {position}: not an object")
                continue
            try:
                fields = self._transaction_fields(Envelope.wrap(entry), address)
            except NormalizationError as e:
                logger.warning(f"[normalizer] Dropped entry {position}: {e.message}")
                continue
            records.append(CanonicalTransaction(**fields))

        logger.info(f"[normalizer] Normalized {len(records)}/{len(entries)} transactions")
        return records

    def normalize_transaction(self, raw: dict[str, Any]) -> Optional[TransactionDetail]:
        """Normalize a single transaction lookup; None when not viable."""
        if not isinstance(raw, dict) or not raw:
            logger.warning("[normalizer] Empty transaction reply")
            return None

        envelope = Envelope.wrap(raw)
        try:
            fields = self._transaction_fields(envelope)
        except NormalizationError as e:
            logger.warning(f"[normalizer] Transaction not viable: {e.message}")
            return None

        instruction = envelope.instruction
        validated = envelope.outer.get("validated")
        return TransactionDetail(
            **fields,
            sequence=_optional_int(instruction.get("Sequence")),
            flags=_optional_int(instruction.get("Flags")) or 0,
            last_ledger_sequence=_optional_int(instruction.get("LastLedgerSequence")),
            ticket_sequence=_optional_int(instruction.get("TicketSequence")),
            ledger_index=_optional_int(resolve("ledger_index", LEDGER_INDEX_RULES, envelope)),
            validated=validated if isinstance(validated, bool) else None,
            memos=tuple(_decoded_memos(instruction)),
        )

    def _transaction_fields(
        self,
        envelope: Envelope,
        address: Optional[str] = None,
    ) -> dict[str, Any]:
        """Resolve every canonical field, raising NormalizationError if not viable."""
        try:
            tx_hash = resolve("hash", HASH_RULES, envelope)
            if not isinstance(tx_hash, str):
                raise NormalizationError("Missing transaction hash", field_name="hash")

            sender = resolve("from", ACCOUNT_RULES, envelope)
            if not isinstance(sender, str):
                raise NormalizationError(f"Missing originating account for {tx_hash}", field_name="from")

            result_code = resolve("status", RESULT_RULES, envelope)
            status = self._status(result_code, envelope)
            if status is None:
                raise NormalizationError(f"Unresolvable outcome for {tx_hash}", field_name="status")

            tx_type = resolve("type", TYPE_RULES, envelope) or UNKNOWN
            timestamp = self._timestamp(envelope)
            memo = _first_memo(envelope.instruction)
            source_tag = resolve("source_tag", SOURCE_TAG_RULES, envelope)
            destination = self._destination(envelope, tx_type)

            return {
                "hash": tx_hash,
                "type": str(tx_type),
                "date": format_local(timestamp),
                "timestamp": timestamp,
                "amount": format_drops(parse_amount(resolve("amount", AMOUNT_RULES, envelope))),
                "fee": format_drops(parse_amount(resolve("fee", FEE_RULES, envelope))),
                "status": status,
                "result_code": str(result_code) if result_code is not None else None,
                "sender": sender,
                "destination": destination,
                "memo": memo,
                "source_tag": str(source_tag) if source_tag is not None else None,
                "is_app_tagged": self._classifier.is_app_tagged(source_tag, memo),
                "direction": self._classifier.direction(sender, destination, address),
            }
        except NormalizationError:
            raise
        except Exception as e:
            raise NormalizationError(
                message=f"Failed to normalize transaction: {e}",
                raw_data=envelope.outer,
                original_error=e,
            )

    @staticmethod
    def _status(result_code: Any, envelope: Envelope) -> Optional[TransactionStatus]:
        if result_code is not None:
            return TransactionStatus.SUCCESS if result_code == SUCCESS_RESULT else TransactionStatus.FAILED
        # Not yet in a validated ledger: outcome is pending, not missing
        if envelope.outer.get("validated") is False:
            return TransactionStatus.UNKNOWN
        return None

    @staticmethod
    def _timestamp(envelope: Envelope) -> Optional[datetime]:
        iso = resolve("timestamp", ISO_TIME_RULES, envelope)
        if iso is not None:
            return parse_iso_timestamp(iso)
        epoch = resolve("timestamp", EPOCH_TIME_RULES, envelope)
        if epoch is not None:
            return ripple_time_to_datetime(epoch)
        return None

    def _destination(self, envelope: Envelope, tx_type: str) -> str:
        destination = resolve("to", DESTINATION_RULES, envelope)
        if isinstance(destination, str):
            return destination
        # Matching-engine counterparties are not visible in a single reply
        if tx_type in self._market_types:
            return MARKET_DESTINATION
        return UNKNOWN

    # ─────────────────────────────────────────────────────────
    # Balance
    # ─────────────────────────────────────────────────────────

    def reserve_for(self, owner_count: int) -> Decimal:
        """Reserve in XRP for an account owning `owner_count` objects."""
        return self._base_reserve + self._owner_reserve * max(owner_count, 0)

    def normalize_balance(self, raw: dict[str, Any]) -> CanonicalBalance:
        """Normalize an account_info reply."""
        account_data = _as_dict(_as_dict(raw).get("account_data"))
        if not account_data:
            logger.warning("[normalizer] No balance data found")
            return CanonicalBalance.zero()

        drops = parse_amount(account_data.get("Balance"))
        if drops is None:
            raise NormalizationError(
                message="Account balance missing or not numeric",
                field_name="Balance",
                raw_data=account_data,
            )

        owner_count = _optional_int(account_data.get("OwnerCount")) or 0
        total = drops / DROPS_PER_XRP
        reserve = self.reserve_for(owner_count)
        available = max(Decimal(0), total - reserve)

        return CanonicalBalance(
            total=format_xrp(total),
            available=format_xrp(available),
            reserve=format_xrp(reserve),
            owner_count=owner_count,
        )
