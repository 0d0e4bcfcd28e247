"""
Unit, time and memo conversions shared by the normalizer.
"""

import binascii
import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Optional

from ledger_access.models import UNKNOWN


logger = logging.getLogger(__name__)


DROPS_PER_XRP = Decimal(1_000_000)
DISPLAY_QUANTUM = Decimal("0.000001")
UNIT_SUFFIX = "XRP"

# Seconds between 1970-01-01 and the ledger epoch 2000-01-01 (UTC)
RIPPLE_EPOCH_OFFSET = 946_684_800

LOCAL_DATE_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Read an amount in drops from any of the encodings nodes use.

    Accepts a numeric string, an int, or an object carrying a decimal
    `value` string. Returns None for anything else, including the
    "unavailable" marker old ledgers use for delivered amounts.
    """
    if isinstance(value, dict):
        return parse_amount(value.get("value"))
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, Decimal)):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None
        return amount if amount.is_finite() else None
    return None


def _precision_for(amount: Decimal) -> int:
    # Enough digits to keep every integer digit plus the 6 display decimals
    return max(28, len(amount.as_tuple().digits) + 8, amount.adjusted() + 8)


def format_xrp(amount: Decimal) -> str:
    """Format an amount already in XRP as a 6-decimal display string."""
    with localcontext() as ctx:
        ctx.prec = _precision_for(amount)
        quantized = amount.quantize(DISPLAY_QUANTUM, rounding=ROUND_HALF_UP)
        if quantized.is_zero():
            quantized = abs(quantized)
        return f"{quantized:.6f} {UNIT_SUFFIX}"


def format_drops(drops: Optional[Decimal]) -> str:
    """Convert drops to the display unit; missing amounts render as zero."""
    if drops is None:
        drops = Decimal(0)
    with localcontext() as ctx:
        ctx.prec = _precision_for(drops)
        amount = drops / DROPS_PER_XRP
    return format_xrp(amount)


def ripple_time_to_datetime(seconds: Any) -> Optional[datetime]:
    """Convert seconds since the ledger epoch to an aware UTC datetime."""
    if isinstance(seconds, bool):
        return None
    try:
        offset = int(seconds)
    except (TypeError, ValueError):
        return None
    try:
        return datetime.fromtimestamp(offset + RIPPLE_EPOCH_OFFSET, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def parse_iso_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_local(timestamp: Optional[datetime]) -> str:
    """Render a timestamp in the local timezone for display."""
    if timestamp is None:
        return UNKNOWN
    return timestamp.astimezone().strftime(LOCAL_DATE_FORMAT).strip()


def decode_memo(hex_data: Any) -> Optional[str]:
    """Decode hex-encoded memo bytes into text; empty or invalid input yields None."""
    if not isinstance(hex_data, str) or not hex_data:
        return None
    try:
        raw = binascii.unhexlify(hex_data)
    except (binascii.Error, ValueError) as e:
        logger.debug(f"[formatting] Ignoring undecodable memo {hex_data[:32]!r}: {e}")
        return None
    text = raw.decode("utf-8", errors="replace")
    return text or None
