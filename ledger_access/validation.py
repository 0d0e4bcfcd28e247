"""
Address validation for classic XRP Ledger accounts.

Runs before any network call; never touches the network.
"""

import logging
from typing import Any

from xrpl.core.addresscodec import is_valid_classic_address

from ledger_access.exceptions import InvalidAddressError


logger = logging.getLogger(__name__)


def is_valid_address(candidate: Any) -> bool:
    """
    Check a string against the classic address encoding.

    Covers the ripple base58 alphabet, the leading 'r', the payload length
    and the double-SHA256 checksum. Never raises.
    """
    if not isinstance(candidate, str) or not candidate:
        return False
    if candidate != candidate.strip():
        return False
    try:
        return bool(is_valid_classic_address(candidate))
    except Exception as e:
        logger.debug(f"[validation] Rejected {candidate!r}: {e}")
        return False


def validate_address(candidate: Any) -> str:
    """Return the address unchanged or raise InvalidAddressError."""
    if not is_valid_address(candidate):
        raise InvalidAddressError(
            message=f"Not a classic account address: {candidate!r}",
            address=candidate if isinstance(candidate, str) else None,
        )
    return candidate
