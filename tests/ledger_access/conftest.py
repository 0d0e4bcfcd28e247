"""
Pytest fixtures for ledger access tests.
"""

import pytest

from ledger_access.config import LedgerConfig

from tests.ledger_access.fixtures import (
    ACCOUNT_INFO,
    ENDPOINTS,
    V1_PAYMENT,
    V1_TX_LOOKUP,
    V2_OFFER,
    V2_PAYMENT,
    account_tx_reply,
)


@pytest.fixture
def test_config():
    """Deterministic config: fixed order, no retry delay."""
    return LedgerConfig(
        endpoints=list(ENDPOINTS),
        shuffle_endpoints=False,
        max_passes=2,
        retry_delay_seconds=0.0,
    )


@pytest.fixture
def default_replies():
    """Canned replies for the three query kinds."""
    return {
        "account_info": ACCOUNT_INFO,
        "account_tx": account_tx_reply(V2_PAYMENT, V1_PAYMENT, V2_OFFER),
        "tx": V1_TX_LOOKUP,
    }
