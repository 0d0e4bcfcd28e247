"""
Sample node replies and a fake transport for ledger access tests.

Sessions are faked through the injectable session factory; no test
touches the network.
"""

import copy
from typing import Any, Dict, List, Optional

from ledger_access.exceptions import EndpointConnectionError
from ledger_access.models import Endpoint


# ============================================================
# SAMPLE DATA
# ============================================================

SENDER = "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh"
RECEIVER = "rrrrrrrrrrrrrrrrrrrrBZbvji"
OTHER = "rrrrrrrrrrrrrrrrrrrrrhoLvTp"

HASH_V2 = "E08D6E9754025BA2534A78707605E0601F03ACE063687A0CA1BDDACFCD1698C7"
HASH_V1 = "C53ECF838647FA5A4C780377025FEC7999AB4182590510CA461444B207AB74A9"
HASH_OFFER = "9D0CC9B1E1C9B8B28B1E7F1B6A8AE5E8C0F5D7D2A4B1A9F3E6D5C4B3A2918070"

APP_MEMO_HEX = "426974426F62506179"  # "BitBobPay"
PLAIN_MEMO_HEX = "68656C6C6F"  # "hello"


V2_PAYMENT = {
    "hash": HASH_V2,
    "ledger_index": 56865245,
    "close_time_iso": "2020-06-25T18:09:41Z",
    "validated": True,
    "meta": {
        "TransactionResult": "tesSUCCESS",
        "delivered_amount": "12345678",
    },
    "tx_json": {
        "Account": SENDER,
        "Destination": RECEIVER,
        "DeliverMax": "20000000",
        "Fee": "12",
        "TransactionType": "Payment",
        "date": 646337381,
        "Sequence": 5,
        "SourceTag": 29202152,
    },
}

V1_PAYMENT = {
    "tx": {
        "Account": RECEIVER,
        "Destination": SENDER,
        "Amount": "1000000",
        "Fee": "10",
        "TransactionType": "Payment",
        "date": 0,
        "hash": HASH_V1,
        "Memos": [{"Memo": {"MemoData": PLAIN_MEMO_HEX}}],
    },
    "meta": {"TransactionResult": "tecUNFUNDED_PAYMENT"},
    "validated": True,
}

V2_OFFER = {
    "hash": HASH_OFFER,
    "close_time_iso": "2024-03-01T12:00:00Z",
    "validated": True,
    "meta": {"TransactionResult": "tesSUCCESS"},
    "tx_json": {
        "Account": SENDER,
        "Fee": "15",
        "TransactionType": "OfferCreate",
        "TakerGets": "5000000",
        "TakerPays": {"currency": "USD", "issuer": OTHER, "value": "2.5"},
    },
}

V1_TX_LOOKUP = {
    "Account": SENDER,
    "Destination": RECEIVER,
    "Amount": "2500000",
    "Fee": "12",
    "Flags": 2147483648,
    "LastLedgerSequence": 56865250,
    "Sequence": 7,
    "TransactionType": "Payment",
    "date": 646337381,
    "hash": HASH_V1,
    "inLedger": 56865245,
    "ledger_index": 56865245,
    "Memos": [
        {"Memo": {"MemoData": APP_MEMO_HEX}},
        {"Memo": {"MemoData": PLAIN_MEMO_HEX}},
    ],
    "meta": {"TransactionResult": "tesSUCCESS", "delivered_amount": "2500000"},
    "validated": True,
}

ACCOUNT_INFO = {
    "account_data": {
        "Account": SENDER,
        "Balance": "25000000",
        "OwnerCount": 2,
        "Sequence": 8,
    },
    "ledger_current_index": 56865300,
    "validated": True,
}


def account_tx_reply(*entries: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap entries the way account_tx replies do."""
    return {
        "account": SENDER,
        "ledger_index_min": 32570,
        "ledger_index_max": 56865300,
        "limit": 200,
        "transactions": [copy.deepcopy(entry) for entry in entries],
    }


# ============================================================
# FAKE TRANSPORT
# ============================================================

class FakeSession:
    """Session double that answers from canned replies."""

    def __init__(self, endpoint: Endpoint, replies: Dict[str, Any]) -> None:
        self.endpoint = endpoint
        self.replies = replies
        self.requests: List[tuple] = []
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    async def request(self, command: str, **params: Any) -> Dict[str, Any]:
        self.requests.append((command, params))
        reply = self.replies[command]
        if isinstance(reply, Exception):
            raise reply
        return copy.deepcopy(reply)

    async def close(self) -> None:
        self.close_calls += 1


class FakeSessionFactory:
    """Session factory double; endpoints listed in `failing` refuse to connect."""

    def __init__(
        self,
        replies: Optional[Dict[str, Any]] = None,
        failing: Optional[set] = None,
    ) -> None:
        self.replies = replies or {}
        self.failing = failing or set()
        self.attempts: List[str] = []
        self.sessions: List[FakeSession] = []

    async def __call__(self, endpoint: Endpoint) -> FakeSession:
        self.attempts.append(endpoint.uri)
        if endpoint.uri in self.failing:
            raise EndpointConnectionError("connection refused", endpoint=endpoint.uri)
        session = FakeSession(endpoint, self.replies)
        self.sessions.append(session)
        return session


ENDPOINTS = [
    "wss://node-a.example",
    "wss://node-b.example",
    "wss://node-c.example",
]
