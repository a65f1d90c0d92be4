"""Ledger storage backends for TradeJournal.

``tradejournal.db.firestore`` is imported on demand since it pulls in the
Firebase SDK.
"""

from tradejournal.db.base import (
    LedgerChange,
    LedgerSnapshot,
    StorageBackend,
    Subscription,
)
from tradejournal.db.documents import sanitize_document, to_document
from tradejournal.db.local import LocalBackend

__all__ = [
    "LedgerChange",
    "LedgerSnapshot",
    "LocalBackend",
    "StorageBackend",
    "Subscription",
    "sanitize_document",
    "to_document",
]
