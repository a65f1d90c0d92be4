"""Firestore ledger backend for signed-in users.

Documents live under ``users/{uid}/accounts/{id}`` and
``users/{uid}/trades/{id}``. Concurrent writers from several devices are
last-write-wins.
"""

import logging
import threading
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as gexc

from tradejournal.db.base import (
    MAX_CHANGE_WRITES,
    AccountsListener,
    LedgerChange,
    LedgerSnapshot,
    StorageBackend,
    Subscription,
    TradesListener,
)
from tradejournal.db.documents import parse_accounts, parse_trades, to_document
from tradejournal.errors import PersistenceError
from tradejournal.models import local_datetime

logger = logging.getLogger(__name__)

# Firestore rejects batches with more writes than this.
MAX_BATCH_WRITES = MAX_CHANGE_WRITES

_init_lock = threading.Lock()


def get_firestore_client(project_id: Optional[str] = None):
    """Initialize the Firebase Admin SDK once and return a Firestore client.

    Credentials come from Application Default Credentials
    (``GOOGLE_APPLICATION_CREDENTIALS`` or ``gcloud auth application-default login``).

    Raises:
        PersistenceError: If the SDK cannot be initialized.
    """
    if not firebase_admin._apps:
        with _init_lock:
            if not firebase_admin._apps:
                try:
                    cred = credentials.ApplicationDefault()
                    options = {"projectId": project_id} if project_id else None
                    firebase_admin.initialize_app(cred, options)
                except Exception as e:
                    raise PersistenceError(
                        "Failed to initialize Firebase Admin SDK. "
                        "Run `gcloud auth application-default login` or set "
                        "GOOGLE_APPLICATION_CREDENTIALS."
                    ) from e
    return firestore.client()


class FirestoreBackend(StorageBackend):
    """Per-user remote ledger storage."""

    name = "firestore"

    def __init__(self, client, uid: str):
        """Initialize the backend.

        Args:
            client: Firestore client (``google.cloud.firestore.Client``).
            uid: Signed-in user id scoping all documents.
        """
        if not uid:
            raise ValueError("uid is required")
        self._db = client
        self.uid = uid

    def _user_doc(self):
        return self._db.collection("users").document(self.uid)

    def _accounts(self):
        return self._user_doc().collection("accounts")

    def _trades(self):
        return self._user_doc().collection("trades")

    def load(self) -> LedgerSnapshot:
        """Read the user's accounts, trades and active account preference."""
        try:
            account_docs = [snap.to_dict() for snap in self._accounts().stream()]
            trade_docs = [snap.to_dict() for snap in self._trades().stream()]
            user_snap = self._user_doc().get()
        except gexc.GoogleAPIError as e:
            raise PersistenceError(f"Failed to load ledger for user {self.uid}: {e}") from e

        accounts = sorted(parse_accounts(account_docs), key=lambda a: a.name)
        trades = sorted(
            parse_trades(trade_docs),
            key=lambda t: local_datetime(t.close_time),
            reverse=True,
        )

        active_account_id = None
        if user_snap.exists:
            active_account_id = (user_snap.to_dict() or {}).get("activeAccountId")

        return LedgerSnapshot(
            accounts=accounts,
            trades=trades,
            active_account_id=active_account_id,
        )

    def commit(self, change: LedgerChange) -> None:
        """Apply a change through a single write batch."""
        if change.is_empty():
            return
        if change.write_count() > MAX_BATCH_WRITES:
            raise PersistenceError(
                f"Change has {change.write_count()} writes; "
                f"a batch holds at most {MAX_BATCH_WRITES}"
            )

        batch = self._db.batch()
        for trade in change.upsert_trades:
            batch.set(self._trades().document(trade.id), to_document(trade))
        for trade_id in change.delete_trade_ids:
            batch.delete(self._trades().document(trade_id))
        for account in change.upsert_accounts:
            batch.set(self._accounts().document(account.id), to_document(account))
        self._commit(batch)

    def save_active_account_id(self, account_id: str) -> None:
        try:
            self._user_doc().set({"activeAccountId": account_id}, merge=True)
        except gexc.GoogleAPIError as e:
            raise PersistenceError(f"Failed to save active account: {e}") from e

    def watch(
        self,
        on_accounts: AccountsListener,
        on_trades: TradesListener,
    ) -> Subscription:
        """Listen for account and trade changes from any device.

        Callbacks run on the Firestore listener thread.
        """

        def _on_account_snapshot(docs, changes, read_time) -> None:
            logger.debug("Accounts snapshot for %s: %d docs", self.uid, len(docs))
            on_accounts(parse_accounts(snap.to_dict() for snap in docs))

        def _on_trade_snapshot(docs, changes, read_time) -> None:
            logger.debug("Trades snapshot for %s: %d docs", self.uid, len(docs))
            on_trades(parse_trades(snap.to_dict() for snap in docs))

        accounts_watch = self._accounts().on_snapshot(_on_account_snapshot)
        trades_watch = self._trades().on_snapshot(_on_trade_snapshot)
        return Subscription(accounts_watch.unsubscribe, trades_watch.unsubscribe)

    def _commit(self, batch) -> None:
        try:
            batch.commit()
        except gexc.GoogleAPIError as e:
            raise PersistenceError(f"Failed to write ledger for user {self.uid}: {e}") from e
