"""Tests for the Firestore ledger backend with a mocked client.

**Feature: trade-journal**
"""

from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from google.api_core import exceptions as gexc

from tradejournal.db.base import LedgerChange, chunk_trades
from tradejournal.db.firestore import MAX_BATCH_WRITES, FirestoreBackend, get_firestore_client
from tradejournal.errors import PersistenceError
from tradejournal.models import Account, Trade


def _trade(trade_id: str, close_hour: int = 10) -> Trade:
    return Trade(
        id=trade_id,
        account_id="acc_main",
        symbol="EURUSD",
        type="BUY",
        pnl=1.0,
        open_time=datetime(2024, 1, 2, 8, 0),
        close_time=datetime(2024, 1, 2, close_hour, 0),
    )


def _snapshot(data: dict) -> MagicMock:
    snap = MagicMock()
    snap.to_dict.return_value = data
    snap.exists = True
    return snap


@pytest.fixture
def client():
    """Mock Firestore client with separate accounts/trades collections."""
    client = MagicMock()
    user_doc = client.collection.return_value.document.return_value
    collections = {"accounts": MagicMock(), "trades": MagicMock()}
    user_doc.collection.side_effect = lambda name: collections[name]
    client.user_doc = user_doc
    client.collections = collections
    return client


class TestFirestoreLoad:
    """
    **Feature: trade-journal, Property 19: Remote Snapshot Loading**
    """

    def test_load_parses_and_sorts(self, client):
        client.collections["accounts"].stream.return_value = [
            _snapshot({"id": "acc_z", "name": "Zulu", "balance": 5, "equity": 5, "currency": "USD"}),
            _snapshot({"id": "acc_a", "name": "Alpha", "balance": 1, "equity": 1, "currency": "USD"}),
        ]
        client.collections["trades"].stream.return_value = [
            _snapshot({
                "id": "old", "accountId": "acc_a", "symbol": "EURUSD", "type": "BUY", "pnl": 1,
                "openTime": "2024-01-01T08:00:00", "closeTime": "2024-01-01T09:00:00",
            }),
            _snapshot({
                "id": "new", "accountId": "acc_a", "symbol": "EURUSD", "type": "BUY", "pnl": 2,
                "openTime": "2024-01-02T08:00:00", "closeTime": "2024-01-02T09:00:00",
            }),
            _snapshot({"id": "broken"}),
        ]
        client.user_doc.get.return_value = _snapshot({"activeAccountId": "acc_z"})

        snapshot = FirestoreBackend(client, "user-1").load()

        assert [a.id for a in snapshot.accounts] == ["acc_a", "acc_z"]
        assert [t.id for t in snapshot.trades] == ["new", "old"]
        assert snapshot.active_account_id == "acc_z"

    def test_load_error_wrapped(self, client):
        client.collections["accounts"].stream.side_effect = gexc.PermissionDenied("denied")
        with pytest.raises(PersistenceError):
            FirestoreBackend(client, "user-1").load()

    def test_uid_required(self, client):
        with pytest.raises(ValueError):
            FirestoreBackend(client, "")


class TestFirestoreWrites:
    """
    **Feature: trade-journal, Property 20: Batched Remote Writes**

    A ledger change is one write batch; bulk imports are split into
    batches of at most 500 writes.
    """

    def test_commit_uses_single_batch(self, client):
        batch = client.batch.return_value
        account = Account(id="acc_main", name="Main Account", balance=1, equity=1)

        FirestoreBackend(client, "user-1").commit(LedgerChange(
            upsert_trades=(_trade("t1"),),
            delete_trade_ids=("t0",),
            upsert_accounts=(account,),
        ))

        assert client.batch.call_count == 1
        assert batch.set.call_count == 2
        assert batch.delete.call_count == 1
        batch.commit.assert_called_once()

    def test_empty_change_writes_nothing(self, client):
        FirestoreBackend(client, "user-1").commit(LedgerChange())
        client.batch.assert_not_called()

    def test_commit_error_wrapped(self, client):
        client.batch.return_value.commit.side_effect = gexc.ServiceUnavailable("down")
        with pytest.raises(PersistenceError):
            FirestoreBackend(client, "user-1").commit(LedgerChange(upsert_trades=(_trade("t1"),)))

    def test_oversized_change_rejected_before_writing(self, client):
        trades = tuple(_trade(f"t{i}") for i in range(MAX_BATCH_WRITES))
        account = Account(id="acc_main", name="Main Account")

        with pytest.raises(PersistenceError):
            FirestoreBackend(client, "user-1").commit(
                LedgerChange(upsert_trades=trades, upsert_accounts=(account,))
            )

        client.batch.return_value.commit.assert_not_called()

    def test_chunked_changes_fit_in_batches(self, client):
        batch = client.batch.return_value
        trades = [_trade(f"t{i}") for i in range(2 * MAX_BATCH_WRITES + 1)]
        account = Account(id="acc_main", name="Main Account", balance=10, equity=10)
        backend = FirestoreBackend(client, "user-1")

        changes = chunk_trades(account, trades)
        for change in changes:
            backend.commit(change)

        assert len(changes) == 3
        assert all(change.write_count() <= MAX_BATCH_WRITES for change in changes)
        assert batch.set.call_count == len(trades) + len(changes)
        assert batch.commit.call_count == 3
        assert changes[-1].upsert_accounts[0].balance == pytest.approx(10 + len(trades))

    def test_active_account_merged_into_user_doc(self, client):
        FirestoreBackend(client, "user-1").save_active_account_id("acc_x")
        client.user_doc.set.assert_called_once_with({"activeAccountId": "acc_x"}, merge=True)


class TestFirestoreWatch:
    """
    **Feature: trade-journal, Property 21: Remote Change Feed**
    """

    def test_watch_delivers_parsed_models_and_unsubscribes(self, client):
        received = {}
        backend = FirestoreBackend(client, "user-1")

        subscription = backend.watch(
            lambda accounts: received.setdefault("accounts", accounts),
            lambda trades: received.setdefault("trades", trades),
        )
        on_accounts = client.collections["accounts"].on_snapshot.call_args[0][0]
        on_trades = client.collections["trades"].on_snapshot.call_args[0][0]
        on_accounts([_snapshot({"id": "acc_a", "name": "Alpha"})], [], None)
        on_trades([], [], None)

        assert [a.id for a in received["accounts"]] == ["acc_a"]
        assert received["trades"] == []

        subscription.unsubscribe()
        subscription.unsubscribe()
        client.collections["accounts"].on_snapshot.return_value.unsubscribe.assert_called_once()
        client.collections["trades"].on_snapshot.return_value.unsubscribe.assert_called_once()


class TestFirestoreClient:
    """Firebase Admin SDK initialization."""

    def test_initializes_once(self):
        with patch("tradejournal.db.firestore.firebase_admin") as admin, \
                patch("tradejournal.db.firestore.credentials") as creds, \
                patch("tradejournal.db.firestore.firestore") as fs:
            admin._apps = {}
            admin.initialize_app.side_effect = lambda *_: admin._apps.setdefault("[DEFAULT]", object())

            first = get_firestore_client("demo-project")
            get_firestore_client("demo-project")

            admin.initialize_app.assert_called_once_with(
                creds.ApplicationDefault.return_value, {"projectId": "demo-project"}
            )
            assert first is fs.client.return_value

    def test_missing_credentials_wrapped(self):
        with patch("tradejournal.db.firestore.firebase_admin") as admin, \
                patch("tradejournal.db.firestore.credentials") as creds:
            admin._apps = {}
            creds.ApplicationDefault.side_effect = ValueError("no ADC")

            with pytest.raises(PersistenceError):
                get_firestore_client()
