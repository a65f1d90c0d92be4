"""Switching the ledger between local and per-user remote storage."""

import logging
import threading
from typing import Callable, Optional

from tradejournal.db.base import LedgerChange, StorageBackend, Subscription, chunk_trades
from tradejournal.errors import NotSignedInError, TradeJournalError
from tradejournal.ledger.store import LedgerStore
from tradejournal.models import Account, Trade

logger = logging.getLogger(__name__)

RemoteFactory = Callable[[str], StorageBackend]


class SyncCoordinator:
    """Owns the session's backend choice and the remote change feed.

    Signed out, the store runs on the local backend. Signing in points the
    store at the user's remote backend; local data stays untouched until
    ``sync_to_cloud`` merges it in.
    """

    def __init__(
        self,
        store: LedgerStore,
        local_backend: StorageBackend,
        remote_factory: RemoteFactory,
    ):
        """Initialize the coordinator.

        Args:
            store: The ledger store to drive.
            local_backend: Backend used while signed out.
            remote_factory: Builds the remote backend for a user id.
        """
        self._store = store
        self._local = local_backend
        self._remote_factory = remote_factory
        self._remote: Optional[StorageBackend] = None
        self._uid: Optional[str] = None
        self._subscription: Optional[Subscription] = None
        self._lock = threading.Lock()

    @property
    def signed_in_uid(self) -> Optional[str]:
        return self._uid

    @property
    def is_signed_in(self) -> bool:
        return self._uid is not None

    @property
    def remote(self) -> Optional[StorageBackend]:
        return self._remote

    def sign_in(self, uid: str, watch: bool = True) -> None:
        """Switch the store to ``uid``'s remote ledger.

        Args:
            uid: User id scoping the remote documents.
            watch: Subscribe to changes made from other devices.
        """
        if not uid:
            raise ValueError("uid is required")

        with self._lock:
            if self._uid == uid:
                return
            self._teardown()
            remote = self._remote_factory(uid)
            self._store.use_backend(remote)
            self._remote = remote
            self._uid = uid
            if watch:
                self._subscription = remote.watch(self._on_remote_accounts, self._on_remote_trades)
        logger.info("Signed in as %s", uid)

    def sign_out(self) -> None:
        """Drop the remote session and return to the local ledger."""
        with self._lock:
            if self._uid is None:
                return
            uid = self._uid
            self._teardown()
            self._remote = None
            self._uid = None
            self._store.use_backend(self._local)
        logger.info("Signed out %s", uid)

    def sync_to_cloud(self) -> int:
        """Merge local accounts and trades into the remote ledger.

        Local trades whose id the remote lacks are written and their P&L is
        added to the remote account's balance. An account missing remotely,
        or still blank there (zero balance and no trades), is copied with its
        local balance. Trades already in the remote ledger are left as they
        are, so running this twice writes nothing the second time.

        Returns:
            Number of documents written.

        Raises:
            NotSignedInError: If no user is signed in.
        """
        remote = self._remote
        if remote is None:
            raise NotSignedInError("Sign in before syncing to the cloud")

        local = self._local.load()
        current = remote.load()
        remote_accounts = {a.id: a for a in current.accounts}
        remote_trade_ids = {t.id for t in current.trades}
        funded = {t.account_id for t in current.trades}

        pending: dict[str, list[Trade]] = {}
        for trade in local.trades:
            if trade.id not in remote_trade_ids:
                pending.setdefault(trade.account_id, []).append(trade)

        changes = []
        for account in local.accounts:
            new_trades = pending.pop(account.id, [])
            existing = remote_accounts.get(account.id)
            if existing is None or (existing.balance == 0 and account.id not in funded):
                if not new_trades:
                    if account != existing:
                        changes.append(LedgerChange(upsert_accounts=(account,)))
                    continue
                start = account.adjusted(-sum(t.pnl for t in new_trades))
                copied = chunk_trades(start, new_trades)
                copied[-1] = LedgerChange(upsert_trades=copied[-1].upsert_trades, upsert_accounts=(account,))
                changes.extend(copied)
            elif new_trades:
                changes.extend(chunk_trades(existing, new_trades))

        for account_id, trades in pending.items():
            logger.warning("Skipping %d local trade(s) of unknown account %s", len(trades), account_id)

        written = 0
        for change in changes:
            remote.commit(change)
            written += change.write_count()
        logger.info("Merged %d document(s) into the ledger of %s", written, self._uid)
        self._store.reload()
        return written

    def close(self) -> None:
        """Stop listening for remote changes."""
        with self._lock:
            self._teardown()

    def _teardown(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _on_remote_accounts(self, accounts: list[Account]) -> None:
        if not accounts:
            logger.info("Remote ledger for %s has no accounts, creating default", self._uid)
        try:
            self._store.replace_accounts(accounts)
        except TradeJournalError:
            logger.exception("Failed to apply remote accounts snapshot")

    def _on_remote_trades(self, trades: list[Trade]) -> None:
        self._store.replace_trades(trades)
