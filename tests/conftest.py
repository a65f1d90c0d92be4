"""Shared fixtures for TradeJournal tests."""

import tempfile
from pathlib import Path
from typing import Optional
from unittest.mock import MagicMock

import pytest

from tradejournal.db.base import MAX_CHANGE_WRITES, LedgerChange, LedgerSnapshot, StorageBackend, Subscription
from tradejournal.errors import PersistenceError


class MemoryBackend(StorageBackend):
    """In-memory backend that records every commit."""

    name = "memory"

    def __init__(self, accounts=(), trades=(), active_account_id: Optional[str] = None):
        self.accounts = {a.id: a for a in accounts}
        self.trades = {t.id: t for t in trades}
        self.active_account_id = active_account_id
        self.commits: list[LedgerChange] = []
        self.fail_next = False
        self.on_accounts = None
        self.on_trades = None
        self.cancel = MagicMock()

    def load(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            accounts=sorted(self.accounts.values(), key=lambda a: a.name),
            trades=list(self.trades.values()),
            active_account_id=self.active_account_id,
        )

    def commit(self, change: LedgerChange) -> None:
        if self.fail_next:
            self.fail_next = False
            raise PersistenceError("simulated write failure")
        if change.write_count() > MAX_CHANGE_WRITES:
            raise PersistenceError(f"change too large: {change.write_count()} writes")
        if change.is_empty():
            return
        self.commits.append(change)
        for trade in change.upsert_trades:
            self.trades[trade.id] = trade
        for trade_id in change.delete_trade_ids:
            self.trades.pop(trade_id, None)
        for account in change.upsert_accounts:
            self.accounts[account.id] = account

    def save_active_account_id(self, account_id: str) -> None:
        self.active_account_id = account_id

    def watch(self, on_accounts, on_trades) -> Subscription:
        self.on_accounts = on_accounts
        self.on_trades = on_trades
        return Subscription(self.cancel)


@pytest.fixture
def memory_backend():
    return MemoryBackend()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
