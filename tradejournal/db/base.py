"""Storage backend interface for the ledger."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from tradejournal.models import Account, Trade

AccountsListener = Callable[[list[Account]], None]
TradesListener = Callable[[list[Trade]], None]

# Most writes a backend is asked to apply in one change (Firestore batch limit).
MAX_CHANGE_WRITES = 500


@dataclass(frozen=True)
class LedgerSnapshot:
    """Full contents of a backend at load time."""

    accounts: list[Account] = field(default_factory=list)
    trades: list[Trade] = field(default_factory=list)
    active_account_id: Optional[str] = None


@dataclass(frozen=True)
class LedgerChange:
    """A set of writes that a backend applies all together or not at all."""

    upsert_trades: tuple[Trade, ...] = ()
    delete_trade_ids: tuple[str, ...] = ()
    upsert_accounts: tuple[Account, ...] = ()

    def is_empty(self) -> bool:
        return not (self.upsert_trades or self.delete_trade_ids or self.upsert_accounts)

    def write_count(self) -> int:
        return len(self.upsert_trades) + len(self.delete_trade_ids) + len(self.upsert_accounts)


def chunk_trades(
    account: Account,
    trades: Sequence[Trade],
    limit: int = MAX_CHANGE_WRITES,
) -> list[LedgerChange]:
    """Split new trades of one account into changes that fit in one write.

    ``account`` is the state before the trades. Every change carries the
    account with the P&L of all trades written so far, so the ledger stays
    consistent after each one even if a later one fails.
    """
    per_change = limit - 1
    changes = []
    running = account
    for start in range(0, len(trades), per_change):
        chunk = tuple(trades[start:start + per_change])
        running = running.adjusted(sum(t.pnl for t in chunk))
        changes.append(LedgerChange(upsert_trades=chunk, upsert_accounts=(running,)))
    return changes


class Subscription:
    """Handle for a long-lived change feed. Cancel with ``unsubscribe()``."""

    def __init__(self, *cancels: Callable[[], None]):
        self._cancels = list(cancels)

    @property
    def active(self) -> bool:
        return bool(self._cancels)

    def unsubscribe(self) -> None:
        """Tear down the feed. Safe to call more than once."""
        cancels, self._cancels = self._cancels, []
        for cancel in cancels:
            cancel()


class StorageBackend(ABC):
    """Abstract base class for ledger persistence.

    The local (device) and remote (per-user document store) backends both
    implement this interface; the ledger store never branches on which one
    it is talking to.
    """

    name: str = "backend"

    @abstractmethod
    def load(self) -> LedgerSnapshot:
        """Read all accounts and trades.

        Raises:
            PersistenceError: If the backend cannot be read.
        """
        pass

    @abstractmethod
    def commit(self, change: LedgerChange) -> None:
        """Apply a change atomically.

        Raises:
            PersistenceError: If the write fails. Nothing is applied then.
        """
        pass

    @abstractmethod
    def save_active_account_id(self, account_id: str) -> None:
        """Remember which account is active."""
        pass

    def watch(
        self,
        on_accounts: AccountsListener,
        on_trades: TradesListener,
    ) -> Optional[Subscription]:
        """Subscribe to changes made outside this process.

        Backends without a change feed return None.
        """
        return None
