"""Ledger store: accounts, trades and the balance-consistency invariant.

Every mutation that changes a trade's P&L contribution commits the trade
write and the matching account balance write to the backend as one
``LedgerChange``. In-memory state is only updated after the backend
accepts the change, so a failed write leaves both sides untouched.
"""

import logging
import math
import threading
import uuid
from datetime import date, datetime
from typing import Any, Callable, Iterable, Optional, TypeVar, Union

import pydantic

from tradejournal.db.base import MAX_CHANGE_WRITES, LedgerChange, StorageBackend, chunk_trades
from tradejournal.errors import ValidationError
from tradejournal.ledger.calculations import (
    calculate_pips,
    calculate_pnl,
    calculate_pnl_from_exits,
    calculate_pnl_percent,
    weighted_exit_price,
)
from tradejournal.models import (
    Account,
    DailyStats,
    Trade,
    TradeInput,
    TradeUpdate,
    default_account,
    local_datetime,
    new_account_id,
)

logger = logging.getLogger(__name__)

Listener = Callable[["LedgerStore"], None]
ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)

# Supplying any of these in an edit triggers P&L recomputation.
PNL_FIELDS = frozenset({"entry_price", "exit_price", "size", "type"})
# Supplying any of these in an edit triggers pips recomputation.
PIP_FIELDS = frozenset({"entry_price", "exit_price", "type"})


def _coerce(model_cls: type[ModelT], data: Union[ModelT, dict]) -> ModelT:
    """Validate user input, raising ValidationError before any mutation."""
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(_describe(e)) from e


def _describe(error: pydantic.ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(p) for p in err["loc"])
        parts.append(f"{location}: {err['msg']}" if location else err["msg"])
    return "; ".join(parts)


def _require_amount(amount: float, *, positive: bool = False, allow_negative: bool = True) -> float:
    try:
        value = float(amount)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Amount must be a number, got {amount!r}") from e
    if not math.isfinite(value):
        raise ValidationError(f"Amount must be finite, got {amount!r}")
    if positive and value <= 0:
        raise ValidationError(f"Amount must be greater than 0, got {value:g}")
    if not allow_negative and value < 0:
        raise ValidationError(f"Amount cannot be negative, got {value:g}")
    return value


class LedgerStore:
    """Single source of truth for accounts and trades.

    Consumers read through the properties and register for change
    notifications with ``subscribe()``; they never mutate the collections
    directly.
    """

    def __init__(self, backend: StorageBackend, default_currency: str = "USD"):
        """Initialize the store and load the backend's contents.

        Args:
            backend: Storage backend to read from and write to.
            default_currency: Currency of the account created when the
                backend holds none.
        """
        self._lock = threading.RLock()
        self._listeners: list[Listener] = []
        self._backend = backend
        self.default_currency = default_currency
        self._accounts: list[Account] = []
        self._trades: list[Trade] = []
        self._active_account_id: Optional[str] = None
        self._load()

    # ==================== Backend ====================

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    def use_backend(self, backend: StorageBackend) -> None:
        """Switch to another backend, replacing in-memory state with its contents."""
        with self._lock:
            logger.info("Switching ledger backend %s -> %s", self._backend.name, backend.name)
            previous, self._backend = self._backend, backend
            try:
                self._load()
            except Exception:
                self._backend = previous
                raise
        self._notify()

    def reload(self) -> None:
        """Re-read the current backend."""
        with self._lock:
            self._load()
        self._notify()

    def _load(self) -> None:
        snapshot = self._backend.load()
        preferred = snapshot.active_account_id or self._active_account_id
        self._accounts = list(snapshot.accounts)
        self._trades = list(snapshot.trades)
        self._active_account_id = preferred
        if not self._accounts:
            self._create_default_account()
        else:
            self._resolve_active_account()

    # ==================== Reads ====================

    @property
    def accounts(self) -> list[Account]:
        """All accounts, sorted by name."""
        with self._lock:
            return sorted(self._accounts, key=lambda a: a.name)

    @property
    def active_account_id(self) -> Optional[str]:
        with self._lock:
            return self._active_account_id

    @property
    def account(self) -> Account:
        """The active account."""
        with self._lock:
            account = self._find_account(self._active_account_id)
            if account is None:
                return self._first_account()
            return account

    @property
    def all_trades(self) -> list[Trade]:
        with self._lock:
            return list(self._trades)

    @property
    def trades(self) -> list[Trade]:
        """Trades of the active account, most recently closed first."""
        with self._lock:
            return self.trades_for_account(self.account.id)

    def trades_for_account(self, account_id: str) -> list[Trade]:
        with self._lock:
            trades = [t for t in self._trades if t.account_id == account_id]
        return sorted(trades, key=lambda t: local_datetime(t.close_time), reverse=True)

    def get_trade(self, trade_id: str) -> Optional[Trade]:
        with self._lock:
            return self._find_trade(trade_id)

    def get_account(self, account_id: str) -> Optional[Account]:
        with self._lock:
            return self._find_account(account_id)

    def daily_stats(self, days: int = 30, today: Optional[date] = None) -> list[DailyStats]:
        """Daily stats of the active account over a trailing window."""
        from tradejournal.metrics.daily import daily_stats

        return daily_stats(self.trades, days=days, today=today)

    # ==================== Subscriptions ====================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with the store after every change.

        Returns:
            A callable that unsubscribes the listener.
        """
        with self._lock:
            self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(self)
            except Exception:
                logger.exception("Ledger listener %r failed", listener)

    # ==================== Trades ====================

    def add_trade(self, data: Union[TradeInput, dict]) -> Trade:
        """Log a closed trade against the active account.

        P&L comes from an explicit override, else from partial exits, else
        from entry/exit/size. The trade and the account balance change are
        committed together.

        Raises:
            ValidationError: If the input is incomplete or inconsistent.
            PersistenceError: If the backend write fails.
        """
        trade_input = _coerce(TradeInput, data)
        with self._lock:
            account = self.account
            trade = self._build_trade(trade_input, account)
            self._commit(LedgerChange(
                upsert_trades=(trade,),
                upsert_accounts=(account.adjusted(trade.pnl),),
            ))
        logger.info("Added trade %s %s pnl=%.2f to %s", trade.id, trade.symbol, trade.pnl, account.id)
        self._notify()
        return trade

    def add_trades(self, records: Iterable[Union[TradeInput, dict]]) -> list[Trade]:
        """Log several trades at once (e.g. from an import).

        Each record is derived exactly as in ``add_trade``. Every record is
        validated before anything is written. Trades are committed in chunks
        that fit one backend write, each carrying the balance after its own
        trades, so a failure part way leaves a consistent ledger.
        """
        inputs = [_coerce(TradeInput, record) for record in records]
        if not inputs:
            return []

        with self._lock:
            account = self.account
            running = account
            trades = []
            for trade_input in inputs:
                trade = self._build_trade(trade_input, running)
                trades.append(trade)
                running = running.adjusted(trade.pnl)
            self._commit_all(chunk_trades(account, trades))
        logger.info("Imported %d trades into %s", len(trades), account.id)
        self._notify()
        return trades

    def edit_trade(self, trade_id: str, updates: Union[TradeUpdate, dict]) -> Optional[Trade]:
        """Update a trade, recomputing derived fields and the balance.

        Without an explicit ``pnl``, P&L is recomputed from ``exits`` when
        they are supplied (the exit price becomes their weighted average),
        otherwise from the price fields when any of them is supplied.
        Without an explicit ``pips``, pips are recomputed when a price or the
        type is supplied. The P&L difference is applied to the
        owning account in the same commit.

        Returns:
            The updated trade, or None if ``trade_id`` does not exist.
        """
        update = _coerce(TradeUpdate, updates)
        changes = update.changes()

        with self._lock:
            old = self._find_trade(trade_id)
            if old is None:
                logger.warning("edit_trade: trade %s not found, ignoring", trade_id)
                return None

            values = {name: getattr(old, name) for name in Trade.model_fields}
            values.update(changes)
            exit_price_derived = False

            if "pnl" not in changes:
                exits = changes.get("exits")
                if exits:
                    remainder_price = changes.get("exit_price", 0.0)
                    values["pnl"] = calculate_pnl_from_exits(
                        values["entry_price"], values["size"], values["type"], exits, remainder_price
                    )
                    weighted = weighted_exit_price(exits, remainder_price)
                    if weighted is not None:
                        values["exit_price"] = weighted
                        exit_price_derived = True
                elif PNL_FIELDS & changes.keys():
                    values["pnl"] = calculate_pnl(
                        values["entry_price"], values["exit_price"], values["size"], values["type"]
                    )

            if "pips" not in changes and (exit_price_derived or PIP_FIELDS & changes.keys()):
                values["pips"] = calculate_pips(
                    values["symbol"], values["entry_price"], values["exit_price"], values["type"]
                )

            try:
                trade = Trade.model_validate(values)
            except pydantic.ValidationError as e:
                raise ValidationError(_describe(e)) from e

            pnl_diff = trade.pnl - old.pnl
            accounts = ()
            if pnl_diff != 0:
                owner = self._find_account(old.account_id)
                if owner is None:
                    logger.warning("edit_trade: account %s of trade %s not found", old.account_id, trade_id)
                else:
                    accounts = (owner.adjusted(pnl_diff),)

            self._commit(LedgerChange(upsert_trades=(trade,), upsert_accounts=accounts))
        logger.info("Edited trade %s pnl %.2f -> %.2f", trade_id, old.pnl, trade.pnl)
        self._notify()
        return trade

    def delete_trade(self, trade_id: str) -> bool:
        """Delete one trade, reversing its P&L. Returns False if not found."""
        return self.delete_trades([trade_id]) == 1

    def delete_trades(self, trade_ids: Iterable[str]) -> int:
        """Delete trades, reversing their P&L.

        Each affected account receives one net balance adjustment, committed
        together with the deletions. Deletions too large for one backend
        write are split per account, each chunk carrying its own balance
        adjustment. Unknown ids are skipped.

        Returns:
            Number of trades deleted.
        """
        wanted = set(trade_ids)
        if not wanted:
            return 0

        with self._lock:
            doomed = [t for t in self._trades if t.id in wanted]
            missing = wanted - {t.id for t in doomed}
            if missing:
                logger.warning("delete_trades: %d trade(s) not found, ignoring: %s", len(missing), sorted(missing))
            if not doomed:
                return 0

            by_account: dict[str, list[Trade]] = {}
            for trade in doomed:
                by_account.setdefault(trade.account_id, []).append(trade)

            owners = {}
            for account_id in by_account:
                account = self._find_account(account_id)
                if account is None:
                    logger.warning("delete_trades: account %s not found, balance not adjusted", account_id)
                    continue
                owners[account_id] = account

            if len(doomed) + len(owners) <= MAX_CHANGE_WRITES:
                changes = [LedgerChange(
                    delete_trade_ids=tuple(t.id for t in doomed),
                    upsert_accounts=tuple(
                        account.adjusted(-sum(t.pnl for t in by_account[account_id]))
                        for account_id, account in owners.items()
                    ),
                )]
            else:
                changes = []
                per_change = MAX_CHANGE_WRITES - 1
                for account_id, trades in by_account.items():
                    account = owners.get(account_id)
                    for start in range(0, len(trades), per_change):
                        chunk = trades[start:start + per_change]
                        accounts = ()
                        if account is not None:
                            account = account.adjusted(-sum(t.pnl for t in chunk))
                            accounts = (account,)
                        changes.append(LedgerChange(
                            delete_trade_ids=tuple(t.id for t in chunk),
                            upsert_accounts=accounts,
                        ))
            self._commit_all(changes)
        logger.info("Deleted %d trade(s)", len(doomed))
        self._notify()
        return len(doomed)

    # ==================== Accounts ====================

    def create_account(
        self,
        name: str,
        initial_balance: float = 0.0,
        currency: Optional[str] = None,
    ) -> Account:
        """Create an account and make it active."""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Account name is required")
        balance = _require_amount(initial_balance, allow_negative=False)

        account = Account(
            id=new_account_id(),
            name=name,
            balance=balance,
            equity=balance,
            currency=(currency or self.default_currency).upper(),
        )
        with self._lock:
            self._commit(LedgerChange(upsert_accounts=(account,)))
            self._set_active(account.id)
        logger.info("Created account %s (%s)", account.id, account.name)
        self._notify()
        return account

    def switch_account(self, account_id: str) -> bool:
        """Make ``account_id`` active. Returns False (no-op) if it does not exist."""
        with self._lock:
            if self._find_account(account_id) is None:
                logger.warning("switch_account: account %s not found, ignoring", account_id)
                return False
            self._set_active(account_id)
        self._notify()
        return True

    def ensure_default_account(self) -> Optional[Account]:
        """Create the default account if the ledger has none.

        Returns:
            The created account, or None if accounts already exist.
        """
        with self._lock:
            if self._accounts:
                return None
            account = self._create_default_account()
        self._notify()
        return account

    def deposit(self, amount: float) -> Account:
        return self._adjust_active(_require_amount(amount, positive=True))

    def withdraw(self, amount: float) -> Account:
        return self._adjust_active(-_require_amount(amount, positive=True))

    def set_initial_balance(self, amount: float) -> Account:
        return self._overwrite_active(_require_amount(amount, allow_negative=False))

    def set_balance(self, amount: float) -> Account:
        return self._overwrite_active(_require_amount(amount))

    # ==================== Remote snapshots ====================

    def replace_accounts(self, accounts: list[Account]) -> None:
        """Replace the account collection with a fresh snapshot.

        The active account is re-validated; when it is gone the first
        account (by name) becomes active. An empty snapshot creates the
        default account.
        """
        with self._lock:
            self._accounts = sorted(accounts, key=lambda a: a.name)
            if self._accounts:
                self._resolve_active_account()
            else:
                self._create_default_account()
        self._notify()

    def replace_trades(self, trades: list[Trade]) -> None:
        """Replace the trade collection with a fresh snapshot."""
        with self._lock:
            self._trades = sorted(trades, key=lambda t: local_datetime(t.close_time), reverse=True)
        self._notify()

    # ==================== Helpers ====================

    def _build_trade(self, trade_input: TradeInput, account: Account) -> Trade:
        exits = trade_input.exits
        exit_price = trade_input.exit_price
        if exits:
            weighted = weighted_exit_price(exits, trade_input.exit_price)
            if weighted is not None:
                exit_price = weighted

        pnl = trade_input.pnl
        if pnl is None:
            if exits:
                pnl = calculate_pnl_from_exits(
                    trade_input.entry_price,
                    trade_input.size,
                    trade_input.type,
                    exits,
                    trade_input.exit_price,
                )
            else:
                pnl = calculate_pnl(
                    trade_input.entry_price, exit_price, trade_input.size, trade_input.type
                )

        pips = trade_input.pips
        if pips is None:
            pips = calculate_pips(trade_input.symbol, trade_input.entry_price, exit_price, trade_input.type)

        now = datetime.now()
        values: dict[str, Any] = {name: getattr(trade_input, name) for name in TradeInput.model_fields}
        values.update(
            id=str(uuid.uuid4()),
            account_id=account.id,
            exit_price=exit_price,
            pnl=float(pnl),
            pnl_percent=calculate_pnl_percent(float(pnl), account.balance),
            pips=round(pips, 1),
            open_time=trade_input.open_time or now,
            close_time=trade_input.close_time or now,
            status="CLOSED",
        )
        try:
            return Trade.model_validate(values)
        except pydantic.ValidationError as e:
            raise ValidationError(_describe(e)) from e

    def _adjust_active(self, delta: float) -> Account:
        with self._lock:
            account = self.account.adjusted(delta)
            self._commit(LedgerChange(upsert_accounts=(account,)))
        logger.info("Adjusted %s balance by %.2f", account.id, delta)
        self._notify()
        return account

    def _overwrite_active(self, balance: float) -> Account:
        with self._lock:
            account = self.account.with_balance(balance)
            self._commit(LedgerChange(upsert_accounts=(account,)))
        logger.info("Set %s balance to %.2f", account.id, balance)
        self._notify()
        return account

    def _create_default_account(self) -> Account:
        account = default_account(self.default_currency)
        logger.info("No accounts found, creating %s", account.id)
        self._commit(LedgerChange(upsert_accounts=(account,)))
        self._active_account_id = account.id
        return account

    def _resolve_active_account(self) -> None:
        if self._find_account(self._active_account_id) is not None:
            return
        fallback = self._first_account().id
        if self._active_account_id is not None:
            logger.warning(
                "Active account %s no longer exists, falling back to %s",
                self._active_account_id,
                fallback,
            )
        self._active_account_id = fallback

    def _first_account(self) -> Account:
        return min(self._accounts, key=lambda a: a.name)

    def _set_active(self, account_id: str) -> None:
        self._active_account_id = account_id
        self._backend.save_active_account_id(account_id)

    def _commit(self, change: LedgerChange) -> None:
        """Write ``change`` to the backend, then mirror it in memory."""
        self._backend.commit(change)

        if change.delete_trade_ids:
            deleted = set(change.delete_trade_ids)
            self._trades = [t for t in self._trades if t.id not in deleted]
        for trade in change.upsert_trades:
            self._upsert(self._trades, trade, prepend=True)
        for account in change.upsert_accounts:
            self._upsert(self._accounts, account, prepend=False)

    def _commit_all(self, changes: list[LedgerChange]) -> None:
        for done, change in enumerate(changes):
            try:
                self._commit(change)
            except Exception:
                if done:
                    logger.error("Write failed after %d of %d chunks were committed", done, len(changes))
                raise

    @staticmethod
    def _upsert(items: list, item, prepend: bool) -> None:
        for i, existing in enumerate(items):
            if existing.id == item.id:
                items[i] = item
                return
        if prepend:
            items.insert(0, item)
        else:
            items.append(item)

    def _find_trade(self, trade_id: str) -> Optional[Trade]:
        return next((t for t in self._trades if t.id == trade_id), None)

    def _find_account(self, account_id: Optional[str]) -> Optional[Account]:
        if account_id is None:
            return None
        return next((a for a in self._accounts if a.id == account_id), None)
