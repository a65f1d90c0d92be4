"""SQLite ledger backend for local (signed-out) use."""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Optional

from tradejournal.db.base import LedgerChange, LedgerSnapshot, StorageBackend
from tradejournal.db.documents import parse_accounts, parse_trades
from tradejournal.errors import PersistenceError
from tradejournal.models import Account, Trade

logger = logging.getLogger(__name__)

TRADE_COLUMNS = (
    "id",
    "account_id",
    "symbol",
    "type",
    "entry_price",
    "exit_price",
    "size",
    "pnl",
    "pnl_percent",
    "pips",
    "r_multiple",
    "open_time",
    "close_time",
    "status",
    "exits",
    "stop_loss",
    "take_profit",
    "sl_status",
    "moved_sl_price",
    "strategy",
    "tags",
    "notes",
    "psychology",
    "screenshot_url",
    "trading_view_url",
    "setup_rating",
    "behavior",
)

# Nested fields stored as JSON text.
JSON_COLUMNS = frozenset({"exits", "tags", "behavior"})

ACTIVE_ACCOUNT_KEY = "active_account_id"


class LocalBackend(StorageBackend):
    """SQLite-based ledger storage on the local device."""

    name = "local"

    REQUIRED_TABLES = [
        "accounts",
        "trades",
        "settings",
    ]

    def __init__(self, db_path: Path):
        """Initialize the backend.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS accounts (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    balance REAL NOT NULL,
                    equity REAL NOT NULL,
                    currency TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS trades (
                    id TEXT PRIMARY KEY,
                    account_id TEXT NOT NULL,
                    symbol TEXT NOT NULL,
                    type TEXT NOT NULL,
                    entry_price REAL NOT NULL,
                    exit_price REAL NOT NULL,
                    size REAL NOT NULL,
                    pnl REAL NOT NULL,
                    pnl_percent REAL NOT NULL,
                    pips REAL,
                    r_multiple REAL,
                    open_time TEXT NOT NULL,
                    close_time TEXT NOT NULL,
                    status TEXT NOT NULL,
                    exits TEXT,
                    stop_loss REAL,
                    take_profit REAL,
                    sl_status TEXT,
                    moved_sl_price REAL,
                    strategy TEXT,
                    tags TEXT,
                    notes TEXT,
                    psychology TEXT,
                    screenshot_url TEXT,
                    trading_view_url TEXT,
                    setup_rating TEXT,
                    behavior TEXT
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_trades_account
                ON trades (account_id, close_time)
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)

            conn.commit()
        finally:
            conn.close()

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]
        finally:
            conn.close()

    # ==================== Ledger ====================

    def load(self) -> LedgerSnapshot:
        """Read all accounts, trades and the active account preference."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT id, name, balance, equity, currency FROM accounts ORDER BY name"
            )
            accounts = parse_accounts(dict(row) for row in cursor.fetchall())

            cursor.execute(
                f"SELECT {', '.join(TRADE_COLUMNS)} FROM trades ORDER BY close_time DESC"
            )
            trades = parse_trades(_row_to_document(row) for row in cursor.fetchall())

            active_account_id = self._get_setting(cursor, ACTIVE_ACCOUNT_KEY)
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to read {self.db_path}: {e}") from e
        finally:
            conn.close()

        return LedgerSnapshot(
            accounts=accounts,
            trades=trades,
            active_account_id=active_account_id,
        )

    def commit(self, change: LedgerChange) -> None:
        """Apply trade and account writes in a single transaction."""
        if change.is_empty():
            return

        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            for trade in change.upsert_trades:
                self._upsert_trade(cursor, trade)
            for trade_id in change.delete_trade_ids:
                cursor.execute("DELETE FROM trades WHERE id = ?", (trade_id,))
            for account in change.upsert_accounts:
                self._upsert_account(cursor, account)
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"Failed to write {self.db_path}: {e}") from e
        finally:
            conn.close()

    def save_active_account_id(self, account_id: str) -> None:
        """Persist the active account preference."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                (ACTIVE_ACCOUNT_KEY, account_id),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to write {self.db_path}: {e}") from e
        finally:
            conn.close()

    # ==================== Helpers ====================

    @staticmethod
    def _get_setting(cursor: sqlite3.Cursor, key: str) -> Optional[str]:
        cursor.execute("SELECT value FROM settings WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row["value"] if row else None

    @staticmethod
    def _upsert_account(cursor: sqlite3.Cursor, account: Account) -> None:
        cursor.execute(
            """
            INSERT OR REPLACE INTO accounts (id, name, balance, equity, currency)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                account.id,
                account.name,
                account.balance,
                account.equity,
                account.currency,
            ),
        )

    @staticmethod
    def _upsert_trade(cursor: sqlite3.Cursor, trade: Trade) -> None:
        data = trade.model_dump(mode="json")
        values = []
        for column in TRADE_COLUMNS:
            value = data.get(column)
            if column in JSON_COLUMNS and value is not None:
                value = json.dumps(value)
            values.append(value)

        placeholders = ", ".join("?" for _ in TRADE_COLUMNS)
        cursor.execute(
            f"INSERT OR REPLACE INTO trades ({', '.join(TRADE_COLUMNS)}) VALUES ({placeholders})",
            values,
        )


def _row_to_document(row: sqlite3.Row) -> dict:
    """Convert a trades row into a document, decoding JSON columns."""
    document = {}
    for column in TRADE_COLUMNS:
        value = row[column]
        if value is None:
            continue
        if column in JSON_COLUMNS:
            value = json.loads(value)
        document[column] = value
    return document
