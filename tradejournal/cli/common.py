"""Shared helpers for TradeJournal CLI commands."""

from datetime import datetime
from typing import NoReturn, Optional

import click
from rich.console import Console
from rich.panel import Panel

console = Console()


class Session:
    """Store and sync coordinator for one CLI invocation."""

    def __init__(self, store, coordinator, config: dict):
        self.store = store
        self.coordinator = coordinator
        self.config = config

    def close(self) -> None:
        self.coordinator.close()


def _remote_factory(config: dict):
    def build(uid: str):
        from tradejournal.config import resolve_project_id
        from tradejournal.db.firestore import FirestoreBackend, get_firestore_client

        client = get_firestore_client(resolve_project_id(config))
        return FirestoreBackend(client, uid)

    return build


def open_session() -> Session:
    """Open the ledger the way the last login left it.

    Uses the signed-in user's remote ledger when a session is recorded,
    otherwise the local database.
    """
    from tradejournal.config import get_db_path, load_config, load_session
    from tradejournal.db.local import LocalBackend
    from tradejournal.errors import TradeJournalError
    from tradejournal.ledger.store import LedgerStore
    from tradejournal.sync import SyncCoordinator

    config = load_config()
    local = LocalBackend(get_db_path())
    try:
        store = LedgerStore(local, default_currency=config["journal"]["default_currency"])
        coordinator = SyncCoordinator(store, local, _remote_factory(config))
        uid = load_session()
        if uid:
            coordinator.sign_in(uid, watch=False)
    except TradeJournalError as e:
        fail(str(e), title="Storage Error")
    return Session(store, coordinator, config)


def fail(message: str, title: str = "Error") -> NoReturn:
    """Print an error panel and exit with status 1."""
    console.print(Panel(
        f"[red]{message}[/red]",
        title=f"[bold red]{title}[/bold red]",
        border_style="red",
    ))
    raise SystemExit(1)


def money(value: float, currency: str = "USD") -> str:
    """Format an amount with sign coloring."""
    color = "green" if value >= 0 else "red"
    sign = "+" if value > 0 else ""
    return f"[{color}]{sign}{value:,.2f} {currency}[/{color}]"


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp given on the command line."""
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"Invalid timestamp {value!r}, expected ISO format (2024-01-31T14:30)") from None
