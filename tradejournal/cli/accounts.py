"""Account commands for TradeJournal CLI."""

from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from tradejournal.cli.common import console, fail, open_session


def _print_account(account, title: str) -> None:
    console.print(Panel(
        f"[bold]{account.name}[/bold]  [dim]{account.id}[/dim]\n\n"
        f"Balance: [green]{account.balance:,.2f} {account.currency}[/green]\n"
        f"Equity:  {account.equity:,.2f} {account.currency}",
        title=f"[bold cyan]{title}[/bold cyan]",
        border_style="cyan",
    ))


def _resolve_account_id(accounts, key: str) -> Optional[str]:
    """Match an account by id or (case-insensitive) name."""
    for account in accounts:
        if account.id == key:
            return account.id
    matches = [a.id for a in accounts if a.name.lower() == key.lower()]
    if len(matches) > 1:
        fail(f"Account name '{key}' is ambiguous, use the account id")
    return matches[0] if matches else None


@click.command("accounts")
def accounts() -> None:
    """List accounts. The active one is marked with *.

    \b
    Examples:
      tradejournal accounts
    """
    session = open_session()
    try:
        rows = session.store.accounts
        active_id = session.store.account.id
        trade_counts = {}
        for trade in session.store.all_trades:
            trade_counts[trade.account_id] = trade_counts.get(trade.account_id, 0) + 1
    finally:
        session.close()

    table = Table(title="Accounts", show_header=True, header_style="bold cyan")
    table.add_column("", justify="center")
    table.add_column("Name", style="bold")
    table.add_column("ID", style="dim")
    table.add_column("Balance", justify="right")
    table.add_column("Currency", justify="center")
    table.add_column("Trades", justify="right")

    for account in rows:
        marker = "[green]*[/green]" if account.id == active_id else ""
        table.add_row(
            marker,
            account.name,
            account.id,
            f"{account.balance:,.2f}",
            account.currency,
            str(trade_counts.get(account.id, 0)),
        )
    console.print(table)


@click.command("account-create")
@click.argument("name")
@click.option("--balance", "initial_balance", type=float, default=0.0, show_default=True,
              help="Initial balance.")
@click.option("--currency", default=None, help="Currency code (defaults to config).")
def account_create(name: str, initial_balance: float, currency: Optional[str]) -> None:
    """Create an account and make it active.

    \b
    Examples:
      tradejournal account-create "Prop Challenge" --balance 100000
    """
    from tradejournal.errors import TradeJournalError

    session = open_session()
    try:
        account = session.store.create_account(name, initial_balance, currency)
    except TradeJournalError as e:
        fail(str(e))
    finally:
        session.close()
    _print_account(account, "Account Created")


@click.command("switch")
@click.argument("account")
def switch(account: str) -> None:
    """Make another account active (by id or name).

    \b
    Examples:
      tradejournal switch "Main Account"
    """
    from tradejournal.errors import TradeJournalError

    session = open_session()
    try:
        account_id = _resolve_account_id(session.store.accounts, account)
        if account_id is None or not session.store.switch_account(account_id):
            fail(f"Account '{account}' not found", title="Not Found")
        active = session.store.account
    except TradeJournalError as e:
        fail(str(e))
    finally:
        session.close()
    console.print(f"[green]✓ Active account: {active.name}[/green]")


def _adjust(operation: str, amount: float) -> None:
    from tradejournal.errors import TradeJournalError

    session = open_session()
    try:
        account = getattr(session.store, operation)(amount)
    except TradeJournalError as e:
        fail(str(e))
    finally:
        session.close()
    _print_account(account, "Balance Updated")


@click.command("deposit")
@click.argument("amount", type=float)
def deposit(amount: float) -> None:
    """Add funds to the active account."""
    _adjust("deposit", amount)


@click.command("withdraw")
@click.argument("amount", type=float)
def withdraw(amount: float) -> None:
    """Take funds out of the active account."""
    _adjust("withdraw", amount)


@click.command("set-balance")
@click.argument("amount", type=float)
@click.option("--initial", is_flag=True, default=False,
              help="Set the starting balance (must not be negative).")
def set_balance(amount: float, initial: bool) -> None:
    """Overwrite the active account's balance.

    \b
    Examples:
      tradejournal set-balance 25000 --initial
    """
    _adjust("set_initial_balance" if initial else "set_balance", amount)
