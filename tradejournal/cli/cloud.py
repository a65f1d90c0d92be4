"""Cloud commands for TradeJournal CLI.

``login`` points the CLI at a user's Firestore ledger. Credentials come
from Google Application Default Credentials; this module only records
which user id to use.
"""

import click
from rich.panel import Panel

from tradejournal.cli.common import console, fail, open_session


@click.command("login")
@click.argument("uid")
def login(uid: str) -> None:
    """Use the cloud ledger of user UID.

    Local data is left as is; run ``tradejournal sync`` to merge it in.

    \b
    Examples:
      tradejournal login 8fQ2...Xk1
    """
    from tradejournal.config import clear_session, create_template_config, load_session, save_session

    current = load_session()
    if current == uid:
        console.print(f"[yellow]Already logged in as {uid}[/yellow]")
        return

    create_template_config()
    save_session(uid)
    # Opening the session loads the remote ledger, validating access.
    try:
        session = open_session()
    except SystemExit:
        clear_session()
        raise
    try:
        account = session.store.account
        trade_count = len(session.store.all_trades)
    finally:
        session.close()

    console.print(Panel(
        f"[green]✓ Logged in as {uid}[/green]\n\n"
        f"Active account: {account.name}\n"
        f"Cloud trades:   {trade_count}",
        title="[bold cyan]Login[/bold cyan]",
        border_style="cyan",
    ))


@click.command("logout")
def logout() -> None:
    """Return to the local ledger."""
    from tradejournal.config import clear_session, load_session

    uid = load_session()
    if uid is None:
        console.print("[yellow]Not logged in[/yellow]")
        return
    clear_session()
    console.print(f"[green]✓ Logged out {uid}[/green]")


@click.command("sync")
def sync() -> None:
    """Merge local accounts and trades into the cloud ledger.

    Only trades the cloud ledger lacks are written, and their P&L is added to
    the cloud balance, so syncing again is harmless.

    \b
    Examples:
      tradejournal sync
    """
    from tradejournal.errors import NotSignedInError, TradeJournalError

    session = open_session()
    try:
        written = session.coordinator.sync_to_cloud()
    except NotSignedInError:
        fail("Not logged in.\n\nRun [cyan]tradejournal login UID[/cyan] first.", title="Login Required")
    except TradeJournalError as e:
        fail(str(e), title="Sync Failed")
    finally:
        session.close()

    console.print(f"[green]✓ Synced {written} document(s) to the cloud[/green]")
