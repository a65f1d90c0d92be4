"""Trade commands for TradeJournal CLI.

Handles logging, editing, deleting, reviewing, browsing and importing
trades of the active account.
"""

import json
from pathlib import Path
from typing import Any, Optional

import click
from rich.panel import Panel
from rich.table import Table

from tradejournal.cli.common import console, fail, money, open_session, parse_datetime

PSYCHOLOGY = ["CONFIDENT", "NEUTRAL", "ANXIOUS", "FOMO", "REVENGE"]
RATINGS = ["A+", "A", "B+", "B", "C"]
EXIT_REASONS = ["PLANNED", "PANIC", "GREED", "STOP_OUT", "TAKE_PROFIT"]
ENTRY_EMOTIONS = ["FOMO", "CONFIDENT", "HESITANT", "BOREDOM", "REVENGE", "DISCIPLINED"]
EXIT_EMOTIONS = ["RELIEVED", "REGRET", "SATISFIED", "TILTED", "PROUD"]
MAX_PARTIAL_EXITS = 4


def parse_exit_parts(parts: tuple[str, ...]) -> list[dict]:
    """Parse ``PCT@PRICE`` exit options into exit records.

    Exits are labelled PARTIAL_1 .. PARTIAL_4 in the order given.
    """
    if len(parts) > MAX_PARTIAL_EXITS:
        raise click.BadParameter(f"At most {MAX_PARTIAL_EXITS} partial exits are supported")

    exits = []
    for i, part in enumerate(parts, start=1):
        pct, sep, price = part.partition("@")
        try:
            if not sep:
                raise ValueError
            exits.append({
                "type": f"PARTIAL_{i}",
                "percentage": float(pct),
                "price": float(price),
            })
        except ValueError:
            raise click.BadParameter(f"Invalid exit {part!r}, expected PCT@PRICE (e.g. 50@1.1050)") from None
    return exits


def resolve_trade_id(trades, prefix: str) -> str:
    """Expand a trade id prefix as shown in the journal to a full id."""
    matches = [t.id for t in trades if t.id.startswith(prefix)]
    if len(matches) > 1:
        fail(f"Trade id prefix '{prefix}' is ambiguous ({len(matches)} matches)")
    return matches[0] if matches else prefix


def _trade_fields(
    entry: Optional[float],
    exit_price: Optional[float],
    size: Optional[float],
    pnl: Optional[float],
    pips: Optional[float],
    exit_parts: tuple[str, ...],
    open_time: Optional[str],
    close_time: Optional[str],
    stop_loss: Optional[float],
    take_profit: Optional[float],
    strategy: Optional[str],
    tags: tuple[str, ...],
    notes: Optional[str],
    psychology: Optional[str],
    rating: Optional[str],
) -> dict[str, Any]:
    """Collect the options the user actually passed."""
    fields = {
        "entry_price": entry,
        "exit_price": exit_price,
        "size": size,
        "pnl": pnl,
        "pips": pips,
        "open_time": parse_datetime(open_time),
        "close_time": parse_datetime(close_time),
        "stop_loss": stop_loss,
        "take_profit": take_profit,
        "strategy": strategy,
        "notes": notes,
        "psychology": psychology.upper() if psychology else None,
        "setup_rating": rating.upper() if rating else None,
    }
    fields = {key: value for key, value in fields.items() if value is not None}
    if exit_parts:
        fields["exits"] = parse_exit_parts(exit_parts)
    if tags:
        fields["tags"] = list(tags)
    return fields


def trade_options(func):
    """Options shared by ``add`` and ``edit``."""
    options = [
        click.option("--entry", type=float, default=None, help="Entry price."),
        click.option("--exit", "exit_price", type=float, default=None, help="Exit price."),
        click.option("--size", type=float, default=None, help="Position size in lots."),
        click.option("--pnl", type=float, default=None, help="P&L override."),
        click.option("--pips", type=float, default=None, help="Pips override."),
        click.option("--exit-part", "exit_parts", multiple=True, help="Partial exit as PCT@PRICE (repeatable)."),
        click.option("--open", "open_time", default=None, help="Entry time (ISO format)."),
        click.option("--close", "close_time", default=None, help="Exit time (ISO format)."),
        click.option("--sl", "stop_loss", type=float, default=None, help="Stop loss price."),
        click.option("--tp", "take_profit", type=float, default=None, help="Take profit price."),
        click.option("--strategy", default=None, help="Playbook setup name."),
        click.option("--tag", "tags", multiple=True, help="Tag (repeatable)."),
        click.option("--notes", default=None, help="Free-form notes."),
        click.option("--psychology", type=click.Choice(PSYCHOLOGY, case_sensitive=False), default=None),
        click.option("--rating", type=click.Choice(RATINGS, case_sensitive=False), default=None, help="Setup rating."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _print_trade(trade, currency: str, title: str) -> None:
    side_color = "green" if trade.type == "BUY" else "red"
    pips = f"{trade.pips:+.1f}" if trade.pips is not None else "-"
    lines = [
        f"[bold]{trade.symbol}[/bold] [{side_color}]{trade.type}[/{side_color}]  "
        f"[dim]{trade.id}[/dim]\n",
        f"Entry:  {trade.entry_price:g}",
        f"Exit:   {trade.exit_price:g}",
        f"Size:   {trade.size:g}",
        f"Pips:   {pips}",
        f"P&L:    {money(trade.pnl, currency)} ({trade.pnl_percent:+.2f}%)",
    ]
    if trade.exits:
        parts = ", ".join(f"{e.percentage:g}% @ {e.price:g}" for e in trade.exits)
        lines.append(f"Exits:  {parts}")
    console.print(Panel("\n".join(lines), title=f"[bold cyan]{title}[/bold cyan]", border_style="cyan"))


@click.command("add")
@click.argument("symbol")
@click.argument("side", type=click.Choice(["BUY", "SELL"], case_sensitive=False))
@trade_options
def add(symbol: str, side: str, **options) -> None:
    """Log a closed trade against the active account.

    Give entry, exit (or partial exits) and size to have P&L calculated,
    or pass --pnl directly.

    \b
    Examples:
      tradejournal add EURUSD BUY --entry 1.1000 --exit 1.1050 --size 1
      tradejournal add USDJPY SELL --entry 150.20 --size 2 \\
          --exit-part 50@149.90 --exit-part 50@149.70
      tradejournal add XAUUSD BUY --pnl -120 --strategy Breakout
    """
    from tradejournal.errors import TradeJournalError

    record = _trade_fields(**options)
    record.update(symbol=symbol, type=side.upper())

    session = open_session()
    try:
        trade = session.store.add_trade(record)
        account = session.store.account
    except TradeJournalError as e:
        fail(str(e))
    finally:
        session.close()

    _print_trade(trade, account.currency, "Trade Logged")
    console.print(f"[dim]{account.name} balance: {account.balance:,.2f} {account.currency}[/dim]")


@click.command("edit")
@click.argument("trade_id")
@click.option("--symbol", default=None, help="Instrument symbol.")
@click.option("--side", type=click.Choice(["BUY", "SELL"], case_sensitive=False), default=None)
@trade_options
def edit(trade_id: str, symbol: Optional[str], side: Optional[str], **options) -> None:
    """Edit a logged trade.

    Changing prices, size or side recalculates P&L (unless --pnl is given)
    and moves the account balance by the difference.

    \b
    Examples:
      tradejournal edit 3f2a --exit 1.1080
      tradejournal edit 3f2a --pnl 250 --notes "manual fill"
    """
    from tradejournal.errors import TradeJournalError

    updates = _trade_fields(**options)
    if symbol:
        updates["symbol"] = symbol
    if side:
        updates["type"] = side.upper()
    if not updates:
        fail("Nothing to change. Pass at least one option.")

    session = open_session()
    try:
        full_id = resolve_trade_id(session.store.all_trades, trade_id)
        trade = session.store.edit_trade(full_id, updates)
        currency = session.store.account.currency
    except TradeJournalError as e:
        fail(str(e))
    finally:
        session.close()

    if trade is None:
        fail(f"Trade '{trade_id}' not found", title="Not Found")
    _print_trade(trade, currency, "Trade Updated")


@click.command("delete")
@click.argument("trade_ids", nargs=-1, required=True)
def delete(trade_ids: tuple[str, ...]) -> None:
    """Delete trades and reverse their P&L.

    \b
    Examples:
      tradejournal delete 3f2a
      tradejournal delete 3f2a 9c41 77b0
    """
    from tradejournal.errors import TradeJournalError

    session = open_session()
    try:
        full_ids = [resolve_trade_id(session.store.all_trades, t) for t in trade_ids]
        deleted = session.store.delete_trades(full_ids)
        account = session.store.account
    except TradeJournalError as e:
        fail(str(e))
    finally:
        session.close()

    skipped = len(set(full_ids)) - deleted
    console.print(f"[green]✓ Deleted {deleted} trade(s)[/green]")
    if skipped:
        console.print(f"[yellow]{skipped} id(s) not found[/yellow]")
    console.print(f"[dim]{account.name} balance: {account.balance:,.2f} {account.currency}[/dim]")


@click.command("review")
@click.argument("trade_id")
@click.option("--sl", "stop_loss", type=float, default=None, help="Stop loss price.")
@click.option("--tp", "take_profit", type=float, default=None, help="Take profit price.")
@click.option("--moved-sl", is_flag=True, default=False, help="Stop loss was moved.")
@click.option(
    "--exit-reason",
    type=click.Choice(EXIT_REASONS, case_sensitive=False),
    default="PLANNED",
    show_default=True,
)
@click.option("--entry-emotion", "entry_emotions", multiple=True,
              type=click.Choice(ENTRY_EMOTIONS, case_sensitive=False))
@click.option("--exit-emotion", "exit_emotions", multiple=True,
              type=click.Choice(EXIT_EMOTIONS, case_sensitive=False))
@click.option("--notes", default=None, help="Review notes.")
@click.option("--save/--no-save", default=True, help="Record the review on the trade.")
def review(
    trade_id: str,
    stop_loss: Optional[float],
    take_profit: Optional[float],
    moved_sl: bool,
    exit_reason: str,
    entry_emotions: tuple[str, ...],
    exit_emotions: tuple[str, ...],
    notes: Optional[str],
    save: bool,
) -> None:
    """Score a trade's execution against your plan.

    \b
    Examples:
      tradejournal review 3f2a --sl 1.0980 --tp 1.1060
      tradejournal review 3f2a --moved-sl --exit-reason PANIC --entry-emotion FOMO
    """
    from tradejournal.errors import TradeJournalError
    from tradejournal.ledger.review import review_trade

    session = open_session()
    try:
        full_id = resolve_trade_id(session.store.all_trades, trade_id)
        trade = session.store.get_trade(full_id)
        if trade is None:
            fail(f"Trade '{trade_id}' not found", title="Not Found")
        result = review_trade(
            trade,
            stop_loss=stop_loss,
            take_profit=take_profit,
            did_move_stop_loss=moved_sl,
            exit_reason=exit_reason.upper(),
            entry_emotions=[e.upper() for e in entry_emotions],
            exit_emotions=[e.upper() for e in exit_emotions],
            notes=notes,
        )
        if save:
            session.store.edit_trade(full_id, result.update)
    except TradeJournalError as e:
        fail(str(e))
    finally:
        session.close()

    score_color = "green" if result.score >= 80 else "yellow" if result.score >= 50 else "red"
    planned = f"{result.planned_r:.2f}R" if result.planned_r is not None else "-"
    realized = f"{result.realized_r:.2f}R" if result.realized_r is not None else "-"
    hours, minutes = divmod(result.holding_minutes, 60)
    breaches = ", ".join(result.breaches) if result.breaches else "None. Flawless execution."

    console.print(Panel(
        f"[bold]{trade.symbol}[/bold] {trade.type}\n\n"
        f"Result:            {result.pips:+.1f} pips\n"
        f"Realized R:        {realized} (planned {planned})\n"
        f"Hold time:         {hours}h {minutes}m\n"
        f"Playbook setup:    {trade.strategy or 'Unknown'}\n"
        f"Consistency score: [{score_color}]{result.score}%[/{score_color}]\n"
        f"Rule breaches:     {breaches}",
        title="[bold cyan]Execution Report[/bold cyan]",
        border_style="cyan",
    ))
    if save:
        console.print("[dim]Review saved to trade.[/dim]")


@click.command("journal")
@click.option("--strategy", default=None, help="Only this strategy.")
@click.option("--symbol", default=None, help="Only this symbol.")
@click.option("--status", type=click.Choice(["OPEN", "CLOSED", "PENDING"], case_sensitive=False), default=None)
@click.option("--rating", type=click.Choice(RATINGS, case_sensitive=False), default=None)
@click.option(
    "--range",
    "date_range",
    type=click.Choice(["ALL", "TODAY", "YESTERDAY", "WEEK", "MONTH"], case_sensitive=False),
    default="ALL",
    show_default=True,
    help="Entry date range.",
)
@click.option("--limit", type=int, default=None, help="Show at most this many trades.")
def journal(
    strategy: Optional[str],
    symbol: Optional[str],
    status: Optional[str],
    rating: Optional[str],
    date_range: str,
    limit: Optional[int],
) -> None:
    """Browse trades of the active account, newest first.

    \b
    Examples:
      tradejournal journal
      tradejournal journal --range WEEK --strategy Breakout
    """
    from tradejournal.ledger.filters import filter_trades

    session = open_session()
    try:
        account = session.store.account
        trades = filter_trades(
            session.store.trades,
            strategy=strategy,
            symbol=symbol,
            status=status.upper() if status else None,
            rating=rating.upper() if rating else None,
            date_range=date_range,
        )
    finally:
        session.close()

    if limit is not None:
        trades = trades[:limit]

    if not trades:
        console.print(Panel(
            "[dim]No trades found[/dim]",
            title="[bold]Trade Journal[/bold]",
            border_style="dim",
        ))
        return

    table = Table(
        title=f"Trade Journal - {account.name}",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("ID", style="dim")
    table.add_column("Closed", style="dim")
    table.add_column("Symbol", style="bold")
    table.add_column("Side", justify="center")
    table.add_column("Entry", justify="right")
    table.add_column("Exit", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Pips", justify="right")
    table.add_column("P&L", justify="right")
    table.add_column("Strategy")

    total_pnl = 0.0
    for trade in trades:
        side_color = "green" if trade.type == "BUY" else "red"
        table.add_row(
            trade.id[:8],
            trade.close_time.strftime("%Y-%m-%d %H:%M"),
            trade.symbol,
            f"[{side_color}]{trade.type}[/{side_color}]",
            f"{trade.entry_price:g}",
            f"{trade.exit_price:g}",
            f"{trade.size:g}",
            f"{trade.pips:+.1f}" if trade.pips is not None else "-",
            money(trade.pnl, account.currency),
            trade.strategy or "-",
        )
        total_pnl += trade.pnl

    console.print(table)
    console.print(f"\n[bold]Total Trades:[/bold] {len(trades)}")
    console.print(f"[bold]Total P&L:[/bold] {money(total_pnl, account.currency)}")


@click.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def import_trades(path: Path) -> None:
    """Import trades from a JSON file into the active account.

    The file holds a list of trade records using the same fields as
    ``add`` (camelCase or snake_case). All records are validated before
    anything is written.

    \b
    Examples:
      tradejournal import trades.json
    """
    from tradejournal.errors import TradeJournalError

    try:
        with open(path) as f:
            records = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        fail(f"Could not read {path}: {e}")
    if not isinstance(records, list):
        fail(f"{path} must contain a JSON list of trades")

    session = open_session()
    try:
        trades = session.store.add_trades(records)
        account = session.store.account
    except TradeJournalError as e:
        fail(str(e), title="Import Failed")
    finally:
        session.close()

    total = sum(t.pnl for t in trades)
    console.print(f"[green]✓ Imported {len(trades)} trade(s)[/green] totalling {money(total, account.currency)}")
    console.print(f"[dim]{account.name} balance: {account.balance:,.2f} {account.currency}[/dim]")
