"""Report commands for TradeJournal CLI.

Performance summary, daily history, calendar and behavioral analysis of
the active account.
"""

from datetime import date
from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from tradejournal.cli.common import console, money, open_session


def _load_active():
    session = open_session()
    try:
        return session.store.account, session.store.trades, session.config
    finally:
        session.close()


@click.command("stats")
def stats() -> None:
    """Show performance metrics of the active account.

    \b
    Examples:
      tradejournal stats
    """
    from tradejournal.metrics import performance_metrics, tracker_score

    account, trades, _ = _load_active()
    metrics = performance_metrics(trades)
    score = tracker_score(trades)
    score_color = "green" if score >= 80 else "yellow" if score >= 50 else "red"
    cur = account.currency

    console.print(Panel(
        f"[bold]{account.name}[/bold]  Balance: {account.balance:,.2f} {cur}\n\n"
        f"Trades:         {metrics.total_trades} "
        f"([green]{metrics.wins}W[/green] / [red]{metrics.losses}L[/red] / {metrics.breakevens}BE)\n"
        f"Win rate:       {metrics.win_rate:.1f}%\n"
        f"Total P&L:      {money(metrics.total_pnl, cur)}\n"
        f"Profit factor:  {metrics.profit_factor:.2f}\n"
        f"Expectancy:     {money(metrics.expectancy, cur)}\n"
        f"Avg win/loss:   {metrics.avg_win:,.2f} / {metrics.avg_loss:,.2f}\n"
        f"Max streak:     {metrics.max_consecutive_wins}W / {metrics.max_consecutive_losses}L\n"
        f"Max drawdown:   [red]-{metrics.max_drawdown:,.2f} {cur}[/red]\n"
        f"Tracker score:  [{score_color}]{score}/100[/{score_color}]",
        title="[bold cyan]Performance[/bold cyan]",
        border_style="cyan",
    ))


@click.command("daily")
@click.option("--days", type=int, default=None, help="Window length (defaults to config).")
@click.option("--all", "show_all", is_flag=True, default=False, help="Include days without trades.")
def daily(days: Optional[int], show_all: bool) -> None:
    """Show daily P&L over a trailing window.

    \b
    Examples:
      tradejournal daily
      tradejournal daily --days 7 --all
    """
    from tradejournal.metrics import daily_stats

    account, trades, config = _load_active()
    window = days or config["journal"]["daily_window_days"]
    buckets = daily_stats(trades, days=window)
    if not show_all:
        buckets = [b for b in buckets if b.trades_count > 0]

    if not buckets:
        console.print(Panel(
            f"[dim]No trades in the last {window} days[/dim]",
            title="[bold]Daily P&L[/bold]",
            border_style="dim",
        ))
        return

    table = Table(title=f"Daily P&L - last {window} days", show_header=True, header_style="bold cyan")
    table.add_column("Date", style="bold")
    table.add_column("Trades", justify="right")
    table.add_column("P&L", justify="right")
    table.add_column("Win Rate", justify="right")
    table.add_column("Pips", justify="right")
    table.add_column("R", justify="right")

    for bucket in buckets:
        table.add_row(
            bucket.date.isoformat(),
            str(bucket.trades_count),
            money(bucket.pnl, account.currency),
            f"{bucket.win_rate:.1f}%",
            f"{bucket.pips:+.1f}",
            f"{bucket.r_multiple:+.2f}",
        )
    console.print(table)
    console.print(f"\n[bold]Total P&L:[/bold] {money(sum(b.pnl for b in buckets), account.currency)}")


@click.command("calendar")
@click.option("--month", "month_str", default=None, help="Month as YYYY-MM (defaults to current).")
def calendar_view(month_str: Optional[str]) -> None:
    """Show a month calendar with daily and weekly P&L.

    \b
    Examples:
      tradejournal calendar
      tradejournal calendar --month 2024-03
    """
    from tradejournal.metrics import calendar_month

    if month_str:
        try:
            year, month = (int(part) for part in month_str.split("-"))
            date(year, month, 1)
        except ValueError:
            raise click.BadParameter(f"Invalid month {month_str!r}, expected YYYY-MM") from None
    else:
        today = date.today()
        year, month = today.year, today.month

    account, trades, _ = _load_active()
    view = calendar_month(trades, year, month)
    cur = account.currency

    table = Table(
        title=date(year, month, 1).strftime("%B %Y"),
        show_header=True,
        header_style="bold cyan",
        show_lines=True,
    )
    for name in ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]:
        table.add_column(name, justify="center")
    table.add_column("Week", justify="right", style="bold")

    for i, week in enumerate(view.weeks):
        cells = []
        for day in view.days[i * 7:(i + 1) * 7]:
            label = f"{day.date.day}"
            if day.date.month != month:
                cells.append(f"[dim]{label}[/dim]")
            elif day.trades_count:
                color = "green" if day.pnl >= 0 else "red"
                cells.append(f"{label}\n[{color}]{day.pnl:,.0f}[/{color}]\n[dim]{day.trades_count}t[/dim]")
            else:
                cells.append(label)
        cells.append(f"{money(week.pnl, cur)}\n[dim]{week.traded_days}d[/dim]")
        table.add_row(*cells)

    console.print(table)
    summary = view.month_summary
    console.print(
        f"\n[bold]Month P&L:[/bold] {money(summary.pnl, cur)}  "
        f"[dim]({summary.traded_days} traded days)[/dim]"
    )
    if view.best_day and view.worst_day:
        console.print(
            f"[dim]Best day {view.best_day.date} ({view.best_day.pnl:,.2f}), "
            f"worst day {view.worst_day.date} ({view.worst_day.pnl:,.2f})[/dim]"
        )


@click.command("analysis")
def analysis() -> None:
    """Break down results by weekday, hour, setup and mistake.

    \b
    Examples:
      tradejournal analysis
    """
    from tradejournal.metrics import mistake_costs, setup_stats, time_analysis

    account, trades, _ = _load_active()
    cur = account.currency
    if not trades:
        console.print(Panel(
            "[dim]No trades to analyze[/dim]",
            title="[bold]Analysis[/bold]",
            border_style="dim",
        ))
        return

    timing = time_analysis(trades)

    days_table = Table(title="By Weekday", show_header=True, header_style="bold cyan")
    days_table.add_column("Day", style="bold")
    days_table.add_column("Trades", justify="right")
    days_table.add_column("P&L", justify="right")
    for bucket in timing.day_stats:
        days_table.add_row(bucket.name, str(bucket.trades), money(bucket.pnl, cur))
    console.print(days_table)

    hours_table = Table(title="By Entry Hour", show_header=True, header_style="bold cyan")
    hours_table.add_column("Hour", style="bold")
    hours_table.add_column("Trades", justify="right")
    hours_table.add_column("P&L", justify="right")
    for bucket in timing.hour_stats:
        if bucket.trades:
            hours_table.add_row(bucket.name, str(bucket.trades), money(bucket.pnl, cur))
    console.print(hours_table)
    console.print(f"[dim]Average hold time: {timing.avg_duration_minutes} min[/dim]\n")

    setups_table = Table(title="By Setup", show_header=True, header_style="bold cyan")
    setups_table.add_column("Setup", style="bold")
    setups_table.add_column("Trades", justify="right")
    setups_table.add_column("Win Rate", justify="right")
    setups_table.add_column("P&L", justify="right")
    for setup in setup_stats(trades):
        setups_table.add_row(setup.name, str(setup.count), f"{setup.win_rate:.1f}%", money(setup.pnl, cur))
    console.print(setups_table)

    mistakes = mistake_costs(trades)
    if mistakes:
        mistakes_table = Table(title="Cost of Mistakes", show_header=True, header_style="bold cyan")
        mistakes_table.add_column("Mistake", style="bold")
        mistakes_table.add_column("Cost", justify="right")
        for mistake in mistakes:
            mistakes_table.add_row(mistake.name, f"[red]{mistake.cost:,.2f} {cur}[/red]")
        console.print(mistakes_table)
    else:
        console.print("[green]No mistakes tagged yet.[/green]")
