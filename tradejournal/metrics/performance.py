"""Profitability metrics and the equity curve."""

from typing import Iterable

from tradejournal.models import EquityPoint, PerformanceMetrics, Trade, local_datetime


def _by_close_time(trades: Iterable[Trade]) -> list[Trade]:
    return sorted(trades, key=lambda t: local_datetime(t.close_time))


def performance_metrics(trades: Iterable[Trade]) -> PerformanceMetrics:
    """Calculate win/loss, profit factor, expectancy, streaks and drawdown.

    A trade with zero P&L is a breakeven: it counts toward the totals but
    neither extends nor breaks a win or loss streak. Profit factor falls
    back to gross profit when there are no losses. Drawdown is the largest
    drop of cumulative P&L from its running peak (starting at 0).
    """
    ordered = _by_close_time(trades)
    total = len(ordered)
    if total == 0:
        return PerformanceMetrics()

    wins = [t.pnl for t in ordered if t.pnl > 0]
    losses = [-t.pnl for t in ordered if t.pnl < 0]
    breakevens = total - len(wins) - len(losses)

    gross_profit = sum(wins)
    gross_loss = sum(losses)
    avg_win = gross_profit / len(wins) if wins else 0.0
    avg_loss = gross_loss / len(losses) if losses else 0.0
    win_rate = len(wins) / total * 100
    loss_rate = len(losses) / total * 100

    max_wins = max_losses = 0
    current_wins = current_losses = 0
    peak = running = 0.0
    max_drawdown = 0.0

    for trade in ordered:
        if trade.pnl > 0:
            current_wins += 1
            current_losses = 0
            max_wins = max(max_wins, current_wins)
        elif trade.pnl < 0:
            current_losses += 1
            current_wins = 0
            max_losses = max(max_losses, current_losses)

        running += trade.pnl
        peak = max(peak, running)
        max_drawdown = max(max_drawdown, peak - running)

    return PerformanceMetrics(
        total_trades=total,
        wins=len(wins),
        losses=len(losses),
        breakevens=breakevens,
        total_pnl=sum(t.pnl for t in ordered),
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        profit_factor=gross_profit if gross_loss == 0 else gross_profit / gross_loss,
        win_rate=win_rate,
        loss_rate=loss_rate,
        breakeven_rate=breakevens / total * 100,
        avg_win=avg_win,
        avg_loss=avg_loss,
        expectancy=win_rate / 100 * avg_win - loss_rate / 100 * avg_loss,
        max_consecutive_wins=max_wins,
        max_consecutive_losses=max_losses,
        max_drawdown=max_drawdown,
    )


def equity_curve(trades: Iterable[Trade], starting_balance: float = 0.0) -> list[EquityPoint]:
    """Get cumulative P&L after each trade, in close-time order."""
    points = []
    balance = starting_balance
    for trade in _by_close_time(trades):
        balance += trade.pnl
        points.append(EquityPoint(close_time=trade.close_time, balance=balance))
    return points
