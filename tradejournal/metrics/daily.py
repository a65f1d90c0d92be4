"""Daily, weekly and monthly rollups of closed trades."""

import calendar
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from tradejournal.models import CalendarMonth, DailyStats, PeriodSummary, Trade, local_datetime


def local_date(value: datetime) -> date:
    return local_datetime(value).date()


def _win_rate(wins: int, count: int) -> float:
    return wins / count * 100 if count else 0.0


def daily_buckets(trades: Iterable[Trade], start: date, end: date) -> list[DailyStats]:
    """Aggregate trades by close date into one bucket per day of ``[start, end]``.

    Days without trades get an empty bucket. Trades closing outside the
    range are ignored.

    Returns:
        Buckets in ascending date order.
    """
    if end < start:
        return []

    totals: dict[date, dict] = {}
    current = start
    while current <= end:
        totals[current] = {"pnl": 0.0, "count": 0, "wins": 0, "r": 0.0, "pips": 0.0}
        current += timedelta(days=1)

    for trade in trades:
        bucket = totals.get(local_date(trade.close_time))
        if bucket is None:
            continue
        bucket["pnl"] += trade.pnl
        bucket["count"] += 1
        bucket["r"] += trade.r_multiple or 0.0
        bucket["pips"] += trade.pips or 0.0
        if trade.pnl > 0:
            bucket["wins"] += 1

    return [
        DailyStats(
            date=day,
            pnl=bucket["pnl"],
            trades_count=bucket["count"],
            win_rate=_win_rate(bucket["wins"], bucket["count"]),
            r_multiple=bucket["r"],
            pips=bucket["pips"],
        )
        for day, bucket in totals.items()
    ]


def daily_stats(
    trades: Iterable[Trade],
    days: int = 30,
    today: Optional[date] = None,
) -> list[DailyStats]:
    """Get one bucket per day for the trailing ``days`` ending at ``today``.

    ``today`` defaults to the local current date and is included in the
    window.
    """
    if days <= 0:
        return []
    end = today or date.today()
    start = end - timedelta(days=days - 1)
    return daily_buckets(trades, start, end)


def _summarize(days: list[DailyStats]) -> PeriodSummary:
    traded = [d for d in days if d.trades_count > 0]
    return PeriodSummary(
        start=days[0].date,
        end=days[-1].date,
        pnl=sum(d.pnl for d in traded),
        traded_days=len(traded),
    )


def calendar_month(trades: Iterable[Trade], year: int, month: int) -> CalendarMonth:
    """Build the calendar view of a month.

    Weeks start on Sunday and cover the whole month grid, so the first and
    last week can include days of the adjacent months. The month summary
    only counts days inside the month.
    """
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    # date.weekday() is Monday=0; shift so the grid starts on Sunday.
    grid_start = first - timedelta(days=(first.weekday() + 1) % 7)
    grid_end = last + timedelta(days=(5 - last.weekday()) % 7)

    days = daily_buckets(list(trades), grid_start, grid_end)
    weeks = [_summarize(days[i:i + 7]) for i in range(0, len(days), 7)]

    in_month = [d for d in days if first <= d.date <= last]
    traded = [d for d in in_month if d.trades_count > 0]

    return CalendarMonth(
        year=year,
        month=month,
        month_summary=_summarize(in_month),
        weeks=weeks,
        days=days,
        best_day=max(traded, key=lambda d: d.pnl) if traded else None,
        worst_day=min(traded, key=lambda d: d.pnl) if traded else None,
    )
